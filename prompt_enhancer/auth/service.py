"""
Passwordless authentication service.

Two-step protocol:
- request_code(email): create identity if needed, replace any pending code,
  store a fresh one with a fixed TTL and deliver it out-of-band
- verify_code(email, code): consume the matching pending code, record the
  login and mint a signed session token

This is the recovery boundary for collaborator failures: store and
notifier errors are logged here with detail and re-raised as the generic
DeliveryError / AuthenticationError, so no internal error reaches a client.
"""

from __future__ import annotations

from datetime import timedelta
from typing import NamedTuple, Optional

from email_validator import EmailNotValidError, validate_email

from .codes import DEFAULT_CODE_LENGTH, generate_code, is_well_formed_code
from .identities import IdentityStore
from .models import Identity, SessionClaims, normalize_email
from .notifier import Notifier
from .session import SessionSigner
from .store import PendingCodeStore
from ..utils.exceptions import (
    AuthenticationError,
    DeliveryError,
    InputValidationError,
    InvalidCodeError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

CODE_TTL = timedelta(minutes=10)


class LoginResult(NamedTuple):
    identity: Identity
    token: str
    max_age: int


def validate_address(email: str) -> str:
    """Return the normalized address or raise InputValidationError."""
    email = normalize_email(email)
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise InputValidationError("Invalid email address", field="email")
    return email


class AuthService:
    def __init__(
        self,
        identities: IdentityStore,
        codes: PendingCodeStore,
        notifier: Notifier,
        signer: SessionSigner,
        code_length: int = DEFAULT_CODE_LENGTH,
        code_ttl: timedelta = CODE_TTL,
    ):
        self.identities = identities
        self.codes = codes
        self.notifier = notifier
        self.signer = signer
        self.code_length = code_length
        self.code_ttl = code_ttl

    def request_code(self, email: str) -> None:
        """
        Issue and deliver a fresh code for email.

        Raises:
            InputValidationError: Malformed address
            DeliveryError: Anything after validation failed
        """
        email = validate_address(email)

        try:
            self.identities.get_or_create(email)
            code = generate_code(self.code_length)
            self.codes.put(email, code, self.code_ttl)
        except Exception as e:
            logger.error("Code request failed before delivery", email=email, error=str(e))
            raise DeliveryError() from e

        try:
            self.notifier.deliver(email, code)
        except Exception as e:
            logger.error("Code delivery failed", email=email, error=str(e))
            self._rollback(email)
            raise DeliveryError() from e

        logger.info("OTP issued", email=email, ttl_seconds=int(self.code_ttl.total_seconds()))

    def _rollback(self, email: str) -> None:
        # An undelivered code would expire harmlessly; removing it is best-effort
        try:
            self.codes.evict(email)
        except Exception as e:
            logger.warning("Could not roll back undelivered code", email=email, error=str(e))

    def verify_code(self, email: str, code: str) -> LoginResult:
        """
        Exchange a valid pending code for a session.

        Raises:
            InputValidationError: Malformed address or code
            InvalidCodeError: No live code matches (wrong, expired, used)
            AuthenticationError: Store failure
        """
        email = validate_address(email)
        code = (code or "").strip()
        if not is_well_formed_code(code, self.code_length):
            raise InputValidationError(f"OTP must be {self.code_length} digits", field="otp")

        try:
            record = self.codes.take(email, code)
        except Exception as e:
            logger.error("Code lookup failed", email=email, error=str(e))
            raise AuthenticationError() from e

        if record is None:
            logger.info("OTP verification rejected", email=email)
            raise InvalidCodeError()

        try:
            identity = self.identities.record_login(email)
        except Exception as e:
            logger.error("Login could not be recorded", email=email, error=str(e))
            raise AuthenticationError() from e

        token = self.signer.mint(identity)
        logger.info("Login successful", user_id=identity.id, role=identity.role)
        return LoginResult(identity=identity, token=token, max_age=self.signer.max_age_seconds)

    def current_session(self, token: Optional[str]) -> Optional[SessionClaims]:
        return self.signer.verify(token)
