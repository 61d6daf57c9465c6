"""
Signed, self-contained session tokens.

We sign the claims using itsdangerous (HMAC) so:
- Claims can't be forged/tampered
- Tokens carry an absolute expiry fixed at mint time

The digest is pinned to SHA-256 on the verifying side. Tokens carry no
algorithm field, so nothing in a token can select how it is checked.
There is no server-side session table and no revocation: a token is valid
until its expiry for as long as the signing secret is unchanged.
"""

from __future__ import annotations

import hashlib
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from itsdangerous import BadData, URLSafeTimedSerializer
from pydantic import ValidationError

from .models import Identity, SessionClaims, utcnow
from ..utils.exceptions import ConfigError

SESSION_SALT = "prompt-enhancer-session"
SESSION_TTL = timedelta(days=7)


class SessionSigner:
    """Mint and verify session tokens with a server-only secret."""

    def __init__(
        self,
        secret: str,
        ttl: timedelta = SESSION_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret:
            raise ConfigError("JWT_SECRET must be set to sign session tokens")
        self.ttl = ttl
        self._clock = clock
        self._serializer = URLSafeTimedSerializer(
            secret_key=secret,
            salt=SESSION_SALT,
            signer_kwargs={"key_derivation": "hmac", "digest_method": hashlib.sha256},
        )

    @property
    def max_age_seconds(self) -> int:
        return int(self.ttl.total_seconds())

    def mint(self, identity: Identity) -> str:
        now = self._clock()
        claims = SessionClaims(
            user_id=identity.id,
            email=identity.email,
            role=identity.role,
            issued_at=now,
            expires_at=now + self.ttl,
        )
        payload = claims.model_dump(mode="json")
        payload["iat"] = int(now.timestamp())
        payload["exp"] = math.ceil(claims.expires_at.timestamp())
        return self._serializer.dumps(payload)

    def verify(self, token: Optional[str]) -> Optional[SessionClaims]:
        """
        Return the claims of a valid token, else None.

        Malformed, tampered, foreign-key and expired tokens are all None.
        """
        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=self.max_age_seconds)
        except BadData:
            return None
        if not isinstance(data, dict) or not isinstance(data.get("exp"), int):
            return None
        now = self._clock()
        if now >= datetime.fromtimestamp(data["exp"], tz=timezone.utc):
            return None
        try:
            claims = SessionClaims(**data)
        except ValidationError:
            return None
        # exp is rounded up to whole seconds; expires_at is exact
        if now >= claims.expires_at:
            return None
        return claims
