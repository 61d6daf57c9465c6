"""
Passwordless auth: one-time codes by email, signed session tokens.
"""

from .codes import generate_code, is_well_formed_code
from .identities import IdentityStore
from .models import Identity, IdentitySummary, PendingCode, SessionClaims, normalize_email
from .notifier import LoggingNotifier, Notifier, SmtpNotifier, build_notifier
from .service import AuthService, LoginResult, validate_address
from .session import SessionSigner
from .store import PendingCodeStore

__all__ = [
    "generate_code",
    "is_well_formed_code",
    "IdentityStore",
    "Identity",
    "IdentitySummary",
    "PendingCode",
    "SessionClaims",
    "normalize_email",
    "LoggingNotifier",
    "Notifier",
    "SmtpNotifier",
    "build_notifier",
    "AuthService",
    "LoginResult",
    "validate_address",
    "SessionSigner",
    "PendingCodeStore",
]
