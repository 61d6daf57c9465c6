"""
Identity storage with JSON-based persistence (data/identities.json).

Identities are created lazily: the first code request or verification for
an unseen address creates one with the ordinary role. Nothing here deletes
identities.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from .models import Identity, normalize_email, utcnow
from ..core.locks import LOCK_TIMEOUT_SECONDS
from ..core.storage import JsonCollection
from ..utils.logger import get_logger

logger = get_logger(__name__)


class IdentityStore:
    """Identity CRUD on top of a JSON collection."""

    def __init__(
        self,
        data_dir: Path,
        lock_timeout: float = LOCK_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._docs = JsonCollection(Path(data_dir) / "identities.json", "identities", lock_timeout)
        self._clock = clock

    def list_identities(self) -> List[Identity]:
        return [Identity(**item) for item in self._docs.load()]

    def get_by_email(self, email: str) -> Optional[Identity]:
        email = normalize_email(email)
        return next((i for i in self.list_identities() if i.email == email), None)

    def get_by_id(self, identity_id: str) -> Optional[Identity]:
        return next((i for i in self.list_identities() if i.id == identity_id), None)

    def get_or_create(self, email: str) -> Identity:
        """
        Return the identity for email, creating it if absent.

        Idempotent: repeated calls for the same address (in any letter case)
        return the same record and never change it.
        """
        email = normalize_email(email)
        with self._docs.transaction() as records:
            for item in records:
                if item.get("email") == email:
                    return Identity(**item)
            now = self._clock()
            identity = Identity(email=email, created_at=now, last_login=now)
            records.append(identity.model_dump(mode="json"))
        logger.info("Identity created", user_id=identity.id)
        return identity

    def record_login(self, email: str) -> Identity:
        """
        Bump last_login for email, creating the identity if absent.

        Verifying for a never-seen address is an implicit signup.
        """
        email = normalize_email(email)
        now = self._clock()
        with self._docs.transaction() as records:
            for idx, item in enumerate(records):
                if item.get("email") == email:
                    identity = Identity(**item).model_copy(update={"last_login": now})
                    records[idx] = identity.model_dump(mode="json")
                    return identity
            identity = Identity(email=email, created_at=now, last_login=now)
            records.append(identity.model_dump(mode="json"))
        logger.info("Identity created on verification", user_id=identity.id)
        return identity
