"""
Pending one-time code storage (data/pending_codes.json).

Expiry is enforced logically on every read: a record past expires_at is
never returned by find(), whether or not purge_expired() has physically
removed it yet. put() also drops expired records as it goes.
"""

from __future__ import annotations

import hmac
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, List, Optional

from .models import PendingCode, normalize_email, utcnow
from ..core.locks import LOCK_TIMEOUT_SECONDS
from ..core.storage import JsonCollection
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PendingCodeStore:
    """Credential store for pending codes, keyed by address."""

    def __init__(
        self,
        data_dir: Path,
        lock_timeout: float = LOCK_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._docs = JsonCollection(Path(data_dir) / "pending_codes.json", "pending_codes", lock_timeout)
        self._clock = clock

    def _live(self, records: List[dict], now: datetime) -> List[dict]:
        return [r for r in records if PendingCode(**r).is_live(now)]

    def put(self, email: str, code: str, ttl: timedelta) -> PendingCode:
        """
        Store a new pending code for email, replacing any previous ones.

        Eviction and insert happen under one store lock, but two callers
        that each evict before the other inserts can still leave two codes
        for one address. Both stay single-use and short-lived.
        """
        email = normalize_email(email)
        now = self._clock()
        record = PendingCode(email=email, code=code, expires_at=now + ttl)
        with self._docs.transaction() as records:
            kept = [r for r in self._live(records, now) if r.get("email") != email]
            evicted = len(records) - len(kept)
            kept.append(record.model_dump(mode="json"))
            records[:] = kept
        logger.debug("Pending code stored", email=email, dropped=evicted)
        return record

    def evict(self, email: str) -> int:
        """Remove every pending code for email. Returns how many were removed."""
        email = normalize_email(email)
        with self._docs.transaction() as records:
            before = len(records)
            records[:] = [r for r in records if r.get("email") != email]
            removed = before - len(records)
        return removed

    def find(self, email: str, code: str) -> Optional[PendingCode]:
        """
        Return the live record matching email and code, else None.

        Wrong code, expired code and no code at all give the same answer.
        """
        return self._match(self._docs.load(), normalize_email(email), code, self._clock())

    def take(self, email: str, code: str) -> Optional[PendingCode]:
        """
        Find and delete the live record matching email and code in one
        locked step. Of several concurrent callers holding the same code,
        exactly one gets the record; the rest get None.
        """
        email = normalize_email(email)
        now = self._clock()
        with self._docs.transaction() as records:
            match = self._match(records, email, code, now)
            if match is not None:
                records[:] = [r for r in records if r.get("id") != match.id]
        return match

    def _match(self, records: List[dict], email: str, code: str, now: datetime) -> Optional[PendingCode]:
        match = None
        for item in records:
            record = PendingCode(**item)
            if record.email != email:
                continue
            # compare every candidate so timing does not depend on position
            if hmac.compare_digest(record.code.encode(), (code or "").encode()) and record.is_live(now):
                match = record
        return match

    def consume(self, record_id: str) -> bool:
        """Delete a pending record. Returns False if it was already gone."""
        with self._docs.transaction() as records:
            before = len(records)
            records[:] = [r for r in records if r.get("id") != record_id]
            removed = len(records) < before
        return removed

    def purge_expired(self) -> int:
        """Physically remove expired records. Returns how many were removed."""
        now = self._clock()
        with self._docs.transaction() as records:
            before = len(records)
            records[:] = self._live(records, now)
            removed = before - len(records)
        if removed:
            logger.info("Expired pending codes purged", count=removed)
        return removed
