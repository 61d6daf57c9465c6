"""
Prompt history store (data/history.json). Keyed by user_id.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from ..auth.models import utcnow
from ..core.locks import LOCK_TIMEOUT_SECONDS
from ..core.storage import JsonCollection
from ..enhance.prompts import PromptCategory

HISTORY_LIMIT = 20


class HistoryMetadata(BaseModel):
    model_used: str
    latency_ms: int = 0
    token_count: Optional[int] = None


class HistoryEntry(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    original_prompt: str
    enhanced_prompt: str
    category: PromptCategory
    created_at: datetime = Field(default_factory=utcnow)
    is_favorite: bool = False
    tags: List[str] = Field(default_factory=list)
    metadata: HistoryMetadata


class HistoryStore:
    def __init__(
        self,
        data_dir: Path,
        lock_timeout: float = LOCK_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._docs = JsonCollection(Path(data_dir) / "history.json", "history", lock_timeout)
        self._clock = clock

    def add(
        self,
        user_id: str,
        original_prompt: str,
        enhanced_prompt: str,
        category: PromptCategory,
        model_used: str,
        latency_ms: int,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            user_id=user_id,
            original_prompt=original_prompt,
            enhanced_prompt=enhanced_prompt,
            category=category,
            created_at=self._clock(),
            tags=[PromptCategory(category).value],
            metadata=HistoryMetadata(model_used=model_used, latency_ms=latency_ms),
        )
        with self._docs.transaction() as records:
            records.append(entry.model_dump(mode="json"))
        return entry

    def list_for_user(
        self,
        user_id: str,
        limit: int = HISTORY_LIMIT,
        category: Optional[PromptCategory] = None,
        favorites_only: bool = False,
    ) -> List[HistoryEntry]:
        """Newest first."""
        entries = [HistoryEntry(**r) for r in self._docs.load() if r.get("user_id") == user_id]
        if category is not None:
            entries = [e for e in entries if e.category == PromptCategory(category)]
        if favorites_only:
            entries = [e for e in entries if e.is_favorite]
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries[:limit]

    def set_favorite(self, user_id: str, entry_id: str, value: bool) -> Optional[HistoryEntry]:
        """Returns None if the entry does not exist or belongs to someone else."""
        with self._docs.transaction() as records:
            for idx, item in enumerate(records):
                if item.get("id") == entry_id and item.get("user_id") == user_id:
                    entry = HistoryEntry(**item).model_copy(update={"is_favorite": value})
                    records[idx] = entry.model_dump(mode="json")
                    return entry
        return None
