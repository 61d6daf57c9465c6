"""
JSON document persistence shared by the stores.

Each store owns one file under the data directory, shaped as
{"<collection>": [ {...}, {...} ]}. Writes are atomic (temp file + move)
and every read-modify-write runs under a named file lock.
"""

from __future__ import annotations

import json
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List

from .locks import LOCK_TIMEOUT_SECONDS, acquire_lock
from ..utils.exceptions import StoreError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def atomic_write(path: Path, payload: Dict[str, Any]) -> None:
    """Atomically write JSON to the target path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w", dir=str(path.parent), delete=False, encoding="utf-8"
    ) as tf:
        json.dump(payload, tf, indent=2, ensure_ascii=False, default=str)
        temp_path = Path(tf.name)
    try:
        shutil.move(str(temp_path), str(path))
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


class JsonCollection:
    """A list of JSON records in a single file."""

    def __init__(
        self,
        path: Path,
        collection: str,
        lock_timeout: float = LOCK_TIMEOUT_SECONDS,
    ):
        self.path = Path(path)
        self.collection = collection
        self.lock_timeout = lock_timeout
        self._locks_dir = self.path.parent / "locks"

    def load(self) -> List[Dict[str, Any]]:
        """Return all records; a missing file is an empty collection."""
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Corrupt store file", path=str(self.path), error=str(e))
            raise StoreError(f"Corrupt store file {self.path}")
        except OSError as e:
            raise StoreError(f"Failed to read {self.path}: {e}")
        return list(raw.get(self.collection, []))

    def save(self, records: List[Dict[str, Any]]) -> None:
        try:
            atomic_write(self.path, {self.collection: records})
        except OSError as e:
            raise StoreError(f"Failed to write {self.path}: {e}")

    @contextmanager
    def transaction(self) -> Generator[List[Dict[str, Any]], None, None]:
        """
        Lock, load, yield the mutable record list, then save it.

        The list is saved only if the block exits without an exception.
        """
        with acquire_lock(self._locks_dir, f"lock:store:{self.collection}", self.lock_timeout):
            records = self.load()
            yield records
            self.save(records)
