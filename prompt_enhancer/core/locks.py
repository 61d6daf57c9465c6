"""
Named file locks guarding read-modify-write cycles on JSON stores.

Keys: lock:store:pending_codes, lock:store:identities, etc.
File-based (O_CREAT | O_EXCL), so they hold across worker processes
sharing one data directory.
"""

from __future__ import annotations

import os
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from ..utils.exceptions import StoreError

LOCK_TIMEOUT_SECONDS = 5.0
LOCK_POLL_INTERVAL = 0.02
# A lock file older than this is left over from a crashed process
STALE_LOCK_SECONDS = 30.0


def _lock_path(locks_dir: Path, key: str) -> Path:
    safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
    locks_dir.mkdir(parents=True, exist_ok=True)
    return locks_dir / f"{safe}.lock"


def _read_owner(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""


def _clear_if_stale(path: Path) -> None:
    try:
        if time.time() - path.stat().st_mtime > STALE_LOCK_SECONDS:
            path.unlink()
    except FileNotFoundError:
        pass


@contextmanager
def acquire_lock(
    locks_dir: Path,
    key: str,
    timeout_seconds: float = LOCK_TIMEOUT_SECONDS,
) -> Generator[None, None, None]:
    """
    Acquire a named lock, blocking until acquired or timeout.

    Raises:
        StoreError: If the lock is not acquired within timeout_seconds
    """
    path = _lock_path(locks_dir, key)
    owner = f"{os.getpid()}:{uuid.uuid4().hex}"
    deadline = time.monotonic() + timeout_seconds
    while True:
        try:
            fd = os.open(str(path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            if time.monotonic() >= deadline:
                raise StoreError(f"Could not acquire lock {key} within {timeout_seconds}s")
            _clear_if_stale(path)
            time.sleep(LOCK_POLL_INTERVAL)
            continue
        try:
            os.write(fd, owner.encode())
        finally:
            os.close(fd)
        break

    try:
        yield
    finally:
        # The file may have been cleared as stale and re-acquired by someone else
        if _read_owner(path) == owner:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
