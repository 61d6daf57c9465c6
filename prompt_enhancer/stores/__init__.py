from .history import HistoryEntry, HistoryStore

__all__ = ["HistoryEntry", "HistoryStore"]
