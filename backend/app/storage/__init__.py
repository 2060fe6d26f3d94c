"""Data storage layer."""

from app.storage.history_store import HistoryLoadError, JsonHistoryStore

__all__ = [
    "HistoryLoadError",
    "JsonHistoryStore",
]
