"""Local persistence for settings and analysis history."""

from .models import AIHistoryEntry
from .sqlite_store import SQLiteKeyValueStore
from .history_store import AIHistoryStore

__all__ = [
    "AIHistoryEntry",
    "SQLiteKeyValueStore",
    "AIHistoryStore",
]
