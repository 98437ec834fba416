"""Bounded history of completed AI analyses."""

import logging
import threading
from typing import List, Optional

from pydantic import ValidationError

from .models import AIHistoryEntry
from .sqlite_store import SQLiteKeyValueStore

logger = logging.getLogger(__name__)


class AIHistoryStore:
    """Newest-first list of analyses, persisted as one JSON document."""

    STORAGE_KEY = "polymind-ai-history"
    MAX_ENTRIES = 100

    def __init__(self, store: SQLiteKeyValueStore):
        """
        Initialize history store and load persisted entries.

        Args:
            store: Key/value store holding the history document
        """
        self.store = store
        self._lock = threading.Lock()
        self._entries: List[AIHistoryEntry] = self._load()

    def _load(self) -> List[AIHistoryEntry]:
        raw = self.store.get_json(self.STORAGE_KEY, default=[])
        if not isinstance(raw, list):
            return []

        entries = []
        for item in raw:
            try:
                entries.append(AIHistoryEntry.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid history entry: {e}")
        return entries[:self.MAX_ENTRIES]

    def _save(self):
        self.store.set_json(
            self.STORAGE_KEY,
            [entry.model_dump() for entry in self._entries]
        )

    @property
    def entries(self) -> List[AIHistoryEntry]:
        with self._lock:
            return list(self._entries)

    def add_entry(
        self,
        event_id: str,
        event_title: str,
        event_slug: str,
        content: str,
        model: str
    ) -> AIHistoryEntry:
        """Prepend a new entry, dropping the oldest past MAX_ENTRIES."""
        entry = AIHistoryEntry(
            event_id=event_id,
            event_title=event_title,
            event_slug=event_slug,
            content=content,
            model=model
        )
        with self._lock:
            self._entries = [entry] + self._entries[:self.MAX_ENTRIES - 1]
            self._save()
        logger.info(f"Saved analysis for event {event_id} to history")
        return entry

    def remove_entry(self, entry_id: str):
        with self._lock:
            self._entries = [entry for entry in self._entries if entry.id != entry_id]
            self._save()

    def clear_all(self):
        with self._lock:
            self._entries = []
            self._save()

    def get_latest_for_event(self, event_id: str) -> Optional[AIHistoryEntry]:
        with self._lock:
            for entry in self._entries:
                if entry.event_id == event_id:
                    return entry
        return None
