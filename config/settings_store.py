"""Persisted AI settings edited from the settings form."""

import logging
from typing import Optional

from pydantic import ValidationError

from memory.sqlite_store import SQLiteKeyValueStore
from schemas.analysis import AnalysisConfig

logger = logging.getLogger(__name__)


class SettingsStore:
    """Loads the AnalysisConfig on init and writes it back on every change."""

    STORAGE_KEY = "polymind-ai-config"

    def __init__(self, store: SQLiteKeyValueStore, defaults: Optional[AnalysisConfig] = None):
        self.store = store
        self.defaults = defaults or AnalysisConfig()
        self._config = self._load()

    def _load(self) -> AnalysisConfig:
        raw = self.store.get_json(self.STORAGE_KEY)
        if not isinstance(raw, dict):
            return self.defaults

        # fields missing from older saves fall back to defaults
        merged = self.defaults.model_dump()
        merged.update({key: value for key, value in raw.items() if key in merged})
        try:
            return AnalysisConfig(**merged)
        except ValidationError as e:
            logger.warning(f"Stored AI settings are invalid, using defaults: {e}")
            return self.defaults

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    def save(self, config: AnalysisConfig) -> AnalysisConfig:
        self._config = config
        self.store.set_json(self.STORAGE_KEY, config.model_dump())
        logger.info("AI settings saved")
        return config

    def update(self, **changes) -> AnalysisConfig:
        """Save a copy of the current config with the given fields changed."""
        return self.save(AnalysisConfig(**{**self._config.model_dump(), **changes}))
