"""Dashboard facade wiring settings, history, market data and AI sessions."""

import logging
import threading
from typing import Dict, List, Optional

from config.settings import Settings
from config.settings_store import SettingsStore
from schemas.analysis import AnalysisConfig
from schemas.market import OrderBook, PolyEvent

# Data providers
from retrieval.gamma_api import GammaAPIClient
from retrieval.clob_api import ClobAPIClient

# Persistence
from memory.sqlite_store import SQLiteKeyValueStore
from memory.history_store import AIHistoryStore

# AI analysis
from analysis.session import AnalysisSession
from llm.openai_client import OpenAIClient
from react.tools import SearchWebTool
from retrieval.tavily_search import TavilySearchClient

logger = logging.getLogger(__name__)


class Dashboard:
    """Everything the UI needs, behind one object."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[SQLiteKeyValueStore] = None
    ):
        """
        Initialize dashboard.

        Args:
            settings: Application settings
            store: Key/value store; defaults to one at settings.db_path
        """
        self.settings = settings or Settings()

        self.store = store or SQLiteKeyValueStore(db_path=self.settings.db_path)
        self.settings_store = SettingsStore(self.store, self.settings.default_analysis_config())
        self.history = AIHistoryStore(self.store)

        self.gamma = GammaAPIClient(
            base_url=self.settings.gamma_base_url,
            timeout=self.settings.request_timeout
        )
        self.clob = ClobAPIClient(
            base_url=self.settings.clob_base_url,
            timeout=self.settings.request_timeout
        )

        logger.info(f"Dashboard initialized (db: {self.settings.db_path})")

    # Settings

    @property
    def ai_config(self) -> AnalysisConfig:
        return self.settings_store.config

    def save_ai_config(self, config: AnalysisConfig) -> AnalysisConfig:
        return self.settings_store.save(config)

    # Market data

    def list_events(self, page: int = 0) -> List[PolyEvent]:
        return self.gamma.get_events(
            limit=self.settings.page_size,
            offset=page * self.settings.page_size
        )

    def get_event(self, slug: str) -> Optional[PolyEvent]:
        return self.gamma.get_event_by_slug(slug)

    def get_order_book(self, token_id: str) -> OrderBook:
        return self.clob.get_order_book(token_id)

    # AI analysis

    def _client_factory(self, config: AnalysisConfig) -> OpenAIClient:
        return OpenAIClient(
            base_url=config.base_url,
            api_key=config.api_key,
            model=config.model,
            timeout=self.settings.chat_timeout
        )

    def _search_factory(self, config: AnalysisConfig) -> Optional[SearchWebTool]:
        if not config.has_search_tool:
            return None
        return SearchWebTool(TavilySearchClient(
            config.search_api_key,
            search_url=self.settings.tavily_search_url,
            timeout=self.settings.request_timeout
        ))

    def create_event_sessions(self) -> "EventSessions":
        """A fresh session map for one viewer."""
        return EventSessions(self)

    def record_analysis(self, event: PolyEvent, content: str, config: AnalysisConfig):
        """Store a completed run under the model it actually ran with."""
        self.history.add_entry(
            event_id=event.id,
            event_title=event.title,
            event_slug=event.slug,
            content=content,
            model=config.model
        )


class EventSessions:
    """
    Analysis sessions of one viewer, keyed by event id.

    The Dashboard is shared by every browser session on the server, so
    each viewer keeps its own EventSessions and never touches another
    viewer's runs.
    """

    def __init__(self, dashboard: Dashboard):
        self.dashboard = dashboard
        self._lock = threading.Lock()
        self._sessions: Dict[str, AnalysisSession] = {}

    def session_for(self, event: PolyEvent, restore_cached: bool = True) -> AnalysisSession:
        """
        Get the analysis session for an event, creating it on first use.

        A new session picks up the latest cached analysis for the event.
        This viewer's sessions for other events are closed, aborting their runs.
        """
        dashboard = self.dashboard
        with self._lock:
            stale = [self._sessions.pop(key) for key in list(self._sessions) if key != event.id]
            session = self._sessions.get(event.id)
            created = session is None
            if created:
                session = AnalysisSession(
                    config=dashboard.ai_config,
                    event=event,
                    markets=event.markets,
                    on_complete=lambda content, config: dashboard.record_analysis(event, content, config),
                    client_factory=dashboard._client_factory,
                    search_factory=dashboard._search_factory
                )
                self._sessions[event.id] = session

        for old in stale:
            old.reset()

        if created and restore_cached:
            cached = dashboard.history.get_latest_for_event(event.id)
            if cached:
                session.restore(cached.content)

        # pick up settings changed since the session was created
        session.config = dashboard.ai_config
        return session

    def close_session(self, event_id: str):
        with self._lock:
            session = self._sessions.pop(event_id, None)
        if session:
            session.reset()

