"""Tests for the dashboard facade and per-viewer session maps."""

from config.settings import Settings
from dashboard import Dashboard, EventSessions
from memory.sqlite_store import SQLiteKeyValueStore
from schemas.market import PolyEvent


class TestDashboard:
    """Test session wiring with history and settings."""

    def setup_method(self):
        """Set up test fixtures."""
        self.dashboard = Dashboard(
            settings=Settings(db_path=":memory:", openai_api_key="", tavily_api_key=""),
            store=SQLiteKeyValueStore(":memory:")
        )
        self.sessions = self.dashboard.create_event_sessions()
        self.event = PolyEvent(id="e1", slug="fed", title="Fed decision?")

    def enable_ai(self, model="gpt-test"):
        self.dashboard.save_ai_config(self.dashboard.ai_config.model_copy(
            update={"api_key": "sk", "model": model}
        ))

    def test_session_restores_cached_analysis(self):
        self.dashboard.history.add_entry("e1", "Fed decision?", "fed", "Cached content", "gpt-test")

        state = self.sessions.session_for(self.event).state()

        assert state.content == "Cached content"
        assert state.restored is True

    def test_session_reused_and_closed(self):
        session = self.sessions.session_for(self.event)
        assert self.sessions.session_for(self.event) is session

        other = PolyEvent(id="e2", title="Other")
        self.sessions.session_for(other)

        assert self.sessions.session_for(self.event) is not session

    def test_completed_run_recorded(self, fake_llm):
        """Test a finished analysis lands in history with the configured model."""
        self.enable_ai()
        llm = fake_llm(stream_chunks=["Fresh analysis"])
        session = self.sessions.session_for(self.event)
        session.client_factory = lambda config: llm

        session.start(prompt="Analyze")
        assert session.wait(5)

        entry = self.dashboard.history.get_latest_for_event("e1")
        assert entry.content == "Fresh analysis"
        assert entry.model == "gpt-test"
        assert entry.event_slug == "fed"

    def test_history_keeps_model_of_the_run(self, blocking_llm):
        """Test changing the model mid-run does not relabel the result."""
        self.enable_ai("gpt-first")
        llm = blocking_llm(stream_chunks=["Result"])
        session = self.sessions.session_for(self.event)
        session.client_factory = lambda config: llm

        session.start(prompt="Analyze")
        assert llm.entered.wait(5)
        self.enable_ai("gpt-second")
        llm.release.set()
        assert session.wait(5)

        assert self.dashboard.history.get_latest_for_event("e1").model == "gpt-first"

    def test_settings_change_reaches_existing_session(self):
        session = self.sessions.session_for(self.event)
        self.dashboard.save_ai_config(self.dashboard.ai_config.model_copy(update={"model": "gpt-x"}))

        assert self.sessions.session_for(self.event).config.model == "gpt-x"
        assert session.config.model == "gpt-x"


class TestEventSessions:
    """Test that viewers sharing one dashboard stay independent."""

    def setup_method(self):
        """Set up test fixtures."""
        self.dashboard = Dashboard(
            settings=Settings(db_path=":memory:", openai_api_key="sk", tavily_api_key=""),
            store=SQLiteKeyValueStore(":memory:")
        )
        self.event_x = PolyEvent(id="x", slug="x", title="Event X")
        self.event_y = PolyEvent(id="y", slug="y", title="Event Y")

    def test_other_viewer_does_not_cancel_run(self, blocking_llm):
        """Test one viewer opening another event leaves a running analysis alone."""
        viewer_a = self.dashboard.create_event_sessions()
        viewer_b = self.dashboard.create_event_sessions()
        assert isinstance(viewer_a, EventSessions)

        llm = blocking_llm(stream_chunks=["A result"])
        session_a = viewer_a.session_for(self.event_x)
        session_a.client_factory = lambda config: llm
        session_a.start(prompt="Analyze")
        assert llm.entered.wait(5)

        viewer_b.session_for(self.event_y)
        llm.release.set()
        assert session_a.wait(5)

        assert session_a.state().content == "A result"
        assert self.dashboard.history.get_latest_for_event("x").content == "A result"

    def test_viewers_on_same_event_have_separate_sessions(self):
        session_a = self.dashboard.create_event_sessions().session_for(self.event_x)
        session_b = self.dashboard.create_event_sessions().session_for(self.event_x)

        assert session_a is not session_b

    def test_close_session(self, blocking_llm):
        """Test closing an event's session cancels its run silently."""
        sessions = self.dashboard.create_event_sessions()
        llm = blocking_llm(stream_chunks=["late"])
        session = sessions.session_for(self.event_x)
        session.client_factory = lambda config: llm

        session.start(prompt="Analyze")
        assert llm.entered.wait(5)
        sessions.close_session("x")
        llm.release.set()
        assert session.wait(5)

        assert session.state().content == ""
        assert self.dashboard.history.entries == []
        assert sessions.session_for(self.event_x) is not session
