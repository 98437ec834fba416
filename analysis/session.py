"""Per-event AI analysis session."""

import logging
import threading
from typing import Callable, List, Optional

from llm.base_client import BaseLLMClient
from llm.openai_client import OpenAIClient
from llm.transport import CancelToken
from react.loop import stream_analysis
from react.tools import SearchWebTool
from retrieval.tavily_search import TavilySearchClient
from schemas.analysis import (
    AnalysisConfig,
    AnalysisState,
    ContentSegment,
    PHASE_TO_STATUS,
    SegmentKind,
    ToolActivity,
    ToolEvent,
)
from schemas.market import Market, PolyEvent
from .prompt import build_prompt
from .segmenter import parse_think_blocks

logger = logging.getLogger(__name__)

MISSING_API_KEY = "Please configure your API Key in Settings first."


def default_client_factory(config: AnalysisConfig) -> BaseLLMClient:
    return OpenAIClient(base_url=config.base_url, api_key=config.api_key, model=config.model)


def default_search_factory(config: AnalysisConfig) -> Optional[SearchWebTool]:
    if not config.has_search_tool:
        return None
    return SearchWebTool(TavilySearchClient(config.search_api_key))


class AnalysisSession:
    """
    Observable state of the AI analysis for one event.

    Each run executes on its own worker thread with a fresh CancelToken.
    Every callback checks that its token is still the session's active
    token before touching state, so a superseded run can never write.
    """

    def __init__(
        self,
        config: AnalysisConfig,
        event: Optional[PolyEvent] = None,
        markets: Optional[List[Market]] = None,
        on_complete: Optional[Callable[[str, AnalysisConfig], None]] = None,
        client_factory: Callable[[AnalysisConfig], BaseLLMClient] = default_client_factory,
        search_factory: Callable[[AnalysisConfig], Optional[SearchWebTool]] = default_search_factory
    ):
        """
        Initialize session.

        Args:
            config: AI settings snapshot used by the next run
            event: Event being analyzed (used to build the prompt)
            markets: Markets to include; defaults to the event's markets
            on_complete: Called with the final text and the config the run
                started with, after a successful run
            client_factory: Builds the chat client for a run
            search_factory: Builds the search tool, or None to stream directly
        """
        self.config = config
        self.event = event
        self.markets = markets
        self.on_complete = on_complete
        self.client_factory = client_factory
        self.search_factory = search_factory

        self._lock = threading.RLock()
        self._token: Optional[CancelToken] = None
        self._run_config: Optional[AnalysisConfig] = None
        self._thread: Optional[threading.Thread] = None
        self._state = AnalysisState()

    # Public API

    def start(self, prompt: Optional[str] = None) -> Optional[threading.Thread]:
        """
        Start a new run, cancelling any run in flight.

        Returns the worker thread, or None if nothing was started.
        """
        if not self.config.api_key:
            with self._lock:
                self._state.error = MISSING_API_KEY
                self._state.started = True
            logger.warning("Analysis requested without an API key")
            return None

        if prompt is None:
            if self.event is None:
                return None
            prompt = build_prompt(self.config.prompt_template, self.event, self.markets)

        token = CancelToken()
        config = self.config
        with self._lock:
            self._cancel_locked()
            self._token = token
            self._run_config = config
            self._state = AnalysisState(loading=True, started=True)

        thread = threading.Thread(
            target=self._run,
            args=(config, prompt, token),
            name="analysis-run",
            daemon=True
        )
        with self._lock:
            self._thread = thread
        logger.info(f"Starting analysis with model {config.model}")
        thread.start()
        return thread

    def restore(self, content: str):
        """Show a previously completed analysis without any network call."""
        with self._lock:
            self._cancel_locked()
            self._state = AnalysisState(content=content, started=True, restored=True)

    def reset(self):
        """Cancel any run and clear all state."""
        with self._lock:
            self._cancel_locked()
            self._state = AnalysisState()

    def state(self) -> AnalysisState:
        """Snapshot of the current state."""
        with self._lock:
            return self._state.model_copy(deep=True)

    def segments(self) -> List[ContentSegment]:
        return parse_think_blocks(self.state().content)

    @property
    def is_thinking(self) -> bool:
        state = self.state()
        if not state.loading:
            return False
        segments = parse_think_blocks(state.content)
        return bool(segments) and segments[-1].kind == SegmentKind.REASONING

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Join the current worker. Returns True if no run is still alive."""
        with self._lock:
            thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    # Worker side

    def _run(self, config: AnalysisConfig, prompt: str, token: CancelToken):
        try:
            client = self.client_factory(config)
            search_tool = self.search_factory(config)
        except Exception as e:
            logger.error(f"Failed to set up analysis clients: {e}")
            self._handle_error(token, str(e))
            return

        stream_analysis(
            llm_client=client,
            prompt=prompt,
            on_chunk=lambda text: self._handle_chunk(token, text),
            on_done=lambda: self._handle_done(token),
            on_error=lambda message: self._handle_error(token, message),
            cancel_token=token,
            on_tool_event=lambda event: self._handle_tool_event(token, event),
            search_tool=search_tool
        )

    def _is_active(self, token: CancelToken) -> bool:
        return token is self._token and not token.cancelled

    def _handle_chunk(self, token: CancelToken, text: str):
        with self._lock:
            if not self._is_active(token):
                return
            self._state.content += text

    def _handle_tool_event(self, token: CancelToken, event: ToolEvent):
        with self._lock:
            if not self._is_active(token):
                return
            status = PHASE_TO_STATUS[event.phase]
            activities = self._state.tool_activities
            for index, activity in enumerate(activities):
                if activity.call_id == event.call_id:
                    activities[index] = activity.model_copy(update={
                        "status": status,
                        "message": event.message,
                        "query": event.query or activity.query,
                    })
                    return
            activities.append(ToolActivity(
                call_id=event.call_id,
                tool=event.tool,
                query=event.query,
                status=status,
                message=event.message
            ))

    def _handle_done(self, token: CancelToken):
        with self._lock:
            if not self._is_active(token):
                return
            self._state.loading = False
            self._token = None
            content = self._state.content
            config = self._run_config

        logger.info(f"Analysis finished ({len(content)} chars)")
        if content and self.on_complete:
            self.on_complete(content, config)

    def _handle_error(self, token: CancelToken, message: str):
        with self._lock:
            if not self._is_active(token):
                return
            self._state.error = message
            self._state.loading = False
            self._token = None

    def _cancel_locked(self):
        if self._token is not None:
            self._token.cancel()
            self._token = None
