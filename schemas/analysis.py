"""AI analysis schemas."""

from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field


DEFAULT_BASE_URL = "https://api.openai.com/"
DEFAULT_MODEL = "gpt-5"

DEFAULT_PROMPT_TEMPLATE = """<role>
Your task is to analyze every market of the event below. Each market has two options; estimate how likely each one is.
Do not rely on Polymarket or similar platforms' odds. Judge only from domain knowledge, news coverage and official sources.
Use historical data from previous cycles as support, but weigh the current real-time situation most heavily.
Tell me which options are most likely and which are least likely, and explain why.
Follow the rules in event-rule when judging the options.
</role>
<event>
${event.title}
</event>
<event-rule>
${event.description}
</event-rule>
<markets>
question|option1|option2
${marketsText}
</markets>"""


class AnalysisConfig(BaseModel):
    """Snapshot of the user's AI settings for one analysis run."""
    model_config = ConfigDict(frozen=True)

    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""
    model: str = DEFAULT_MODEL
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE
    search_api_key: str = ""

    @property
    def has_search_tool(self) -> bool:
        return bool(self.search_api_key.strip())


class ToolPhase(str, Enum):
    """Lifecycle phase reported by the tool loop."""
    START = "start"
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class ToolStatus(str, Enum):
    """Display status of a tool activity."""
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


PHASE_TO_STATUS = {
    ToolPhase.START: ToolStatus.RUNNING,
    ToolPhase.SUCCESS: ToolStatus.SUCCESS,
    ToolPhase.ERROR: ToolStatus.ERROR,
    ToolPhase.INFO: ToolStatus.INFO,
}


class ToolEvent(BaseModel):
    """Progress notification emitted by the tool loop."""
    phase: ToolPhase
    call_id: str
    tool: str
    query: str = ""
    message: Optional[str] = None


class ToolActivity(BaseModel):
    """One tool call as shown in the analysis panel."""
    call_id: str
    tool: str
    query: str = ""
    status: ToolStatus
    message: Optional[str] = None


class SegmentKind(str, Enum):
    """Kind of content segment."""
    TEXT = "text"
    REASONING = "reasoning"


class ContentSegment(BaseModel):
    """A visible or reasoning slice of the model output."""
    kind: SegmentKind
    body: str
    open: bool = False  # reasoning block still streaming


class AnalysisState(BaseModel):
    """Observable state of an analysis session."""
    content: str = ""
    loading: bool = False
    error: Optional[str] = None
    started: bool = False
    restored: bool = False
    tool_activities: List[ToolActivity] = Field(default_factory=list)
