"""Tool-calling loop for AI analysis runs."""

from .tools import Tool, SearchWebTool
from .loop import ToolLoop, stream_analysis

__all__ = [
    "Tool",
    "SearchWebTool",
    "ToolLoop",
    "stream_analysis",
]
