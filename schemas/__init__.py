"""Pydantic schemas for Polymind."""

from .analysis import (
    AnalysisConfig,
    AnalysisState,
    ContentSegment,
    SegmentKind,
    ToolActivity,
    ToolEvent,
    ToolPhase,
    ToolStatus,
)
from .market import Market, PolyEvent, OrderBook, OrderBookEntry, safe_json_parse

__all__ = [
    "AnalysisConfig",
    "AnalysisState",
    "ContentSegment",
    "SegmentKind",
    "ToolActivity",
    "ToolEvent",
    "ToolPhase",
    "ToolStatus",
    "Market",
    "PolyEvent",
    "OrderBook",
    "OrderBookEntry",
    "safe_json_parse",
]
