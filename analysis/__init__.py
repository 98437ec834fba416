"""AI analysis session, prompt rendering and output segmentation."""

from .prompt import build_prompt
from .segmenter import parse_think_blocks, normalize_markdown_tables
from .session import AnalysisSession

__all__ = [
    "build_prompt",
    "parse_think_blocks",
    "normalize_markdown_tables",
    "AnalysisSession",
]
