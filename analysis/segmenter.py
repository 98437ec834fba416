"""Split model output into visible and reasoning segments for display."""

import re
from typing import List, Tuple

from schemas.analysis import ContentSegment, SegmentKind

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"

_SEPARATOR_ROW = re.compile(r"^\|\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)+\|?$")
_RUN_TOGETHER_ROWS = re.compile(r"\|\s+\|")


def parse_think_blocks(raw: str) -> List[ContentSegment]:
    """
    Segment raw output on <think>...</think>.

    Blank text between blocks is dropped. A block without its closing tag
    (still streaming) is returned as an open reasoning segment. Not
    incremental: callers re-run it on the whole text after every chunk.
    """
    segments: List[ContentSegment] = []
    remaining = raw

    while remaining:
        open_idx = remaining.find(THINK_OPEN)
        if open_idx == -1:
            if remaining.strip():
                segments.append(ContentSegment(kind=SegmentKind.TEXT, body=remaining.strip()))
            break

        before = remaining[:open_idx]
        if before.strip():
            segments.append(ContentSegment(kind=SegmentKind.TEXT, body=before.strip()))

        body_start = open_idx + len(THINK_OPEN)
        close_idx = remaining.find(THINK_CLOSE, body_start)
        if close_idx == -1:
            segments.append(ContentSegment(
                kind=SegmentKind.REASONING,
                body=remaining[body_start:],
                open=True
            ))
            break

        segments.append(ContentSegment(
            kind=SegmentKind.REASONING,
            body=remaining[body_start:close_idx]
        ))
        remaining = remaining[close_idx + len(THINK_CLOSE):]

    return segments


def is_markdown_table_separator(line: str) -> bool:
    return bool(_SEPARATOR_ROW.match(line.strip()))


def build_separator_from_header(header_line: str) -> str:
    """`|---|---|` with one cell per header column, or "" for fewer than two."""
    columns = [part.strip() for part in header_line.split("|") if part.strip()]
    if len(columns) < 2:
        return ""
    return "|" + "|".join("---" for _ in columns) + "|"


def normalize_markdown_tables(raw: str) -> str:
    """
    Repair tables emitted as one line or without a separator row.

    `| |` row boundaries are split onto their own lines, then a separator
    row is added under any table header that lacks one. Only the first row
    of a table is treated as a header.
    """
    lines = _RUN_TOGETHER_ROWS.sub("|\n|", raw).split("\n")
    normalized = []
    in_table = False

    for i, line in enumerate(lines):
        normalized.append(line)
        is_row = line.strip().startswith("|")
        if not is_row:
            in_table = False
            continue
        if in_table:
            continue

        in_table = True
        next_line = lines[i + 1] if i + 1 < len(lines) else None
        if next_line is None or not next_line.strip().startswith("|"):
            continue
        if is_markdown_table_separator(line) or is_markdown_table_separator(next_line):
            continue

        separator = build_separator_from_header(line)
        if separator:
            normalized.append(separator)

    return "\n".join(normalized)


def render_segments(raw: str) -> List[Tuple[SegmentKind, str, bool]]:
    """Segments ready for a Markdown renderer: (kind, markdown, open)."""
    return [
        (segment.kind, normalize_markdown_tables(segment.body), segment.open)
        for segment in parse_think_blocks(raw)
    ]


def preview_segments(raw: str, limit: int = 400) -> List[Tuple[SegmentKind, str, bool]]:
    """
    render_segments cut down to about `limit` characters of visible text.

    Truncation only happens inside text segments, so a reasoning block is
    either kept whole or dropped with everything after the cut.
    """
    preview = []
    remaining = limit
    for kind, markdown, is_open in render_segments(raw):
        if remaining <= 0:
            break
        if kind == SegmentKind.TEXT:
            if len(markdown) > remaining:
                markdown = markdown[:remaining].rstrip() + "..."
                remaining = 0
            else:
                remaining -= len(markdown)
        preview.append((kind, markdown, is_open))
    return preview
