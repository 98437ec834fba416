"""Memory data models."""

import random
import string
import time
from pydantic import BaseModel, Field


def _now_ms() -> int:
    return int(time.time() * 1000)


def _base36(length: int) -> str:
    alphabet = string.digits + string.ascii_lowercase
    return "".join(random.choice(alphabet) for _ in range(length))


def new_entry_id() -> str:
    """`<epoch ms>-<6 base36 chars>`."""
    return f"{_now_ms()}-{_base36(6)}"


class AIHistoryEntry(BaseModel):
    """A completed AI analysis for one event."""
    id: str = Field(default_factory=new_entry_id)
    event_id: str
    event_title: str = ""
    event_slug: str = ""
    content: str
    model: str = ""
    timestamp: int = Field(default_factory=_now_ms)  # epoch milliseconds
