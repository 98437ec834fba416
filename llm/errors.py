"""Error types for chat, search and analysis runs."""

from typing import Optional


class PolymindError(Exception):
    """Base class for all application errors."""


class ConfigurationError(PolymindError):
    """Required settings are missing."""


class TransportError(PolymindError):
    """Network failure before a usable response arrived."""


class HttpError(TransportError):
    """Non-2xx HTTP response."""

    prefix = "API Error"

    def __init__(self, status: int, body: str = "", reason: Optional[str] = None):
        self.status = status
        self.body = body
        super().__init__(f"{self.prefix} {status}: {body or reason or ''}")


class SearchError(HttpError):
    """Non-2xx response from the search provider."""

    prefix = "Search API Error"


class ProtocolError(PolymindError):
    """Response did not have the shape the protocol requires."""


class AnalysisCancelled(PolymindError):
    """The run was cancelled. Never surfaced to the user."""
