"""Clients for external data sources."""

from .gamma_api import GammaAPIClient
from .clob_api import ClobAPIClient
from .tavily_search import TavilySearchClient, SearchResponse, SearchResult

__all__ = [
    "GammaAPIClient",
    "ClobAPIClient",
    "TavilySearchClient",
    "SearchResponse",
    "SearchResult",
]
