"""Tavily web search adapter used by the search_web tool."""

import logging
from typing import Any, List, Optional
from pydantic import BaseModel, Field

from llm.errors import SearchError
from llm.transport import CancelToken, post_json

logger = logging.getLogger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
MAX_RESULTS = 5


class SearchResult(BaseModel):
    """A single web search hit."""
    title: str = ""
    url: str = ""
    snippet: str = ""


class SearchResponse(BaseModel):
    """Normalized search result set fed back to the model."""
    query: str
    answer: str = ""
    results: List[SearchResult] = Field(default_factory=list)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


class TavilySearchClient:
    """
    Thin client for the Tavily search API.

    Provider payloads are decoded field by field; anything missing or of
    the wrong type becomes an empty string.
    """

    def __init__(
        self,
        api_key: str,
        search_url: str = TAVILY_SEARCH_URL,
        timeout: int = 30
    ):
        self.api_key = api_key.strip()
        self.search_url = search_url
        self.timeout = timeout

    def search(self, query: str, cancel_token: Optional[CancelToken] = None) -> SearchResponse:
        """
        Run an advanced search.

        Raises:
            SearchError: provider returned a non-2xx status
        """
        body = {
            "api_key": self.api_key,
            "query": query,
            "search_depth": "advanced",
            "include_answer": True,
            "max_results": MAX_RESULTS,
        }
        logger.info(f"Searching web for: {query}")
        raw = post_json(
            self.search_url,
            body,
            cancel_token=cancel_token,
            timeout=self.timeout,
            error_cls=SearchError
        )
        return self._normalize(query, raw)

    @staticmethod
    def _normalize(query: str, raw: Any) -> SearchResponse:
        if not isinstance(raw, dict):
            raw = {}

        items = raw.get("results")
        if not isinstance(items, list):
            items = []

        results = []
        for item in items[:MAX_RESULTS]:
            if not isinstance(item, dict):
                item = {}
            results.append(SearchResult(
                title=_text(item.get("title")),
                url=_text(item.get("url")),
                snippet=_text(item.get("content"))
            ))

        return SearchResponse(
            query=query,
            answer=_text(raw.get("answer")),
            results=results
        )
