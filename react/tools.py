"""Tools the model may call during an analysis run."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from llm.transport import CancelToken
from retrieval.tavily_search import SearchResponse, TavilySearchClient

logger = logging.getLogger(__name__)


class Tool(ABC):
    """Abstract base class for tools."""
    name: str
    description: str
    parameters: Dict[str, Any]

    @abstractmethod
    def execute(self, cancel_token: Optional[CancelToken] = None, **kwargs) -> Any:
        """Execute the tool with given arguments."""
        pass

    def get_definition(self) -> Dict:
        """Get OpenAI-compatible tool definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters
            }
        }


class SearchWebTool(Tool):
    """Web search backed by Tavily."""

    name = "search_web"
    description = "Search the web for up-to-date information relevant to the analysis task."

    parameters = {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Search query keywords"
            }
        },
        "required": ["query"],
        "additionalProperties": False
    }

    def __init__(self, search_client: TavilySearchClient):
        """
        Initialize search tool.

        Args:
            search_client: TavilySearchClient instance
        """
        self.search_client = search_client

    @staticmethod
    def parse_query(raw_arguments: str) -> Optional[str]:
        """Extract a non-blank query from the model's raw JSON arguments."""
        try:
            args = json.loads(raw_arguments or "")
        except ValueError:
            return None
        if not isinstance(args, dict):
            return None
        query = args.get("query")
        if not isinstance(query, str) or not query.strip():
            return None
        return query.strip()

    def execute(self, cancel_token: Optional[CancelToken] = None, query: str = "") -> SearchResponse:
        """Search the web. Search failures propagate to the caller."""
        logger.info(f"search_web: {query}")
        return self.search_client.search(query, cancel_token)
