"""Application settings."""

import os
import logging
from typing import Optional
from pydantic import BaseModel

from schemas.analysis import AnalysisConfig, DEFAULT_BASE_URL, DEFAULT_MODEL


class Settings(BaseModel):
    """Application configuration settings."""

    # Market data sources
    gamma_base_url: str = "https://gamma-api.polymarket.com"
    clob_base_url: str = "https://clob.polymarket.com"

    # Search tool
    tavily_search_url: str = "https://api.tavily.com/search"

    # Chat endpoint defaults (user can override them in the settings form)
    openai_base_url: str = DEFAULT_BASE_URL
    openai_model: str = DEFAULT_MODEL
    openai_api_key: Optional[str] = None
    tavily_api_key: Optional[str] = None

    # Timeouts in seconds
    request_timeout: int = 30
    chat_timeout: int = 120

    # Local storage
    db_path: str = "data/polymind.db"

    # Events feed
    page_size: int = 50

    # Logging
    verbose: bool = False

    def __init__(self, **data):
        # Auto-load keys and endpoints from environment if not provided
        if data.get("openai_api_key") is None:
            data["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

        if data.get("tavily_api_key") is None:
            data["tavily_api_key"] = os.environ.get("TAVILY_API_KEY")

        if "openai_base_url" not in data and os.environ.get("OPENAI_BASE_URL"):
            data["openai_base_url"] = os.environ["OPENAI_BASE_URL"]

        if "openai_model" not in data and os.environ.get("OPENAI_MODEL"):
            data["openai_model"] = os.environ["OPENAI_MODEL"]

        if "db_path" not in data and os.environ.get("POLYMIND_DB_PATH"):
            data["db_path"] = os.environ["POLYMIND_DB_PATH"]

        super().__init__(**data)

    def default_analysis_config(self) -> AnalysisConfig:
        """Seed config used until the user saves their own."""
        return AnalysisConfig(
            base_url=self.openai_base_url,
            api_key=self.openai_api_key or "",
            model=self.openai_model,
            search_api_key=self.tavily_api_key or "",
        )


def configure_logging(verbose: bool = False):
    """Set up root logging for the app."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
