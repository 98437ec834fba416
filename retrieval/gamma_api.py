"""Polymarket Gamma API client for the events feed."""

import logging
from typing import List, Optional
import requests
from pydantic import ValidationError

from schemas.market import PolyEvent

logger = logging.getLogger(__name__)

GAMMA_BASE_URL = "https://gamma-api.polymarket.com"

# Tags hidden from the feed
EXCLUDED_TAG_IDS = [100639, 102169]


class GammaAPIClient:
    """
    Read-only client for Polymarket events.

    Failures are logged and recorded in `last_error`; callers get empty
    results instead of exceptions so the grid can still render.
    """

    def __init__(self, base_url: str = GAMMA_BASE_URL, timeout: int = 30):
        """
        Initialize Gamma API client.

        Args:
            base_url: Base URL for the Gamma API
            timeout: Request timeout in seconds (default: 30)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._last_error: Optional[str] = None

    def _get_headers(self) -> dict:
        return {
            "Accept": "application/json",
            "User-Agent": "Polymind-Dashboard/1.0"
        }

    def _handle_error(self, error: Exception, context: str) -> None:
        self._last_error = str(error)
        logger.warning(f"Gamma API error during {context}: {error}")

    def get_last_error(self) -> Optional[str]:
        return self._last_error

    def get_events(self, limit: int = 50, offset: int = 0) -> List[PolyEvent]:
        """
        Get one page of active events, newest first.

        Args:
            limit: Page size
            offset: Number of events to skip

        Returns:
            List of events (empty on failure)
        """
        # list of tuples so exclude_tag_id repeats instead of being joined
        params = [
            ("limit", limit),
            ("active", "true"),
            ("archived", "false"),
            ("closed", "false"),
            ("order", "startDate"),
            ("ascending", "false"),
            ("offset", offset),
        ]
        params.extend(("exclude_tag_id", tag_id) for tag_id in EXCLUDED_TAG_IDS)

        data = self._get("/events/pagination", params, "get_events")
        if data is None:
            return []

        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            logger.warning(f"Unexpected events response format: {type(data)}")
            return []

        self._last_error = None
        return self._parse_events(items)

    def get_event_by_slug(self, slug: str) -> Optional[PolyEvent]:
        """
        Get a single event by slug.

        Returns:
            PolyEvent if found, None otherwise
        """
        data = self._get("/events", [("slug", slug)], "get_event_by_slug")
        if data is None:
            return None

        items = data if isinstance(data, list) else [data]
        events = self._parse_events(items)
        return events[0] if events else None

    def _get(self, path: str, params: list, context: str):
        try:
            response = requests.get(
                f"{self.base_url}{path}",
                params=params,
                headers=self._get_headers(),
                timeout=self.timeout
            )

            if response.status_code != 200:
                self._handle_error(
                    Exception(f"API returned status {response.status_code}: {response.text}"),
                    context
                )
                return None

            return response.json()

        except requests.exceptions.Timeout:
            self._handle_error(
                Exception(f"Request timeout after {self.timeout}s"),
                context
            )
            return None
        except requests.exceptions.RequestException as e:
            self._handle_error(e, context)
            return None
        except ValueError as e:
            self._handle_error(Exception(f"Invalid JSON: {e}"), context)
            return None

    @staticmethod
    def _parse_events(items: list) -> List[PolyEvent]:
        events = []
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                events.append(PolyEvent.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Failed to parse event: {e}")
        return events
