"""Polymarket CLOB order-book client."""

import logging
from typing import Optional
import requests

from schemas.market import OrderBook, OrderBookEntry

logger = logging.getLogger(__name__)

CLOB_BASE_URL = "https://clob.polymarket.com"


def _price(entry: OrderBookEntry) -> float:
    try:
        return float(entry.price)
    except ValueError:
        return 0.0


def _entries(raw) -> list:
    if not isinstance(raw, list):
        return []
    entries = []
    for level in raw:
        if isinstance(level, dict):
            entries.append(OrderBookEntry(
                price=str(level.get("price", "0")),
                size=str(level.get("size", "0"))
            ))
    return entries


class ClobAPIClient:
    """Order books for outcome tokens."""

    def __init__(self, base_url: str = CLOB_BASE_URL, timeout: int = 30):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._last_error: Optional[str] = None

    def get_last_error(self) -> Optional[str]:
        return self._last_error

    def get_order_book(self, token_id: str) -> OrderBook:
        """
        Get the book for one token: bids highest first, asks lowest first.

        Returns an empty book on failure.
        """
        try:
            response = requests.get(
                f"{self.base_url}/book",
                params={"token_id": token_id},
                timeout=self.timeout
            )
            if response.status_code != 200:
                raise Exception(f"API returned status {response.status_code}: {response.text}")
            data = response.json()
        except Exception as e:
            self._last_error = str(e)
            logger.warning(f"CLOB API error for token {token_id}: {e}")
            return OrderBook()

        if not isinstance(data, dict):
            data = {}

        bids = sorted(_entries(data.get("bids")), key=_price, reverse=True)
        asks = sorted(_entries(data.get("asks")), key=_price)
        self._last_error = None
        return OrderBook(bids=bids, asks=asks)
