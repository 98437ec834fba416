"""Market data schemas for the Polymarket Gamma and CLOB APIs."""

import json
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def safe_json_parse(raw: Any, fallback: Optional[list] = None) -> list:
    """Parse a JSON-encoded list, returning fallback on bad input."""
    if fallback is None:
        fallback = []
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, str):
        return fallback
    try:
        parsed = json.loads(raw)
    except ValueError:
        return fallback
    return parsed if isinstance(parsed, list) else fallback


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class _ApiModel(BaseModel):
    """Base for camelCase API payloads."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data):
        # null fields fall back to the declared defaults
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class Market(_ApiModel):
    """A single binary market inside an event."""
    id: str = ""
    question: str = ""
    condition_id: str = Field("", alias="conditionId")
    slug: str = ""
    outcomes: str = "[]"  # JSON string: ["Yes", "No"]
    outcome_prices: str = Field("[]", alias="outcomePrices")
    active: bool = False
    closed: bool = False
    volume: str = "0"
    liquidity: str = "0"
    best_bid: float = Field(0.0, alias="bestBid")
    best_ask: float = Field(0.0, alias="bestAsk")
    spread: float = 0.0
    clob_token_ids: str = Field("[]", alias="clobTokenIds")
    end_date: str = Field("", alias="endDate")
    description: str = ""

    @field_validator("id", "question", "condition_id", "slug", "end_date", "description",
                     "volume", "liquidity", mode="before")
    @classmethod
    def _text(cls, value):
        return str(value)

    @field_validator("outcomes", "outcome_prices", "clob_token_ids", mode="before")
    @classmethod
    def _json_list_as_string(cls, value):
        if isinstance(value, list):
            return json.dumps(value)
        return str(value)

    @field_validator("best_bid", "best_ask", "spread", mode="before")
    @classmethod
    def _safe_float(cls, value):
        return _to_float(value)

    def outcome_list(self) -> List[str]:
        return [str(item) for item in safe_json_parse(self.outcomes)]

    def price_list(self) -> List[float]:
        return [_to_float(item) for item in safe_json_parse(self.outcome_prices)]

    def token_ids(self) -> List[str]:
        return [str(item) for item in safe_json_parse(self.clob_token_ids)]


class PolyEvent(_ApiModel):
    """An event grouping one or more markets."""
    id: str = ""
    slug: str = ""
    title: str = ""
    description: str = ""
    start_date: str = Field("", alias="startDate")
    end_date: str = Field("", alias="endDate")
    image: str = ""
    active: bool = False
    closed: bool = False
    archived: bool = False
    liquidity: float = 0.0
    volume: float = 0.0
    markets: List[Market] = Field(default_factory=list)
    comment_count: int = Field(0, alias="commentCount")

    @field_validator("id", "slug", "title", "description", "image",
                     "start_date", "end_date", mode="before")
    @classmethod
    def _text(cls, value):
        return str(value)

    @field_validator("liquidity", "volume", mode="before")
    @classmethod
    def _safe_float(cls, value):
        return _to_float(value)

    @field_validator("markets", mode="before")
    @classmethod
    def _market_list(cls, value):
        return value if isinstance(value, list) else []

    @field_validator("comment_count", mode="before")
    @classmethod
    def _safe_int(cls, value):
        return int(_to_float(value))

    def active_markets(self) -> List[Market]:
        return [market for market in self.markets if market.active]


class OrderBookEntry(BaseModel):
    """Price level in an order book."""
    price: str
    size: str


class OrderBook(BaseModel):
    """Bids (best first) and asks (best first) for one outcome token."""
    bids: List[OrderBookEntry] = Field(default_factory=list)
    asks: List[OrderBookEntry] = Field(default_factory=list)
