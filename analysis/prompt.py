"""Prompt rendering from the user's template."""

import json
import re
from typing import List, Optional

from schemas.market import Market, PolyEvent

_MARKETS_PLACEHOLDER = re.compile(r"\$\{marketsText\}")
_EVENT_PLACEHOLDER = re.compile(r"\$\{event\.(\w+)\}")


def format_markets(markets: List[Market]) -> str:
    """One `question|option1|option2` line per open market."""
    lines = []
    for market in markets or []:
        if not market.active or market.closed:
            continue
        outcomes = market.outcome_list()
        first = outcomes[0] if len(outcomes) > 0 else ""
        second = outcomes[1] if len(outcomes) > 1 else ""
        lines.append(f"{market.question}|{first}|{second}")
    return "\n".join(lines)


def build_prompt(
    prompt_template: str,
    event: PolyEvent,
    markets: Optional[List[Market]] = None
) -> str:
    """
    Fill ${marketsText} and ${event.<field>} placeholders.

    Event fields are looked up by their API (camelCase) or Python name.
    Unknown or null fields render as "", nested values as JSON.
    """
    if markets is None:
        markets = event.markets
    markets_text = format_markets(markets)
    result = _MARKETS_PLACEHOLDER.sub(lambda _m: markets_text, prompt_template)

    fields = event.model_dump(mode="json")
    fields.update(event.model_dump(mode="json", by_alias=True))

    def replace(match):
        value = fields.get(match.group(1))
        if value is None:
            return ""
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False)
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    return _EVENT_PLACEHOLDER.sub(replace, result)
