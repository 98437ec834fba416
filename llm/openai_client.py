"""OpenAI-compatible chat-completions client."""

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from .base_client import BaseLLMClient, Message, LLMResponse, ToolCall
from .errors import ConfigurationError, ProtocolError
from .stream_decoder import decode_stream
from .transport import CancelToken, post_json, post_stream

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"


def extract_text_content(content: Any) -> str:
    """Flatten message content that may be a string or a list of parts."""
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""

    parts = []
    for item in content:
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, dict) and isinstance(item.get("text"), str):
            parts.append(item["text"])
    return "".join(parts)


def _parse_tool_calls(raw_calls: Any) -> List[ToolCall]:
    if not isinstance(raw_calls, list):
        return []

    tool_calls = []
    for index, raw in enumerate(raw_calls):
        if not isinstance(raw, dict):
            continue
        function = raw.get("function") if isinstance(raw.get("function"), dict) else {}
        name = function.get("name")
        arguments = function.get("arguments")
        if isinstance(arguments, dict):
            # some providers send already-decoded arguments
            arguments = json.dumps(arguments)
        tool_calls.append(ToolCall(
            id=str(raw.get("id") or f"call_{index}"),
            name=name if isinstance(name, str) and name else "unknown_tool",
            arguments=arguments if isinstance(arguments, str) else ""
        ))
    return tool_calls


class OpenAIClient(BaseLLMClient):
    """Client for any endpoint speaking the OpenAI chat-completions protocol."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: int = 120
    ):
        """
        Initialize client.

        Args:
            base_url: Provider base URL, e.g. https://api.openai.com/
            api_key: Bearer token for the Authorization header
            model: Model identifier sent with every request
            timeout: Per-request timeout in seconds
        """
        if not api_key:
            raise ConfigurationError("API key is required for chat requests.")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        logger.info(f"Chat client initialized with model: {model}")

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{CHAT_COMPLETIONS_PATH}"

    def chat(
        self,
        messages: List[Message],
        tools: Optional[List[Dict]] = None,
        cancel_token: Optional[CancelToken] = None
    ) -> LLMResponse:
        """Send a non-streaming chat completion request."""
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [msg.to_payload() for msg in messages],
            "stream": False,
        }
        if tools:
            body["tool_choice"] = "auto"
            body["tools"] = tools

        logger.debug(f"Chat request to {self.endpoint} with {len(messages)} messages")
        data = post_json(self.endpoint, body, self.api_key, cancel_token, self.timeout)

        choices = data.get("choices") if isinstance(data, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise ProtocolError("Model returned empty response.")

        tool_calls = _parse_tool_calls(message.get("tool_calls"))
        finish_reason = first.get("finish_reason")

        return LLMResponse(
            content=extract_text_content(message.get("content")),
            tool_calls=tool_calls or None,
            finish_reason=finish_reason if isinstance(finish_reason, str) else None
        )

    def stream(
        self,
        prompt: str,
        on_chunk: Callable[[str], None],
        cancel_token: Optional[CancelToken] = None
    ) -> None:
        """Stream a completion for a single user prompt."""
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
        }
        logger.debug(f"Streaming request to {self.endpoint}")
        chunks = post_stream(self.endpoint, body, self.api_key, cancel_token, self.timeout)
        decode_stream(chunks, on_chunk, cancel_token)

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
