"""Chat-completion client layer."""

from .base_client import BaseLLMClient, Message, LLMResponse, ToolCall
from .openai_client import OpenAIClient
from .transport import CancelToken, post_json, post_stream
from .errors import (
    PolymindError,
    ConfigurationError,
    TransportError,
    HttpError,
    SearchError,
    ProtocolError,
    AnalysisCancelled,
)

__all__ = [
    "BaseLLMClient",
    "Message",
    "LLMResponse",
    "ToolCall",
    "OpenAIClient",
    "CancelToken",
    "post_json",
    "post_stream",
    "PolymindError",
    "ConfigurationError",
    "TransportError",
    "HttpError",
    "SearchError",
    "ProtocolError",
    "AnalysisCancelled",
]
