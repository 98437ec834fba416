"""Base chat client interface."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional
from pydantic import BaseModel

from .transport import CancelToken


class ToolCall(BaseModel):
    """Tool call requested by the model."""
    id: str
    name: str
    arguments: str  # raw JSON string, parsed by the tool


class Message(BaseModel):
    """Chat message."""
    role: str  # "system", "user", "assistant", "tool"
    content: Optional[str] = None
    tool_call_id: Optional[str] = None  # For tool responses
    tool_calls: Optional[List[ToolCall]] = None  # For assistant messages with tool calls

    def to_payload(self) -> Dict[str, Any]:
        """Convert to the OpenAI chat-completions wire format."""
        payload: Dict[str, Any] = {"role": self.role}
        if self.content is not None:
            payload["content"] = self.content
        if self.tool_call_id:
            payload["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            payload["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": tc.arguments
                    }
                }
                for tc in self.tool_calls
            ]
        return payload


class LLMResponse(BaseModel):
    """Non-streaming response from the model."""
    content: str = ""
    tool_calls: Optional[List[ToolCall]] = None
    finish_reason: Optional[str] = None


class BaseLLMClient(ABC):
    """Abstract base class for chat clients."""

    @abstractmethod
    def chat(
        self,
        messages: List[Message],
        tools: Optional[List[Dict]] = None,
        cancel_token: Optional[CancelToken] = None
    ) -> LLMResponse:
        """
        Send a non-streaming chat completion request.

        Args:
            messages: Conversation transcript
            tools: Optional tool definitions; when given, tool_choice is "auto"
            cancel_token: Token shared by the whole analysis run

        Returns:
            LLMResponse with content and optional tool calls
        """
        pass

    @abstractmethod
    def stream(
        self,
        prompt: str,
        on_chunk: Callable[[str], None],
        cancel_token: Optional[CancelToken] = None
    ) -> None:
        """
        Stream a single-prompt completion, calling on_chunk per text delta.

        Returns when the stream signals completion or closes.
        """
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """Get the name of the model being used."""
        pass
