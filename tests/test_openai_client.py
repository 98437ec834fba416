"""Tests for the OpenAI-compatible chat client."""

import pytest
from unittest.mock import patch

from llm.base_client import Message, ToolCall
from llm.errors import ConfigurationError, ProtocolError
from llm.openai_client import OpenAIClient, extract_text_content


class TestOpenAIClient:
    """Test request bodies and response decoding."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = OpenAIClient(base_url="https://api.example.com//", api_key="sk", model="gpt-test")

    def test_requires_api_key(self):
        """Test a client cannot be built without a key."""
        with pytest.raises(ConfigurationError):
            OpenAIClient(base_url="https://api.example.com", api_key="", model="gpt-test")

    def test_endpoint(self):
        """Test trailing slashes are dropped before the fixed path."""
        assert self.client.endpoint == "https://api.example.com/v1/chat/completions"

    @patch('requests.post')
    def test_chat_with_tools(self, mock_post, make_http_response):
        """Test tool requests declare tools with tool_choice auto."""
        mock_post.return_value = make_http_response(json_data={
            "choices": [{"message": {"content": "hi"}, "finish_reason": "stop"}]
        })
        tools = [{"type": "function", "function": {"name": "search_web"}}]

        response = self.client.chat([Message(role="user", content="q")], tools=tools)

        body = mock_post.call_args[1]["json"]
        assert body["model"] == "gpt-test"
        assert body["stream"] is False
        assert body["tool_choice"] == "auto"
        assert body["tools"] == tools
        assert body["messages"] == [{"role": "user", "content": "q"}]
        assert response.content == "hi"
        assert response.tool_calls is None
        assert response.finish_reason == "stop"

    @patch('requests.post')
    def test_chat_without_tools(self, mock_post, make_http_response):
        """Test forced-final style requests omit tools entirely."""
        mock_post.return_value = make_http_response(json_data={
            "choices": [{"message": {"content": "done"}}]
        })

        self.client.chat([Message(role="user", content="q")])

        body = mock_post.call_args[1]["json"]
        assert "tools" not in body
        assert "tool_choice" not in body

    @patch('requests.post')
    def test_parses_tool_calls(self, mock_post, make_http_response):
        """Test tool calls keep their raw argument strings."""
        mock_post.return_value = make_http_response(json_data={
            "choices": [{"message": {
                "content": None,
                "tool_calls": [{
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": "search_web", "arguments": '{"query":"X"}'}
                }]
            }}]
        })

        response = self.client.chat([Message(role="user", content="q")])

        assert response.content == ""
        assert response.tool_calls == [ToolCall(id="call_1", name="search_web", arguments='{"query":"X"}')]

    @patch('requests.post')
    def test_empty_response(self, mock_post, make_http_response):
        """Test a response without a message is a protocol error."""
        mock_post.return_value = make_http_response(json_data={"choices": []})

        with pytest.raises(ProtocolError):
            self.client.chat([Message(role="user", content="q")])

    @patch('requests.post')
    def test_stream(self, mock_post, make_http_response):
        """Test streaming sends a single user message and decodes deltas."""
        mock_post.return_value = make_http_response(chunks=[
            b'data: {"choices":[{"delta":{"content":"Hel"}}]}\n',
            b'data: {"choices":[{"delta":{"content":"lo"}}]}\ndata: [DONE]\n',
        ])
        received = []

        self.client.stream("prompt", received.append)

        body = mock_post.call_args[1]["json"]
        assert body == {
            "model": "gpt-test",
            "messages": [{"role": "user", "content": "prompt"}],
            "stream": True,
        }
        assert received == ["Hel", "lo"]


class TestMessagePayload:
    """Test transcript serialization."""

    def test_assistant_with_tool_calls(self):
        """Test assistant turns echo tool calls in wire format."""
        msg = Message(
            role="assistant",
            content="",
            tool_calls=[ToolCall(id="c1", name="search_web", arguments='{"query":"X"}')]
        )

        assert msg.to_payload() == {
            "role": "assistant",
            "content": "",
            "tool_calls": [{
                "id": "c1",
                "type": "function",
                "function": {"name": "search_web", "arguments": '{"query":"X"}'}
            }]
        }

    def test_tool_message(self):
        """Test tool results carry their call id."""
        msg = Message(role="tool", content="{}", tool_call_id="c1")
        assert msg.to_payload() == {"role": "tool", "content": "{}", "tool_call_id": "c1"}


def test_extract_text_content():
    """Test string and multi-part content are flattened."""
    assert extract_text_content("plain") == "plain"
    assert extract_text_content(["a", {"text": "b"}, {"type": "image"}, 3]) == "ab"
    assert extract_text_content(None) == ""
