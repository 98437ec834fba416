"""Shared fakes for tests."""

import threading
from unittest.mock import Mock

import pytest

from llm.base_client import BaseLLMClient, LLMResponse, ToolCall


class FakeLLMClient(BaseLLMClient):
    """Scripted chat client. The last scripted response repeats forever."""

    def __init__(self, responses=None, stream_chunks=None):
        self.responses = list(responses or [])
        self.stream_chunks = list(stream_chunks or [])
        self.chat_calls = []
        self.stream_calls = []

    def chat(self, messages, tools=None, cancel_token=None):
        self.chat_calls.append({
            "messages": [msg.model_copy(deep=True) for msg in messages],
            "tools": tools,
        })
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def stream(self, prompt, on_chunk, cancel_token=None):
        self.stream_calls.append(prompt)
        for chunk in self.stream_chunks:
            on_chunk(chunk)

    def get_model_name(self):
        return "fake-model"


class BlockingLLMClient(FakeLLMClient):
    """Streams only after `release` is set, to hold a run in flight."""

    def __init__(self, stream_chunks=None):
        super().__init__(stream_chunks=stream_chunks or ["late chunk"])
        self.entered = threading.Event()
        self.release = threading.Event()

    def stream(self, prompt, on_chunk, cancel_token=None):
        self.stream_calls.append(prompt)
        self.entered.set()
        self.release.wait(5)
        for chunk in self.stream_chunks:
            on_chunk(chunk)


def tool_call_response(call_id="call_1", name="search_web", arguments='{"query": "X"}', content=""):
    return LLMResponse(
        content=content,
        tool_calls=[ToolCall(id=call_id, name=name, arguments=arguments)]
    )


def http_response(status_code=200, json_data=None, text="", chunks=None):
    """Mock requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = "OK" if response.ok else "Error"
    response.text = text
    response.json.return_value = json_data
    response.iter_content.return_value = iter(chunks or [])
    return response


@pytest.fixture
def fake_llm():
    return FakeLLMClient


@pytest.fixture
def blocking_llm():
    return BlockingLLMClient


@pytest.fixture
def make_tool_call_response():
    return tool_call_response


@pytest.fixture
def make_http_response():
    return http_response
