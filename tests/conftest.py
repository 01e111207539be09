"""
Shared test fixtures for ShellScribe tests.

This module contains pytest fixtures that are shared across all test modules,
including SSE stream builders, mock HTTP transports and test data.
"""

import json
from typing import Callable, List, Optional, Union

import httpx
import pytest
from faker import Faker

from shellscribe.translator.openai_client import CompletionClient
from shellscribe.translator.prompt_builder import PromptBuilder
from shellscribe.ui.keypress import CancellationToken

fake = Faker()

TEST_API_KEY = "sk-" + "a" * 48
TEST_ENDPOINT = "https://api.example.com/v1"


# ============================================================================
# SSE Fixtures
# ============================================================================


def sse(content: Optional[str]) -> str:
    """Build one ``data:`` record carrying ``content`` as its delta."""
    delta = {} if content is None else {"content": content}
    return "data: " + json.dumps({"choices": [{"delta": delta}]}, ensure_ascii=False) + "\n\n"


DONE = "data: [DONE]\n\n"


class RecordingStream:
    """Async iterable over fixed chunks that counts how many were pulled."""

    def __init__(self, chunks: List[Union[str, bytes]], error: Exception = None):
        self.chunks = list(chunks)
        self.error = error
        self.consumed = 0

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self.chunks:
            self.consumed += 1
            yield chunk
        if self.error is not None:
            raise self.error


class RecordingListener:
    """Stand-in for KeypressListener that records enter/exit."""

    instances: List["RecordingListener"] = []

    def __init__(self, token: CancellationToken):
        self.token = token
        self.entered = False
        self.exited = False
        RecordingListener.instances.append(self)

    def __enter__(self):
        self.entered = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self.exited = True


@pytest.fixture
def sse_event() -> Callable[[Optional[str]], str]:
    """Return a builder for single SSE data records."""
    return sse


@pytest.fixture
def done_event() -> str:
    """Return the end-of-stream record."""
    return DONE


@pytest.fixture
def recording_stream() -> Callable[..., RecordingStream]:
    """Return a factory for chunk streams that count consumption."""
    return RecordingStream


@pytest.fixture
def recording_listener():
    """Provide the RecordingListener class with a clean instance list."""
    RecordingListener.instances = []
    yield RecordingListener
    RecordingListener.instances = []


# ============================================================================
# HTTP Fixtures
# ============================================================================


@pytest.fixture
def api_key() -> str:
    """Return an API key for testing."""
    return TEST_API_KEY


@pytest.fixture
def make_client(api_key) -> Callable[..., CompletionClient]:
    """Return a factory building a CompletionClient over a mock transport."""

    def factory(handler, **kwargs) -> CompletionClient:
        return CompletionClient(
            api_key=api_key,
            api_endpoint=TEST_ENDPOINT,
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    return factory


@pytest.fixture
def sse_response() -> Callable[..., httpx.Response]:
    """Return a factory for streaming chat completion responses."""

    def factory(*contents: str, done: bool = True) -> httpx.Response:
        body = "".join(sse(c) for c in contents) + (DONE if done else "")
        return httpx.Response(
            200, content=body.encode(), headers={"content-type": "text/event-stream"}
        )

    return factory


# ============================================================================
# Prompt Fixtures
# ============================================================================


@pytest.fixture
def builder() -> PromptBuilder:
    """Return a prompt builder for a fixed environment."""
    return PromptBuilder(
        shell_details="zsh 5.9", os_details="macOS 14.4", language="English"
    )


@pytest.fixture
def user_prompt() -> str:
    """Return a random natural language request."""
    return fake.sentence(nb_words=8)
