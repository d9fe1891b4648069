"""
Shared fixtures for chat proxy tests.

Upstream providers are faked with httpx.MockTransport; nothing here
touches the network.
"""

import json
from typing import Callable, Iterable, List

import httpx
import pytest

from chat_proxy.core.config import GatewayConfig, ServiceSettings, config_from_dict

TEST_ENV = {
    "GROQ_API_KEY": "test-groq-key",
    "GEMINI_API_KEY": "test-gemini-key",
}


class ChunkedStream(httpx.AsyncByteStream):
    """Async byte stream that yields fixed chunks and records closing."""

    def __init__(self, chunks: Iterable[bytes]):
        self._chunks = list(chunks)
        self.closed = False
        self.chunks_read = 0

    async def __aiter__(self):
        for chunk in self._chunks:
            self.chunks_read += 1
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


class RecordingTransport(httpx.MockTransport):
    """Mock transport that keeps every request it was asked to send."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return responder(request)

        super().__init__(handler)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def gateway_config() -> GatewayConfig:
    """Default providers with both credentials present."""
    return config_from_dict({}, environ=TEST_ENV)


@pytest.fixture
def unconfigured_config() -> GatewayConfig:
    """Default providers with no credentials."""
    return config_from_dict({}, environ={})


@pytest.fixture
def service_settings() -> ServiceSettings:
    return ServiceSettings(otel_endpoint=None, cors_allow_origins=["*"])


@pytest.fixture
def make_transport() -> Callable[..., RecordingTransport]:
    return RecordingTransport


@pytest.fixture
def make_stream() -> Callable[..., ChunkedStream]:
    return ChunkedStream
