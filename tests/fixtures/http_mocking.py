# === NAVMAP v1 ===
# {
#   "module": "tests.fixtures.http_mocking",
#   "purpose": "HTTP mocking fixtures for hermetic adapter and middleware tests",
#   "sections": [
#     {"id": "mock-response-builder", "name": "MockResponseBuilder", "anchor": "class-mock-response-builder", "kind": "class"},
#     {"id": "recording-transport", "name": "RecordingTransport", "anchor": "class-recording-transport", "kind": "class"},
#     {"id": "http-mock-fixture", "name": "http_mock", "anchor": "fixture-http-mock", "kind": "fixture"},
#     {"id": "recording-transport-fixture", "name": "recording_transport", "anchor": "fixture-recording-transport", "kind": "fixture"}
#   ]
# }
# === /NAVMAP ===

"""
HTTP mocking fixtures for hermetic network testing.

Provides HTTPX MockTransport wrappers and mock response builders to test the
middleware chain and request adapter without real network access. Responses
are scripted in order and every request that reaches the wire is recorded.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Generator, List, Optional, Union

import httpx
import pytest

from ClientRuntime.HttpAdapter.network.middleware import HttpxTransport


class MockResponseBuilder:
    """Builder for constructing mock HTTP responses with fluent API."""

    def __init__(self, status_code: int = 200, content: bytes = b""):
        self.status_code = status_code
        self.content = content
        self.headers: list[tuple[str, str]] = []

    def with_status(self, code: int) -> MockResponseBuilder:
        self.status_code = code
        return self

    def with_content(self, content: bytes | str) -> MockResponseBuilder:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.content = content
        return self

    def with_json(self, data: Any) -> MockResponseBuilder:
        """Set response content as JSON."""
        self.content = json.dumps(data).encode("utf-8")
        self.headers.append(("content-type", "application/json"))
        return self

    def with_header(self, name: str, value: str) -> MockResponseBuilder:
        """Add response header (repeated names are kept)."""
        self.headers.append((name, value))
        return self

    def redirect_to(self, location: str, status: int = 302) -> MockResponseBuilder:
        self.status_code = status
        return self.with_header("location", location)

    def build(self) -> httpx.Response:
        return httpx.Response(
            status_code=self.status_code,
            content=self.content,
            headers=self.headers,
        )


ResponseSource = Union[MockResponseBuilder, httpx.Response, Callable[[httpx.Request], httpx.Response]]


class RecordingTransport:
    """Scripted ``httpx.MockTransport`` that records every request it serves.

    Responses are served in order; the last one repeats once the script runs out.
    """

    def __init__(self, *responses: ResponseSource) -> None:
        self.script: List[ResponseSource] = list(responses)
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.script:
            return httpx.Response(200)
        index = min(len(self.requests), len(self.script)) - 1
        source = self.script[index]
        if isinstance(source, MockResponseBuilder):
            return source.build()
        if isinstance(source, httpx.Response):
            return httpx.Response(source.status_code, headers=source.headers, content=source.content)
        return source(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    @property
    def last_request(self) -> Optional[httpx.Request]:
        return self.requests[-1] if self.requests else None

    def client(self, **kwargs: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), **kwargs)

    def terminal(self, **kwargs: Any) -> HttpxTransport:
        return HttpxTransport(self.client(**kwargs))


@pytest.fixture
def http_mock() -> Generator[Callable[..., MockResponseBuilder], None, None]:
    """
    Provide a mock HTTP response builder factory.

    Example:
        def test_builder(http_mock):
            response = http_mock(200).with_json({"id": 1}).build()
            assert response.headers["content-type"] == "application/json"
    """

    def _mock_response(status_code: int = 200, content: bytes | str = b"") -> MockResponseBuilder:
        if isinstance(content, str):
            content = content.encode("utf-8")
        return MockResponseBuilder(status_code=status_code, content=content)

    yield _mock_response


@pytest.fixture
def recording_transport() -> Callable[..., RecordingTransport]:
    """
    Provide a factory for scripted recording transports.

    Example:
        def test_chain(recording_transport, http_mock):
            transport = recording_transport(http_mock(503), http_mock(200))
            head = chain_handlers(RetryHandler(), final=transport.terminal())
    """
    return RecordingTransport
