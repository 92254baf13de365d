# === NAVMAP v1 ===
# {
#   "module": "tests.fixtures.http_mocking",
#   "purpose": "HTTP mocking fixtures for hermetic Gemini transport testing",
#   "sections": [
#     {"id": "mock-response-builder", "name": "MockResponseBuilder", "anchor": "class-mock-response-builder", "kind": "class"},
#     {"id": "recording-byte-stream", "name": "RecordingByteStream", "anchor": "class-recording-byte-stream", "kind": "class"},
#     {"id": "mock-gemini-api", "name": "MockGeminiAPI", "anchor": "class-mock-gemini-api", "kind": "class"},
#     {"id": "http-mock-fixture", "name": "http_mock", "anchor": "fixture-http-mock", "kind": "fixture"},
#     {"id": "mock-api-fixture", "name": "mock_api", "anchor": "fixture-mock-api", "kind": "fixture"}
#   ]
# }
# === /NAVMAP ===

"""
HTTP mocking fixtures for hermetic Gemini transport testing.

Provides an ``httpx.MockTransport`` route table that records every request,
fluent response builders, and a byte stream that records how far it was
consumed (for cancellation tests). No test touches the network.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Generator, Iterable, Optional, Union

import httpx
import pytest


class MockResponseBuilder:
    """Builder for constructing mock HTTP responses with fluent API."""

    def __init__(self, status_code: int = 200, content: bytes = b""):
        self.status_code = status_code
        self.content = content
        self.headers: dict[str, str] = {}
        self.stream: Optional[httpx.AsyncByteStream] = None

    def with_status(self, code: int) -> MockResponseBuilder:
        self.status_code = code
        return self

    def with_content(self, content: bytes | str) -> MockResponseBuilder:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.content = content
        return self

    def with_json(self, data: Any) -> MockResponseBuilder:
        """Set response content as JSON (objects or arrays)."""
        self.content = json.dumps(data).encode("utf-8")
        self.headers["content-type"] = "application/json; charset=UTF-8"
        return self

    def with_error(self, code: int, message: str, status: str = "") -> MockResponseBuilder:
        """Set a Google-style error envelope and matching status code."""
        self.status_code = code
        return self.with_json({"error": {"code": code, "message": message, "status": status}})

    def with_header(self, name: str, value: str) -> MockResponseBuilder:
        self.headers[name] = value
        return self

    def with_stream(self, stream: httpx.AsyncByteStream) -> MockResponseBuilder:
        """Serve the body from ``stream`` instead of fixed content."""
        self.stream = stream
        return self

    def build(self) -> httpx.Response:
        if self.stream is not None:
            return httpx.Response(
                status_code=self.status_code, headers=self.headers, stream=self.stream
            )
        return httpx.Response(
            status_code=self.status_code,
            content=self.content,
            headers=self.headers,
        )


class RecordingByteStream(httpx.AsyncByteStream):
    """Async response body that records pulls and closure.

    ``block_after`` makes the stream wait forever after that many chunks, which
    simulates a server that is still generating.
    """

    def __init__(self, chunks: Iterable[bytes], *, block_after: Optional[int] = None):
        self.chunks = list(chunks)
        self.block_after = block_after
        self.pulled = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            if self.block_after is not None and self.pulled >= self.block_after:
                await asyncio.Event().wait()
            self.pulled += 1
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


Responder = Union[
    MockResponseBuilder,
    httpx.Response,
    Callable[[httpx.Request], Union[httpx.Response, MockResponseBuilder]],
    BaseException,
]


class MockGeminiAPI:
    """Route table for ``httpx.MockTransport`` that records every request.

    Routes match on method and URL-path suffix. A route registered with several
    responders serves them in order and then repeats the last one.

    Example:
        api = MockGeminiAPI()
        api.add("POST", "models/gemini-flash-latest:generateContent",
                MockResponseBuilder().with_json({"candidates": []}))
        transport = api.transport()
    """

    def __init__(self) -> None:
        self.routes: list[tuple[str, str, list[Responder]]] = []
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *responders: Responder) -> MockGeminiAPI:
        self.routes.append((method.upper(), path, list(responders)))
        return self

    def add_json(self, method: str, path: str, data: Any, status_code: int = 200) -> MockGeminiAPI:
        return self.add(method, path, MockResponseBuilder(status_code).with_json(data))

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path.endswith(path)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for method, path, responders in self.routes:
            if method == request.method and request.url.path.endswith(path):
                responder = responders.pop(0) if len(responders) > 1 else responders[0]
                return self._materialise(responder, request)
        return httpx.Response(
            404,
            json={"error": {"code": 404, "message": f"not mocked: {request.url.path}"}},
        )

    def _materialise(self, responder: Responder, request: httpx.Request) -> httpx.Response:
        if isinstance(responder, BaseException):
            raise responder
        if isinstance(responder, MockResponseBuilder):
            return responder.build()
        if isinstance(responder, httpx.Response):
            return responder
        result = responder(request)
        return result.build() if isinstance(result, MockResponseBuilder) else result

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def http_mock() -> Generator[Callable[..., MockResponseBuilder], None, None]:
    """
    Provide a mock HTTP response builder factory.

    Example:
        def test_builder(http_mock):
            response = http_mock(200).with_json({"id": 1}).build()
            assert response.status_code == 200
    """

    def _mock_response(status_code: int = 200, content: bytes | str = b"") -> MockResponseBuilder:
        if isinstance(content, str):
            content = content.encode("utf-8")
        return MockResponseBuilder(status_code=status_code, content=content)

    yield _mock_response


@pytest.fixture
def mock_api() -> Generator[MockGeminiAPI, None, None]:
    """Provide an empty :class:`MockGeminiAPI` route table."""
    yield MockGeminiAPI()
