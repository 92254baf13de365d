# === NAVMAP v1 ===
# {
#   "module": "GeminiKit.net.transport",
#   "purpose": "HTTP primitives over the pooled client: single responses, streams, error mapping.",
#   "sections": [
#     {"id": "envelope", "name": "ResponseEnvelope", "anchor": "ENV", "kind": "api"},
#     {"id": "stream", "name": "ResponseStream", "anchor": "STR", "kind": "api"},
#     {"id": "transport", "name": "GeminiTransport", "anchor": "TRN", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Transport for the Gemini REST surface.

:class:`GeminiTransport` wires the codec and the stream decoder to one pooled
``httpx.AsyncClient``. Every method either returns a decoded value or raises
exactly one :class:`~GeminiKit.errors.GeminiError`:

- transport failures (refused, reset, timeout) -> ``NetworkError`` subclasses
- non-2xx responses, read in full first -> ``ApiError`` subclasses
- 2xx responses that cannot be understood -> ``DecodeError``

Streaming responses are consumed lazily. :meth:`GeminiTransport.post_stream`
performs no I/O until the first element is requested, reads one network chunk
at a time as the consumer pulls, and closes the HTTP response as soon as the
consumer stops (``aclose``, leaving ``async with``, task cancellation, or a
cancelled :class:`~GeminiKit.cancellation.CancellationToken`). Cancelling the
token from any thread also wakes a consumer that is waiting on a silent server.

Nothing here retries.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Callable,
    Generic,
    Mapping,
    Optional,
    TypeVar,
    Union,
    overload,
)

import httpx
from pydantic import BaseModel

from GeminiKit.cancellation import CancellationToken
from GeminiKit.codec import decode, decode_value, encode
from GeminiKit.errors import map_http_error, map_transport_exception
from GeminiKit.net.client import build_async_client
from GeminiKit.settings import GeminiSettings
from GeminiKit.streaming import JsonStreamDecoder

__all__ = ["ResponseEnvelope", "ResponseStream", "GeminiTransport", "RequestBody", "BodyContent"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

RequestBody = Union[BaseModel, Mapping[str, Any], None]
BodyContent = Union[bytes, AsyncIterable[bytes], None]

_TRANSPORT_EXCEPTIONS = (httpx.HTTPError, httpx.InvalidURL, OSError)


# ============================================================================
# Response envelope
# ============================================================================


@dataclass(frozen=True)
class ResponseEnvelope:
    """Status, headers and raw bytes of one response."""

    status_code: int
    headers: httpx.Headers
    payload: bytes
    content_type: Optional[str] = None

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ResponseEnvelope":
        return cls(
            status_code=response.status_code,
            headers=response.headers,
            payload=response.content,
            content_type=response.headers.get("content-type"),
        )

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        return self.headers.get(name)

    @property
    def text(self) -> str:
        return self.payload.decode("utf-8", errors="replace")


# ============================================================================
# Response stream
# ============================================================================


class ResponseStream(Generic[T]):
    """Lazy, cancellable async sequence of decoded stream elements.

    Use as an async iterator, ideally inside ``async with`` so the response is
    released even when the consumer stops early::

        async with transport.post_stream(path, request, GenerateContentResponse) as stream:
            async for chunk in stream:
                ...

    Once closed or failed, the stream yields nothing further. ``on_open`` runs
    once, when the first element is requested; ``on_close`` runs once, when the
    stream is closed for any reason.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        element_type: type[T],
        params: Optional[dict[str, Any]] = None,
        content: bytes = b"",
        headers: Optional[dict[str, str]] = None,
        cancel_token: Optional[CancellationToken] = None,
        on_element: Optional[Callable[[T], None]] = None,
        on_open: Optional[Callable[[], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        self._client = client
        self._url = url
        self._element_type = element_type
        self._params = params
        self._content = content
        self._headers = headers
        self._cancel_token = cancel_token
        self._on_element = on_element
        self._on_open = on_open
        self._on_close = on_close
        self._generator: Optional[AsyncIterator[T]] = None
        self._closed = False
        self.elements_yielded = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _cancelled(self) -> bool:
        return self._cancel_token is not None and self._cancel_token.is_cancelled()

    def __aiter__(self) -> "ResponseStream[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        if self._generator is None:
            if self._on_open is not None:
                self._on_open()
            self._generator = self._iterate()
        try:
            element = await self._generator.__anext__()
        except BaseException:
            # StopAsyncIteration, mapped errors and task cancellation all end the stream.
            await self.aclose()
            raise
        self.elements_yielded += 1
        return element

    async def aclose(self) -> None:
        """Close the underlying HTTP response. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._generator is not None:
                await self._generator.aclose()  # type: ignore[attr-defined]
        finally:
            if self._on_close is not None:
                self._on_close()
        logger.debug("Stream closed after %d element(s)", self.elements_yielded)

    async def __aenter__(self) -> "ResponseStream[T]":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def collect(self) -> list[T]:
        """Drain the stream into a list."""
        async with self:
            return [element async for element in self]

    async def _next_chunk(
        self, chunks: AsyncIterator[bytes], wakeup: asyncio.Event
    ) -> Optional[bytes]:
        """Return the next network chunk, or ``None`` at end of body or on cancellation.

        The read races the cancellation event, so a token cancelled while the
        server is silent ends the wait instead of leaving it parked on the socket.
        """
        if self._cancelled():
            return None
        read = asyncio.ensure_future(chunks.__anext__())
        waiter = asyncio.ensure_future(wakeup.wait())
        try:
            await asyncio.wait({read, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            read.cancel()
            waiter.cancel()
            await asyncio.gather(read, waiter, return_exceptions=True)
            raise
        waiter.cancel()
        if not read.done():
            read.cancel()
            await asyncio.gather(read, return_exceptions=True)
            return None
        try:
            return read.result()
        except StopAsyncIteration:
            return None

    async def _iterate(self) -> AsyncIterator[T]:
        if self._cancelled():
            return
        loop = asyncio.get_running_loop()
        wakeup = asyncio.Event()

        def _wake() -> None:
            # Tokens may be cancelled from any thread.
            loop.call_soon_threadsafe(wakeup.set)

        token = self._cancel_token
        if token is not None:
            token.add_callback(_wake)
        try:
            async with self._client.stream(
                "POST",
                self._url,
                params=self._params,
                content=self._content,
                headers=self._headers,
            ) as response:
                if not response.is_success:
                    body = await response.aread()
                    raise map_http_error(response.status_code, body, response.headers)
                decoder = JsonStreamDecoder()
                chunks = response.aiter_bytes()
                try:
                    while True:
                        data = await self._next_chunk(chunks, wakeup)
                        if data is None:
                            break
                        for chunk in decoder.feed(data):
                            if self._cancelled():
                                return
                            element = decode_value(
                                chunk.value,
                                self._element_type,
                                raw_body=json.dumps(chunk.value)[:512],
                            )
                            if self._on_element is not None:
                                self._on_element(element)
                            yield element
                        if decoder.error is not None:
                            raise decoder.error
                    if self._cancelled():
                        logger.debug("Stream cancelled: %s", token.reason)
                        return
                    decoder.close()
                finally:
                    await chunks.aclose()  # type: ignore[attr-defined]
        except _TRANSPORT_EXCEPTIONS as exc:
            raise map_transport_exception(exc) from exc
        finally:
            if token is not None:
                token.remove_callback(_wake)


# ============================================================================
# Transport
# ============================================================================


class GeminiTransport:
    """HTTP primitives bound to one API root and one connection pool.

    Args:
        settings: Client configuration (roots, key, HTTP budgets).
        client: Pre-built ``httpx.AsyncClient`` to use instead of building one.
            The transport does not close a client it did not build.
        http_transport: Transport override for the built client
            (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        settings: GeminiSettings,
        *,
        client: Optional[httpx.AsyncClient] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._owns_client = client is None
        self._client = client or build_async_client(settings, transport=http_transport)
        self._api_root = settings.api_root
        self._upload_root = settings.upload_root
        self._base_url = settings.base_url

    @property
    def api_root(self) -> str:
        return self._api_root

    @property
    def upload_root(self) -> str:
        return self._upload_root

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "GeminiTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # URL and parameter handling
    # ------------------------------------------------------------------

    def url_for(self, path: str) -> str:
        """Resolve ``path`` against the API root; absolute URLs pass through."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._api_root}/{path.lstrip('/')}"

    def _params(
        self, url: str, params: Optional[Mapping[str, Any]], authenticate: bool
    ) -> Optional[dict[str, Any]]:
        merged = {key: value for key, value in (params or {}).items() if value is not None}
        # Only our own origin ever receives the key.
        if authenticate and url.startswith((f"{self._base_url}/", self._upload_root)):
            merged["key"] = self.settings.api_key.get_secret_value()
        return merged or None

    # ------------------------------------------------------------------
    # Primitive
    # ------------------------------------------------------------------

    async def send(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        content: BodyContent = None,
        headers: Optional[Mapping[str, str]] = None,
        authenticate: bool = True,
    ) -> ResponseEnvelope:
        """Send one request and return its envelope.

        Raises:
            NetworkError: When no response was received.
            ApiError: When the response status is not 2xx (body read in full).
        """
        url = self.url_for(url)
        try:
            response = await self._client.request(
                method,
                url,
                params=self._params(url, params, authenticate),
                content=content,
                headers=dict(headers) if headers else None,
            )
        except _TRANSPORT_EXCEPTIONS as exc:
            raise map_transport_exception(exc) from exc
        envelope = ResponseEnvelope.from_response(response)
        if not response.is_success:
            raise map_http_error(response.status_code, envelope.payload, response.headers)
        return envelope

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------

    async def get(
        self,
        path: str,
        response_type: type[T],
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> T:
        envelope = await self.send("GET", path, params=params)
        return decode(envelope.payload, response_type)

    @overload
    async def post(
        self,
        path: str,
        body: RequestBody,
        response_type: type[T],
        *,
        params: Optional[Mapping[str, Any]] = ...,
        headers: Optional[Mapping[str, str]] = ...,
    ) -> T: ...

    @overload
    async def post(
        self,
        path: str,
        body: RequestBody,
        response_type: None = ...,
        *,
        params: Optional[Mapping[str, Any]] = ...,
        headers: Optional[Mapping[str, str]] = ...,
    ) -> ResponseEnvelope: ...

    async def post(
        self,
        path: str,
        body: RequestBody,
        response_type: Optional[type[T]] = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Union[T, ResponseEnvelope]:
        """POST ``body`` as JSON; decode as ``response_type`` or return the envelope."""
        request = encode(body)
        request_headers = {"Content-Type": request.content_type}
        request_headers.update(headers or {})
        envelope = await self.send(
            "POST", path, params=params, content=request.payload, headers=request_headers
        )
        if response_type is None:
            return envelope
        return decode(envelope.payload, response_type)

    async def put(
        self,
        url: str,
        content: BodyContent,
        response_type: Optional[type[T]] = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        authenticate: bool = False,
    ) -> Union[T, ResponseEnvelope]:
        """PUT raw bytes (or an async byte stream).

        Used for server-issued upload URLs, which already carry the session
        credential, so the key is not attached unless ``authenticate`` is set.
        """
        envelope = await self.send(
            "PUT", url, content=content, headers=headers, authenticate=authenticate
        )
        if response_type is None:
            return envelope
        return decode(envelope.payload, response_type)

    async def delete(self, path: str, *, params: Optional[Mapping[str, Any]] = None) -> None:
        await self.send("DELETE", path, params=params)

    def post_stream(
        self,
        path: str,
        body: RequestBody,
        element_type: type[T],
        *,
        params: Optional[Mapping[str, Any]] = None,
        cancel_token: Optional[CancellationToken] = None,
        on_element: Optional[Callable[[T], None]] = None,
        on_open: Optional[Callable[[], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
    ) -> ResponseStream[T]:
        """Return a lazy stream of ``element_type`` values decoded from the response.

        No request is sent until the first element is requested.
        """
        url = self.url_for(path)
        request = encode(body)
        return ResponseStream(
            self._client,
            url,
            element_type=element_type,
            params=self._params(url, params, True),
            content=request.payload,
            headers={"Content-Type": request.content_type},
            cancel_token=cancel_token,
            on_element=on_element,
            on_open=on_open,
            on_close=on_close,
        )
