# === NAVMAP v1 ===
# {
#   "module": "GeminiKit.streaming",
#   "purpose": "Incremental extraction of top-level JSON values from a chunked byte stream.",
#   "sections": [
#     {"id": "chunk", "name": "StreamChunk", "anchor": "CHK", "kind": "api"},
#     {"id": "decoder", "name": "JsonStreamDecoder", "anchor": "DEC", "kind": "api"},
#     {"id": "helpers", "name": "iter_json_stream / decode_all", "anchor": "HLP", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Incremental JSON stream decoding.

The streaming generation endpoint answers with one JSON array whose elements
arrive spread across arbitrary network chunks. Other deployments answer with
newline-delimited (or simply concatenated) objects. :class:`JsonStreamDecoder`
accepts both: the framing is chosen from the first non-whitespace byte
(``[`` for an array, ``{`` for NDJSON).

Every element must itself be a JSON object or array. Stream chunks from the
API are always objects, so scalar elements (numbers, strings, ``true``,
``false``, ``null``) are not decoded: ``[1, 2]`` fails as a framing violation
("expected a JSON object or array"), and a stream that starts with a scalar
fails on its first byte.

The scanner works on bytes, not text, so a chunk boundary that falls inside a
multi-byte UTF-8 sequence is harmless: bracket, quote and backslash bytes are
all ASCII and never occur inside a multi-byte sequence. An element is decoded
only once its closing bracket has arrived, which makes the output independent
of how the input was split.

Failure is sticky. The first malformed element or framing violation is
recorded in :attr:`JsonStreamDecoder.error`; elements completed before it are
still returned, and nothing is emitted afterwards.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Iterable

from GeminiKit.errors import DecodeError

__all__ = ["StreamChunk", "JsonStreamDecoder", "iter_json_stream", "decode_all"]

logger = logging.getLogger(__name__)

_WHITESPACE = frozenset(b" \t\r\n")
_OPEN = frozenset(b"{[")
_CLOSE = frozenset(b"}]")
_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_COMMA = ord(",")
_ARRAY_OPEN = ord("[")
_ARRAY_CLOSE = ord("]")
_OBJECT_OPEN = ord("{")

_RAW_LIMIT = 512


@dataclass(frozen=True)
class StreamChunk:
    """One decoded top-level element and its 0-based ordinal."""

    index: int
    value: Any


class JsonStreamDecoder:
    """Byte-level scanner emitting each top-level JSON element once complete.

    Examples:
        >>> decoder = JsonStreamDecoder()
        >>> decoder.feed(b'[{"a": 1}, {"b"')
        [StreamChunk(index=0, value={'a': 1})]
        >>> decoder.feed(b': 2}]')
        [StreamChunk(index=1, value={'b': 2})]
        >>> decoder.close()
    """

    ARRAY = "array"
    NDJSON = "ndjson"

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._scan = 0
        self._start: int | None = None
        self._depth = 0
        self._in_string = False
        self._escape = False
        self._framing: str | None = None
        self._array_closed = False
        self._need_separator = False
        self._after_comma = False
        self._index = 0
        self._error: DecodeError | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def error(self) -> DecodeError | None:
        """The first decode failure, or ``None``."""
        return self._error

    @property
    def failed(self) -> bool:
        return self._error is not None

    @property
    def framing(self) -> str | None:
        """``"array"``, ``"ndjson"``, or ``None`` before the first value byte."""
        return self._framing

    @property
    def buffered(self) -> int:
        """Bytes held for the element currently being assembled."""
        return len(self._buffer)

    # ------------------------------------------------------------------
    # Feeding
    # ------------------------------------------------------------------

    def feed(self, data: bytes) -> list[StreamChunk]:
        """Consume ``data`` and return every element completed by it."""

        if self._error is not None or self._closed or not data:
            return []
        self._buffer.extend(data)
        emitted: list[StreamChunk] = []
        try:
            self._scan_buffer(emitted)
        except DecodeError as exc:
            self._fail(exc)
        self._compact()
        return emitted

    def close(self) -> None:
        """Signal end of input.

        Raises:
            DecodeError: When input ends inside an element, or an array was
                never closed. A failure already recorded by :meth:`feed` is not
                raised again; it stays available on :attr:`error`.
        """

        if self._closed:
            return
        self._closed = True
        if self._error is not None:
            return
        if self._start is not None:
            self._fail(
                DecodeError(
                    "stream ended inside an element",
                    raw_body=self._snippet(self._buffer),
                )
            )
        elif self._framing == self.ARRAY and not self._array_closed:
            self._fail(DecodeError("stream ended before the closing ']'"))
        if self._error is not None:
            raise self._error

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fail(self, error: DecodeError) -> None:
        logger.debug("Stream decode failed after %d element(s): %s", self._index, error.message)
        self._error = error
        self._buffer.clear()
        self._scan = 0
        self._start = None

    @staticmethod
    def _snippet(raw: bytes | bytearray) -> str:
        return bytes(raw[:_RAW_LIMIT]).decode("utf-8", errors="replace")

    def _violation(self, message: str, position: int) -> DecodeError:
        snippet = self._snippet(self._buffer[max(0, position - 32) : position + 32])
        return DecodeError(f"{message} after element {self._index}", raw_body=snippet)

    def _scan_buffer(self, emitted: list[StreamChunk]) -> None:
        buffer = self._buffer
        position = self._scan
        end = len(buffer)
        while position < end:
            byte = buffer[position]
            if self._start is None:
                self._between_elements(byte, position)
            elif self._in_string:
                if self._escape:
                    self._escape = False
                elif byte == _BACKSLASH:
                    self._escape = True
                elif byte == _QUOTE:
                    self._in_string = False
            elif byte == _QUOTE:
                self._in_string = True
            elif byte in _OPEN:
                self._depth += 1
            elif byte in _CLOSE:
                self._depth -= 1
                if self._depth == 0:
                    emitted.append(self._emit(buffer[self._start : position + 1]))
                    self._start = None
            position += 1
        self._scan = position

    def _between_elements(self, byte: int, position: int) -> None:
        if byte in _WHITESPACE:
            return
        if self._framing is None:
            if byte == _ARRAY_OPEN:
                self._framing = self.ARRAY
                return
            if byte == _OBJECT_OPEN:
                self._framing = self.NDJSON
            else:
                raise self._violation(f"unexpected byte {chr(byte)!r} at start of stream", position)
        if self._framing == self.ARRAY:
            if self._array_closed:
                raise self._violation("data after closing ']'", position)
            if byte == _ARRAY_CLOSE:
                if self._after_comma:
                    raise self._violation("trailing ',' before ']'", position)
                self._array_closed = True
                return
            if byte == _COMMA:
                if not self._need_separator:
                    raise self._violation("unexpected ','", position)
                self._need_separator = False
                self._after_comma = True
                return
            if self._need_separator:
                raise self._violation("missing ',' between elements", position)
        if byte not in _OPEN:
            raise self._violation(
                f"expected a JSON object or array, got {chr(byte)!r}", position
            )
        self._start = position
        self._depth = 1
        self._in_string = False
        self._escape = False

    def _emit(self, raw: bytes | bytearray) -> StreamChunk:
        try:
            value = json.loads(bytes(raw))
        except ValueError as exc:
            raise DecodeError(
                f"malformed element {self._index}: {exc}",
                raw_body=self._snippet(raw),
                cause=exc,
            ) from exc
        chunk = StreamChunk(index=self._index, value=value)
        self._index += 1
        self._need_separator = self._framing == self.ARRAY
        self._after_comma = False
        return chunk

    def _compact(self) -> None:
        if self._start is None:
            self._buffer.clear()
            self._scan = 0
        elif self._start > 0:
            del self._buffer[: self._start]
            self._scan -= self._start
            self._start = 0


async def iter_json_stream(
    byte_chunks: AsyncIterable[bytes],
    decoder: JsonStreamDecoder | None = None,
) -> AsyncIterator[StreamChunk]:
    """Yield elements decoded from ``byte_chunks``; raise the first failure once."""

    decoder = decoder or JsonStreamDecoder()
    async for data in byte_chunks:
        for chunk in decoder.feed(data):
            yield chunk
        if decoder.error is not None:
            raise decoder.error
    decoder.close()


def decode_all(data: bytes | Iterable[bytes]) -> list[StreamChunk]:
    """Decode a complete payload (or an iterable of pieces) in one call."""

    decoder = JsonStreamDecoder()
    pieces = [data] if isinstance(data, (bytes, bytearray)) else data
    chunks: list[StreamChunk] = []
    for piece in pieces:
        chunks.extend(decoder.feed(bytes(piece)))
        if decoder.error is not None:
            raise decoder.error
    decoder.close()
    return chunks
