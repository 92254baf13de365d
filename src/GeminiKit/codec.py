"""Codec pipeline: typed request values to JSON bytes and back.

``encode`` is a pure structural mapping and never fails for a well-formed
model. ``decode`` turns every parse or validation problem into a
:class:`~GeminiKit.errors.DecodeError` that keeps the raw body.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from GeminiKit.errors import DecodeError
from GeminiKit.models.generation import EmptyResponse

__all__ = ["JSON_CONTENT_TYPE", "RequestEnvelope", "encode", "decode", "decode_value"]

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

T = TypeVar("T")

_RAW_BODY_LIMIT = 2048


@dataclass(frozen=True)
class RequestEnvelope:
    """Encoded request body ready for the transport."""

    payload: bytes
    content_type: str = JSON_CONTENT_TYPE

    def __len__(self) -> int:
        return len(self.payload)


def encode(request: BaseModel | Mapping[str, Any] | None) -> RequestEnvelope:
    """Encode ``request`` as UTF-8 JSON.

    Pydantic models are dumped by alias with ``None`` fields and excluded
    (path-only) fields omitted. ``None`` yields an empty payload.
    """

    if request is None:
        return RequestEnvelope(payload=b"")
    if isinstance(request, BaseModel):
        data: Any = request.model_dump(mode="json", by_alias=True, exclude_none=True)
    else:
        data = dict(request)
    payload = json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    return RequestEnvelope(payload=payload)


def _raw(payload: bytes | str) -> str:
    text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
    return text[:_RAW_BODY_LIMIT]


def decode_value(value: Any, response_type: type[T], *, raw_body: str = "") -> T:
    """Validate an already-parsed JSON value as ``response_type``."""

    try:
        if isinstance(response_type, type) and issubclass(response_type, BaseModel):
            return response_type.model_validate(value)  # type: ignore[return-value]
        return TypeAdapter(response_type).validate_python(value)
    except ValidationError as exc:
        name = getattr(response_type, "__name__", repr(response_type))
        raise DecodeError(
            f"response does not match {name}: {exc.error_count()} validation error(s)",
            raw_body=raw_body,
            cause=exc,
        ) from exc


def decode(payload: bytes | str, response_type: type[T]) -> T:
    """Parse ``payload`` and validate it as ``response_type``.

    Raises:
        DecodeError: On malformed JSON or missing required fields.
    """

    if not payload or not payload.strip():
        if response_type is EmptyResponse:
            return EmptyResponse()  # type: ignore[return-value]
        raise DecodeError("empty response body", raw_body="")
    try:
        value = json.loads(payload)
    except ValueError as exc:
        logger.debug("Malformed JSON body (%d bytes)", len(payload))
        raise DecodeError(f"malformed JSON: {exc}", raw_body=_raw(payload), cause=exc) from exc
    return decode_value(value, response_type, raw_body=_raw(payload))
