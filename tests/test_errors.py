"""
Error Mapper Tests

Checks status-code mapping, Google error-envelope parsing, transport
exception mapping, safety detection and the user-facing descriptions.

Usage:
    pytest tests/test_errors.py
"""

from __future__ import annotations

import socket

import httpx
import pytest

from GeminiKit import errors
from GeminiKit.errors import (
    ApiError,
    AuthError,
    DecodeError,
    GeminiError,
    InvalidRequestError,
    ModelError,
    NetworkError,
    ProtocolError,
    RateLimitError,
    RequestTimeout,
    SafetyError,
    UnsupportedCapabilityError,
    UploadPhase,
    describe_error,
    map_http_error,
    map_transport_exception,
    raise_for_safety,
)
from GeminiKit.models import GenerateContentResponse

ENVELOPE = b'{"error": {"code": 400, "message": "API key not valid.", "status": "INVALID_ARGUMENT"}}'


@pytest.mark.parametrize(
    "status, expected",
    [
        (400, InvalidRequestError),
        (404, InvalidRequestError),
        (409, InvalidRequestError),
        (413, InvalidRequestError),
        (418, InvalidRequestError),
        (401, AuthError),
        (403, AuthError),
        (429, RateLimitError),
        (500, ModelError),
        (503, ModelError),
        (504, ModelError),
        (502, ModelError),
        (302, ApiError),
    ],
)
def test_status_mapping_is_exact(status: int, expected: type) -> None:
    error = map_http_error(status, b"")
    assert type(error) is expected
    assert error.status_code == status
    assert isinstance(error, GeminiError)


def test_envelope_message_and_status_are_extracted() -> None:
    error = map_http_error(400, ENVELOPE)
    assert error.message == "API key not valid."
    assert error.api_status == "INVALID_ARGUMENT"
    assert error.raw_body == ENVELOPE.decode()
    assert str(error) == "HTTP 400: API key not valid."


def test_list_wrapped_envelope() -> None:
    error = map_http_error(503, b'[{"error": {"code": 503, "message": "overloaded"}}]')
    assert isinstance(error, ModelError)
    assert error.message == "overloaded"


def test_plain_text_body_is_used_as_message() -> None:
    error = map_http_error(502, b"<html>Bad Gateway</html>")
    assert error.message == "<html>Bad Gateway</html>"
    assert map_http_error(500, b"").message == "Internal Server Error"


def test_retry_after_seconds_and_http_date() -> None:
    assert map_http_error(429, b"", {"Retry-After": "12"}).retry_after == 12.0
    past = map_http_error(429, b"", {"retry-after": "Wed, 21 Oct 2015 07:28:00 GMT"})
    assert past.retry_after == 0.0
    assert map_http_error(429, b"").retry_after is None
    assert map_http_error(429, b"", {"Retry-After": "soon"}).retry_after is None


@pytest.mark.parametrize(
    "exc, expected",
    [
        (httpx.ConnectError("refused"), errors.ConnectionError),
        (httpx.ReadError("reset"), errors.ConnectionError),
        (httpx.RemoteProtocolError("bad frame"), errors.ConnectionError),
        (ConnectionRefusedError(111, "refused"), errors.ConnectionError),
        (socket.gaierror(-2, "Name or service not known"), errors.ConnectionError),
        (httpx.ConnectTimeout("slow"), RequestTimeout),
        (httpx.ReadTimeout("slow"), RequestTimeout),
        (httpx.PoolTimeout("busy"), RequestTimeout),
        (httpx.TooManyRedirects("loop"), NetworkError),
    ],
)
def test_transport_exception_mapping(exc: BaseException, expected: type) -> None:
    mapped = map_transport_exception(exc)
    assert type(mapped) is expected
    assert mapped.cause is exc
    assert mapped.__cause__ is exc


def test_connection_error_is_not_the_builtin() -> None:
    assert not issubclass(errors.ConnectionError, ConnectionError)
    assert issubclass(errors.ConnectionError, NetworkError)


def test_unsupported_capability_is_a_model_error() -> None:
    error = UnsupportedCapabilityError("nope", model="m", operation="embedContent")
    assert isinstance(error, ModelError)
    assert str(error) == "nope"


def test_protocol_error_carries_phase_and_cause() -> None:
    cause = map_http_error(429, b"")
    error = ProtocolError("transfer failed", phase=UploadPhase.TRANSFER, cause=cause)
    assert error.phase is UploadPhase.TRANSFER
    assert error.cause is cause
    assert str(error) == "upload transfer failed: transfer failed"


class TestRaiseForSafety:
    def test_prompt_block_reason(self) -> None:
        response = GenerateContentResponse.model_validate(
            {
                "promptFeedback": {
                    "blockReason": "SAFETY",
                    "safetyRatings": [
                        {"category": "HARM_CATEGORY_HARASSMENT", "probability": "HIGH"}
                    ],
                }
            }
        )
        with pytest.raises(SafetyError) as excinfo:
            raise_for_safety(response)
        assert excinfo.value.block_reason == "SAFETY"
        assert excinfo.value.safety_ratings[0].probability == "HIGH"
        assert excinfo.value.response is response

    def test_all_candidates_blocked(self) -> None:
        response = GenerateContentResponse.model_validate(
            {"candidates": [{"finishReason": "PROHIBITED_CONTENT"}]}
        )
        with pytest.raises(SafetyError, match="PROHIBITED_CONTENT"):
            raise_for_safety(response)

    def test_partial_block_and_usage_only_chunks_pass(self) -> None:
        mixed = GenerateContentResponse.model_validate(
            {"candidates": [{"finishReason": "SAFETY"}, {"finishReason": "STOP"}]}
        )
        usage_only = GenerateContentResponse.model_validate(
            {"usageMetadata": {"promptTokenCount": 4}}
        )
        raise_for_safety(mixed)
        raise_for_safety(usage_only)


@pytest.mark.parametrize(
    "error, fragment",
    [
        (map_http_error(429, b"", {"Retry-After": "30"}), "Retry after 30s"),
        (map_http_error(403, ENVELOPE), "GEMINI_API_KEY"),
        (map_http_error(503, b""), "Model unavailable"),
        (map_http_error(404, b""), "Invalid request (HTTP 404)"),
        (RequestTimeout("read timed out"), "timed out"),
        (errors.ConnectionError("refused"), "Network error"),
        (DecodeError("bad json"), "Unexpected response"),
        (ProtocolError("no url", phase=UploadPhase.INITIATE), "during initiate"),
        (SafetyError("blocked", block_reason="SAFETY"), "safety filter (SAFETY)"),
        (UnsupportedCapabilityError("no embeddings"), "Unsupported operation"),
        (ValueError("boom"), "ValueError: boom"),
    ],
)
def test_describe_error(error: BaseException, fragment: str) -> None:
    assert fragment in describe_error(error)
