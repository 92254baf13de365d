# === NAVMAP v1 ===
# {
#   "module": "GeminiKit.errors",
#   "purpose": "Closed error taxonomy plus status, body and transport-exception mapping.",
#   "sections": [
#     {"id": "taxonomy", "name": "Exception taxonomy", "anchor": "TAX", "kind": "api"},
#     {"id": "http-mapping", "name": "map_http_error", "anchor": "HTTP", "kind": "function"},
#     {"id": "transport-mapping", "name": "map_transport_exception", "anchor": "NET", "kind": "function"},
#     {"id": "safety", "name": "raise_for_safety", "anchor": "SAF", "kind": "function"},
#     {"id": "describe", "name": "describe_error", "anchor": "DSC", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Error taxonomy and mapping for the Gemini client.

Responsibilities
----------------
- Define the closed exception hierarchy rooted at :class:`GeminiError`. Every
  failure that leaves the package is exactly one of these.
- Translate non-2xx responses into :class:`ApiError` subclasses via
  :func:`map_http_error`, reading the Google error envelope
  (``{"error": {"code", "message", "status"}}``) when present.
- Translate ``httpx`` transport exceptions via :func:`map_transport_exception`.
- Detect content-filter blocks hidden inside 200 responses
  (:func:`raise_for_safety`).
- Produce actionable one-line messages for the CLI (:func:`describe_error`).

Design Notes
------------
- ``ConnectionError`` shadows the builtin inside this module;
  import it as ``GeminiKit.errors.ConnectionError``.
- Nothing here retries. ``RateLimitError.retry_after`` is exposed so callers
  can build their own policy.
"""

from __future__ import annotations

import builtins
import json
import socket
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

import httpx

if TYPE_CHECKING:
    from GeminiKit.models.generation import GenerateContentResponse, SafetyRating

__all__ = (
    "GeminiError",
    "NetworkError",
    "ConnectionError",
    "RequestTimeout",
    "ApiError",
    "InvalidRequestError",
    "AuthError",
    "RateLimitError",
    "ModelError",
    "UnsupportedCapabilityError",
    "SafetyError",
    "DecodeError",
    "UploadPhase",
    "ProtocolError",
    "map_http_error",
    "map_transport_exception",
    "raise_for_safety",
    "describe_error",
)


# ============================================================================
# Taxonomy
# ============================================================================


class GeminiError(Exception):
    """Base class for every error raised by GeminiKit."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class NetworkError(GeminiError):
    """Raised when the request never produced an HTTP response."""


class ConnectionError(NetworkError):
    """Connection refused, reset, or name resolution failed."""


class RequestTimeout(NetworkError):
    """Connect, read, write, or pool timeout."""


class ApiError(GeminiError):
    """Raised when the server answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        raw_body: str = "",
        api_status: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.raw_body = raw_body
        self.api_status = api_status

    def __str__(self) -> str:
        return f"HTTP {self.status_code}: {self.message}"


class InvalidRequestError(ApiError):
    """Malformed request, unknown resource or precondition failure."""


class AuthError(ApiError):
    """Missing, invalid or unauthorised API key."""


class RateLimitError(ApiError):
    """Quota or rate limit exceeded (HTTP 429)."""

    def __init__(self, message: str, *, retry_after: float | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ModelError(ApiError):
    """The model is overloaded, unavailable, or failed server-side."""


class UnsupportedCapabilityError(ModelError):
    """Raised locally, before any I/O, when a model or API version lacks an operation."""

    def __init__(self, message: str, *, model: str | None = None, operation: str | None = None) -> None:
        super().__init__(message, status_code=0)
        self.model = model
        self.operation = operation

    def __str__(self) -> str:
        return self.message


class SafetyError(GeminiError):
    """A 200 response whose content was withheld by a safety filter."""

    def __init__(
        self,
        message: str,
        *,
        block_reason: str | None = None,
        safety_ratings: list["SafetyRating"] | None = None,
        response: "GenerateContentResponse | None" = None,
    ) -> None:
        super().__init__(message)
        self.block_reason = block_reason
        self.safety_ratings = list(safety_ratings or [])
        self.response = response


class DecodeError(GeminiError):
    """Malformed JSON or missing required fields in a 2xx body."""

    def __init__(self, message: str, *, raw_body: str = "", cause: BaseException | None = None) -> None:
        super().__init__(message, cause=cause)
        self.raw_body = raw_body


class UploadPhase(str, Enum):
    INITIATE = "initiate"
    TRANSFER = "transfer"
    FINALIZE = "finalize"


class ProtocolError(GeminiError):
    """Upload handshake failure tagged with the phase that failed."""

    def __init__(
        self,
        message: str,
        *,
        phase: UploadPhase,
        raw_body: str = "",
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.phase = phase
        self.raw_body = raw_body

    def __str__(self) -> str:
        return f"upload {self.phase.value} failed: {self.message}"


# ============================================================================
# HTTP status mapping
# ============================================================================

_INVALID_REQUEST_STATUSES = frozenset({400, 404, 409, 412, 413})
_AUTH_STATUSES = frozenset({401, 403})
_MODEL_STATUSES = frozenset({500, 503, 504})


def _body_text(body: bytes | str | None) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def _parse_envelope(text: str) -> tuple[str | None, str | None]:
    """Return ``(message, status)`` from a Google error envelope, if present."""
    try:
        parsed = json.loads(text)
    except ValueError:
        return None, None
    # Some proxies wrap the envelope in a single-element list.
    if isinstance(parsed, list) and len(parsed) == 1:
        parsed = parsed[0]
    if not isinstance(parsed, dict):
        return None, None
    error = parsed.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        status = error.get("status")
        return (
            message if isinstance(message, str) and message else None,
            status if isinstance(status, str) else None,
        )
    if isinstance(error, str) and error:
        return error, None
    return None, None


def _parse_retry_after(headers: Mapping[str, str] | None) -> float | None:
    if not headers:
        return None
    value = None
    for key, item in headers.items():
        if key.lower() == "retry-after":
            value = item
            break
    if value is None:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def map_http_error(
    status_code: int,
    body: bytes | str | None,
    headers: Mapping[str, str] | None = None,
) -> ApiError:
    """Map a non-2xx status and its body to an :class:`ApiError` subclass.

    Args:
        status_code: HTTP status returned by the server.
        body: Raw response body; the Google error envelope is parsed when present.
        headers: Response headers, consulted for ``Retry-After`` on 429.

    Returns:
        The mapped exception (not raised).

    Examples:
        >>> err = map_http_error(429, b'{"error": {"message": "slow down"}}', {"Retry-After": "7"})
        >>> type(err).__name__, err.retry_after
        ('RateLimitError', 7.0)
    """

    raw_body = _body_text(body)
    message, api_status = _parse_envelope(raw_body)
    if message is None:
        message = raw_body.strip()[:500] or httpx.codes.get_reason_phrase(status_code) or "error"
    kwargs: dict[str, Any] = {
        "status_code": status_code,
        "raw_body": raw_body,
        "api_status": api_status,
    }

    if status_code == 429:
        return RateLimitError(message, retry_after=_parse_retry_after(headers), **kwargs)
    if status_code in _AUTH_STATUSES:
        return AuthError(message, **kwargs)
    if status_code in _INVALID_REQUEST_STATUSES:
        return InvalidRequestError(message, **kwargs)
    if status_code in _MODEL_STATUSES:
        return ModelError(message, **kwargs)
    if 400 <= status_code < 500:
        return InvalidRequestError(message, **kwargs)
    if 500 <= status_code < 600:
        return ModelError(message, **kwargs)
    return ApiError(message, **kwargs)


# ============================================================================
# Transport exception mapping
# ============================================================================


def map_transport_exception(exc: BaseException) -> NetworkError:
    """Map an ``httpx``/OS-level exception to a :class:`NetworkError`."""

    if isinstance(exc, NetworkError):
        return exc
    detail = str(exc) or type(exc).__name__
    if isinstance(exc, httpx.TimeoutException):
        return RequestTimeout(f"request timed out: {detail}", cause=exc)
    if isinstance(
        exc,
        (
            httpx.ConnectError,
            httpx.NetworkError,
            httpx.RemoteProtocolError,
            builtins.ConnectionError,
            socket.gaierror,
        ),
    ):
        return ConnectionError(f"connection failed: {detail}", cause=exc)
    return NetworkError(f"transport error: {detail}", cause=exc)


# ============================================================================
# Safety
# ============================================================================


def raise_for_safety(response: "GenerateContentResponse") -> None:
    """Raise :class:`SafetyError` when ``response`` was blocked by a content filter.

    A response is blocked when the prompt feedback names a block reason, or
    when every candidate finished with a safety-type finish reason. A
    response with no candidates and no block reason is not an error (stream
    chunks carrying only usage metadata look like that).
    """

    feedback = response.prompt_feedback
    if feedback is not None and feedback.block_reason:
        raise SafetyError(
            f"prompt blocked: {feedback.block_reason}",
            block_reason=feedback.block_reason,
            safety_ratings=feedback.safety_ratings,
            response=response,
        )
    candidates = response.candidates
    if candidates and all(candidate.blocked_by_safety for candidate in candidates):
        first = candidates[0]
        raise SafetyError(
            f"response blocked: {first.finish_reason}",
            block_reason=first.finish_reason,
            safety_ratings=first.safety_ratings,
            response=response,
        )


# ============================================================================
# User-facing messages
# ============================================================================


def describe_error(error: BaseException) -> str:
    """Return an actionable one-line description of ``error``.

    Examples:
        >>> describe_error(AuthError("API key not valid", status_code=400))
        'Authentication failed (HTTP 400): API key not valid. Check GEMINI_API_KEY / GEMINIKIT_API_KEY.'
    """

    if isinstance(error, RateLimitError):
        hint = (
            f"retry after {error.retry_after:.0f}s"
            if error.retry_after is not None
            else "reduce request rate or check quota"
        )
        return f"Rate limited (HTTP 429): {error.message}. {hint.capitalize()}."
    if isinstance(error, AuthError):
        return (
            f"Authentication failed (HTTP {error.status_code}): {error.message}. "
            "Check GEMINI_API_KEY / GEMINIKIT_API_KEY."
        )
    if isinstance(error, UnsupportedCapabilityError):
        return f"Unsupported operation: {error.message}"
    if isinstance(error, ModelError):
        return f"Model unavailable (HTTP {error.status_code}): {error.message}. Try again later."
    if isinstance(error, InvalidRequestError):
        return f"Invalid request (HTTP {error.status_code}): {error.message}"
    if isinstance(error, ApiError):
        return f"API error (HTTP {error.status_code}): {error.message}"
    if isinstance(error, SafetyError):
        return f"Blocked by safety filter ({error.block_reason}). Rephrase the prompt."
    if isinstance(error, RequestTimeout):
        return f"Request timed out: {error.message}. Increase GEMINIKIT_HTTP__TIMEOUT_READ."
    if isinstance(error, NetworkError):
        return f"Network error: {error.message}. Check connectivity and proxy settings."
    if isinstance(error, DecodeError):
        return f"Unexpected response from server: {error.message}"
    if isinstance(error, ProtocolError):
        return f"Upload failed during {error.phase.value}: {error.message}"
    if isinstance(error, GeminiError):
        return error.message
    return f"{type(error).__name__}: {error}"
