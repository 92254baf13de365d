"""GeminiKit: typed async client for the Gemini Developer API.

Public surface:

- :class:`GeminiClient` and :func:`load_settings` to get started
- :mod:`GeminiKit.models` for request and response types
- :mod:`GeminiKit.errors` for the exception taxonomy
- lower layers (:class:`GeminiTransport`, :class:`ResumableUploadProtocol`,
  :class:`BatchJobController`, :class:`JsonStreamDecoder`) for callers that
  want to compose their own policies
"""

from GeminiKit.batch import BatchJobController, DatasetReference, InlineRequests
from GeminiKit.cancellation import CancellationToken
from GeminiKit.errors import (
    ApiError,
    AuthError,
    ConnectionError,
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
)
from GeminiKit.net.transport import GeminiTransport, ResponseEnvelope, ResponseStream
from GeminiKit.service import GeminiClient
from GeminiKit.settings import ApiVersion, GeminiSettings, HttpSettings, load_settings
from GeminiKit.streaming import JsonStreamDecoder, StreamChunk
from GeminiKit.upload import ResumableUploadProtocol, UploadSession

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "GeminiClient",
    "GeminiSettings",
    "HttpSettings",
    "ApiVersion",
    "load_settings",
    "GeminiTransport",
    "ResponseEnvelope",
    "ResponseStream",
    "JsonStreamDecoder",
    "StreamChunk",
    "ResumableUploadProtocol",
    "UploadSession",
    "BatchJobController",
    "InlineRequests",
    "DatasetReference",
    "CancellationToken",
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
    "ProtocolError",
    "UploadPhase",
]
