"""Network layer: pooled HTTPX client factory and the Gemini transport.

Modules:
- client: ``httpx.AsyncClient`` factory with timeouts, pool limits, TLS and telemetry hooks
- transport: request/response primitives, streaming and error mapping
"""

from GeminiKit.net.client import build_async_client, create_ssl_context
from GeminiKit.net.transport import GeminiTransport, ResponseEnvelope, ResponseStream

__all__ = [
    "build_async_client",
    "create_ssl_context",
    "GeminiTransport",
    "ResponseEnvelope",
    "ResponseStream",
]
