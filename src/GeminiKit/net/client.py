"""
HTTPX async client factory.

Builds the single pooled ``httpx.AsyncClient`` owned by each
:class:`~GeminiKit.net.transport.GeminiTransport`:

- explicit per-phase timeouts and pool limits from :class:`HttpSettings`
- HTTP/2 when enabled, TLS verified against the certifi bundle
- request/response event hooks emitting ``net.request`` debug telemetry
- no automatic redirects (the API never redirects; a 3xx is surfaced as an error)

There is no caching layer and no retrying transport. Callers own retry policy.
"""

from __future__ import annotations

import logging
import os
import ssl
import time
from typing import Any, Optional

import certifi
import httpx

from GeminiKit.logging_utils import redact_url
from GeminiKit.settings import GeminiSettings, HttpSettings

__all__ = ["build_async_client", "create_ssl_context"]

logger = logging.getLogger(__name__)


# ============================================================================
# Client Construction
# ============================================================================


def create_ssl_context(verify: bool = True) -> ssl.SSLContext | bool:
    """Create the TLS context used by the client.

    Returns ``False`` when verification is disabled so HTTPX skips it.
    """
    if not verify:
        logger.warning("TLS verification DISABLED (development only!)")
        return False
    ctx = ssl.create_default_context(cafile=certifi.where())
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED
    return ctx


def build_async_client(
    settings: GeminiSettings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Build a pooled async client from ``settings``.

    Args:
        settings: Client configuration; only ``settings.http`` is consulted.
        transport: Optional transport override (``httpx.MockTransport`` in tests).

    Returns:
        Configured ``httpx.AsyncClient`` with telemetry hooks attached.
    """
    cfg: HttpSettings = settings.http

    timeout = httpx.Timeout(
        connect=cfg.timeout_connect,
        read=cfg.timeout_read,
        write=cfg.timeout_write,
        pool=cfg.timeout_pool,
    )
    limits = httpx.Limits(
        max_connections=cfg.max_connections,
        max_keepalive_connections=cfg.max_keepalive_connections,
        keepalive_expiry=cfg.keepalive_expiry,
    )

    kwargs: dict[str, Any] = {}
    if transport is not None:
        kwargs["transport"] = transport
    else:
        kwargs["http2"] = cfg.http2
        kwargs["limits"] = limits
        kwargs["verify"] = create_ssl_context(cfg.verify_tls)
        kwargs["trust_env"] = cfg.trust_env

    client = httpx.AsyncClient(
        timeout=timeout,
        headers={
            "User-Agent": cfg.user_agent,
            "Accept": "application/json",
        },
        follow_redirects=False,
        event_hooks={"request": [_on_request], "response": [_on_response]},
        **kwargs,
    )
    logger.debug(
        "HTTPX async client created: http2=%s, max_connections=%d, config=%s",
        cfg.http2,
        cfg.max_connections,
        settings.config_hash(),
    )
    return client


# ============================================================================
# Event Hooks (Telemetry)
# ============================================================================


async def _on_request(request: httpx.Request) -> None:
    """Hook: stamp start time and a request id."""
    request.extensions["t0_perf"] = time.perf_counter()
    request.extensions["request_id"] = os.urandom(8).hex()


async def _on_response(response: httpx.Response) -> None:
    """Hook: emit one ``net.request`` record per response."""
    req = response.request
    t0 = req.extensions.get("t0_perf", time.perf_counter())
    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    if not logger.isEnabledFor(logging.DEBUG):
        return
    fields = {
        "event": "net.request",
        "method": req.method,
        "url": redact_url(req.url),
        "status": response.status_code,
        "elapsed_ms": round(elapsed_ms, 2),
        "http2": response.http_version == "HTTP/2",
        "request_id": req.extensions.get("request_id"),
    }
    logger.debug(
        "net.request %s %s -> %s (%.1f ms)",
        fields["method"],
        fields["url"],
        fields["status"],
        elapsed_ms,
        extra={"extra_fields": fields},
    )
