"""Structured logging helpers with API-key masking."""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

__all__ = ["JSONFormatter", "RedactingFormatter", "mask_sensitive_data", "redact_text", "redact_url", "setup_logging"]

ROOT_LOGGER_NAME = "GeminiKit"

_MASK = "***"
_SENSITIVE_KEYS = {"api_key", "apikey", "key", "x-goog-api-key", "authorization", "token", "secret"}
_QUERY_KEY_PATTERN = re.compile(r"([?&](?:key|api_key)=)[^&\s\"']+", re.IGNORECASE)
_HEADER_PATTERN = re.compile(r"(x-goog-api-key['\"]?\s*[:=]\s*['\"]?)[^'\"\s,}]+", re.IGNORECASE)
_API_KEY_FIELD_PATTERN = re.compile(r"(api_key['\"]?\s*[:=]\s*['\"]?)[^'\"\s,}]+", re.IGNORECASE)


def redact_text(text: str) -> str:
    """Mask ``key=`` query parameters and API-key header or field values in ``text``."""
    text = _QUERY_KEY_PATTERN.sub(rf"\1{_MASK}", text)
    text = _HEADER_PATTERN.sub(rf"\1{_MASK}", text)
    return _API_KEY_FIELD_PATTERN.sub(rf"\1{_MASK}", text)


def redact_url(url: object) -> str:
    return _QUERY_KEY_PATTERN.sub(rf"\1{_MASK}", str(url))


def mask_sensitive_data(payload: Any, key_hint: Optional[str] = None) -> Any:
    """Return a copy of ``payload`` with secret fields and embedded keys masked."""

    if key_hint is not None and key_hint.lower() in _SENSITIVE_KEYS and payload is not None:
        return _MASK
    if isinstance(payload, dict):
        return {key: mask_sensitive_data(value, str(key)) for key, value in payload.items()}
    if isinstance(payload, (list, tuple)):
        return type(payload)(mask_sensitive_data(item) for item in payload)
    if isinstance(payload, str):
        return redact_text(payload)
    return payload


class JSONFormatter(logging.Formatter):
    """Formatter emitting one masked JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            payload.update(record.extra_fields)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(payload), default=str)


class RedactingFormatter(logging.Formatter):
    """Console formatter that masks API keys in the rendered line."""

    def format(self, record: logging.LogRecord) -> str:
        return redact_text(super().format(record))


def setup_logging(
    level: str = "INFO",
    log_format: str = "console",
    log_file: Optional[Path] = None,
    *,
    propagate: bool = False,
) -> logging.Logger:
    """Configure the ``GeminiKit`` logger hierarchy.

    Args:
        level: Log level name (case-insensitive).
        log_format: ``"json"`` for :class:`JSONFormatter` on stderr, anything
            else for the plain console format.
        log_file: Optional path that additionally receives JSON lines.
        propagate: Whether records also reach the root logger.

    Returns:
        The configured package logger. Repeated calls replace the handlers
        installed by earlier calls instead of stacking them.
    """

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, str(getattr(level, "value", level)).upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_geminikit_managed", False):
            logger.removeHandler(handler)
            if isinstance(handler, logging.StreamHandler) and getattr(handler, "stream", None) in (
                sys.stdout,
                sys.stderr,
            ):
                continue
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    if str(getattr(log_format, "value", log_format)).lower() == "json":
        stream_handler.setFormatter(JSONFormatter())
    else:
        stream_handler.setFormatter(RedactingFormatter("%(levelname)s: %(message)s"))
    stream_handler._geminikit_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if log_file is not None:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler._geminikit_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = propagate
    return logger
