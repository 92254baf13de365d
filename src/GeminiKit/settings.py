# === NAVMAP v1 ===
# {
#   "module": "GeminiKit.settings",
#   "purpose": "Pydantic v2 settings for the Gemini transport stack.",
#   "sections": [
#     {
#       "id": "apiversion",
#       "name": "ApiVersion",
#       "anchor": "class-apiversion",
#       "kind": "class"
#     },
#     {
#       "id": "logformat",
#       "name": "LogFormat",
#       "anchor": "class-logformat",
#       "kind": "class"
#     },
#     {
#       "id": "httpsettings",
#       "name": "HttpSettings",
#       "anchor": "class-httpsettings",
#       "kind": "class"
#     },
#     {
#       "id": "geminisettings",
#       "name": "GeminiSettings",
#       "anchor": "class-geminisettings",
#       "kind": "class"
#     },
#     {
#       "id": "load-settings",
#       "name": "load_settings",
#       "anchor": "function-load-settings",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Unified settings for the Gemini client.

Every value the transport needs (base URL, API key, API version, timeout
budgets, pool limits, default model and generation parameters) lives on one
explicit :class:`GeminiSettings` instance that is handed to the client at
construction time. There are no process-wide mutable defaults.

Sources, highest precedence first:

1. keyword arguments passed to :func:`load_settings` / ``GeminiSettings(...)``
2. environment variables (``GEMINIKIT_*``; nested fields use ``__``, e.g.
   ``GEMINIKIT_HTTP__TIMEOUT_READ=90``). ``GEMINI_API_KEY`` is accepted as an
   alias for the key.
3. a ``.env`` file in the working directory
4. field defaults
"""

from __future__ import annotations

import hashlib
import json
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from GeminiKit.models.content import GenerationConfig

__all__ = [
    "ApiVersion",
    "LogFormat",
    "HttpSettings",
    "GeminiSettings",
    "load_settings",
    "DEFAULT_BASE_URL",
]

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"


class ApiVersion(str, Enum):
    """Gemini API surface version."""

    V1 = "v1"
    V1BETA = "v1beta"


class LogFormat(str, Enum):
    """Log output format."""

    JSON = "json"
    CONSOLE = "console"


class HttpSettings(BaseModel):
    """HTTP client settings for the pooled HTTPX client.

    Controls timeout budgets, pool sizing, HTTP/2, TLS and user agent.
    """

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    http2: bool = Field(default=True, description="Enable HTTP/2 support")
    timeout_connect: float = Field(
        default=10.0, gt=0.0, le=120.0, description="Connect timeout in seconds"
    )
    timeout_read: float = Field(
        default=120.0,
        gt=0.0,
        le=3600.0,
        description="Read timeout in seconds (generation and streaming can be slow)",
    )
    timeout_write: float = Field(
        default=60.0, gt=0.0, le=3600.0, description="Write timeout in seconds (uploads)"
    )
    timeout_pool: float = Field(
        default=10.0, gt=0.0, le=120.0, description="Pool acquire timeout in seconds"
    )
    max_connections: int = Field(default=64, ge=1, le=1024)
    max_keepalive_connections: int = Field(default=16, ge=0, le=1024)
    keepalive_expiry: float = Field(default=30.0, ge=0.0, le=600.0)
    verify_tls: bool = Field(default=True, description="Verify server TLS certificates")
    trust_env: bool = Field(default=True, description="Honour HTTP(S)_PROXY environment variables")
    user_agent: str = Field(default="GeminiKit/0.1 (+httpx)")


class GeminiSettings(BaseSettings):
    """Top-level configuration for :class:`GeminiKit.service.GeminiClient`."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINIKIT_",
        env_nested_delimiter="__",
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    api_key: SecretStr = Field(
        ...,
        validation_alias=AliasChoices("GEMINIKIT_API_KEY", "GEMINI_API_KEY"),
        description="API key sent as the `key` query parameter",
    )
    base_url: str = Field(DEFAULT_BASE_URL, description="Service origin without version path")
    api_version: ApiVersion = Field(ApiVersion.V1BETA, description="API version path segment")
    upload_url: str | None = Field(
        None, description="Override for the resumable upload endpoint"
    )
    default_model: str = Field(
        "gemini-flash-latest", description="Model used when a request names none"
    )
    default_generation_config: GenerationConfig | None = Field(
        None, description="Generation config applied when a request carries none"
    )
    http: HttpSettings = Field(default_factory=HttpSettings)
    log_level: str = Field("INFO", description="Root logging level")
    log_format: LogFormat = Field(LogFormat.CONSOLE, description="Log output format")

    @field_validator("api_key")
    @classmethod
    def _key_not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("API key cannot be empty")
        return value

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def api_root(self) -> str:
        """Versioned API root, e.g. ``https://host/v1beta``."""
        return f"{self.base_url}/{self.api_version.value}"

    @property
    def upload_root(self) -> str:
        """Resumable upload endpoint."""
        if self.upload_url:
            return self.upload_url.rstrip("/")
        return f"{self.base_url}/upload/{self.api_version.value}/files"

    def config_hash(self) -> str:
        """Deterministic hash of the non-secret configuration."""
        payload: dict[str, Any] = self.model_dump(mode="json", exclude={"api_key"})
        encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:16]


def load_settings(**overrides: Any) -> GeminiSettings:
    """Build settings from environment, ``.env`` and ``overrides``.

    Args:
        **overrides: Field values that take precedence over every other source.

    Returns:
        Validated :class:`GeminiSettings`.

    Raises:
        pydantic.ValidationError: If a value is invalid or the API key is missing.
    """
    return GeminiSettings(**overrides)
