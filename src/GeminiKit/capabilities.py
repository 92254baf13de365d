"""Model capability evidence and API-version feature gates.

Operations are checked against what a model (and the configured API version)
supports before any request is built, so an impossible call fails locally
with :class:`~GeminiKit.errors.UnsupportedCapabilityError` instead of
producing a 400 from the server.

Known models are listed in :data:`KNOWN_MODELS`. Anything else is inferred
from its name: ``*embedding*`` models can only embed and count tokens, every
other name is assumed to support the full generation surface.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Flag, auto

from GeminiKit.errors import UnsupportedCapabilityError
from GeminiKit.settings import ApiVersion

__all__ = [
    "Capability",
    "GENERATION",
    "FULL_GENERATION",
    "EMBEDDING",
    "ModelSpec",
    "KNOWN_MODELS",
    "model_spec",
    "require_capability",
    "VERSIONED_FEATURES",
    "require_api_feature",
]


class Capability(Flag):
    NONE = 0
    GENERATE = auto()
    STREAM = auto()
    COUNT_TOKENS = auto()
    EMBED = auto()
    CACHE = auto()
    BATCH = auto()


GENERATION = Capability.GENERATE | Capability.STREAM | Capability.COUNT_TOKENS
FULL_GENERATION = GENERATION | Capability.CACHE | Capability.BATCH
EMBEDDING = Capability.EMBED | Capability.COUNT_TOKENS


@dataclass(frozen=True)
class ModelSpec:
    """A model name and the operations it supports."""

    name: str
    capabilities: Capability

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities


KNOWN_MODELS: dict[str, ModelSpec] = {
    spec.name: spec
    for spec in (
        ModelSpec("gemini-2.5-pro", FULL_GENERATION),
        ModelSpec("gemini-2.5-flash", FULL_GENERATION),
        ModelSpec("gemini-2.5-flash-lite", FULL_GENERATION),
        ModelSpec("gemini-2.0-flash", FULL_GENERATION),
        ModelSpec("gemini-2.0-flash-lite", GENERATION | Capability.BATCH),
        ModelSpec("gemini-flash-latest", FULL_GENERATION),
        ModelSpec("gemini-flash-lite-latest", FULL_GENERATION),
        ModelSpec("gemini-pro-latest", FULL_GENERATION),
        ModelSpec("gemma-3-27b-it", GENERATION),
        ModelSpec("gemini-embedding-001", EMBEDDING),
        ModelSpec("text-embedding-004", EMBEDDING),
        ModelSpec("embedding-001", EMBEDDING),
    )
}


def _bare_name(model: str) -> str:
    name = model.strip()
    for prefix in ("models/", "tunedModels/"):
        if name.startswith(prefix):
            return name[len(prefix) :]
    return name


def model_spec(model: str) -> ModelSpec:
    """Return the capability evidence for ``model``."""
    name = _bare_name(model)
    known = KNOWN_MODELS.get(name)
    if known is not None:
        return known
    if "embedding" in name:
        return ModelSpec(name, EMBEDDING)
    return ModelSpec(name, FULL_GENERATION)


def require_capability(model: str, capability: Capability, operation: str) -> ModelSpec:
    """Raise :class:`UnsupportedCapabilityError` unless ``model`` supports ``capability``."""
    spec = model_spec(model)
    if not spec.supports(capability):
        raise UnsupportedCapabilityError(
            f"model {spec.name!r} does not support {operation}",
            model=spec.name,
            operation=operation,
        )
    return spec


# Features only exposed on the beta surface.
VERSIONED_FEATURES: dict[str, frozenset[ApiVersion]] = {
    "files": frozenset({ApiVersion.V1BETA}),
    "cachedContents": frozenset({ApiVersion.V1BETA}),
    "batches": frozenset({ApiVersion.V1BETA}),
}


def require_api_feature(version: ApiVersion, feature: str) -> None:
    allowed = VERSIONED_FEATURES.get(feature)
    if allowed is not None and version not in allowed:
        raise UnsupportedCapabilityError(
            f"{feature} is not available on API version {version.value}; use v1beta",
            operation=feature,
        )
