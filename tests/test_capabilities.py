"""
Capability and Endpoint Tests

Checks the model capability table, name-based inference, API-version
feature gates and resource-name normalisation.

Usage:
    pytest tests/test_capabilities.py
"""

from __future__ import annotations

import pytest

from GeminiKit import endpoints
from GeminiKit.capabilities import (
    EMBEDDING,
    FULL_GENERATION,
    Capability,
    model_spec,
    require_api_feature,
    require_capability,
)
from GeminiKit.errors import UnsupportedCapabilityError
from GeminiKit.settings import ApiVersion


@pytest.mark.parametrize(
    "model, capability, supported",
    [
        ("gemini-2.5-flash", Capability.STREAM, True),
        ("models/gemini-2.5-pro", Capability.CACHE, True),
        ("gemini-embedding-001", Capability.EMBED, True),
        ("gemini-embedding-001", Capability.GENERATE, False),
        ("gemma-3-27b-it", Capability.BATCH, False),
        ("gemini-2.0-flash-lite", Capability.CACHE, False),
        ("gemini-2.0-flash-lite", Capability.BATCH, True),
    ],
)
def test_known_models(model: str, capability: Capability, supported: bool) -> None:
    assert model_spec(model).supports(capability) is supported


def test_unknown_models_are_inferred_from_name() -> None:
    assert model_spec("gemini-3.0-ultra-preview").capabilities == FULL_GENERATION
    assert model_spec("models/my-embedding-v9").capabilities == EMBEDDING


def test_require_capability_names_model_and_operation() -> None:
    with pytest.raises(UnsupportedCapabilityError) as excinfo:
        require_capability("models/text-embedding-004", Capability.STREAM, "streamGenerateContent")
    assert excinfo.value.model == "text-embedding-004"
    assert excinfo.value.operation == "streamGenerateContent"
    assert str(excinfo.value) == "model 'text-embedding-004' does not support streamGenerateContent"


@pytest.mark.parametrize("feature", ["files", "cachedContents", "batches"])
def test_beta_only_features(feature: str) -> None:
    require_api_feature(ApiVersion.V1BETA, feature)
    with pytest.raises(UnsupportedCapabilityError, match="use v1beta"):
        require_api_feature(ApiVersion.V1, feature)


def test_unversioned_feature_passes_everywhere() -> None:
    require_api_feature(ApiVersion.V1, "generateContent")


class TestEndpoints:
    @pytest.mark.parametrize(
        "builder, name, expected",
        [
            (endpoints.generate_content, "gemini-2.5-flash", "models/gemini-2.5-flash:generateContent"),
            (endpoints.stream_generate_content, "models/x", "models/x:streamGenerateContent"),
            (endpoints.count_tokens, "tunedModels/t1", "tunedModels/t1:countTokens"),
            (endpoints.embed_content, "text-embedding-004", "models/text-embedding-004:embedContent"),
            (endpoints.batch_path, "123", "batches/123"),
            (endpoints.batch_path, "/batches/123/", "batches/123"),
            (endpoints.cancel_batch, "batches/123", "batches/123:cancel"),
            (endpoints.file_path, "abc", "files/abc"),
            (endpoints.cached_content_path, "cachedContents/c", "cachedContents/c"),
        ],
    )
    def test_paths(self, builder, name: str, expected: str) -> None:
        assert builder(name) == expected

    @pytest.mark.parametrize("builder", [endpoints.model_path, endpoints.batch_path, endpoints.file_path])
    def test_blank_names_rejected(self, builder) -> None:
        with pytest.raises(ValueError):
            builder("  ")
