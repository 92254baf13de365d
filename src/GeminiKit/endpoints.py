"""Resource path builders for the Gemini REST surface.

Paths are relative to the versioned API root (``{base_url}/{api_version}``).
"""

from __future__ import annotations

__all__ = [
    "model_path",
    "generate_content",
    "stream_generate_content",
    "count_tokens",
    "embed_content",
    "batch_embed_contents",
    "batch_generate_content",
    "batch_path",
    "cancel_batch",
    "file_path",
    "cached_content_path",
    "CACHED_CONTENTS",
    "BATCHES",
    "FILES",
]

CACHED_CONTENTS = "cachedContents"
BATCHES = "batches"
FILES = "files"

_MODEL_PREFIXES = ("models/", "tunedModels/")


def model_path(model: str) -> str:
    """Return the resource name for ``model`` (``gemini-x`` -> ``models/gemini-x``)."""
    model = model.strip()
    if not model:
        raise ValueError("model name cannot be empty")
    if model.startswith(_MODEL_PREFIXES):
        return model
    return f"models/{model}"


def generate_content(model: str) -> str:
    return f"{model_path(model)}:generateContent"


def stream_generate_content(model: str) -> str:
    return f"{model_path(model)}:streamGenerateContent"


def count_tokens(model: str) -> str:
    return f"{model_path(model)}:countTokens"


def embed_content(model: str) -> str:
    return f"{model_path(model)}:embedContent"


def batch_embed_contents(model: str) -> str:
    return f"{model_path(model)}:batchEmbedContents"


def batch_generate_content(model: str) -> str:
    return f"{model_path(model)}:batchGenerateContent"


def _qualify(name: str, collection: str) -> str:
    name = name.strip().strip("/")
    if not name:
        raise ValueError(f"{collection} resource name cannot be empty")
    if name.startswith(f"{collection}/"):
        return name
    return f"{collection}/{name}"


def batch_path(name: str) -> str:
    """``123`` or ``batches/123`` -> ``batches/123``."""
    return _qualify(name, BATCHES)


def cancel_batch(name: str) -> str:
    return f"{batch_path(name)}:cancel"


def file_path(name: str) -> str:
    """``abc`` or ``files/abc`` -> ``files/abc``."""
    return _qualify(name, FILES)


def cached_content_path(name: str) -> str:
    return _qualify(name, CACHED_CONTENTS)
