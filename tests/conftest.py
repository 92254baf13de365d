# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for the GeminiKit suite",
#   "sections": [
#     {"id": "hermetic-env", "name": "_hermetic_env", "anchor": "fixture-hermetic-env", "kind": "fixture"},
#     {"id": "gemini-settings", "name": "gemini_settings", "anchor": "fixture-gemini-settings", "kind": "fixture"}
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Shared fixtures for the GeminiKit suite. Every test runs with the
``GEMINI*`` environment cleared and the working directory moved to a
temporary folder (so a developer's ``.env`` never leaks in), and talks to an
``httpx.MockTransport`` route table instead of the network.

Usage:
    pytest tests/
"""

from __future__ import annotations

import logging
import os

import pytest

from GeminiKit.settings import GeminiSettings
from tests.fixtures.http_mocking import (  # noqa: F401
    http_mock,
    mock_api,
)
from tests.fixtures.payloads import make_settings


@pytest.fixture(autouse=True)
def _hermetic_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Clear GeminiKit environment variables and isolate from ``.env`` files."""
    for name in list(os.environ):
        if name.upper().startswith(("GEMINIKIT_", "GEMINI_API_KEY")):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Let caplog see GeminiKit records even after a CLI test configured logging."""
    logger = logging.getLogger("GeminiKit")
    yield
    for handler in list(logger.handlers):
        if getattr(handler, "_geminikit_managed", False):
            logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def gemini_settings() -> GeminiSettings:
    return make_settings()
