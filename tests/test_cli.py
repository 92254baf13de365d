"""
GeminiKit CLI Tests

Runs the Typer application against a mocked API by swapping the client
factory, and checks exit codes and the human-readable output.

Key Scenarios:
- ``generate`` prints the first candidate, ``--stream`` prints chunks in order
- API failures exit with code 1 and a short description instead of a traceback
- Missing configuration is reported before any request is made

Usage:
    pytest tests/test_cli.py
"""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from GeminiKit import cli
from GeminiKit.service import GeminiClient
from tests.fixtures.http_mocking import MockGeminiAPI, MockResponseBuilder
from tests.fixtures.payloads import batch_payload, file_payload, generate_payload, make_settings

runner = CliRunner()


@pytest.fixture
def api(monkeypatch: pytest.MonkeyPatch) -> MockGeminiAPI:
    mock = MockGeminiAPI()
    monkeypatch.setattr(
        cli, "_make_client", lambda: GeminiClient(make_settings(), http_transport=mock.transport())
    )
    return mock


def test_generate_prints_text(api: MockGeminiAPI) -> None:
    api.add_json("POST", "models/gemini-2.5-pro:generateContent", generate_payload("Hi there"))

    result = runner.invoke(cli.app, ["generate", "Hello", "--model", "gemini-2.5-pro", "-t", "0.5"])

    assert result.exit_code == 0, result.output
    assert "Hi there" in result.output
    body = json.loads(api.last_request.content)
    assert body["generationConfig"] == {"temperature": 0.5}


def test_generate_stream(api: MockGeminiAPI) -> None:
    body = b"[" + b",".join(json.dumps(generate_payload(t)).encode() for t in ("Hel", "lo")) + b"]"
    api.add("POST", ":streamGenerateContent", MockResponseBuilder(200, body))

    result = runner.invoke(cli.app, ["generate", "Hello", "--stream"])

    assert result.exit_code == 0, result.output
    assert "Hello" in result.output


def test_api_error_exits_with_description(api: MockGeminiAPI) -> None:
    api.add(
        "POST",
        ":generateContent",
        MockResponseBuilder().with_error(429, "quota exceeded").with_header("Retry-After", "7"),
    )

    result = runner.invoke(cli.app, ["generate", "Hello"])

    assert result.exit_code == 1
    assert "Rate limited" in result.output
    assert "Traceback" not in result.output


def test_count_tokens(api: MockGeminiAPI) -> None:
    api.add_json("POST", ":countTokens", {"totalTokens": 12})
    result = runner.invoke(cli.app, ["count-tokens", "Hello there"])
    assert result.exit_code == 0, result.output
    assert "total_tokens: 12" in result.output


def test_upload(api: MockGeminiAPI, tmp_path) -> None:
    source = tmp_path / "notes.txt"
    source.write_text("hello world", encoding="utf-8")
    api.add(
        "POST",
        "upload/v1beta/files",
        MockResponseBuilder()
        .with_json({})
        .with_header("X-Goog-Upload-URL", "https://generativelanguage.googleapis.com/upload/v1beta/files?upload_id=1"),
    )
    api.add("PUT", "upload/v1beta/files", MockResponseBuilder().with_json({"file": file_payload()}))

    result = runner.invoke(cli.app, ["upload", str(source), "--mime-type", "text/plain"])

    assert result.exit_code == 0, result.output
    assert "files/abc123" in result.output
    assert "state: ACTIVE" in result.output


def test_batch_status(api: MockGeminiAPI) -> None:
    api.add_json(
        "GET",
        "batches/123",
        batch_payload(state="JOB_STATE_FAILED", error={"code": 3, "message": "bad input"}),
    )

    result = runner.invoke(cli.app, ["batch", "status", "123"])

    assert result.exit_code == 0, result.output
    assert "batches/123: FAILED" in result.output
    assert "error 3: bad input" in result.output


def test_batch_list(api: MockGeminiAPI) -> None:
    api.add_json("GET", "/v1beta/batches", {"batches": [batch_payload("batches/7")], "nextPageToken": "tok"})

    result = runner.invoke(cli.app, ["batch", "list", "--page-size", "5"])

    assert result.exit_code == 0, result.output
    assert "batches/7" in result.output
    assert "next page: tok" in result.output
    assert api.last_request.url.params["pageSize"] == "5"


def test_batch_cancel_and_delete(api: MockGeminiAPI) -> None:
    api.add_json("POST", "batches/123:cancel", {})
    api.add("DELETE", "batches/123", MockResponseBuilder(200, b""))

    cancelled = runner.invoke(cli.app, ["batch", "cancel", "123"])
    deleted = runner.invoke(cli.app, ["batch", "delete", "batches/123"])

    assert cancelled.exit_code == 0, cancelled.output
    assert "cancellation requested: 123" in cancelled.output
    assert deleted.exit_code == 0, deleted.output
    assert "deleted: batches/123" in deleted.output


def test_missing_api_key_is_a_configuration_error() -> None:
    result = runner.invoke(cli.app, ["generate", "Hello"])
    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_no_arguments_shows_help() -> None:
    result = runner.invoke(cli.app, [])
    assert "generate" in result.output
