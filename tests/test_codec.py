"""
Codec Pipeline Tests

Encodes representative requests and decodes a fixture corpus of responses,
checking aliases, omitted fields, tolerance of unknown fields, and the
DecodeError contract.

Usage:
    pytest tests/test_codec.py
"""

from __future__ import annotations

import json

import pytest

from GeminiKit.codec import JSON_CONTENT_TYPE, decode, encode
from GeminiKit.errors import DecodeError
from GeminiKit.models import (
    BatchJob,
    BatchJobState,
    Content,
    CountTokensRequest,
    CountTokensResponse,
    EmbedContentRequest,
    EmbedContentResponse,
    EmptyResponse,
    FileResource,
    FileState,
    GenerateContentRequest,
    GenerateContentResponse,
    GenerationConfig,
    HarmBlockThreshold,
    HarmCategory,
    Part,
    SafetySetting,
    TaskType,
)


class TestEncode:
    def test_generate_request_uses_camel_case_and_omits_none(self) -> None:
        request = GenerateContentRequest(
            model="gemini-2.5-flash",
            contents=[Content.from_text("Hi")],
            system_instruction=Content.from_text("Be brief", role=None),
            generation_config=GenerationConfig(temperature=0.2, max_output_tokens=64),
            safety_settings=[
                SafetySetting(
                    category=HarmCategory.HARASSMENT,
                    threshold=HarmBlockThreshold.BLOCK_ONLY_HIGH,
                )
            ],
        )
        envelope = encode(request)
        body = json.loads(envelope.payload)

        assert envelope.content_type == JSON_CONTENT_TYPE
        assert "model" not in body
        assert body == {
            "contents": [{"parts": [{"text": "Hi"}], "role": "user"}],
            "systemInstruction": {"parts": [{"text": "Be brief"}]},
            "safetySettings": [
                {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_ONLY_HIGH"}
            ],
            "generationConfig": {"temperature": 0.2, "maxOutputTokens": 64},
        }

    def test_inline_bytes_are_base64(self) -> None:
        part = Part.from_bytes(b"\x00\x01png", "image/png")
        body = json.loads(encode(Content(parts=[part])).payload)
        assert body["parts"][0]["inlineData"] == {"mimeType": "image/png", "data": "AAFwbmc="}
        assert part.inline_data.decoded() == b"\x00\x01png"

    def test_embed_request_serialises_model_resource_name(self) -> None:
        request = EmbedContentRequest(
            model="gemini-embedding-001",
            content=Content.from_text("vector me", role=None),
            task_type=TaskType.RETRIEVAL_QUERY,
        )
        body = json.loads(encode(request).payload)
        assert body["model"] == "models/gemini-embedding-001"
        assert body["taskType"] == "RETRIEVAL_QUERY"

    def test_count_tokens_excludes_model(self) -> None:
        request = CountTokensRequest(model="gemini-2.5-pro", contents=[Content.from_text("x")])
        assert "model" not in json.loads(encode(request).payload)

    def test_mapping_and_none(self) -> None:
        assert encode({"file": {"displayName": "ü"}}).payload == '{"file":{"displayName":"ü"}}'.encode()
        assert encode(None).payload == b""


class TestDecode:
    def test_generate_response_with_unknown_fields(self) -> None:
        payload = json.dumps(
            {
                "candidates": [
                    {
                        "content": {
                            "role": "model",
                            "parts": [
                                {"text": "thinking...", "thought": True},
                                {"text": "Hello"},
                                {"text": " world"},
                                {"someFuturePart": {"x": 1}},
                            ],
                        },
                        "finishReason": "STOP",
                        "avgLogprobs": -0.1,
                    }
                ],
                "usageMetadata": {"promptTokenCount": 3, "totalTokenCount": 5},
                "modelVersion": "gemini-2.5-flash",
                "brandNewTopLevel": True,
            }
        ).encode()

        response = decode(payload, GenerateContentResponse)

        assert response.text == "Hello world"
        assert response.usage_metadata.total_token_count == 5
        assert response.candidates[0].finish_reason == "STOP"

    def test_file_resource_state_and_size(self) -> None:
        payload = b'{"name": "files/x", "uri": "u", "sizeBytes": "42", "state": "ACTIVE"}'
        resource = decode(payload, FileResource)
        assert resource.size_bytes == 42
        assert resource.state is FileState.ACTIVE
        assert resource.is_ready

    def test_unknown_file_state_maps_to_unspecified(self) -> None:
        resource = decode(b'{"name": "files/x", "uri": "u", "state": "ARCHIVED"}', FileResource)
        assert resource.state is FileState.STATE_UNSPECIFIED

    def test_embedding(self) -> None:
        response = decode(b'{"embedding": {"values": [0.1, -0.2]}}', EmbedContentResponse)
        assert response.embedding.values == [0.1, -0.2]

    def test_batch_job_operation_form(self) -> None:
        payload = json.dumps(
            {
                "name": "batches/1",
                "metadata": {"state": "BATCH_STATE_SUCCEEDED", "createTime": "t0"},
                "done": True,
            }
        )
        job = decode(payload, BatchJob)
        assert job.state is BatchJobState.SUCCEEDED
        assert job.create_time == "t0"

    def test_malformed_json_raises_decode_error_with_raw_body(self) -> None:
        with pytest.raises(DecodeError) as excinfo:
            decode(b"{not json", GenerateContentResponse)
        assert excinfo.value.raw_body == "{not json"
        assert excinfo.value.cause is not None

    def test_missing_required_field(self) -> None:
        with pytest.raises(DecodeError, match="CountTokensResponse"):
            decode(b'{"cachedContentTokenCount": 1}', CountTokensResponse)

    def test_wrong_json_type(self) -> None:
        with pytest.raises(DecodeError):
            decode(b'{"totalTokens": {"nested": true}}', CountTokensResponse)

    def test_empty_body(self) -> None:
        assert decode(b"", EmptyResponse) == EmptyResponse()
        assert decode(b"{}", EmptyResponse) == EmptyResponse()
        with pytest.raises(DecodeError, match="empty"):
            decode(b"", CountTokensResponse)
