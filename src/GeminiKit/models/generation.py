# === NAVMAP v1 ===
# {
#   "module": "GeminiKit.models.generation",
#   "purpose": "Request and response models for generation, token counting, embeddings and caching.",
#   "sections": [
#     {"id": "requests", "name": "Requests", "anchor": "REQ", "kind": "api"},
#     {"id": "responses", "name": "Responses", "anchor": "RSP", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Request and response models for the model-scoped endpoints.

Request models carry the target ``model`` alongside the body. Where the API
puts the model in the URL only (``generateContent``, ``countTokens``) the
field is excluded from serialisation; where it is also part of the body
(``embedContent``, ``cachedContents``) it is serialised as a resource name.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field, field_serializer

from GeminiKit.endpoints import model_path
from GeminiKit.models._base import ApiModel
from GeminiKit.models.content import (
    Content,
    GenerationConfig,
    SafetySetting,
    Tool,
    ToolConfig,
)

__all__ = [
    "GenerateContentRequest",
    "CountTokensRequest",
    "TaskType",
    "EmbedContentRequest",
    "BatchEmbedContentsRequest",
    "CreateCachedContentRequest",
    "SafetyRating",
    "PromptFeedback",
    "UsageMetadata",
    "Candidate",
    "GenerateContentResponse",
    "CountTokensResponse",
    "ContentEmbedding",
    "EmbedContentResponse",
    "BatchEmbedContentsResponse",
    "CachedContent",
    "EmptyResponse",
    "SAFETY_FINISH_REASONS",
]


# ============================================================================
# Requests
# ============================================================================


class GenerateContentRequest(ApiModel):
    """Body of ``models/{model}:generateContent`` and its streaming variant."""

    model: str | None = Field(None, exclude=True)
    contents: list[Content]
    system_instruction: Content | None = None
    tools: list[Tool] | None = None
    tool_config: ToolConfig | None = None
    safety_settings: list[SafetySetting] | None = None
    generation_config: GenerationConfig | None = None
    cached_content: str | None = None


class CountTokensRequest(ApiModel):
    model: str | None = Field(None, exclude=True)
    contents: list[Content]


class TaskType(str, Enum):
    UNSPECIFIED = "TASK_TYPE_UNSPECIFIED"
    RETRIEVAL_QUERY = "RETRIEVAL_QUERY"
    RETRIEVAL_DOCUMENT = "RETRIEVAL_DOCUMENT"
    SEMANTIC_SIMILARITY = "SEMANTIC_SIMILARITY"
    CLASSIFICATION = "CLASSIFICATION"
    CLUSTERING = "CLUSTERING"
    QUESTION_ANSWERING = "QUESTION_ANSWERING"
    FACT_VERIFICATION = "FACT_VERIFICATION"


class EmbedContentRequest(ApiModel):
    model: str
    content: Content
    task_type: TaskType | None = None
    title: str | None = None
    output_dimensionality: int | None = None

    @field_serializer("model")
    def _serialise_model(self, value: str) -> str:
        return model_path(value)


class BatchEmbedContentsRequest(ApiModel):
    """Synchronous multi-embedding call; ``model`` is the URL model."""

    model: str = Field(..., exclude=True)
    requests: list[EmbedContentRequest]


class CreateCachedContentRequest(ApiModel):
    model: str | None = None
    contents: list[Content] | None = None
    system_instruction: Content | None = None
    tools: list[Tool] | None = None
    tool_config: ToolConfig | None = None
    ttl: str | None = None
    expire_time: str | None = None
    display_name: str | None = None

    @field_serializer("model")
    def _serialise_model(self, value: str | None) -> str | None:
        return model_path(value) if value else None


# ============================================================================
# Responses
# ============================================================================

#: Finish reasons that mean the candidate was withheld by a content filter.
SAFETY_FINISH_REASONS = frozenset(
    {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII", "IMAGE_SAFETY"}
)


class SafetyRating(ApiModel):
    category: str
    probability: str | None = None
    blocked: bool | None = None


class PromptFeedback(ApiModel):
    block_reason: str | None = None
    block_reason_message: str | None = None
    safety_ratings: list[SafetyRating] = Field(default_factory=list)


class UsageMetadata(ApiModel):
    prompt_token_count: int = 0
    candidates_token_count: int | None = None
    total_token_count: int | None = None
    cached_content_token_count: int | None = None
    thoughts_token_count: int | None = None


class Candidate(ApiModel):
    content: Content | None = None
    finish_reason: str | None = None
    index: int | None = None
    safety_ratings: list[SafetyRating] = Field(default_factory=list)
    token_count: int | None = None

    @property
    def blocked_by_safety(self) -> bool:
        return self.finish_reason in SAFETY_FINISH_REASONS

    @property
    def text(self) -> str:
        return self.content.text if self.content is not None else ""


class GenerateContentResponse(ApiModel):
    """One full response, or one chunk of a streamed response."""

    candidates: list[Candidate] = Field(default_factory=list)
    prompt_feedback: PromptFeedback | None = None
    usage_metadata: UsageMetadata | None = None
    model_version: str | None = None
    response_id: str | None = None

    @property
    def text(self) -> str:
        """Text of the first candidate, or ``""`` when there is none."""
        return self.candidates[0].text if self.candidates else ""


class CountTokensResponse(ApiModel):
    total_tokens: int
    cached_content_token_count: int | None = None


class ContentEmbedding(ApiModel):
    values: list[float]


class EmbedContentResponse(ApiModel):
    embedding: ContentEmbedding


class BatchEmbedContentsResponse(ApiModel):
    embeddings: list[ContentEmbedding]


class CachedContent(ApiModel):
    name: str
    model: str | None = None
    display_name: str | None = None
    create_time: str | None = None
    update_time: str | None = None
    expire_time: str | None = None
    usage_metadata: dict | None = None


class EmptyResponse(ApiModel):
    """Placeholder for endpoints that answer ``{}`` or an empty body."""
