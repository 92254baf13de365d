"""Typed wire models for the Gemini REST surface."""

from __future__ import annotations

from GeminiKit.models._base import ApiModel
from GeminiKit.models.batch import (
    TERMINAL_STATES,
    BatchInlineResponse,
    BatchJob,
    BatchJobError,
    BatchJobPage,
    BatchJobResponse,
    BatchJobState,
)
from GeminiKit.models.content import (
    Blob,
    CodeExecutionResult,
    Content,
    ExecutableCode,
    FileData,
    FunctionCall,
    FunctionDeclaration,
    FunctionResponse,
    GenerationConfig,
    HarmBlockThreshold,
    HarmCategory,
    Part,
    SafetySetting,
    Tool,
    ToolConfig,
)
from GeminiKit.models.files import FilePage, FileResource, FileState, Status
from GeminiKit.models.generation import (
    SAFETY_FINISH_REASONS,
    BatchEmbedContentsRequest,
    BatchEmbedContentsResponse,
    CachedContent,
    Candidate,
    ContentEmbedding,
    CountTokensRequest,
    CountTokensResponse,
    CreateCachedContentRequest,
    EmbedContentRequest,
    EmbedContentResponse,
    EmptyResponse,
    GenerateContentRequest,
    GenerateContentResponse,
    PromptFeedback,
    SafetyRating,
    TaskType,
    UsageMetadata,
)

__all__ = [
    "ApiModel",
    "Blob",
    "FileData",
    "FunctionCall",
    "FunctionResponse",
    "ExecutableCode",
    "CodeExecutionResult",
    "Part",
    "Content",
    "HarmCategory",
    "HarmBlockThreshold",
    "SafetySetting",
    "FunctionDeclaration",
    "Tool",
    "ToolConfig",
    "GenerationConfig",
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
    "FileState",
    "Status",
    "FileResource",
    "FilePage",
    "BatchJobState",
    "TERMINAL_STATES",
    "BatchJobError",
    "BatchInlineResponse",
    "BatchJobResponse",
    "BatchJob",
    "BatchJobPage",
]
