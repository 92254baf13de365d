# === NAVMAP v1 ===
# {
#   "module": "GeminiKit.models.content",
#   "purpose": "Content, part, tool and generation-config wire models.",
#   "sections": [
#     {"id": "parts", "name": "Part payloads", "anchor": "PRT", "kind": "api"},
#     {"id": "content", "name": "Content", "anchor": "CNT", "kind": "api"},
#     {"id": "safety", "name": "Safety settings", "anchor": "SAF", "kind": "api"},
#     {"id": "tools", "name": "Tools", "anchor": "TOL", "kind": "api"},
#     {"id": "generation", "name": "GenerationConfig", "anchor": "GEN", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Content and configuration models shared by requests and responses.

A :class:`Part` is a single flat model with one optional field per payload
kind (text, inline bytes, file reference, function call, ...). The server only
ever sets one of them, and keeping the shape flat means a part kind added on
the server side decodes as an empty part instead of failing.
"""

from __future__ import annotations

import base64
from enum import Enum
from typing import Any

from pydantic import Field

from GeminiKit.models._base import ApiModel

__all__ = [
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
]


class Blob(ApiModel):
    """Inline bytes, base64-encoded on the wire."""

    mime_type: str
    data: str

    def decoded(self) -> bytes:
        return base64.b64decode(self.data)


class FileData(ApiModel):
    """Reference to an uploaded file."""

    mime_type: str | None = None
    file_uri: str


class FunctionCall(ApiModel):
    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    id: str | None = None


class FunctionResponse(ApiModel):
    name: str
    response: dict[str, Any] = Field(default_factory=dict)
    id: str | None = None


class ExecutableCode(ApiModel):
    language: str
    code: str


class CodeExecutionResult(ApiModel):
    outcome: str
    output: str | None = None


class Part(ApiModel):
    """One part of a content turn."""

    text: str | None = None
    inline_data: Blob | None = None
    file_data: FileData | None = None
    function_call: FunctionCall | None = None
    function_response: FunctionResponse | None = None
    executable_code: ExecutableCode | None = None
    code_execution_result: CodeExecutionResult | None = None
    thought: bool | None = None

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> "Part":
        encoded = base64.b64encode(data).decode("ascii")
        return cls(inline_data=Blob(mime_type=mime_type, data=encoded))

    @classmethod
    def from_uri(cls, file_uri: str, mime_type: str | None = None) -> "Part":
        return cls(file_data=FileData(file_uri=file_uri, mime_type=mime_type))


class Content(ApiModel):
    """A single conversational turn."""

    parts: list[Part] = Field(default_factory=list)
    role: str | None = None

    @classmethod
    def from_text(cls, text: str, role: str | None = "user") -> "Content":
        return cls(parts=[Part.from_text(text)], role=role)

    @property
    def text(self) -> str:
        """Concatenated text of all text parts (thought parts excluded)."""
        return "".join(part.text for part in self.parts if part.text and not part.thought)


class HarmCategory(str, Enum):
    HARASSMENT = "HARM_CATEGORY_HARASSMENT"
    HATE_SPEECH = "HARM_CATEGORY_HATE_SPEECH"
    SEXUALLY_EXPLICIT = "HARM_CATEGORY_SEXUALLY_EXPLICIT"
    DANGEROUS_CONTENT = "HARM_CATEGORY_DANGEROUS_CONTENT"
    CIVIC_INTEGRITY = "HARM_CATEGORY_CIVIC_INTEGRITY"


class HarmBlockThreshold(str, Enum):
    UNSPECIFIED = "HARM_BLOCK_THRESHOLD_UNSPECIFIED"
    BLOCK_LOW_AND_ABOVE = "BLOCK_LOW_AND_ABOVE"
    BLOCK_MEDIUM_AND_ABOVE = "BLOCK_MEDIUM_AND_ABOVE"
    BLOCK_ONLY_HIGH = "BLOCK_ONLY_HIGH"
    BLOCK_NONE = "BLOCK_NONE"
    OFF = "OFF"


class SafetySetting(ApiModel):
    category: HarmCategory
    threshold: HarmBlockThreshold


class FunctionDeclaration(ApiModel):
    name: str
    description: str | None = None
    parameters: dict[str, Any] | None = None


class Tool(ApiModel):
    """Tool exposed to the model: function declarations or built-in tools."""

    function_declarations: list[FunctionDeclaration] | None = None
    code_execution: dict[str, Any] | None = None
    google_search: dict[str, Any] | None = None


class ToolConfig(ApiModel):
    function_calling_config: dict[str, Any] | None = None


class GenerationConfig(ApiModel):
    """Sampling and output parameters.

    Values are forwarded as given; range checking is left to the caller's
    domain layer and the server.
    """

    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    candidate_count: int | None = None
    max_output_tokens: int | None = None
    stop_sequences: list[str] | None = None
    seed: int | None = None
    response_mime_type: str | None = None
    response_schema: dict[str, Any] | None = None
    presence_penalty: float | None = None
    frequency_penalty: float | None = None
