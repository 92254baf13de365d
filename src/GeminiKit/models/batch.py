# === NAVMAP v1 ===
# {
#   "module": "GeminiKit.models.batch",
#   "purpose": "Batch job state machine and tolerant decoding of batch job payloads.",
#   "sections": [
#     {"id": "state", "name": "BatchJobState", "anchor": "STA", "kind": "api"},
#     {"id": "job", "name": "BatchJob", "anchor": "JOB", "kind": "api"},
#     {"id": "page", "name": "BatchJobPage", "anchor": "PAG", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Batch job models.

The batch endpoints answer in two shapes. The long-running-operation form
nests ``state`` and the timestamps under ``metadata`` and the result under
``response``; the resource form puts them at top level. State names carry
either a ``JOB_STATE_`` or a ``BATCH_STATE_`` prefix. :class:`BatchJob`
normalises all of these before validation so callers only see one shape.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field, model_validator

from GeminiKit.models._base import ApiModel
from GeminiKit.models.generation import GenerateContentResponse

__all__ = [
    "BatchJobState",
    "TERMINAL_STATES",
    "BatchJobError",
    "BatchInlineResponse",
    "BatchJobResponse",
    "BatchJob",
    "BatchJobPage",
]


class BatchJobState(str, Enum):
    UNSPECIFIED = "STATE_UNSPECIFIED"
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"

    @classmethod
    def parse(cls, raw: object) -> "BatchJobState":
        """Map ``JOB_STATE_RUNNING`` / ``BATCH_STATE_RUNNING`` / ``RUNNING`` to a member."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return cls.UNSPECIFIED
        name = raw.strip().upper()
        for prefix in ("JOB_STATE_", "BATCH_STATE_"):
            if name.startswith(prefix):
                name = name[len(prefix) :]
                break
        if name == "CANCELED":
            name = "CANCELLED"
        try:
            return cls(name)
        except ValueError:
            return cls.UNSPECIFIED

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {
        BatchJobState.SUCCEEDED,
        BatchJobState.FAILED,
        BatchJobState.CANCELLED,
        BatchJobState.EXPIRED,
    }
)


class BatchJobError(ApiModel):
    code: int = 0
    message: str = ""


class BatchInlineResponse(ApiModel):
    """One inlined result; exactly one of ``response``/``error`` is set."""

    response: GenerateContentResponse | None = None
    error: BatchJobError | None = None
    metadata: dict[str, Any] | None = None

    @property
    def key(self) -> str | None:
        return (self.metadata or {}).get("key")


class BatchJobResponse(ApiModel):
    inlined_responses: list[BatchInlineResponse] = Field(default_factory=list)
    responses_file: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_inlined(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        inlined = data.get("inlinedResponses", data.get("inlined_responses"))
        # {"inlinedResponses": {"inlinedResponses": [...]}}
        if isinstance(inlined, dict):
            inner = inlined.get("inlinedResponses", inlined.get("inlined_responses", []))
            data = {**data, "inlinedResponses": inner}
            data.pop("inlined_responses", None)
        return data


class BatchJob(ApiModel):
    """Snapshot of a batch job. Terminal snapshots never change."""

    name: str
    state: BatchJobState = BatchJobState.UNSPECIFIED
    display_name: str | None = None
    model: str | None = None
    create_time: str | None = None
    update_time: str | None = None
    end_time: str | None = None
    error: BatchJobError | None = None
    response: BatchJobResponse | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        flat = dict(data)
        metadata = flat.pop("metadata", None)
        if isinstance(metadata, dict):
            for key in ("state", "displayName", "model", "createTime", "updateTime", "endTime"):
                if key in metadata and key not in flat:
                    flat[key] = metadata[key]
            output = metadata.get("output")
            if isinstance(output, dict) and "response" not in flat:
                flat["response"] = output
        # A nested batch resource, as returned by batchGenerateContent on some versions.
        batch = flat.pop("batch", None)
        if isinstance(batch, dict):
            for key, value in batch.items():
                flat.setdefault(key, value)
        if "state" in flat:
            flat["state"] = BatchJobState.parse(flat["state"])
        return flat

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def succeeded(self) -> bool:
        return self.state is BatchJobState.SUCCEEDED


_LIST_KEYS = ("operations", "batches", "batchJobs", "batch_jobs", "jobs")


class BatchJobPage(ApiModel):
    jobs: list[BatchJob] = Field(default_factory=list)
    next_page_token: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _collect(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        jobs: list[Any] = []
        for key in _LIST_KEYS:
            value = data.get(key)
            if isinstance(value, list):
                jobs = value
                break
        token = data.get("nextPageToken", data.get("next_page_token"))
        return {"jobs": jobs, "nextPageToken": token or None}
