"""File API models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from GeminiKit.models._base import ApiModel

__all__ = ["FileState", "Status", "FileResource", "FilePage"]


class FileState(str, Enum):
    STATE_UNSPECIFIED = "STATE_UNSPECIFIED"
    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"

    @classmethod
    def _missing_(cls, value: object) -> "FileState":
        return cls.STATE_UNSPECIFIED


class Status(ApiModel):
    """google.rpc.Status."""

    code: int = 0
    message: str = ""
    details: list[dict[str, Any]] | None = None


class FileResource(ApiModel):
    """A file stored by the File API.

    Instances are snapshots; refresh with ``GeminiClient.get_file`` to observe
    a ``PROCESSING`` -> ``ACTIVE`` transition.
    """

    name: str
    uri: str
    display_name: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = None
    create_time: str | None = None
    update_time: str | None = None
    expiration_time: str | None = None
    sha256_hash: str | None = None
    state: FileState = FileState.STATE_UNSPECIFIED
    error: Status | None = None

    @property
    def is_ready(self) -> bool:
        return self.state is FileState.ACTIVE


class FilePage(ApiModel):
    files: list[FileResource] = Field(default_factory=list)
    next_page_token: str | None = None
