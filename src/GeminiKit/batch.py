"""Batch job controller.

Every method is one request/response round trip. There is no polling loop:
callers decide how often to :meth:`BatchJobController.poll` and when to give
up, so the controller composes with any retry or scheduling policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from GeminiKit import endpoints
from GeminiKit.models.batch import BatchJob, BatchJobPage
from GeminiKit.models.generation import EmptyResponse, GenerateContentRequest
from GeminiKit.net.transport import GeminiTransport

__all__ = ["InlineRequests", "DatasetReference", "BatchSource", "BatchJobController"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InlineRequests:
    """Requests embedded in the create call, optionally keyed for correlation."""

    requests: Sequence[GenerateContentRequest]
    keys: Optional[Sequence[str]] = None

    def __post_init__(self) -> None:
        if not self.requests:
            raise ValueError("InlineRequests needs at least one request")
        if self.keys is not None and len(self.keys) != len(self.requests):
            raise ValueError(
                f"got {len(self.keys)} keys for {len(self.requests)} requests"
            )

    def to_input_config(self) -> dict:
        items = []
        for position, request in enumerate(self.requests):
            item: dict = {"request": request.to_wire()}
            if self.keys is not None:
                item["metadata"] = {"key": self.keys[position]}
            items.append(item)
        return {"requests": {"requests": items}}


@dataclass(frozen=True)
class DatasetReference:
    """A pre-uploaded JSONL file (``files/...``) or a bucket URI (``gs://...``)."""

    uri: str

    def __post_init__(self) -> None:
        if not self.uri.strip():
            raise ValueError("dataset uri cannot be empty")

    def to_input_config(self) -> dict:
        if self.uri.startswith("gs://"):
            return {"gcsSource": {"uris": [self.uri]}}
        return {"fileName": endpoints.file_path(self.uri)}


BatchSource = Union[InlineRequests, DatasetReference]


class BatchJobController:
    """create / poll / cancel / delete / list over ``batches/{id}``."""

    def __init__(self, transport: GeminiTransport) -> None:
        self._transport = transport

    async def create(
        self,
        model: str,
        source: BatchSource,
        *,
        display_name: Optional[str] = None,
    ) -> BatchJob:
        """Submit a batch of generate-content requests."""
        if not isinstance(source, (InlineRequests, DatasetReference)):
            raise TypeError(f"unsupported batch source: {type(source).__name__}")
        batch: dict = {
            "displayName": display_name or "geminikit-batch",
            "model": endpoints.model_path(model),
            "inputConfig": source.to_input_config(),
        }
        job = await self._transport.post(
            endpoints.batch_generate_content(model), {"batch": batch}, BatchJob
        )
        logger.info(
            "Created batch job %s (%s)",
            job.name,
            job.state.value,
            extra={"extra_fields": {"batch": job.name, "model": model}},
        )
        return job

    async def poll(self, name: str, *, previous: Optional[BatchJob] = None) -> BatchJob:
        """Observe the job once.

        When ``previous`` is terminal, the returned snapshot is ``previous``
        whatever the server now reports: terminal states never change.
        """
        job = await self._transport.get(endpoints.batch_path(name), BatchJob)
        if previous is not None and previous.is_terminal and job.state is not previous.state:
            logger.warning(
                "Batch %s reported %s after terminal %s; keeping terminal state",
                job.name,
                job.state.value,
                previous.state.value,
            )
            return previous
        logger.debug("Polled batch %s: %s", job.name, job.state.value)
        return job

    async def cancel(self, name: str) -> None:
        await self._transport.post(endpoints.cancel_batch(name), None, EmptyResponse)
        logger.info("Requested cancellation of %s", endpoints.batch_path(name))

    async def delete(self, name: str) -> None:
        await self._transport.delete(endpoints.batch_path(name))
        logger.info("Deleted %s", endpoints.batch_path(name))

    async def list(
        self,
        page_token: Optional[str] = None,
        *,
        page_size: Optional[int] = None,
    ) -> BatchJobPage:
        return await self._transport.get(
            endpoints.BATCHES,
            BatchJobPage,
            params={"pageToken": page_token, "pageSize": page_size},
        )
