# === NAVMAP v1 ===
# {
#   "module": "GeminiKit.service",
#   "purpose": "GeminiClient facade over transport, upload protocol and batch controller.",
#   "sections": [
#     {"id": "client", "name": "GeminiClient", "anchor": "CLI", "kind": "api"},
#     {"id": "generation", "name": "Generation", "anchor": "GEN", "kind": "api"},
#     {"id": "embeddings", "name": "Embeddings", "anchor": "EMB", "kind": "api"},
#     {"id": "caching", "name": "Cached contents", "anchor": "CAC", "kind": "api"},
#     {"id": "files", "name": "Files", "anchor": "FIL", "kind": "api"},
#     {"id": "batches", "name": "Batches", "anchor": "BAT", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""High-level Gemini client.

:class:`GeminiClient` owns one :class:`~GeminiKit.net.transport.GeminiTransport`
and exposes the API's operations as coroutines. Before any request is built
it checks the target model's capabilities and the configured API version, and
it fills in ``settings.default_model`` and ``settings.default_generation_config``
when a request leaves them unset.

Example:
    >>> async def main() -> None:  # doctest: +SKIP
    ...     async with GeminiClient(load_settings()) as client:
    ...         response = await client.generate_content(
    ...             GenerateContentRequest(contents=[Content.from_text("Hello")])
    ...         )
    ...         print(response.text)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from GeminiKit import endpoints
from GeminiKit.batch import BatchJobController, BatchSource
from GeminiKit.cancellation import CancellationToken, CancellationTokenGroup
from GeminiKit.capabilities import Capability, require_api_feature, require_capability
from GeminiKit.errors import raise_for_safety
from GeminiKit.models.batch import BatchJob, BatchJobPage
from GeminiKit.models.files import FilePage, FileResource
from GeminiKit.models.generation import (
    BatchEmbedContentsRequest,
    BatchEmbedContentsResponse,
    CachedContent,
    CountTokensRequest,
    CountTokensResponse,
    CreateCachedContentRequest,
    EmbedContentRequest,
    EmbedContentResponse,
    GenerateContentRequest,
    GenerateContentResponse,
)
from GeminiKit.net.transport import GeminiTransport, ResponseStream
from GeminiKit.settings import GeminiSettings, load_settings
from GeminiKit.upload import ResumableUploadProtocol, UploadSource

__all__ = ["GeminiClient"]

logger = logging.getLogger(__name__)


class GeminiClient:
    """Async facade over the Gemini REST API.

    Args:
        settings: Configuration; loaded from the environment when omitted.
        transport: Existing transport to share. Its settings should match
            ``settings``; a mismatch is logged, not rebuilt.
        http_transport: HTTPX transport override for a newly built transport.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        *,
        transport: Optional[GeminiTransport] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or load_settings()
        if transport is not None and transport.settings.config_hash() != self.settings.config_hash():
            logger.warning(
                "Shared transport was built from different settings; existing transport unchanged."
            )
        self._owns_transport = transport is None
        self.transport = transport or GeminiTransport(self.settings, http_transport=http_transport)
        self.uploads = ResumableUploadProtocol(self.transport, self.settings.upload_root)
        self.batches = BatchJobController(self.transport)
        self._streams = CancellationTokenGroup()

    async def aclose(self) -> None:
        """Cancel open streams and release the connection pool."""
        self._streams.cancel_all("client closed")
        if self._owns_transport:
            await self.transport.aclose()

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Defaults
    # ------------------------------------------------------------------

    def _model(self, model: Optional[str]) -> str:
        return model or self.settings.default_model

    def _with_defaults(self, request: GenerateContentRequest) -> GenerateContentRequest:
        update: dict[str, Any] = {}
        if request.model is None:
            update["model"] = self.settings.default_model
        if request.generation_config is None and self.settings.default_generation_config:
            update["generation_config"] = self.settings.default_generation_config
        return request.model_copy(update=update) if update else request

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_content(self, request: GenerateContentRequest) -> GenerateContentResponse:
        """Generate a complete response.

        Raises:
            UnsupportedCapabilityError: The model cannot generate.
            SafetyError: The prompt or every candidate was blocked.
            GeminiError: Any transport, API or decode failure.
        """
        request = self._with_defaults(request)
        require_capability(request.model, Capability.GENERATE, "generateContent")
        response = await self.transport.post(
            endpoints.generate_content(request.model), request, GenerateContentResponse
        )
        raise_for_safety(response)
        return response

    def stream_generate_content(
        self,
        request: GenerateContentRequest,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ResponseStream[GenerateContentResponse]:
        """Stream response chunks as they are generated.

        The returned stream is lazy; iterate it inside ``async with``. Every
        chunk is checked for safety blocks before it reaches the consumer.
        The client only tracks the stream (so that :meth:`aclose` can cancel it)
        once iteration starts; a stream that is never iterated holds nothing.
        """
        request = self._with_defaults(request)
        require_capability(request.model, Capability.STREAM, "streamGenerateContent")
        token = cancel_token or CancellationToken()
        return self.transport.post_stream(
            endpoints.stream_generate_content(request.model),
            request,
            GenerateContentResponse,
            cancel_token=token,
            on_element=raise_for_safety,
            on_open=lambda: self._streams.add_token(token),
            on_close=lambda: self._streams.remove_token(token),
        )

    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResponse:
        model = self._model(request.model)
        require_capability(model, Capability.COUNT_TOKENS, "countTokens")
        return await self.transport.post(
            endpoints.count_tokens(model), request, CountTokensResponse
        )

    # ------------------------------------------------------------------
    # Embeddings
    # ------------------------------------------------------------------

    async def embed_content(self, request: EmbedContentRequest) -> EmbedContentResponse:
        require_capability(request.model, Capability.EMBED, "embedContent")
        return await self.transport.post(
            endpoints.embed_content(request.model), request, EmbedContentResponse
        )

    async def batch_embed_contents(
        self, request: BatchEmbedContentsRequest
    ) -> BatchEmbedContentsResponse:
        require_capability(request.model, Capability.EMBED, "batchEmbedContents")
        return await self.transport.post(
            endpoints.batch_embed_contents(request.model), request, BatchEmbedContentsResponse
        )

    # ------------------------------------------------------------------
    # Cached contents
    # ------------------------------------------------------------------

    async def create_cached_content(self, request: CreateCachedContentRequest) -> CachedContent:
        require_api_feature(self.settings.api_version, "cachedContents")
        if request.model is None:
            request = request.model_copy(update={"model": self.settings.default_model})
        require_capability(request.model, Capability.CACHE, "cachedContents.create")
        return await self.transport.post(endpoints.CACHED_CONTENTS, request, CachedContent)

    async def get_cached_content(self, name: str) -> CachedContent:
        require_api_feature(self.settings.api_version, "cachedContents")
        return await self.transport.get(endpoints.cached_content_path(name), CachedContent)

    async def delete_cached_content(self, name: str) -> None:
        require_api_feature(self.settings.api_version, "cachedContents")
        await self.transport.delete(endpoints.cached_content_path(name))

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def upload_file(
        self,
        source: UploadSource,
        mime_type: str,
        display_name: Optional[str] = None,
    ) -> FileResource:
        require_api_feature(self.settings.api_version, "files")
        return await self.uploads.upload(source, mime_type, display_name)

    async def get_file(self, name: str) -> FileResource:
        """Fetch a fresh snapshot of an uploaded file."""
        require_api_feature(self.settings.api_version, "files")
        return await self.transport.get(endpoints.file_path(name), FileResource)

    async def list_files(
        self, page_token: Optional[str] = None, *, page_size: Optional[int] = None
    ) -> FilePage:
        require_api_feature(self.settings.api_version, "files")
        return await self.transport.get(
            endpoints.FILES, FilePage, params={"pageToken": page_token, "pageSize": page_size}
        )

    async def delete_file(self, name: str) -> None:
        require_api_feature(self.settings.api_version, "files")
        await self.transport.delete(endpoints.file_path(name))

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def create_batch(
        self,
        source: BatchSource,
        *,
        model: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> BatchJob:
        require_api_feature(self.settings.api_version, "batches")
        model = self._model(model)
        require_capability(model, Capability.BATCH, "batchGenerateContent")
        return await self.batches.create(model, source, display_name=display_name)

    async def get_batch(self, name: str, *, previous: Optional[BatchJob] = None) -> BatchJob:
        require_api_feature(self.settings.api_version, "batches")
        return await self.batches.poll(name, previous=previous)

    async def cancel_batch(self, name: str) -> None:
        require_api_feature(self.settings.api_version, "batches")
        await self.batches.cancel(name)

    async def delete_batch(self, name: str) -> None:
        require_api_feature(self.settings.api_version, "batches")
        await self.batches.delete(name)

    async def list_batches(
        self, page_token: Optional[str] = None, *, page_size: Optional[int] = None
    ) -> BatchJobPage:
        require_api_feature(self.settings.api_version, "batches")
        return await self.batches.list(page_token, page_size=page_size)
