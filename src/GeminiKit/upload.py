# === NAVMAP v1 ===
# {
#   "module": "GeminiKit.upload",
#   "purpose": "Three-phase resumable upload handshake for the File API.",
#   "sections": [
#     {"id": "session", "name": "UploadSession", "anchor": "SES", "kind": "api"},
#     {"id": "protocol", "name": "ResumableUploadProtocol", "anchor": "PRO", "kind": "api"},
#     {"id": "file-source", "name": "File streaming helpers", "anchor": "SRC", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Resumable upload protocol.

Uploads run in three phases:

1. **Initiate**: POST the file metadata to the upload root with
   ``X-Goog-Upload-Protocol: resumable`` and ``X-Goog-Upload-Command: start``.
   The server answers with a one-time destination in ``X-Goog-Upload-URL``.
2. **Transfer**: PUT the bytes to that destination with
   ``X-Goog-Upload-Command: upload, finalize`` at offset 0.
3. **Finalize**: parse the server's description of the stored file.

Every failure is a :class:`~GeminiKit.errors.ProtocolError` naming the phase;
the mapped transport or API error stays attached as ``cause``. A destination
URL accepts exactly one successful transfer: once the server reports the
upload final, reuse is rejected before any byte is sent. A transfer that
fails (network error, error status, payload size mismatch) leaves the
session open for a retry, but two transfers to the same URL never overlap.
The record of finalized URLs keeps only the most recent
``max_tracked_sessions`` entries so long-lived clients do not grow it
without bound.

:class:`UploadSession` is immutable. The one-shot :meth:`ResumableUploadProtocol.upload`
never hands it out, so no caller can share a session. ``offset`` is always 0;
chunked resumption from a persisted offset is not implemented.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Mapping, Optional, Union

from pydantic import ValidationError

from GeminiKit.errors import GeminiError, ProtocolError, UploadPhase
from GeminiKit.models.files import FileResource
from GeminiKit.net.transport import GeminiTransport, ResponseEnvelope

__all__ = [
    "UploadSession",
    "ResumableUploadProtocol",
    "UploadSource",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_MAX_TRACKED_SESSIONS",
]

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 8 * 1024 * 1024
DEFAULT_MAX_TRACKED_SESSIONS = 1024

UploadSource = Union[bytes, bytearray, str, os.PathLike]

_UPLOAD_URL_HEADER = "X-Goog-Upload-URL"
_UPLOAD_STATUS_HEADER = "X-Goog-Upload-Status"


@dataclass(frozen=True)
class UploadSession:
    """Destination handed out by Initiate and consumed once by Transfer."""

    upload_url: str
    size_bytes: int
    mime_type: str
    display_name: Optional[str] = None
    offset: int = 0
    phase: UploadPhase = UploadPhase.TRANSFER
    headers: Mapping[str, str] = field(default_factory=dict)

    def transfer_headers(self) -> dict[str, str]:
        return {
            "Content-Length": str(self.size_bytes),
            "X-Goog-Upload-Offset": str(self.offset),
            "X-Goog-Upload-Command": "upload, finalize",
            **self.headers,
        }


# ============================================================================
# File streaming helpers
# ============================================================================


async def _iter_file(path: Path, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield ``path`` in ``chunk_size`` pieces without blocking the loop."""
    handle = await asyncio.to_thread(path.open, "rb")
    try:
        while True:
            chunk = await asyncio.to_thread(handle.read, chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        await asyncio.to_thread(handle.close)


# ============================================================================
# Protocol
# ============================================================================


class ResumableUploadProtocol:
    """Initiate / Transfer / Finalize state machine for the File API.

    Args:
        transport: Transport used for both phases' requests.
        upload_root: Upload endpoint, usually ``settings.upload_root``.
        chunk_size: Read size used when streaming a file from disk.
        max_tracked_sessions: How many finalized destination URLs are
            remembered for reuse rejection; the oldest are forgotten first.
    """

    def __init__(
        self,
        transport: GeminiTransport,
        upload_root: Optional[str] = None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_tracked_sessions: int = DEFAULT_MAX_TRACKED_SESSIONS,
    ) -> None:
        if max_tracked_sessions < 1:
            raise ValueError("max_tracked_sessions must be >= 1")
        self._transport = transport
        self._upload_root = upload_root or transport.upload_root
        self._chunk_size = chunk_size
        self._max_tracked = max_tracked_sessions
        self._finalized: OrderedDict[str, None] = OrderedDict()
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Phase 1
    # ------------------------------------------------------------------

    async def initiate(
        self,
        size_bytes: int,
        mime_type: str,
        display_name: Optional[str] = None,
    ) -> UploadSession:
        """Open an upload session.

        Raises:
            ProtocolError: ``phase=INITIATE`` when the request fails or the
                response carries no ``X-Goog-Upload-URL``.
        """
        if size_bytes < 0:
            raise ValueError("size_bytes must be >= 0")
        metadata: dict[str, Any] = {}
        if display_name:
            metadata["displayName"] = display_name
        headers = {
            "X-Goog-Upload-Protocol": "resumable",
            "X-Goog-Upload-Command": "start",
            "X-Goog-Upload-Header-Content-Length": str(size_bytes),
            "X-Goog-Upload-Header-Content-Type": mime_type,
        }
        try:
            envelope = await self._transport.post(
                self._upload_root, {"file": metadata}, headers=headers
            )
        except GeminiError as exc:
            raise ProtocolError(
                f"initiate request failed: {exc}",
                phase=UploadPhase.INITIATE,
                raw_body=getattr(exc, "raw_body", ""),
                cause=exc,
            ) from exc

        upload_url = envelope.header(_UPLOAD_URL_HEADER)
        if not upload_url:
            raise ProtocolError(
                f"response is missing the {_UPLOAD_URL_HEADER} header",
                phase=UploadPhase.INITIATE,
                raw_body=envelope.text,
            )
        logger.debug(
            "Upload session opened",
            extra={"extra_fields": {"size_bytes": size_bytes, "mime_type": mime_type}},
        )
        return UploadSession(
            upload_url=upload_url,
            size_bytes=size_bytes,
            mime_type=mime_type,
            display_name=display_name,
        )

    # ------------------------------------------------------------------
    # Phase 2
    # ------------------------------------------------------------------

    def _claim(self, session: UploadSession) -> None:
        url = session.upload_url
        with self._lock:
            if url in self._finalized:
                raise ProtocolError(
                    "upload session was already finalized; start a new session",
                    phase=UploadPhase.TRANSFER,
                )
            if url in self._in_flight:
                raise ProtocolError(
                    "a transfer to this upload session is already in progress",
                    phase=UploadPhase.TRANSFER,
                )
            self._in_flight.add(url)

    def _release(self, session: UploadSession, *, finalized: bool) -> None:
        url = session.upload_url
        with self._lock:
            self._in_flight.discard(url)
            if finalized:
                self._finalized[url] = None
                self._finalized.move_to_end(url)
                while len(self._finalized) > self._max_tracked:
                    self._finalized.popitem(last=False)

    async def transfer(
        self,
        session: UploadSession,
        data: Union[bytes, AsyncIterator[bytes]],
    ) -> ResponseEnvelope:
        """Send the whole payload and finalize the session.

        The session is only marked finalized once the server accepts the
        upload; after a failed attempt the same session may be retried.

        Raises:
            ProtocolError: ``phase=TRANSFER`` on reuse of a finalized session
                or while another transfer to it is running (no I/O is
                performed in either case), or when the PUT fails.
        """
        if isinstance(data, (bytes, bytearray)) and len(data) != session.size_bytes:
            raise ProtocolError(
                f"payload is {len(data)} bytes but the session expects {session.size_bytes}",
                phase=UploadPhase.TRANSFER,
            )
        self._claim(session)
        finalized = False
        try:
            try:
                envelope = await self._transport.put(
                    session.upload_url,
                    bytes(data) if isinstance(data, bytearray) else data,
                    headers=session.transfer_headers(),
                )
            except GeminiError as exc:
                raise ProtocolError(
                    f"transfer failed: {exc}",
                    phase=UploadPhase.TRANSFER,
                    raw_body=getattr(exc, "raw_body", ""),
                    cause=exc,
                ) from exc
            status = envelope.header(_UPLOAD_STATUS_HEADER)
            if status is not None and status.lower() != "final":
                raise ProtocolError(
                    f"server reported upload status {status!r} after finalize",
                    phase=UploadPhase.TRANSFER,
                    raw_body=envelope.text,
                )
            finalized = True
        finally:
            self._release(session, finalized=finalized)
        return envelope

    # ------------------------------------------------------------------
    # Phase 3
    # ------------------------------------------------------------------

    def finalize(self, envelope: ResponseEnvelope) -> FileResource:
        """Parse the stored file from the transfer response.

        The ``{"file": {...}}`` envelope is tried first and wins when present;
        a bare top-level file object is accepted otherwise.

        Raises:
            ProtocolError: ``phase=FINALIZE`` when neither shape matches.
        """
        raw = envelope.text
        try:
            body = json.loads(envelope.payload) if envelope.payload.strip() else None
        except ValueError as exc:
            raise ProtocolError(
                "finalize response is not JSON",
                phase=UploadPhase.FINALIZE,
                raw_body=raw,
                cause=exc,
            ) from exc

        candidates: list[Any] = []
        if isinstance(body, dict):
            if isinstance(body.get("file"), dict):
                candidates.append(body["file"])
            candidates.append(body)
        for candidate in candidates:
            try:
                return FileResource.model_validate(candidate)
            except ValidationError:
                continue
        raise ProtocolError(
            "finalize response does not describe a file",
            phase=UploadPhase.FINALIZE,
            raw_body=raw,
        )

    # ------------------------------------------------------------------
    # One-shot
    # ------------------------------------------------------------------

    async def upload(
        self,
        source: UploadSource,
        mime_type: str,
        display_name: Optional[str] = None,
    ) -> FileResource:
        """Run all three phases for in-memory bytes or a file on disk.

        Files are streamed in chunks and never read whole into memory.
        """
        if isinstance(source, (bytes, bytearray)):
            payload: Union[bytes, AsyncIterator[bytes]] = bytes(source)
            size = len(source)
        else:
            path = Path(source)
            try:
                size = (await asyncio.to_thread(path.stat)).st_size
            except OSError as exc:
                raise ProtocolError(
                    f"cannot read {path}: {exc.strerror or exc}",
                    phase=UploadPhase.INITIATE,
                    cause=exc,
                ) from exc
            payload = _iter_file(path, self._chunk_size)
            display_name = display_name or path.name

        session = await self.initiate(size, mime_type, display_name)
        envelope = await self.transfer(session, payload)
        resource = self.finalize(envelope)
        logger.info(
            "Uploaded %s (%d bytes) as %s",
            display_name or "<bytes>",
            size,
            resource.name,
            extra={"extra_fields": {"file": resource.name, "state": resource.state.value}},
        )
        return resource
