# backend/listing_media/services/chunked_upload_service.py
"""
Chunked Upload Service - resumable video uploads in numbered chunks.

A session is a private directory under the data directory (never publicly
served) holding metadata.json and one 'chunk_<n>' file per received chunk.
Progress is derived from the chunk files on disk, so chunks may arrive in
any order and be re-sent. Completing a session assembles the chunks, checks
the declared size and hands the result to MediaService.upload_video, which
validates and stores it like any other video.

Related Files:
- media_service.py: Final validation and storage of the assembled video
- storage/local_storage.py: Atomic writes for session files
"""

import asyncio
import functools
import math
import re
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from ..config import Settings
from ..enums import ChunkedUploadStatus, LogEmoji, LoggerName, LogSource, MediaKind
from ..exceptions import MediaValidationError, NotFoundError, StorageError
from ..models.media_model import (
    ChunkedUploadInitRequest,
    ChunkedUploadProgress,
    ChunkedUploadSession,
    UploadedMedia,
    UploadedVideoResult,
)
from ..utils.file_helpers import get_extension, sanitize_filename
from .logger import get_service_logger
from .media_service import MediaService
from .storage import LocalStorage

logger = get_service_logger(LoggerName.CHUNKED_UPLOAD_SERVICE, LogSource.API)

METADATA_FILENAME = "metadata.json"
CHUNK_FILE_PATTERN = re.compile(r"^chunk_(\d+)$")


class ChunkedUploadService:
    """
    Chunked upload session lifecycle: initiate, upload chunks, report
    progress, complete and cancel.

    Args:
        settings: Injected settings (chunk size bounds, video limits, TTL)
        media_service: Stores the assembled video
        sessions: Storage for session files (defaults to a LocalStorage at
            settings.chunked_uploads_path)
    """

    def __init__(
        self,
        settings: Settings,
        media_service: MediaService,
        sessions: Optional[LocalStorage] = None,
    ):
        self.settings = settings
        self.media_service = media_service
        self.sessions = sessions or LocalStorage(settings.chunked_uploads_path, "")
        self._session_locks: Dict[str, asyncio.Lock] = {}

    async def _run_sync(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.get_event_loop().run_in_executor(
            None, functools.partial(func, *args)
        )

    # ════════════════════════════════════════════════════════════════════
    # Session files
    # ════════════════════════════════════════════════════════════════════

    @staticmethod
    def _session_id(upload_id: str) -> str:
        # Only canonical UUIDs name a session directory
        try:
            return str(uuid.UUID(upload_id))
        except (ValueError, TypeError):
            raise NotFoundError("Upload session not found")

    def _load_session(self, upload_id: str) -> ChunkedUploadSession:
        session_id = self._session_id(upload_id)
        raw = self.sessions.read(f"{session_id}/{METADATA_FILENAME}")
        if raw is None:
            raise NotFoundError("Upload session not found")
        return ChunkedUploadSession.model_validate_json(raw)

    def _received_chunks(self, session: ChunkedUploadSession) -> List[int]:
        received = []
        for item in self.sessions.list_files(session.upload_id):
            match = CHUNK_FILE_PATTERN.match(item.path.rsplit("/", 1)[-1])
            if match and int(match.group(1)) < session.total_chunks:
                received.append(int(match.group(1)))
        return sorted(received)

    def _progress(self, session: ChunkedUploadSession) -> ChunkedUploadProgress:
        received = len(self._received_chunks(session))
        if received == session.total_chunks:
            status = ChunkedUploadStatus.READY
        elif received:
            status = ChunkedUploadStatus.UPLOADING
        else:
            status = ChunkedUploadStatus.INITIATED

        return ChunkedUploadProgress(
            upload_id=session.upload_id,
            filename=session.filename,
            uploaded_chunks=received,
            total_chunks=session.total_chunks,
            progress=round(received / session.total_chunks * 100, 2),
            status=status,
        )

    def _assemble(self, session: ChunkedUploadSession) -> bytes:
        content = bytearray()
        for number in range(session.total_chunks):
            chunk = self.sessions.read(f"{session.upload_id}/chunk_{number}")
            if chunk is None:
                raise MediaValidationError(f"Missing chunk {number}", status_code=400)
            content.extend(chunk)
        return bytes(content)

    def cleanup_stale_sessions(self) -> int:
        """
        Remove sessions older than the configured TTL.

        Returns:
            Number of sessions removed
        """
        cutoff = time.time() - self.settings.chunked_session_ttl_seconds
        removed = 0
        for session_id in self.sessions.list_directories():
            raw = self.sessions.read(f"{session_id}/{METADATA_FILENAME}")
            if raw is not None:
                created_at = ChunkedUploadSession.model_validate_json(raw).created_at
                if created_at >= cutoff:
                    continue
            if self.sessions.remove_directory(session_id):
                self._session_locks.pop(session_id, None)
                removed += 1

        if removed:
            logger.info(
                f"Removed {removed} abandoned chunked upload session(s)",
                emoji=LogEmoji.CLEANUP,
            )
        return removed

    # ════════════════════════════════════════════════════════════════════
    # Lifecycle
    # ════════════════════════════════════════════════════════════════════

    async def initiate(self, request: ChunkedUploadInitRequest) -> ChunkedUploadSession:
        """
        Open a session after checking the declared file against the video
        limits and the chunk layout against the configured bounds.

        Raises:
            MediaValidationError: Invalid chunk layout (422) or a video that
                would be rejected once assembled (400)
        """
        min_chunk = self.settings.chunk_min_size_bytes
        max_chunk = self.settings.chunk_max_size_bytes
        if not min_chunk <= request.chunk_size <= max_chunk:
            raise MediaValidationError(
                f"chunk_size must be between {min_chunk} and {max_chunk} bytes",
                status_code=422,
            )

        expected_chunks = math.ceil(request.filesize / request.chunk_size)
        if request.total_chunks != expected_chunks:
            raise MediaValidationError(
                f"total_chunks must be {expected_chunks} for the declared "
                f"filesize and chunk_size",
                status_code=422,
            )

        filename = sanitize_filename(request.filename)
        declared = UploadedMedia(
            content=b"",
            filename=filename,
            mime_type=request.mime_type.lower(),
            extension=get_extension(filename),
            size=request.filesize,
        )
        issues = self.media_service.validator.validate(declared, MediaKind.VIDEO)
        if self.media_service.validator.fatal_issues(issues):
            raise MediaValidationError(
                "Validation failed", issues=issues, status_code=400
            )

        await self._run_sync(self.cleanup_stale_sessions)

        session = ChunkedUploadSession(
            upload_id=str(uuid.uuid4()),
            filename=filename,
            mime_type=declared.mime_type,
            filesize=request.filesize,
            chunk_size=request.chunk_size,
            total_chunks=request.total_chunks,
            property_id=request.property_id,
            created_at=time.time(),
        )
        result = await self._run_sync(
            self.sessions.write,
            f"{session.upload_id}/{METADATA_FILENAME}",
            session.model_dump_json().encode("utf-8"),
            "application/json",
        )
        if not result.success:
            raise StorageError("Failed to create upload session")

        logger.info(
            f"Chunked upload session started for {filename}",
            extra_context={
                "upload_id": session.upload_id,
                "property_id": session.property_id,
                "total_chunks": session.total_chunks,
            },
            emoji=LogEmoji.UPLOAD,
        )
        return session

    async def upload_chunk(
        self, upload_id: str, chunk_number: int, chunk: UploadedMedia
    ) -> ChunkedUploadProgress:
        """
        Store one chunk. Re-sending a chunk replaces it.

        Raises:
            NotFoundError: Unknown session
            MediaValidationError: Chunk number out of range or chunk too large
        """
        session = await self._run_sync(self._load_session, upload_id)

        if not 0 <= chunk_number < session.total_chunks:
            raise MediaValidationError("Invalid chunk number", status_code=400)
        if chunk.size > session.chunk_size:
            raise MediaValidationError(
                f"Chunk exceeds the session chunk size of {session.chunk_size} bytes",
                status_code=400,
            )

        result = await self._run_sync(
            self.sessions.write,
            f"{session.upload_id}/chunk_{chunk_number}",
            chunk.content,
            "application/octet-stream",
        )
        if not result.success:
            raise StorageError("Failed to store chunk")

        return await self._run_sync(self._progress, session)

    async def get_progress(self, upload_id: str) -> ChunkedUploadProgress:
        session = await self._run_sync(self._load_session, upload_id)
        return await self._run_sync(self._progress, session)

    async def complete(self, upload_id: str) -> UploadedVideoResult:
        """
        Assemble the chunks and store the video for the session's property.

        The session is removed once the video is stored; it is kept on
        failure so missing chunks can still be sent.

        Raises:
            NotFoundError: Unknown session
            MediaValidationError: Chunks missing, size mismatch or the
                assembled video fails validation (400)
            StorageError: The video could not be stored
        """
        session = await self._run_sync(self._load_session, upload_id)
        session_id = session.upload_id

        async with self._session_locks.setdefault(session_id, asyncio.Lock()):
            result = await self._complete_locked(session_id)
        self._session_locks.pop(session_id, None)

        logger.info(
            f"Chunked upload {session_id} completed",
            extra_context={"path": result.path, "size": result.size},
            emoji=LogEmoji.VIDEO,
        )
        return result

    async def _complete_locked(self, session_id: str) -> UploadedVideoResult:
        session = await self._run_sync(self._load_session, session_id)
        progress = await self._run_sync(self._progress, session)
        if progress.status != ChunkedUploadStatus.READY:
            raise MediaValidationError(
                f"Not all chunks have been uploaded "
                f"({progress.uploaded_chunks}/{progress.total_chunks})",
                status_code=400,
            )

        content = await self._run_sync(self._assemble, session)
        if len(content) != session.filesize:
            raise MediaValidationError(
                "File size mismatch after combining chunks", status_code=400
            )

        result = await self.media_service.upload_video(
            UploadedMedia(
                content=content,
                filename=session.filename,
                mime_type=session.mime_type,
                extension=get_extension(session.filename),
                size=len(content),
            ),
            session.property_id,
        )

        await self._run_sync(self.sessions.remove_directory, session_id)
        return result

    async def cancel(self, upload_id: str) -> bool:
        """
        Drop a session and its chunks.

        Returns:
            True if a session was removed
        """
        session_id = self._session_id(upload_id)
        removed = await self._run_sync(self.sessions.remove_directory, session_id)
        self._session_locks.pop(session_id, None)
        if removed:
            logger.info(f"Chunked upload {session_id} cancelled", emoji=LogEmoji.DELETE)
        return removed
