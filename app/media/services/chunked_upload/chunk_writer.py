"""
Chunk writer: accepts byte ranges for an active upload session.

Chunks may arrive in any order, overlap, or be retried. Each one is written
at its absolute offset in the session's staging file and the session's
high-water mark moves to max(uploaded_offset, offset + len(data)).
Overlapping writes are last-writer-wins at the byte level.

The staging write and the progress update happen in one locked section:
the Redis session lock serializes processes, and select_for_update inside
the transaction serializes the row. Progress is only persisted after the
bytes were fsynced, so uploaded_offset never claims bytes that aren't on
disk.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import DatabaseError, transaction

from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult
from media.exceptions import (
    InvalidRangeError,
    StorageUnavailableError,
    UploadSessionStateError,
)
from media.services.chunked_upload.base import ChunkWriteResult, session_lock
from media.services.chunked_upload.staging import StagingArea
from media.services.chunked_upload.store import SessionStore

if TYPE_CHECKING:
    from uuid import UUID

    from authentication.models import User


class ChunkWriter(BaseService):
    """
    Writes client chunks into staging and records progress.

    Args:
        store: Session store. Defaults to a new SessionStore.
        staging: Staging area. Defaults to a StagingArea on UPLOAD_STAGING_DIR.
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        staging: StagingArea | None = None,
    ) -> None:
        self.store = store or SessionStore()
        self.staging = staging or StagingArea()

    def write_chunk(
        self,
        owner: User,
        session_id: UUID | str,
        offset: int,
        data: bytes,
    ) -> ServiceResult[ChunkWriteResult]:
        """
        Write one chunk at offset.

        Writing the same (offset, data) twice leaves the same bytes and the
        same uploaded_offset, so clients can retry blindly.
        An empty chunk inside the file writes nothing and reports the
        current uploaded_offset.

        Returns:
            ServiceResult with ChunkWriteResult(received, offset). Errors:
            NOT_FOUND, UPLOAD_SESSION_NOT_ACTIVE, INVALID_RANGE,
            LOCK_UNAVAILABLE, LOCK_SERVICE_UNAVAILABLE, STORAGE_UNAVAILABLE.
        """
        try:
            with session_lock(session_id):
                new_offset = self._write_locked(owner, session_id, offset, data)
        except BaseApplicationError as exc:
            return self.handle_exception(exc, f"Chunk write to session {session_id} failed")

        self.get_logger().debug(
            f"Wrote {len(data)} bytes at {offset} to session {session_id}",
            extra={
                "event_type": "upload_chunk_written",
                "session_id": str(session_id),
                "offset": offset,
                "length": len(data),
                "uploaded_offset": new_offset,
            },
        )
        return ServiceResult.success(ChunkWriteResult(received=len(data), offset=new_offset))

    def _write_locked(
        self,
        owner: User,
        session_id: UUID | str,
        offset: int,
        data: bytes,
    ) -> int:
        try:
            with transaction.atomic():
                session = self.store.get_session(session_id, owner=owner, for_update=True)
                if not session.is_active:
                    raise UploadSessionStateError(
                        f"Upload session is {session.status}",
                        details={"session_id": str(session.id), "status": session.status},
                    )
                self._validate_range(offset, data, session.total_size)
                if not data:
                    return session.uploaded_offset

                self.staging.write_at(session.staging_path, offset, data)
                return self.store.update_offset(session, offset + len(data))
        except DatabaseError as exc:
            raise StorageUnavailableError(
                "Session store is unavailable",
                details={"session_id": str(session_id)},
            ) from exc

    @staticmethod
    def _validate_range(offset: int, data: bytes, total_size: int) -> None:
        if offset < 0 or offset + len(data) > total_size:
            raise InvalidRangeError(
                f"Range [{offset}, {offset + len(data)}) is outside [0, {total_size})",
                details={
                    "offset": offset,
                    "length": len(data),
                    "total_size": total_size,
                },
            )
