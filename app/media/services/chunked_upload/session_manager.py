"""
Upload session manager: opening, inspecting and aborting upload sessions.

InitiateUpload is the entry point of every upload. It short-circuits to an
"exists" response when the owner already stores content with the declared
hash; otherwise it allocates a staging file and persists an active session.

Aborts (client-initiated or from the reaper) take the per-session lock, so
they never interleave with a chunk write or a completion of the same session.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.db import DatabaseError, transaction

from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult
from media.exceptions import (
    InvalidUploadRequestError,
    StorageUnavailableError,
    UploadSessionStateError,
)
from media.services.chunked_upload.base import (
    MAX_TOTAL_SIZE,
    InitiateResult,
    UploadOutcome,
    session_lock,
)
from media.services.chunked_upload.staging import StagingArea
from media.services.chunked_upload.store import SessionStore

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from authentication.models import User
    from media.models import UploadSession


class UploadSessionManager(BaseService):
    """
    Creates upload sessions and handles their non-data transitions.

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

    # =========================================================================
    # Initiate
    # =========================================================================

    def initiate(
        self,
        owner: User,
        filename: str,
        total_size: int,
        mime_type: str = "",
        taken_at: datetime | None = None,
        content_hash: str = "",
    ) -> ServiceResult[InitiateResult]:
        """
        Open a new upload session, or report an existing asset.

        Args:
            owner: Authenticated user who will own the asset
            filename: Client filename, must not be blank
            total_size: Declared final size in bytes, must be >= 0
            mime_type: Declared MIME type (optional)
            taken_at: Capture timestamp (optional)
            content_hash: Declared content hash; empty disables dedup

        Returns:
            ServiceResult with InitiateResult. status is "exists" when an
            asset with this hash is already stored for the owner, in which
            case no session or staging file is created.
        """
        logger = self.get_logger()
        try:
            filename = self._validate(filename, total_size)
            content_hash = (content_hash or "").strip()
            mime_type = (mime_type or "").strip()

            existing = self._find_existing_asset(owner, content_hash)
            if existing is not None:
                logger.info(
                    f"Upload deduplicated into asset {existing.id}",
                    extra={
                        "event_type": "upload_deduplicated",
                        "owner_id": str(owner.pk),
                        "asset_id": str(existing.id),
                        "stage": "initiate",
                    },
                )
                return ServiceResult.success(
                    InitiateResult(status=UploadOutcome.EXISTS, asset_id=existing.id)
                )

            session = self._open_session(
                owner=owner,
                filename=filename,
                total_size=total_size,
                mime_type=mime_type,
                taken_at=taken_at,
                content_hash=content_hash,
            )
        except BaseApplicationError as exc:
            return self.handle_exception(exc, "Initiate upload failed")

        logger.info(
            f"Upload session {session.id} created for {filename} ({total_size} bytes)",
            extra={
                "event_type": "upload_session_created",
                "session_id": str(session.id),
                "owner_id": str(owner.pk),
                "total_size": total_size,
            },
        )
        return ServiceResult.success(
            InitiateResult(status=UploadOutcome.CREATED, session_id=session.id, offset=0)
        )

    def _validate(self, filename: str, total_size: int) -> str:
        filename = (filename or "").strip()
        if not filename:
            raise InvalidUploadRequestError(
                "Filename is required",
                details={"field": "filename"},
            )
        if isinstance(total_size, bool) or not isinstance(total_size, int):
            raise InvalidUploadRequestError(
                "Size must be an integer",
                details={"field": "size"},
            )
        if total_size < 0:
            raise InvalidUploadRequestError(
                "Size must not be negative",
                details={"field": "size", "value": total_size},
            )
        if total_size > MAX_TOTAL_SIZE:
            raise InvalidUploadRequestError(
                f"Size must not exceed {MAX_TOTAL_SIZE} bytes",
                details={"field": "size", "value": total_size},
            )
        return filename

    def _find_existing_asset(self, owner: User, content_hash: str):
        try:
            return self.store.find_asset_by_hash(owner, content_hash)
        except DatabaseError as exc:
            raise StorageUnavailableError("Session store is unavailable") from exc

    def _open_session(self, *, owner: User, **fields) -> UploadSession:
        """Allocate staging and persist the session; never leaves one without the other."""
        session_id = uuid.uuid4()
        staging_path = self.staging.allocate(session_id)
        try:
            return self.store.create_session(
                session_id=session_id,
                owner=owner,
                staging_path=staging_path,
                **fields,
            )
        except DatabaseError as exc:
            self._release_staging(staging_path, session_id)
            raise StorageUnavailableError(
                "Session store is unavailable",
                details={"session_id": str(session_id)},
            ) from exc

    # =========================================================================
    # Status
    # =========================================================================

    def get_status(self, owner: User, session_id: UUID | str) -> ServiceResult[UploadSession]:
        """Return the owner's session so the client can resume from uploaded_offset."""
        try:
            try:
                session = self.store.get_session(session_id, owner=owner)
            except DatabaseError as exc:
                raise StorageUnavailableError("Session store is unavailable") from exc
        except BaseApplicationError as exc:
            return self.handle_exception(exc, f"Get upload session {session_id} failed")
        return ServiceResult.success(session)

    # =========================================================================
    # Abort
    # =========================================================================

    def abort(self, owner: User, session_id: UUID | str) -> ServiceResult[UploadSession]:
        """
        Client-initiated abort of the owner's session.

        Aborting an already aborted session succeeds; a completed session
        can't be aborted.
        """
        try:
            session = self._abort(session_id, owner=owner)
        except BaseApplicationError as exc:
            return self.handle_exception(exc, f"Abort upload session {session_id} failed")
        return ServiceResult.success(session)

    def abort_session(
        self,
        session_id: UUID | str,
        blocking: bool = True,
        stale_before: datetime | None = None,
    ) -> ServiceResult[UploadSession]:
        """
        Abort a session without owner scoping (reaper entry point).

        Args:
            session_id: Session to abort
            blocking: Wait for the session lock; False makes a busy session
                fail immediately with LOCK_UNAVAILABLE
            stale_before: When given, the session is only aborted if it
                still has had no activity since this instant once the lock
                is held. A chunk that landed after the stale listing keeps
                the session alive.

        Returns:
            ServiceResult with the session. Check session.status to see
            whether it was aborted or left active.
        """
        try:
            session = self._abort(session_id, blocking=blocking, stale_before=stale_before)
        except BaseApplicationError as exc:
            return self.handle_exception(exc, f"Abort upload session {session_id} failed")
        return ServiceResult.success(session)

    def _abort(
        self,
        session_id: UUID | str,
        owner: User | None = None,
        blocking: bool = True,
        stale_before: datetime | None = None,
    ) -> UploadSession:
        logger = self.get_logger()
        with session_lock(session_id, blocking=blocking):
            try:
                with transaction.atomic():
                    session = self.store.get_session(session_id, owner=owner, for_update=True)
                    if session.is_aborted:
                        return session
                    if session.is_completed:
                        raise UploadSessionStateError(
                            "Completed upload sessions can't be aborted",
                            details={"session_id": str(session.id)},
                        )
                    if stale_before is not None and session.updated_at >= stale_before:
                        return session
                    self.store.mark_aborted(session)
            except DatabaseError as exc:
                raise StorageUnavailableError("Session store is unavailable") from exc

            self._release_staging(session.staging_path, session.id)

        logger.info(
            f"Upload session {session.id} aborted at offset {session.uploaded_offset}",
            extra={
                "event_type": "upload_session_aborted",
                "session_id": str(session.id),
                "owner_id": str(session.owner_id),
                "uploaded_offset": session.uploaded_offset,
                "reaped": owner is None,
            },
        )
        return session

    def _release_staging(self, staging_path: str, session_id) -> None:
        """Release a staging file; failures are logged, the orphan sweep retries them."""
        try:
            self.staging.release(staging_path)
        except StorageUnavailableError as exc:
            self.get_logger().warning(
                f"Failed to release staging file for session {session_id}: {exc}",
                extra={
                    "event_type": "upload_staging_release_failed",
                    "session_id": str(session_id),
                },
            )
