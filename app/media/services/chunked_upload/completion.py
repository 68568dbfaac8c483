"""
Completion coordinator: seals an upload session into an Asset.

Steps, all under the per-session lock:

1. Load the session. Completed sessions return their recorded asset,
   aborted ones are a conflict.
2. Verify the staged size equals the declared total size (and, when
   UPLOAD_VERIFY_CONTENT_HASH is on, that the bytes hash to the declared
   content hash). Failures keep the session active.
3. Re-check dedup: an asset with the same hash may have been completed by
   another session since this one was initiated.
4. Promote the staging file to durable storage under a fresh key. The
   lock TTL is restarted before, during and after the copy; if the lock was
   lost the completion fails with LOCK_UNAVAILABLE and the session stays
   active.
5. In one transaction create the Asset and mark the session completed,
   retrying transient database errors with backoff. A unique violation on
   (owner, content_hash) means a concurrent upload won; the session is
   completed against the winner and reported as "exists".
6. Release the staging file and announce the new asset once committed.

Promoted objects are never deleted. If step 5 ultimately fails the object
stays in durable storage as an orphan and the session stays active.
"""

from __future__ import annotations

import time
from functools import partial
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction

from core.exceptions import BaseApplicationError, LockAcquisitionError
from core.services import BaseService, ServiceResult, backoff_delay
from media.exceptions import (
    ContentHashMismatchError,
    StorageUnavailableError,
    UploadIncompleteError,
    UploadSessionStateError,
)
from media.models import Asset
from media.services.chunked_upload.base import (
    CompletionResult,
    UploadOutcome,
    session_lock,
)
from media.services.chunked_upload.staging import StagingArea
from media.services.chunked_upload.storage import DurableStorage
from media.services.chunked_upload.store import SessionStore
from media.signals import asset_created

if TYPE_CHECKING:
    from typing import BinaryIO
    from uuid import UUID

    from authentication.models import User
    from core.locks import DistributedLock
    from media.models import UploadSession

# Upper bound for a single backoff sleep between asset-create attempts
MAX_ASSET_CREATE_DELAY = 5.0


class CompletionCoordinator(BaseService):
    """
    Verifies, promotes and finalizes upload sessions.

    Args:
        store: Session store. Defaults to a new SessionStore.
        staging: Staging area. Defaults to a StagingArea on UPLOAD_STAGING_DIR.
        storage: Durable storage. Defaults to DurableStorage on default_storage.
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        staging: StagingArea | None = None,
        storage: DurableStorage | None = None,
    ) -> None:
        self.store = store or SessionStore()
        self.staging = staging or StagingArea()
        self.storage = storage or DurableStorage()

    def complete(self, owner: User, session_id: UUID | str) -> ServiceResult[CompletionResult]:
        """
        Seal the owner's session into an Asset.

        Returns:
            ServiceResult with CompletionResult. status is "completed" for a
            new asset (or a session completed earlier), "exists" when the
            content was already stored by another session. Errors:
            NOT_FOUND, UPLOAD_SESSION_NOT_ACTIVE (aborted),
            UPLOAD_INCOMPLETE, CONTENT_HASH_MISMATCH, LOCK_UNAVAILABLE,
            STORAGE_UNAVAILABLE.
        """
        try:
            with session_lock(session_id) as lock:
                result = self._complete_locked(owner, session_id, lock)
        except BaseApplicationError as exc:
            return self.handle_exception(exc, f"Complete upload session {session_id} failed")
        return ServiceResult.success(result)

    def _complete_locked(
        self, owner: User, session_id: UUID | str, lock: DistributedLock
    ) -> CompletionResult:
        logger = self.get_logger()

        try:
            session = self.store.get_session(session_id, owner=owner)
        except DatabaseError as exc:
            raise StorageUnavailableError("Session store is unavailable") from exc

        if session.is_completed:
            return CompletionResult(status=UploadOutcome.COMPLETED, asset_id=session.asset_id)
        if session.is_aborted:
            raise UploadSessionStateError(
                "Upload session was aborted",
                details={"session_id": str(session.id), "status": session.status},
            )

        self._verify(session)

        try:
            existing = self.store.find_asset_by_hash(session.owner_id, session.content_hash)
        except DatabaseError as exc:
            raise StorageUnavailableError("Session store is unavailable") from exc
        if existing is not None:
            self._complete_against(session, existing)
            self._release_staging(session)
            logger.info(
                f"Upload session {session.id} deduplicated into asset {existing.id}",
                extra={
                    "event_type": "upload_deduplicated",
                    "session_id": str(session.id),
                    "asset_id": str(existing.id),
                    "stage": "complete",
                },
            )
            return CompletionResult(status=UploadOutcome.EXISTS, asset_id=existing.id)

        # hashing a large staged file may have used up most of the TTL
        hold_lock(lock)
        storage_key = self._promote(session, lock)
        try:
            hold_lock(lock)
        except LockAcquisitionError:
            self._log_orphan(session, storage_key, "lock_lost")
            raise
        asset, created = self._finalize(session, storage_key)
        self._release_staging(session)

        if not created:
            logger.warning(
                f"Upload session {session.id} lost dedup race to asset {asset.id}; "
                f"object {storage_key} is orphaned",
                extra={
                    "event_type": "upload_deduplicated",
                    "session_id": str(session.id),
                    "asset_id": str(asset.id),
                    "orphaned_storage_key": storage_key,
                    "stage": "create_asset",
                },
            )
            return CompletionResult(status=UploadOutcome.EXISTS, asset_id=asset.id)

        logger.info(
            f"Upload session {session.id} completed as asset {asset.id}",
            extra={
                "event_type": "upload_completed",
                "session_id": str(session.id),
                "asset_id": str(asset.id),
                "owner_id": str(session.owner_id),
                "size": asset.size,
                "storage_key": asset.storage_key,
            },
        )
        return CompletionResult(status=UploadOutcome.COMPLETED, asset_id=asset.id)

    # =========================================================================
    # Verification
    # =========================================================================

    def _verify(self, session: UploadSession) -> None:
        """
        Check the staged bytes against the session's declaration.

        Raises:
            UploadIncompleteError: Staged size differs from total_size, or
                the staging file is gone
            ContentHashMismatchError: Hash verification is enabled and the
                staged digest differs from the declared hash
        """
        staged = self.staging.size(session.staging_path)
        if staged is None:
            raise UploadIncompleteError(
                "Staged data is missing",
                details={"session_id": str(session.id), "expected": session.total_size},
            )
        if staged != session.total_size:
            raise UploadIncompleteError(
                f"Received {staged} of {session.total_size} bytes",
                details={
                    "session_id": str(session.id),
                    "received": staged,
                    "expected": session.total_size,
                },
            )

        if settings.UPLOAD_VERIFY_CONTENT_HASH and session.content_hash:
            algorithm = settings.UPLOAD_CONTENT_HASH_ALGORITHM
            actual = self.staging.digest(session.staging_path, algorithm)
            if actual.lower() != session.content_hash.lower():
                raise ContentHashMismatchError(
                    "Uploaded bytes do not match the declared content hash",
                    details={
                        "session_id": str(session.id),
                        "algorithm": algorithm,
                        "declared": session.content_hash,
                        "actual": actual,
                    },
                )

    # =========================================================================
    # Promotion & finalization
    # =========================================================================

    def _promote(self, session: UploadSession, lock: DistributedLock) -> str:
        key = self.storage.build_key(session.owner_id)
        with self.staging.open(session.staging_path) as staged_file:
            reader = LockRefreshingReader(
                staged_file, lock, settings.UPLOAD_LOCK_REFRESH_BYTES
            )
            try:
                return self.storage.put(key, reader)
            except LockAcquisitionError:
                self._log_orphan(session, key, "lock_lost_during_promotion")
                raise

    def _log_orphan(self, session: UploadSession, storage_key: str, stage: str) -> None:
        self.get_logger().warning(
            f"Upload session {session.id} left object {storage_key} orphaned ({stage})",
            extra={
                "event_type": "upload_orphaned_object",
                "session_id": str(session.id),
                "orphaned_storage_key": storage_key,
                "stage": stage,
            },
        )

    def _finalize(self, session: UploadSession, storage_key: str) -> tuple[Asset, bool]:
        """
        Create the Asset and complete the session in one transaction.

        Returns:
            (asset, created). created is False when a concurrent upload of
            the same content won the unique constraint.
        """
        logger = self.get_logger()
        attempts = max(1, settings.UPLOAD_ASSET_CREATE_ATTEMPTS)

        for attempt in range(attempts):
            try:
                with transaction.atomic():
                    locked = self.store.get_session(session.id, for_update=True)
                    asset = self.store.create_asset(locked, storage_key)
                    self.store.mark_completed(locked, asset)
                    transaction.on_commit(
                        partial(asset_created.send, sender=Asset, asset=asset, session=locked)
                    )
                return asset, True
            except IntegrityError:
                return self._resolve_duplicate(session), False
            except DatabaseError as exc:
                if attempt + 1 >= attempts:
                    logger.error(
                        f"Asset creation failed for session {session.id} after "
                        f"{attempts} attempts; object {storage_key} is orphaned",
                        exc_info=True,
                        extra={
                            "event_type": "upload_asset_create_failed",
                            "session_id": str(session.id),
                            "orphaned_storage_key": storage_key,
                        },
                    )
                    raise StorageUnavailableError(
                        "Session store is unavailable",
                        details={"session_id": str(session.id)},
                    ) from exc

                delay = backoff_delay(
                    attempt,
                    base=settings.UPLOAD_ASSET_CREATE_BACKOFF,
                    max_delay=MAX_ASSET_CREATE_DELAY,
                )
                logger.warning(
                    f"Asset creation attempt {attempt + 1}/{attempts} failed for "
                    f"session {session.id}: {exc}; retrying in {delay:.2f}s",
                    extra={
                        "event_type": "upload_asset_create_retry",
                        "session_id": str(session.id),
                        "attempt": attempt + 1,
                    },
                )
                time.sleep(delay)

        raise StorageUnavailableError("Session store is unavailable")

    def _resolve_duplicate(self, session: UploadSession) -> Asset:
        """Complete the session against the asset that won the unique constraint."""
        try:
            winner = self.store.find_asset_by_hash(session.owner_id, session.content_hash)
            if winner is None:
                raise StorageUnavailableError(
                    "Asset creation conflicted but no matching asset was found",
                    details={"session_id": str(session.id)},
                )
            self._complete_against(session, winner)
        except DatabaseError as exc:
            raise StorageUnavailableError("Session store is unavailable") from exc
        return winner

    def _complete_against(self, session: UploadSession, asset: Asset) -> None:
        try:
            with transaction.atomic():
                locked = self.store.get_session(session.id, for_update=True)
                self.store.mark_completed(locked, asset)
        except DatabaseError as exc:
            raise StorageUnavailableError("Session store is unavailable") from exc
        session.status = locked.status
        session.asset = asset

    def _release_staging(self, session: UploadSession) -> None:
        try:
            self.staging.release(session.staging_path)
        except StorageUnavailableError as exc:
            self.get_logger().warning(
                f"Failed to release staging file for session {session.id}: {exc}",
                extra={
                    "event_type": "upload_staging_release_failed",
                    "session_id": str(session.id),
                },
            )


def hold_lock(lock: DistributedLock) -> None:
    """
    Restart the lock's TTL, or fail if another request has taken it over.

    Raises:
        LockAcquisitionError: The key expired and is no longer ours
    """
    if not lock.extend():
        raise LockAcquisitionError(
            "Upload session lock was lost",
            details={"key": lock.key},
        )


class LockRefreshingReader:
    """
    File proxy that keeps the session lock alive while storage reads it.

    Every refresh_bytes read, the lock TTL is restarted. Streaming a large
    staging file to object storage can outlast a single TTL; once the lock
    is lost a chunk write could change the bytes mid-read, so the read
    fails instead.
    """

    def __init__(self, fileobj: BinaryIO, lock: DistributedLock, refresh_bytes: int) -> None:
        self._file = fileobj
        self._lock = lock
        self._refresh_bytes = refresh_bytes
        self._unrefreshed = 0

    def read(self, size: int = -1) -> bytes:
        data = self._file.read(size)
        self._unrefreshed += len(data)
        if self._unrefreshed >= self._refresh_bytes:
            self._unrefreshed = 0
            hold_lock(self._lock)
        return data

    def __getattr__(self, name):
        return getattr(self._file, name)
