"""
Session store: persistence for upload sessions and assets.

A thin facade over the ORM so the upload services share one set of queries.
Database errors propagate unchanged; the services decide which ones are
retried and which become StorageUnavailableError. Rows are always read from
the database, never from a cache.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from media.exceptions import UploadSessionNotFoundError, UploadSessionStateError
from media.models import Asset, UploadSession

if TYPE_CHECKING:
    from datetime import datetime, timedelta
    from uuid import UUID

    from django.db.models import QuerySet

    from authentication.models import User


class SessionStore:
    """ORM access for UploadSession and Asset rows."""

    # =========================================================================
    # Sessions
    # =========================================================================

    def create_session(
        self,
        *,
        session_id: UUID,
        owner: User,
        filename: str,
        total_size: int,
        staging_path: str,
        mime_type: str = "",
        taken_at: datetime | None = None,
        content_hash: str = "",
    ) -> UploadSession:
        """Persist a new active session with uploaded_offset = 0."""
        return UploadSession.objects.create(
            id=session_id,
            owner=owner,
            filename=filename,
            total_size=total_size,
            mime_type=mime_type,
            taken_at=taken_at,
            content_hash=content_hash,
            staging_path=staging_path,
            uploaded_offset=0,
            status=UploadSession.Status.ACTIVE,
        )

    def get_session(
        self,
        session_id: UUID | str,
        owner: User | None = None,
        for_update: bool = False,
    ) -> UploadSession:
        """
        Load a session, optionally scoped to an owner and row-locked.

        for_update must be used inside transaction.atomic().

        Raises:
            UploadSessionNotFoundError: Unknown id, or the session belongs
                to somebody else
        """
        queryset = UploadSession.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        if owner is not None:
            queryset = queryset.filter(owner=owner)
        try:
            return queryset.get(pk=session_id)
        except (UploadSession.DoesNotExist, DjangoValidationError) as exc:
            raise UploadSessionNotFoundError(
                "Upload session not found",
                details={"session_id": str(session_id)},
            ) from exc

    def update_offset(self, session: UploadSession, end: int) -> int:
        """
        Advance the high-water mark to at least end.

        The offset never moves backwards: a chunk below the current mark
        leaves it unchanged but still refreshes updated_at.

        Returns:
            The persisted uploaded_offset
        """
        session.uploaded_offset = max(session.uploaded_offset, end)
        session.save(update_fields=["uploaded_offset", "updated_at"])
        return session.uploaded_offset

    def mark_completed(self, session: UploadSession, asset: Asset) -> None:
        """
        Transition an active session to completed.

        Raises:
            UploadSessionStateError: The session is not active
        """
        try:
            session.complete(asset)
        except TransitionNotAllowed as exc:
            raise _not_active(session) from exc
        session.save(update_fields=["status", "asset", "updated_at"])

    def mark_aborted(self, session: UploadSession) -> None:
        try:
            session.abort()
        except TransitionNotAllowed as exc:
            raise _not_active(session) from exc
        session.save(update_fields=["status", "updated_at"])

    def list_stale_sessions(self, older_than: timedelta) -> QuerySet[UploadSession]:
        """Active sessions with no activity since now - older_than, oldest first."""
        cutoff = timezone.now() - older_than
        return UploadSession.objects.filter(
            status=UploadSession.Status.ACTIVE,
            updated_at__lt=cutoff,
        ).order_by("updated_at")

    def active_staging_paths(self) -> set[str]:
        return set(
            UploadSession.objects.filter(
                status=UploadSession.Status.ACTIVE,
            ).values_list("staging_path", flat=True)
        )

    # =========================================================================
    # Assets
    # =========================================================================

    def find_asset_by_hash(self, owner: User, content_hash: str) -> Asset | None:
        """
        Return the owner's asset with this content hash, if any.

        Empty hashes never match: content without a declared hash is not
        deduplicated.
        """
        if not content_hash:
            return None
        return Asset.objects.filter(owner=owner, content_hash=content_hash).first()

    def create_asset(self, session: UploadSession, storage_key: str) -> Asset:
        """
        Create the Asset for a verified session.

        Raises:
            IntegrityError: If another asset already holds (owner, content_hash)
        """
        return Asset.objects.create(
            owner_id=session.owner_id,
            filename=session.filename,
            size=session.total_size,
            mime_type=session.mime_type,
            content_hash=session.content_hash,
            taken_at=session.taken_at,
            storage_key=storage_key,
        )


def _not_active(session: UploadSession) -> UploadSessionStateError:
    return UploadSessionStateError(
        f"Upload session is {session.status}",
        details={"session_id": str(session.id), "status": session.status},
    )
