"""
Reaper: recovery for sessions and staging files nobody will finish.

Two sweeps, both driven from Celery beat (see media.tasks):

- Stale sessions: active sessions with no chunk, completion or status
  activity for UPLOAD_SESSION_STALE_AFTER_HOURS are aborted and their
  staging files released. A session whose lock is held is skipped and
  picked up on the next run.
- Orphaned staging files: files in the staging directory that no active
  session points at (a process died between allocating and persisting, or
  a release failed). Only files older than the stale threshold are touched.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from core.services import ServiceResult
from media.exceptions import StorageUnavailableError
from media.services.chunked_upload.session_manager import UploadSessionManager
from media.services.chunked_upload.staging import StagingArea
from media.services.chunked_upload.store import SessionStore

if TYPE_CHECKING:
    from uuid import UUID

    from media.models import UploadSession

logger = logging.getLogger(__name__)


def default_stale_after() -> timedelta:
    return timedelta(hours=settings.UPLOAD_SESSION_STALE_AFTER_HOURS)


def list_stale_sessions(older_than: timedelta) -> list[UploadSession]:
    """Return active sessions idle for longer than older_than, oldest first."""
    return list(SessionStore().list_stale_sessions(older_than))


def abort_session(session_id: UUID | str) -> ServiceResult[UploadSession]:
    """
    Abort one session regardless of owner.

    Uses the same lock and transitions as a client abort: aborted sessions
    stay aborted, completed sessions are a conflict.
    """
    return UploadSessionManager().abort_session(session_id)


def reap_stale_sessions(older_than: timedelta | None = None) -> dict:
    """
    Abort every stale session.

    Sessions are taken with a non-blocking lock: one that is busy has
    activity and is skipped. A session that received a chunk after it was
    listed is skipped too.

    Returns:
        Dict with counts: found, aborted, skipped, failed
    """
    older_than = older_than or default_stale_after()
    cutoff = timezone.now() - older_than
    manager = UploadSessionManager()
    stats = {"found": 0, "aborted": 0, "skipped": 0, "failed": 0}

    for session in SessionStore().list_stale_sessions(older_than):
        stats["found"] += 1
        result = manager.abort_session(session.id, blocking=False, stale_before=cutoff)

        if result.success:
            if result.data.is_aborted:
                stats["aborted"] += 1
            else:
                stats["skipped"] += 1
            continue

        if result.error_code == "LOCK_UNAVAILABLE":
            stats["skipped"] += 1
            logger.info(
                f"Skipping busy upload session {session.id}",
                extra={"event_type": "upload_session_reap", "session_id": str(session.id)},
            )
        else:
            stats["failed"] += 1
            logger.error(
                f"Failed to reap upload session {session.id}: {result.error}",
                extra={
                    "event_type": "upload_session_reap",
                    "session_id": str(session.id),
                    "error_code": result.error_code,
                },
            )

    return stats


def sweep_orphaned_staging_files(older_than: timedelta | None = None) -> dict:
    """
    Delete staging files that belong to no active session.

    Returns:
        Dict with counts: checked, removed, failed
    """
    older_than = older_than or default_stale_after()
    cutoff = (timezone.now() - older_than).timestamp()
    staging = StagingArea()
    active_paths = SessionStore().active_staging_paths()
    stats = {"checked": 0, "removed": 0, "failed": 0}

    for path in staging.list_files():
        stats["checked"] += 1
        if str(path) in active_paths:
            continue
        try:
            if path.stat().st_mtime >= cutoff:
                continue
        except FileNotFoundError:
            continue

        try:
            staging.release(str(path))
        except StorageUnavailableError as exc:
            stats["failed"] += 1
            logger.warning(
                f"Failed to remove orphaned staging file {path}: {exc}",
                extra={"event_type": "upload_orphan_sweep", "path": str(path)},
            )
            continue

        stats["removed"] += 1
        logger.info(
            f"Removed orphaned staging file {path}",
            extra={"event_type": "upload_orphan_sweep", "path": str(path)},
        )

    return stats
