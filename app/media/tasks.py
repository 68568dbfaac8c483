"""
Celery tasks for upload housekeeping.

This module provides periodic tasks for:
- Aborting upload sessions that stopped receiving data (reaper)
- Removing staging files with no matching active session

Both are scheduled through django-celery-beat (see the 0002 media
migration) and are safe to run concurrently with uploads: sessions are
aborted under the same per-session lock chunk writes and completions use.

Usage:
    from media.tasks import reap_stale_upload_sessions

    # Run now instead of waiting for beat
    reap_stale_upload_sessions.delay()

    # Reap sessions idle for more than 2 hours
    reap_stale_upload_sessions.delay(stale_after_hours=2)
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task

from media.services.chunked_upload import reaper

logger = logging.getLogger(__name__)


@shared_task
def reap_stale_upload_sessions(stale_after_hours: int | None = None) -> dict:
    """
    Periodic task to abort stale upload sessions.

    Finds active sessions with no activity for UPLOAD_SESSION_STALE_AFTER_HOURS
    (or stale_after_hours when given) and aborts them, releasing their
    staging files. Busy sessions are skipped until the next run.

    Returns:
        Dict with counts: found, aborted, skipped, failed
    """
    older_than = (
        timedelta(hours=stale_after_hours)
        if stale_after_hours is not None
        else reaper.default_stale_after()
    )
    stats = reaper.reap_stale_sessions(older_than)

    logger.info(
        "Stale upload sessions reaped",
        extra={"event_type": "upload_session_reap_complete", **stats},
    )
    return stats


@shared_task
def cleanup_orphaned_staging_files() -> dict:
    """
    Safety net task to remove staging files without matching sessions.

    Handles processes that died between allocating a staging file and
    persisting its session, and releases that failed after completion or
    abort. Files younger than the stale threshold are left alone.

    Returns:
        Dict with counts: checked, removed, failed
    """
    stats = reaper.sweep_orphaned_staging_files()

    logger.info(
        "Orphaned staging file cleanup complete",
        extra={"event_type": "upload_orphan_sweep_complete", **stats},
    )
    return stats
