"""
Result types and shared helpers for the chunked upload services.

Every public operation returns a ServiceResult wrapping one of the
dataclasses below, so views and tasks handle success and failure the same
way regardless of which component produced them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings

from core.locks import DistributedLock
from media.exceptions import UploadSessionNotFoundError

if TYPE_CHECKING:
    from uuid import UUID

# Largest declared size a 64-bit signed size column can hold
MAX_TOTAL_SIZE = 2**63 - 1


# =============================================================================
# Outcomes
# =============================================================================


class UploadOutcome:
    """Machine-readable outcome strings returned to clients."""

    CREATED = "created"
    EXISTS = "exists"
    COMPLETED = "completed"


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class InitiateResult:
    """
    Result of initiating an upload.

    Attributes:
        status: "created" when a new session was opened, "exists" when an
            asset with the declared content hash is already stored
        session_id: New session id (only when created)
        asset_id: Existing asset id (only when exists)
        offset: Starting offset, always 0 for a new session
    """

    status: str
    session_id: UUID | None = None
    asset_id: UUID | None = None
    offset: int = 0

    @property
    def created(self) -> bool:
        return self.status == UploadOutcome.CREATED


@dataclass
class ChunkWriteResult:
    """
    Result of writing one chunk.

    Attributes:
        received: Number of bytes accepted from this chunk
        offset: Session high-water mark after the write
    """

    received: int
    offset: int


@dataclass
class CompletionResult:
    """
    Result of completing an upload.

    Attributes:
        status: "completed" when the session produced a new asset (or had
            already been completed), "exists" when it was deduplicated into
            an asset uploaded by another session
        asset_id: Id of the asset the session now points at
    """

    status: str
    asset_id: UUID


# =============================================================================
# Helpers
# =============================================================================


def session_lock(session_id: UUID | str, blocking: bool = True) -> DistributedLock:
    """
    Build the exclusive lock for one upload session.

    Every staging access of a session (chunk writes, completion, aborts)
    runs under this lock. Different sessions never share a key, and every
    spelling of one session id (case, hyphens) maps to the same key.

    Raises:
        UploadSessionNotFoundError: session_id is not a UUID
    """
    try:
        canonical = uuid.UUID(str(session_id))
    except ValueError as exc:
        raise UploadSessionNotFoundError(
            "Upload session not found",
            details={"session_id": str(session_id)},
        ) from exc
    return DistributedLock(
        f"upload_session:{canonical}",
        ttl=settings.UPLOAD_SESSION_LOCK_TTL,
        blocking=blocking,
        timeout=settings.UPLOAD_SESSION_LOCK_TIMEOUT,
    )
