"""
UploadSession model for tracking resumable uploads.

Provides:
- Byte-level progress tracking (uploaded_offset high-water mark)
- The staging file path holding the partially uploaded bytes
- Session state for the reaper (active sessions idle past a threshold)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class UploadSession(UUIDPrimaryKeyMixin, BaseModel):
    """
    Server-side record of one in-progress resumable upload.

    A session is created when a client initiates an upload and receives
    byte ranges in any order until the client asks for completion. The
    bytes themselves live in the staging file; this row only tracks them.

    Attributes:
        owner: User who initiated the upload
        filename: Client-supplied filename
        mime_type: Client-declared MIME type (may be empty)
        taken_at: Capture timestamp reported by the client
        content_hash: Client-declared content hash used for dedup
        total_size: Declared final size in bytes
        uploaded_offset: Highest byte end written so far. This is a
            high-water mark, not a count of contiguous bytes: with
            out-of-order writes there may be holes below it.
        staging_path: Path of the staging file, unique per session
        status: Current session state
        asset: Asset this session produced or was deduplicated into

    Lifecycle:
        active -> completed (terminal)
        active -> aborted (terminal, staging released)

    Usage:
        # Sessions are created through UploadSessionManager
        manager = UploadSessionManager()
        result = manager.initiate(
            owner=request.user,
            filename="IMG_0001.HEIC",
            total_size=3_145_728,
            content_hash="9f86d081...",
        )
    """

    class Status(models.TextChoices):
        """Upload session status."""

        ACTIVE = "active", "Active"
        COMPLETED = "completed", "Completed"
        ABORTED = "aborted", "Aborted"

    # =========================================================================
    # Relationships
    # =========================================================================

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="upload_sessions",
        help_text="User who initiated the upload",
    )
    asset = models.ForeignKey(
        "media.Asset",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="upload_sessions",
        help_text="Asset produced by (or deduplicated into) this session",
    )

    # =========================================================================
    # File Metadata
    # =========================================================================

    filename = models.CharField(
        max_length=255,
        help_text="Original filename of the file being uploaded",
    )
    mime_type = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Client-declared MIME type",
    )
    taken_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Capture timestamp reported by the client",
    )
    content_hash = models.CharField(
        max_length=128,
        blank=True,
        default="",
        help_text="Client-declared content hash (empty disables dedup)",
    )

    # =========================================================================
    # Progress Tracking
    # =========================================================================

    total_size = models.BigIntegerField(
        help_text="Declared total file size in bytes",
    )
    uploaded_offset = models.BigIntegerField(
        default=0,
        help_text="Highest byte offset written so far",
    )
    staging_path = models.CharField(
        max_length=500,
        unique=True,
        help_text="Staging file holding the partially uploaded bytes",
    )

    # =========================================================================
    # Status
    # =========================================================================

    status = FSMField(
        default=Status.ACTIVE,
        choices=Status.choices,
        help_text="Current session status (managed by FSM)",
    )

    class Meta:
        db_table = "media_upload_session"
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(uploaded_offset__gte=0),
                name="upload_session_offset_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(total_size__gte=0),
                name="upload_session_size_non_negative",
            ),
        ]
        indexes = [
            models.Index(
                fields=["owner", "status"],
                name="idx_upload_session_owner_stat",
            ),
            models.Index(
                fields=["status", "updated_at"],
                name="idx_upload_session_stale",
            ),
        ]

    def __str__(self) -> str:
        return f"UploadSession({self.filename}, {self.status})"

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE

    @property
    def is_completed(self) -> bool:
        return self.status == self.Status.COMPLETED

    @property
    def is_aborted(self) -> bool:
        return self.status == self.Status.ABORTED

    @property
    def progress_percent(self) -> float:
        """Upload progress as a percentage (0-100), based on the high-water mark."""
        if self.total_size <= 0:
            return 100.0 if self.is_completed else 0.0
        return min(100.0, (self.uploaded_offset / self.total_size) * 100)

    # =========================================================================
    # State Transitions (django-fsm)
    # =========================================================================

    @transition(field=status, source=Status.ACTIVE, target=Status.COMPLETED)
    def complete(self, asset) -> None:
        """
        Seal the session against an asset.

        Transition: ACTIVE -> COMPLETED

        The asset is either the one created from this session's bytes or
        an existing asset with the same content hash.
        """
        self.asset = asset

    @transition(field=status, source=Status.ACTIVE, target=Status.ABORTED)
    def abort(self) -> None:
        """
        Abandon the session.

        Transition: ACTIVE -> ABORTED

        The caller releases the staging file.
        """
