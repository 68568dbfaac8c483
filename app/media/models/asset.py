"""
Asset model: the finalized, immutable record of a fully uploaded file.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class Asset(UUIDPrimaryKeyMixin, BaseModel):
    """
    Fully uploaded file promoted to durable storage.

    Assets are deduplicated per owner by content hash: at most one Asset
    exists for a given (owner, content_hash) when the hash is non-empty.
    The database constraint is the final arbiter when two uploads of the
    same content complete at the same time.

    Attributes:
        owner: User who owns the asset
        filename: Filename declared at upload time
        size: Size in bytes (equal to the session's total_size)
        mime_type: MIME type declared at upload time
        content_hash: Content hash declared at upload time (may be empty)
        taken_at: Capture timestamp reported by the client
        storage_key: Key of the object in durable storage
            (``<owner_id>/<uuid>/original``)
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="assets",
        help_text="User who owns this asset",
    )
    filename = models.CharField(
        max_length=255,
        help_text="Original filename",
    )
    size = models.BigIntegerField(
        help_text="File size in bytes",
    )
    mime_type = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="MIME type declared at upload",
    )
    content_hash = models.CharField(
        max_length=128,
        blank=True,
        default="",
        help_text="Content hash used for per-owner dedup",
    )
    taken_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Capture timestamp reported by the client",
    )
    storage_key = models.CharField(
        max_length=500,
        unique=True,
        help_text="Object key in durable storage",
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["owner", "content_hash"],
                condition=~models.Q(content_hash=""),
                name="unique_asset_owner_content_hash",
            ),
        ]

    def __str__(self) -> str:
        return f"Asset({self.filename}, {self.size} bytes)"
