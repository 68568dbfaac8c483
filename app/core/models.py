"""
Abstract base for persisted domain rows.

    class UploadSession(UUIDPrimaryKeyMixin, BaseModel):
        ...

Mixins from core.model_mixins go before BaseModel in the bases.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Adds created_at and updated_at.

    updated_at doubles as the activity clock for upload sessions: the reaper
    compares it against the stale threshold. It only moves on save(), so
    saves with update_fields must include it.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self.pk})"
