"""Abstract model mixins. List them before BaseModel."""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Client-generated UUID primary key.

    The id exists before the INSERT, so a staging file can be named after
    its session and a storage key can start with its owner's id.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True
