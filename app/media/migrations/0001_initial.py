import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Asset",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("filename", models.CharField(help_text="Original filename", max_length=255)),
                ("size", models.BigIntegerField(help_text="File size in bytes")),
                (
                    "mime_type",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="MIME type declared at upload",
                        max_length=100,
                    ),
                ),
                (
                    "content_hash",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Content hash used for per-owner dedup",
                        max_length=128,
                    ),
                ),
                (
                    "taken_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Capture timestamp reported by the client",
                        null=True,
                    ),
                ),
                (
                    "storage_key",
                    models.CharField(
                        help_text="Object key in durable storage",
                        max_length=500,
                        unique=True,
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        help_text="User who owns this asset",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="assets",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("content_hash", ""), _negated=True),
                        fields=("owner", "content_hash"),
                        name="unique_asset_owner_content_hash",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="UploadSession",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "filename",
                    models.CharField(
                        help_text="Original filename of the file being uploaded",
                        max_length=255,
                    ),
                ),
                (
                    "mime_type",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Client-declared MIME type",
                        max_length=100,
                    ),
                ),
                (
                    "taken_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Capture timestamp reported by the client",
                        null=True,
                    ),
                ),
                (
                    "content_hash",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Client-declared content hash (empty disables dedup)",
                        max_length=128,
                    ),
                ),
                (
                    "total_size",
                    models.BigIntegerField(help_text="Declared total file size in bytes"),
                ),
                (
                    "uploaded_offset",
                    models.BigIntegerField(
                        default=0,
                        help_text="Highest byte offset written so far",
                    ),
                ),
                (
                    "staging_path",
                    models.CharField(
                        help_text="Staging file holding the partially uploaded bytes",
                        max_length=500,
                        unique=True,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("active", "Active"),
                            ("completed", "Completed"),
                            ("aborted", "Aborted"),
                        ],
                        default="active",
                        help_text="Current session status (managed by FSM)",
                        max_length=50,
                    ),
                ),
                (
                    "asset",
                    models.ForeignKey(
                        blank=True,
                        help_text="Asset produced by (or deduplicated into) this session",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="upload_sessions",
                        to="media.asset",
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        help_text="User who initiated the upload",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="upload_sessions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "media_upload_session",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["owner", "status"],
                        name="idx_upload_session_owner_stat",
                    ),
                    models.Index(
                        fields=["status", "updated_at"],
                        name="idx_upload_session_stale",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("uploaded_offset__gte", 0)),
                        name="upload_session_offset_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_size__gte", 0)),
                        name="upload_session_size_non_negative",
                    ),
                ],
            },
        ),
    ]
