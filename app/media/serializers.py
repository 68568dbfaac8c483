"""
Serializers for resumable chunked uploads.

Provides:
- UploadInitiateSerializer: Validate an initiate request body
- ChunkOffsetSerializer: Validate the ?offset= query parameter of a chunk
- UploadSessionSerializer: Session status for resuming clients
- InitiateResponseSerializer: Initiate response ("created" or "exists")
- ChunkWriteResponseSerializer: Chunk write response
- CompletionResponseSerializer: Completion response
- ErrorResponseSerializer: Error body shared by all upload endpoints
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiExample, extend_schema_serializer
from rest_framework import serializers

from media.models import UploadSession
from media.services.chunked_upload.base import MAX_TOTAL_SIZE


@extend_schema_serializer(
    examples=[
        OpenApiExample(
            "Photo with content hash",
            value={
                "filename": "IMG_0042.HEIC",
                "size": 3145728,
                "mime": "image/heic",
                "taken_at": "2024-06-01T14:03:22Z",
                "hash": "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08",
            },
            request_only=True,
        ),
    ]
)
class UploadInitiateSerializer(serializers.Serializer):
    """
    Serializer for initiating an upload session.

    Only shape is validated here; the session manager owns the domain
    rules (non-blank filename, non-negative size).
    """

    filename = serializers.CharField(
        max_length=255,
        trim_whitespace=False,
        allow_blank=True,
        help_text="Original filename",
    )
    size = serializers.IntegerField(
        max_value=MAX_TOTAL_SIZE,
        help_text="Total file size in bytes",
    )
    mime = serializers.CharField(
        max_length=100,
        required=False,
        allow_blank=True,
        default="",
        help_text="MIME type of the file",
    )
    taken_at = serializers.DateTimeField(
        required=False,
        allow_null=True,
        default=None,
        help_text="Capture timestamp",
    )
    hash = serializers.CharField(
        max_length=128,
        required=False,
        allow_blank=True,
        default="",
        help_text="Content hash used to skip uploads of already stored files",
    )


class ChunkOffsetSerializer(serializers.Serializer):
    """Serializer for the offset query parameter of a chunk write."""

    offset = serializers.IntegerField(help_text="Byte offset of the chunk")


@extend_schema_serializer(
    examples=[
        OpenApiExample(
            "Session in progress",
            value={
                "session_id": "e5f6a7b8-c9d0-1234-ef01-234567890abc",
                "filename": "IMG_0042.HEIC",
                "size": 3145728,
                "mime": "image/heic",
                "hash": "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08",
                "offset": 1048576,
                "progress_percent": 33.3,
                "status": "active",
                "asset_id": None,
                "created_at": "2024-06-01T14:05:00Z",
                "updated_at": "2024-06-01T14:06:10Z",
            },
            response_only=True,
        ),
    ]
)
class UploadSessionSerializer(serializers.ModelSerializer):
    """
    Serializer for upload session details.

    offset is the highest byte written so far. With out-of-order uploads
    there may be gaps below it; clients track their own ranges.
    """

    session_id = serializers.UUIDField(source="id", read_only=True)
    size = serializers.IntegerField(source="total_size", read_only=True)
    mime = serializers.CharField(source="mime_type", read_only=True)
    hash = serializers.CharField(source="content_hash", read_only=True)
    offset = serializers.IntegerField(source="uploaded_offset", read_only=True)
    progress_percent = serializers.FloatField(read_only=True)
    asset_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = UploadSession
        fields = [
            "session_id",
            "filename",
            "size",
            "mime",
            "hash",
            "offset",
            "progress_percent",
            "status",
            "asset_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


@extend_schema_serializer(
    examples=[
        OpenApiExample(
            "Session created",
            value={"session_id": "e5f6a7b8-c9d0-1234-ef01-234567890abc", "offset": 0},
            response_only=True,
        ),
        OpenApiExample(
            "Already stored",
            value={"status": "exists", "asset_id": "0b1c2d3e-4f50-6172-8394-a5b6c7d8e9f0"},
            response_only=True,
        ),
    ]
)
class InitiateResponseSerializer(serializers.Serializer):
    session_id = serializers.UUIDField(required=False)
    offset = serializers.IntegerField(required=False)
    status = serializers.CharField(required=False)
    asset_id = serializers.UUIDField(required=False)


class ChunkWriteResponseSerializer(serializers.Serializer):
    received = serializers.IntegerField(help_text="Bytes accepted from this chunk")
    offset = serializers.IntegerField(help_text="Highest byte written so far")


class CompletionResponseSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=["completed", "exists"])
    asset_id = serializers.UUIDField()


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()
    error_code = serializers.CharField()
    details = serializers.DictField(required=False)
