"""
Tests for upload serializers.

Serializers only validate request shape; domain rules are enforced by the
services and covered in the service tests.
"""

from __future__ import annotations

import pytest

from media.serializers import (
    ChunkOffsetSerializer,
    UploadInitiateSerializer,
    UploadSessionSerializer,
)
from media.tests.factories import UploadSessionFactory


class TestUploadInitiateSerializer:
    """Tests for UploadInitiateSerializer."""

    def test_optional_fields_default(self):
        """mime, taken_at and hash are optional."""
        serializer = UploadInitiateSerializer(data={"filename": "a.jpg", "size": 10})

        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["mime"] == ""
        assert serializer.validated_data["taken_at"] is None
        assert serializer.validated_data["hash"] == ""

    def test_parses_taken_at(self):
        serializer = UploadInitiateSerializer(
            data={"filename": "a.jpg", "size": 10, "taken_at": "2024-06-01T14:03:22Z"}
        )

        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["taken_at"].year == 2024

    def test_requires_filename_and_size(self):
        serializer = UploadInitiateSerializer(data={})

        assert not serializer.is_valid()
        assert set(serializer.errors) == {"filename", "size"}

    def test_rejects_non_integer_size(self):
        serializer = UploadInitiateSerializer(data={"filename": "a.jpg", "size": "big"})

        assert not serializer.is_valid()
        assert "size" in serializer.errors


class TestChunkOffsetSerializer:
    """Tests for ChunkOffsetSerializer."""

    def test_parses_offset(self):
        serializer = ChunkOffsetSerializer(data={"offset": "4096"})

        assert serializer.is_valid()
        assert serializer.validated_data["offset"] == 4096

    def test_offset_required(self):
        serializer = ChunkOffsetSerializer(data={})

        assert not serializer.is_valid()


@pytest.mark.django_db
class TestUploadSessionSerializer:
    """Tests for UploadSessionSerializer output."""

    def test_exposes_resume_fields(self, user):
        session = UploadSessionFactory(
            owner=user, total_size=2000, uploaded_offset=1000, content_hash="abc"
        )

        data = UploadSessionSerializer(session).data

        assert data["session_id"] == str(session.id)
        assert data["size"] == 2000
        assert data["offset"] == 1000
        assert data["hash"] == "abc"
        assert data["status"] == "active"
        assert data["asset_id"] is None
        assert data["progress_percent"] == 50.0
        assert "staging_path" not in data
