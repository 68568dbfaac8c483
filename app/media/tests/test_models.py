"""
Tests for media models.

Covers the database-level guarantees the upload flow relies on:
- uploaded_offset can never go negative
- staging paths are unique across sessions
- at most one asset per (owner, content_hash), empty hashes excluded
"""

from __future__ import annotations

import pytest
from django.db import IntegrityError, transaction
from django_fsm import TransitionNotAllowed

from media.models import Asset, UploadSession
from media.tests.factories import AssetFactory, UploadSessionFactory

pytestmark = pytest.mark.django_db


class TestUploadSessionModel:
    """Tests for UploadSession fields and constraints."""

    def test_defaults_to_active_with_zero_offset(self, user):
        """A new session starts active with nothing uploaded."""
        session = UploadSessionFactory(owner=user)

        assert session.status == UploadSession.Status.ACTIVE
        assert session.uploaded_offset == 0
        assert session.asset is None
        assert session.is_active

    def test_progress_percent_uses_high_water_mark(self, user):
        """progress_percent reflects uploaded_offset over total_size."""
        session = UploadSessionFactory(owner=user, total_size=2000, uploaded_offset=500)

        assert session.progress_percent == 25.0

    def test_progress_percent_for_empty_file(self, user):
        """Zero-byte uploads report 0% until completed."""
        session = UploadSessionFactory(owner=user, total_size=0)

        assert session.progress_percent == 0.0

    def test_negative_offset_rejected_by_database(self, user):
        """The check constraint keeps uploaded_offset >= 0."""
        session = UploadSessionFactory(owner=user)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                UploadSession.objects.filter(pk=session.pk).update(uploaded_offset=-1)

    def test_staging_path_is_unique(self, user):
        """Two sessions can never share a staging file."""
        UploadSessionFactory(owner=user, staging_path="/tmp/staging/upload_same")

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                UploadSessionFactory(owner=user, staging_path="/tmp/staging/upload_same")

    def test_str(self, user):
        session = UploadSessionFactory(owner=user, filename="beach.jpg")

        assert str(session) == "UploadSession(beach.jpg, active)"


class TestUploadSessionTransitions:
    """Tests for the django-fsm lifecycle of UploadSession."""

    def test_complete_sets_asset(self, user):
        session = UploadSessionFactory(owner=user)
        asset = AssetFactory(owner=user)

        session.complete(asset)

        assert session.is_completed
        assert session.asset == asset

    def test_abort(self, user):
        session = UploadSessionFactory(owner=user)

        session.abort()

        assert session.is_aborted

    @pytest.mark.parametrize(
        "status", [UploadSession.Status.COMPLETED, UploadSession.Status.ABORTED]
    )
    def test_terminal_states_have_no_transitions(self, user, status):
        """Neither completed nor aborted sessions can move again."""
        session = UploadSessionFactory(owner=user, status=status)

        with pytest.raises(TransitionNotAllowed):
            session.abort()
        with pytest.raises(TransitionNotAllowed):
            session.complete(AssetFactory(owner=user))


class TestAssetModel:
    """Tests for Asset dedup constraint."""

    def test_same_hash_same_owner_rejected(self, user):
        """The database refuses a second asset with the owner's hash."""
        AssetFactory(owner=user, content_hash="a" * 64)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                AssetFactory(owner=user, content_hash="a" * 64)

    def test_same_hash_different_owners_allowed(self, user, other_user):
        """Dedup is per owner."""
        AssetFactory(owner=user, content_hash="b" * 64)
        AssetFactory(owner=other_user, content_hash="b" * 64)

        assert Asset.objects.filter(content_hash="b" * 64).count() == 2

    def test_empty_hashes_never_collide(self, user):
        """Assets without a declared hash are not deduplicated."""
        AssetFactory(owner=user, content_hash="")
        AssetFactory(owner=user, content_hash="")

        assert Asset.objects.filter(owner=user, content_hash="").count() == 2
