"""
Test fixtures for media app.

Provides fixtures for:
- Upload settings pointing staging and durable storage at tmp_path
- A mocked Redis connection so session locks never need a server
- Users and authenticated API clients
- Payloads and helpers to open upload sessions
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from media.models import UploadSession
from media.services.chunked_upload import StagingArea, UploadSessionManager

if TYPE_CHECKING:
    from authentication.models import User


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def upload_settings(settings, tmp_path: Path):
    """Isolate staging and durable storage per test and keep retries instant."""
    settings.UPLOAD_STAGING_DIR = str(tmp_path / "staging")
    settings.MEDIA_ROOT = str(tmp_path / "media")
    settings.UPLOAD_ASSET_CREATE_BACKOFF = 0
    settings.UPLOAD_VERIFY_CONTENT_HASH = False
    settings.UPLOAD_SESSION_LOCK_TIMEOUT = 0
    return settings


@pytest.fixture(autouse=True)
def redis_client(mock_redis):
    """Every media test runs against the mocked lock connection."""
    return mock_redis


@pytest.fixture
def staging_dir(upload_settings) -> Path:
    return Path(upload_settings.UPLOAD_STAGING_DIR)


@pytest.fixture
def media_root(upload_settings) -> Path:
    return Path(upload_settings.MEDIA_ROOT)


@pytest.fixture
def staging() -> StagingArea:
    return StagingArea()


# =============================================================================
# User & Client Fixtures
# =============================================================================


@pytest.fixture
def user(db) -> "User":
    return UserFactory()


@pytest.fixture
def other_user(db) -> "User":
    return UserFactory()


@pytest.fixture
def api_client() -> APIClient:
    """Return unauthenticated API client."""
    return APIClient()


def _client_for(user: "User") -> APIClient:
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


@pytest.fixture
def authenticated_client(user: "User") -> APIClient:
    """Return API client authenticated with JWT token."""
    return _client_for(user)


@pytest.fixture
def other_client(other_user: "User") -> APIClient:
    """Return API client authenticated as a second user."""
    return _client_for(other_user)


# =============================================================================
# Payload Fixtures
# =============================================================================


@pytest.fixture
def payload() -> bytes:
    """3000 bytes of non-repeating-per-chunk data."""
    return bytes(i % 251 for i in range(3000))


@pytest.fixture
def payload_hash(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


@pytest.fixture
def open_session(user: "User"):
    """
    Open a real upload session (row and staging file).

    Usage:
        session = open_session(total_size=len(payload))
        session = open_session(owner=other_user, content_hash="abc")
    """

    def _open(
        owner: "User | None" = None,
        total_size: int = 3000,
        filename: str = "IMG_0001.jpg",
        content_hash: str = "",
        mime_type: str = "image/jpeg",
    ) -> UploadSession:
        result = UploadSessionManager().initiate(
            owner=owner or user,
            filename=filename,
            total_size=total_size,
            mime_type=mime_type,
            content_hash=content_hash,
        )
        assert result.success, result.error
        assert result.data.created
        return UploadSession.objects.get(pk=result.data.session_id)

    return _open
