"""
End-to-end upload journeys through the HTTP API.

Each test drives a client the way a mobile app would: initiate, push
chunks (possibly out of order, possibly retried), check progress, then
complete. Durable storage is the filesystem under a per-test MEDIA_ROOT.
"""

from __future__ import annotations

import hashlib

import pytest
from django.core.files.storage import default_storage
from django.urls import reverse
from rest_framework import status

from media.models import Asset, UploadSession

pytestmark = pytest.mark.django_db

CHUNK = 1000


def initiate(client, payload: bytes, content_hash: str = "", filename: str = "IMG_0001.jpg"):
    return client.post(
        reverse("media:upload-session-create"),
        {
            "filename": filename,
            "size": len(payload),
            "mime": "image/jpeg",
            "hash": content_hash,
        },
        format="json",
    )


def put_chunk(client, session_id, offset: int, data: bytes):
    url = reverse("media:upload-chunk", kwargs={"session_id": session_id})
    return client.put(f"{url}?offset={offset}", data=data, content_type="application/octet-stream")


def status_of(client, session_id):
    return client.get(reverse("media:upload-session-detail", kwargs={"session_id": session_id}))


def complete(client, session_id):
    return client.post(reverse("media:upload-complete", kwargs={"session_id": session_id}))


def read_asset(asset_id) -> bytes:
    asset = Asset.objects.get(pk=asset_id)
    with default_storage.open(asset.storage_key) as stored:
        return stored.read()


class TestUploadJourney:
    def test_sequential_upload(self, authenticated_client, payload, payload_hash):
        created = initiate(authenticated_client, payload, payload_hash)
        assert created.status_code == status.HTTP_201_CREATED
        session_id = created.data["session_id"]

        for offset in range(0, len(payload), CHUNK):
            response = put_chunk(authenticated_client, session_id, offset, payload[offset : offset + CHUNK])
            assert response.status_code == status.HTTP_200_OK
            assert response.data["offset"] == offset + CHUNK

        progress = status_of(authenticated_client, session_id)
        assert progress.data["offset"] == len(payload)
        assert progress.data["progress_percent"] == 100.0

        done = complete(authenticated_client, session_id)
        assert done.status_code == status.HTTP_200_OK
        assert done.data["status"] == "completed"
        assert read_asset(done.data["asset_id"]) == payload

        final = status_of(authenticated_client, session_id)
        assert final.data["status"] == "completed"
        assert final.data["asset_id"] == done.data["asset_id"]

    def test_out_of_order_upload_with_retry(self, authenticated_client, payload):
        session_id = initiate(authenticated_client, payload).data["session_id"]

        put_chunk(authenticated_client, session_id, 2000, payload[2000:])
        put_chunk(authenticated_client, session_id, 0, payload[:1000])
        # Client lost the response and resends the same chunk
        put_chunk(authenticated_client, session_id, 0, payload[:1000])

        early = complete(authenticated_client, session_id)
        assert early.status_code == status.HTTP_409_CONFLICT
        assert early.data["error_code"] == "UPLOAD_INCOMPLETE"

        put_chunk(authenticated_client, session_id, 1000, payload[1000:2000])
        done = complete(authenticated_client, session_id)

        assert done.status_code == status.HTTP_200_OK
        assert read_asset(done.data["asset_id"]) == payload

    def test_same_content_uploaded_twice(self, authenticated_client, payload, payload_hash):
        """Two sessions racing with the same hash end with one asset."""
        first = initiate(authenticated_client, payload, payload_hash).data["session_id"]
        second = initiate(authenticated_client, payload, payload_hash).data["session_id"]
        for session_id in (first, second):
            put_chunk(authenticated_client, session_id, 0, payload)

        one = complete(authenticated_client, first)
        two = complete(authenticated_client, second)

        assert one.data["status"] == "completed"
        assert two.data["status"] == "exists"
        assert two.data["asset_id"] == one.data["asset_id"]
        assert Asset.objects.count() == 1

        # Later uploads of the same content skip the transfer entirely
        again = initiate(authenticated_client, payload, payload_hash)
        assert again.status_code == status.HTTP_200_OK
        assert again.data == {"status": "exists", "asset_id": one.data["asset_id"]}

    def test_same_content_for_different_users(self, authenticated_client, other_client, payload):
        content_hash = hashlib.sha256(payload).hexdigest()
        results = []
        for client in (authenticated_client, other_client):
            session_id = initiate(client, payload, content_hash).data["session_id"]
            put_chunk(client, session_id, 0, payload)
            results.append(complete(client, session_id).data)

        assert [r["status"] for r in results] == ["completed", "completed"]
        assert results[0]["asset_id"] != results[1]["asset_id"]

    def test_abandoned_upload(self, authenticated_client, payload):
        session_id = initiate(authenticated_client, payload).data["session_id"]
        put_chunk(authenticated_client, session_id, 0, payload[:CHUNK])

        aborted = authenticated_client.delete(
            reverse("media:upload-session-detail", kwargs={"session_id": session_id})
        )
        rejected = put_chunk(authenticated_client, session_id, CHUNK, payload[CHUNK : 2 * CHUNK])

        assert aborted.status_code == status.HTTP_204_NO_CONTENT
        assert rejected.status_code == status.HTTP_409_CONFLICT
        assert UploadSession.objects.get(pk=session_id).status == UploadSession.Status.ABORTED
        assert not Asset.objects.exists()
