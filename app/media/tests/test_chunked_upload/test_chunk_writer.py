"""
Tests for ChunkWriter.

Covers random-offset writes, the monotonic high-water mark, retries,
range validation, state checks and the per-session lock.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from media.models import UploadSession
from media.services.chunked_upload import ChunkWriter, UploadSessionManager

pytestmark = pytest.mark.django_db


def read_staged(session: UploadSession) -> bytes:
    return Path(session.staging_path).read_bytes()


class TestWriteChunk:
    """Tests for successful chunk writes."""

    def test_first_chunk_advances_offset(self, user, open_session, payload):
        session = open_session(total_size=len(payload))

        result = ChunkWriter().write_chunk(user, session.id, offset=0, data=payload[:1000])

        assert result.success
        assert result.data.received == 1000
        assert result.data.offset == 1000
        session.refresh_from_db()
        assert session.uploaded_offset == 1000
        assert read_staged(session) == payload[:1000]

    def test_out_of_order_chunks_land_at_their_offsets(self, user, open_session, payload):
        session = open_session(total_size=len(payload))
        writer = ChunkWriter()

        writer.write_chunk(user, session.id, offset=2000, data=payload[2000:])
        writer.write_chunk(user, session.id, offset=0, data=payload[:1000])
        result = writer.write_chunk(user, session.id, offset=1000, data=payload[1000:2000])

        assert result.data.offset == 3000
        assert read_staged(session) == payload

    def test_offset_never_moves_backwards(self, user, open_session, payload):
        """A chunk below the high-water mark leaves uploaded_offset unchanged."""
        session = open_session(total_size=len(payload))
        writer = ChunkWriter()
        writer.write_chunk(user, session.id, offset=2000, data=payload[2000:])

        result = writer.write_chunk(user, session.id, offset=0, data=payload[:500])

        assert result.data.received == 500
        assert result.data.offset == 3000
        session.refresh_from_db()
        assert session.uploaded_offset == 3000

    def test_retried_chunk_is_idempotent(self, user, open_session, payload):
        session = open_session(total_size=len(payload))
        writer = ChunkWriter()

        first = writer.write_chunk(user, session.id, offset=0, data=payload[:1500])
        second = writer.write_chunk(user, session.id, offset=0, data=payload[:1500])

        assert first.data == second.data
        assert read_staged(session) == payload[:1500]

    def test_overlapping_chunk_overwrites_bytes(self, user, open_session):
        session = open_session(total_size=10)
        writer = ChunkWriter()
        writer.write_chunk(user, session.id, offset=0, data=b"aaaaaa")

        result = writer.write_chunk(user, session.id, offset=4, data=b"bbbbbb")

        assert result.data.offset == 10
        assert read_staged(session) == b"aaaabbbbbb"

    def test_chunk_ending_exactly_at_total_size(self, user, open_session):
        session = open_session(total_size=4)

        result = ChunkWriter().write_chunk(user, session.id, offset=0, data=b"abcd")

        assert result.success
        assert result.data.offset == 4

    def test_write_takes_session_lock(self, user, open_session, redis_client):
        session = open_session(total_size=4)
        redis_client.set.reset_mock()

        ChunkWriter().write_chunk(user, session.id, offset=0, data=b"abcd")

        args, kwargs = redis_client.set.call_args
        assert args[0] == f"lock:upload_session:{session.id}"
        assert kwargs == {"nx": True, "ex": 120}
        redis_client.eval.assert_called()

    def test_empty_chunk_reports_current_offset(self, user, open_session):
        session = open_session(total_size=10)
        writer = ChunkWriter()
        writer.write_chunk(user, session.id, offset=0, data=b"abcde")

        result = writer.write_chunk(user, session.id, offset=3, data=b"")

        assert result.success
        assert result.data.received == 0
        assert result.data.offset == 5
        assert read_staged(session) == b"abcde"

    def test_empty_chunk_on_zero_size_upload_is_accepted(self, user, open_session):
        session = open_session(total_size=0)

        result = ChunkWriter().write_chunk(user, session.id, offset=0, data=b"")

        assert result.success
        assert result.data.offset == 0

    def test_non_canonical_session_id_takes_the_same_lock(self, user, open_session, redis_client):
        session = open_session(total_size=4)
        redis_client.set.reset_mock()

        result = ChunkWriter().write_chunk(
            user, str(session.id).upper().replace("-", ""), offset=0, data=b"abcd"
        )

        assert result.success
        assert redis_client.set.call_args.args[0] == f"lock:upload_session:{session.id}"


class TestWriteChunkErrors:
    """Tests for rejected chunk writes."""

    def test_chunk_past_total_size_is_invalid_range(self, user, open_session):
        session = open_session(total_size=10)

        result = ChunkWriter().write_chunk(user, session.id, offset=8, data=b"abc")

        assert not result.success
        assert result.error_code == "INVALID_RANGE"
        session.refresh_from_db()
        assert session.uploaded_offset == 0
        assert read_staged(session) == b""

    def test_negative_offset_is_invalid_range(self, user, open_session):
        session = open_session(total_size=10)

        result = ChunkWriter().write_chunk(user, session.id, offset=-1, data=b"a")

        assert result.error_code == "INVALID_RANGE"

    def test_empty_chunk_past_total_size_is_invalid_range(self, user, open_session):
        session = open_session(total_size=10)

        result = ChunkWriter().write_chunk(user, session.id, offset=11, data=b"")

        assert result.error_code == "INVALID_RANGE"

    def test_any_chunk_on_zero_size_upload_is_rejected(self, user, open_session):
        session = open_session(total_size=0)

        result = ChunkWriter().write_chunk(user, session.id, offset=0, data=b"x")

        assert result.error_code == "INVALID_RANGE"

    def test_aborted_session_rejects_chunks(self, user, open_session):
        session = open_session(total_size=10)
        UploadSessionManager().abort(user, session.id)

        result = ChunkWriter().write_chunk(user, session.id, offset=0, data=b"abc")

        assert not result.success
        assert result.error_code == "UPLOAD_SESSION_NOT_ACTIVE"

    def test_other_owner_gets_not_found(self, other_user, open_session):
        session = open_session(total_size=10)

        result = ChunkWriter().write_chunk(other_user, session.id, offset=0, data=b"abc")

        assert result.error_code == "NOT_FOUND"
        assert read_staged(session) == b""

    def test_unknown_session_is_not_found(self, user):
        result = ChunkWriter().write_chunk(
            user, "2b1c7f40-0000-4000-8000-000000000000", offset=0, data=b"abc"
        )

        assert result.error_code == "NOT_FOUND"

    def test_missing_staging_file_is_storage_unavailable(self, user, open_session):
        session = open_session(total_size=10)
        os.remove(session.staging_path)

        result = ChunkWriter().write_chunk(user, session.id, offset=0, data=b"abc")

        assert not result.success
        assert result.error_code == "STORAGE_UNAVAILABLE"
        session.refresh_from_db()
        assert session.uploaded_offset == 0

    def test_busy_session_reports_lock_unavailable(self, user, open_session, redis_client):
        session = open_session(total_size=10)
        redis_client.set.return_value = False

        result = ChunkWriter().write_chunk(user, session.id, offset=0, data=b"abc")

        assert not result.success
        assert result.error_code == "LOCK_UNAVAILABLE"
        assert read_staged(session) == b""

    def test_redis_outage_reports_lock_service_unavailable(self, user, open_session, redis_client):
        session = open_session(total_size=10)
        redis_client.set.side_effect = RedisConnectionError("down")

        result = ChunkWriter().write_chunk(user, session.id, offset=0, data=b"abc")

        assert not result.success
        assert result.error_code == "LOCK_SERVICE_UNAVAILABLE"
        assert result.retryable is True
        session.refresh_from_db()
        assert session.uploaded_offset == 0
        assert read_staged(session) == b""

    def test_failed_lock_release_keeps_the_written_chunk(self, user, open_session, redis_client):
        session = open_session(total_size=10)
        redis_client.eval.side_effect = RedisConnectionError("down")

        result = ChunkWriter().write_chunk(user, session.id, offset=0, data=b"abc")

        assert result.success
        assert result.data.offset == 3
        assert read_staged(session) == b"abc"

    def test_malformed_session_id_is_not_found(self, user, redis_client):
        redis_client.set.reset_mock()

        result = ChunkWriter().write_chunk(user, "not-a-session", offset=0, data=b"abc")

        assert result.error_code == "NOT_FOUND"
        redis_client.set.assert_not_called()
