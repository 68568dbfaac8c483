"""
Tests for StagingArea.

The staging area is plain filesystem I/O, so these tests run without a
database against tmp_path.
"""

from __future__ import annotations

import hashlib
import uuid
from pathlib import Path

import pytest

from media.exceptions import StorageUnavailableError
from media.services.chunked_upload.staging import StagingArea


@pytest.fixture
def area(tmp_path: Path) -> StagingArea:
    return StagingArea(base_dir=str(tmp_path / "scratch"), prefix="upload_")


class TestAllocate:
    """Tests for StagingArea.allocate()."""

    def test_creates_empty_file_named_after_session(self, area: StagingArea):
        session_id = uuid.uuid4()

        path = area.allocate(session_id)

        assert path == str(area.base_dir / f"upload_{session_id}")
        assert Path(path).is_file()
        assert Path(path).stat().st_size == 0

    def test_never_reuses_a_path(self, area: StagingArea):
        """Allocation is exclusive; an existing file is an error, not reused."""
        session_id = uuid.uuid4()
        area.allocate(session_id)

        with pytest.raises(StorageUnavailableError):
            area.allocate(session_id)

    def test_reads_directory_from_settings(self, settings, tmp_path: Path):
        settings.UPLOAD_STAGING_DIR = str(tmp_path / "from_settings")

        path = StagingArea().allocate(uuid.uuid4())

        assert path.startswith(str(tmp_path / "from_settings"))


class TestWriteAt:
    """Tests for StagingArea.write_at()."""

    def test_writes_at_absolute_offset(self, area: StagingArea):
        path = area.allocate(uuid.uuid4())

        area.write_at(path, 4, b"tail")
        area.write_at(path, 0, b"head")

        assert Path(path).read_bytes() == b"headtail"

    def test_gap_reads_back_as_zeros(self, area: StagingArea):
        path = area.allocate(uuid.uuid4())

        area.write_at(path, 3, b"x")

        assert Path(path).read_bytes() == b"\x00\x00\x00x"

    def test_overlapping_write_is_last_writer_wins(self, area: StagingArea):
        path = area.allocate(uuid.uuid4())
        area.write_at(path, 0, b"aaaa")

        area.write_at(path, 2, b"bb")

        assert Path(path).read_bytes() == b"aabb"

    def test_missing_file_raises_storage_unavailable(self, area: StagingArea, tmp_path: Path):
        with pytest.raises(StorageUnavailableError) as exc_info:
            area.write_at(str(tmp_path / "missing"), 0, b"data")

        assert exc_info.value.error_code == "STORAGE_UNAVAILABLE"


class TestSizeDigestRelease:
    """Tests for size(), digest(), release() and list_files()."""

    def test_size_of_missing_file_is_none(self, area: StagingArea, tmp_path: Path):
        assert area.size(str(tmp_path / "missing")) is None

    def test_size_is_highest_written_byte(self, area: StagingArea):
        path = area.allocate(uuid.uuid4())
        area.write_at(path, 10, b"abc")

        assert area.size(path) == 13

    def test_digest_matches_hashlib(self, area: StagingArea):
        path = area.allocate(uuid.uuid4())
        area.write_at(path, 0, b"hello world")

        assert area.digest(path, "sha256") == hashlib.sha256(b"hello world").hexdigest()

    def test_release_removes_file_and_is_idempotent(self, area: StagingArea):
        path = area.allocate(uuid.uuid4())

        area.release(path)
        area.release(path)

        assert not Path(path).exists()

    def test_list_files_only_returns_prefixed_files(self, area: StagingArea):
        path = area.allocate(uuid.uuid4())
        (area.base_dir / "unrelated.txt").write_bytes(b"x")

        assert area.list_files() == [Path(path)]

    def test_list_files_without_directory(self, tmp_path: Path):
        assert StagingArea(base_dir=str(tmp_path / "nope")).list_files() == []
