"""
Temp staging area for partially uploaded bytes.

Each upload session owns exactly one staging file, named after the session
id, in UPLOAD_STAGING_DIR. Chunks are written in place at their byte offset
(no part files, no reassembly) and the file is streamed to durable storage
on completion.

All filesystem failures surface as StorageUnavailableError.
"""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from django.conf import settings

from media.exceptions import StorageUnavailableError

if TYPE_CHECKING:
    from typing import BinaryIO
    from uuid import UUID

logger = logging.getLogger(__name__)

# Read size used when hashing staged files
HASH_READ_SIZE = 1024 * 1024


class StagingArea:
    """
    Scratch storage holding one file per active upload session.

    Args:
        base_dir: Directory for staging files. Defaults to UPLOAD_STAGING_DIR.
        prefix: Filename prefix. Defaults to UPLOAD_STAGING_PREFIX.
    """

    def __init__(self, base_dir: str | None = None, prefix: str | None = None) -> None:
        self._base_dir = base_dir
        self._prefix = prefix

    @property
    def base_dir(self) -> Path:
        return Path(self._base_dir or settings.UPLOAD_STAGING_DIR)

    @property
    def prefix(self) -> str:
        if self._prefix is None:
            return settings.UPLOAD_STAGING_PREFIX
        return self._prefix

    def path_for(self, session_id: UUID | str) -> Path:
        """Return the staging path a session id maps to."""
        return self.base_dir / f"{self.prefix}{session_id}"

    def allocate(self, session_id: UUID | str) -> str:
        """
        Create an empty staging file for a new session.

        The file is created exclusively, so a path can never be handed to
        two sessions.

        Returns:
            The staging path as a string, suitable for UploadSession.staging_path

        Raises:
            StorageUnavailableError: If the directory or file can't be created
        """
        path = self.path_for(session_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "xb"):
                pass
        except OSError as exc:
            raise StorageUnavailableError(
                "Could not allocate staging file",
                details={"session_id": str(session_id)},
            ) from exc
        return str(path)

    def write_at(self, path: str, offset: int, data: bytes) -> None:
        """
        Write data at an absolute offset and flush it to disk.

        Writing past the current end extends the file; any gap below the
        offset reads back as zeros until it is written.

        Raises:
            StorageUnavailableError: If the write or fsync fails, including
                when the staging file has disappeared
        """
        try:
            with open(path, "r+b") as fh:
                fh.seek(offset)
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
        except OSError as exc:
            raise StorageUnavailableError(
                "Could not write to staging file",
                details={"offset": offset, "length": len(data)},
            ) from exc

    def size(self, path: str) -> int | None:
        """
        Return the staged byte count, or None when the file is missing.

        Raises:
            StorageUnavailableError: On any other stat failure
        """
        try:
            return os.stat(path).st_size
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageUnavailableError("Could not stat staging file") from exc

    def open(self, path: str) -> BinaryIO:
        """
        Open a staging file for reading.

        The caller closes the handle (use it as a context manager).
        """
        try:
            return open(path, "rb")
        except OSError as exc:
            raise StorageUnavailableError("Could not open staging file") from exc

    def digest(self, path: str, algorithm: str) -> str:
        """Hash the staged bytes with the given hashlib algorithm (hex digest)."""
        hasher = hashlib.new(algorithm)
        with self.open(path) as fh:
            for block in iter(lambda: fh.read(HASH_READ_SIZE), b""):
                hasher.update(block)
        return hasher.hexdigest()

    def release(self, path: str) -> None:
        """
        Delete a staging file. Missing files are ignored.

        Raises:
            StorageUnavailableError: If the file exists but can't be removed
        """
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageUnavailableError("Could not release staging file") from exc

    def list_files(self) -> list[Path]:
        """List every staging file currently on disk (for orphan sweeps)."""
        if not self.base_dir.is_dir():
            return []
        return [
            entry
            for entry in self.base_dir.iterdir()
            if entry.is_file() and entry.name.startswith(self.prefix)
        ]
