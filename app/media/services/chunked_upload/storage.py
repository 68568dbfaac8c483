"""
Durable storage for finalized assets.

Wraps Django's default storage: the filesystem under MEDIA_ROOT locally, S3
through django-storages when AWS_STORAGE_BUCKET_NAME is set. Objects are
written once and never deleted by the upload flow; an object whose Asset row
could not be created is left behind as an orphan and logged.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from botocore.exceptions import BotoCoreError, ClientError
from django.core.files import File
from django.core.files.storage import default_storage

from media.exceptions import StorageUnavailableError

if TYPE_CHECKING:
    from typing import BinaryIO

    from django.core.files.storage import Storage

logger = logging.getLogger(__name__)


class DurableStorage:
    """
    Append-only object store for asset bytes.

    Args:
        storage: Django storage backend. Defaults to default_storage.
    """

    def __init__(self, storage: Storage | None = None) -> None:
        self.storage = storage or default_storage

    @staticmethod
    def build_key(owner_id) -> str:
        """
        Build a fresh object key for an owner's asset.

        Pattern: ``<owner_id>/<uuid4>/original``. The random segment keeps
        keys unique even for two uploads with the same filename.
        """
        return f"{owner_id}/{uuid.uuid4()}/original"

    def put(self, key: str, fileobj: BinaryIO) -> str:
        """
        Stream a file object into storage under key.

        Returns:
            The key the backend actually stored the object under

        Raises:
            StorageUnavailableError: If the backend rejects the write
        """
        try:
            stored_key = self.storage.save(key, File(fileobj, name=key))
        except (OSError, BotoCoreError, ClientError) as exc:
            logger.error(
                f"Promotion to durable storage failed for {key}: {exc}",
                extra={"event_type": "upload_promotion_failed", "storage_key": key},
            )
            raise StorageUnavailableError(
                "Durable storage is unavailable",
                details={"storage_key": key},
            ) from exc
        return stored_key

    def exists(self, key: str) -> bool:
        return self.storage.exists(key)
