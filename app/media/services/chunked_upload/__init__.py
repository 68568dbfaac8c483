"""
Chunked upload service package.

Provides resumable uploads: clients declare a file, push byte ranges in any
order, then seal the upload into durable storage as an Asset. Assets are
deduplicated per owner by content hash.

Usage:
    from media.services.chunked_upload import (
        ChunkWriter,
        CompletionCoordinator,
        UploadSessionManager,
    )

    result = UploadSessionManager().initiate(
        owner=user,
        filename="IMG_0001.HEIC",
        total_size=len(data),
        content_hash=hashlib.sha256(data).hexdigest(),
    )

    if result.success and result.data.created:
        session_id = result.data.session_id
        ChunkWriter().write_chunk(user, session_id, offset=0, data=data)
        completion = CompletionCoordinator().complete(user, session_id)
"""

from media.services.chunked_upload.base import (
    ChunkWriteResult,
    CompletionResult,
    InitiateResult,
    UploadOutcome,
    session_lock,
)
from media.services.chunked_upload.chunk_writer import ChunkWriter
from media.services.chunked_upload.completion import CompletionCoordinator
from media.services.chunked_upload.session_manager import UploadSessionManager
from media.services.chunked_upload.staging import StagingArea
from media.services.chunked_upload.storage import DurableStorage
from media.services.chunked_upload.store import SessionStore

__all__ = [
    "ChunkWriteResult",
    "ChunkWriter",
    "CompletionCoordinator",
    "CompletionResult",
    "DurableStorage",
    "InitiateResult",
    "SessionStore",
    "StagingArea",
    "UploadOutcome",
    "UploadSessionManager",
    "session_lock",
]
