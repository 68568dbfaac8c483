"""Media services: resumable chunked uploads and asset finalization."""

from media.services.chunked_upload import (
    ChunkWriter,
    CompletionCoordinator,
    UploadSessionManager,
)

__all__ = [
    "ChunkWriter",
    "CompletionCoordinator",
    "UploadSessionManager",
]
