"""
Media models package.

Exports:
    Asset: Finalized, immutable record of a fully uploaded file
    UploadSession: Tracks resumable uploads until completion or abort
"""

from media.models.asset import Asset
from media.models.upload_session import UploadSession

__all__ = [
    "Asset",
    "UploadSession",
]
