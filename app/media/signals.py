"""
Django signals for the media app.

Provides:
- asset_created: sent once per newly created Asset, after the transaction
  that created it commits. Downstream processing (thumbnails, metadata
  extraction) attaches here. Deduplicated completions do not send it.

Usage:
    from media.signals import asset_created

    @receiver(asset_created)
    def queue_thumbnail(sender, asset, session, **kwargs):
        ...
"""

from __future__ import annotations

import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

# Sent with: asset (Asset), session (UploadSession)
asset_created = Signal()


@receiver(asset_created, dispatch_uid="log_asset_created")
def log_asset_created(sender, asset, session, **kwargs) -> None:
    """Record every new asset in the media log."""
    logger.info(
        f"Asset {asset.id} created from upload session {session.id}",
        extra={
            "event_type": "asset_created",
            "asset_id": str(asset.id),
            "session_id": str(session.id),
            "owner_id": str(asset.owner_id),
            "size": asset.size,
        },
    )
