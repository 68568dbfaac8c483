"""
Media app for resumable uploads.

This app provides:
- UploadSession model tracking one in-progress upload
- Asset model for sealed, deduplicated uploads
- Chunked upload services (initiate, write chunk, complete, abort)
- Celery tasks reaping stale sessions and orphaned staging files
"""
