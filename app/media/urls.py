"""
URL configuration for media app.

API Documentation Groups (following [App Name] - [Group Name] pattern):

Media - Uploads:
    POST /uploads/                                - Initiate upload session
    GET /uploads/{id}/                            - Get session status
    DELETE /uploads/{id}/                         - Abort session
    PUT /uploads/{id}/chunk/?offset=N             - Write chunk (raw body)
    POST /uploads/{id}/complete/                  - Complete upload
"""

from django.urls import path

from media.views import (
    UploadChunkView,
    UploadCompleteView,
    UploadSessionDetailView,
    UploadSessionView,
)

app_name = "media"

urlpatterns = [
    path("uploads/", UploadSessionView.as_view(), name="upload-session-create"),
    path(
        "uploads/<uuid:session_id>/",
        UploadSessionDetailView.as_view(),
        name="upload-session-detail",
    ),
    path(
        "uploads/<uuid:session_id>/chunk/",
        UploadChunkView.as_view(),
        name="upload-chunk",
    ),
    path(
        "uploads/<uuid:session_id>/complete/",
        UploadCompleteView.as_view(),
        name="upload-complete",
    ),
]
