"""
API views for resumable chunked uploads.

Provides:
- UploadSessionView: Initiate an upload (POST)
- UploadSessionDetailView: Get session status (GET), abort (DELETE)
- UploadChunkView: Write a chunk at ?offset=N (PUT, raw body)
- UploadCompleteView: Seal the upload into an Asset (POST)

All views are thin: they validate request shape, call one service
operation and map its ServiceResult to an HTTP response. Error bodies are
{"error": message, "error_code": code}.
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.services import ServiceResult
from media.serializers import (
    ChunkOffsetSerializer,
    ChunkWriteResponseSerializer,
    CompletionResponseSerializer,
    ErrorResponseSerializer,
    InitiateResponseSerializer,
    UploadInitiateSerializer,
    UploadSessionSerializer,
)
from media.services.chunked_upload import (
    ChunkWriter,
    CompletionCoordinator,
    UploadSessionManager,
)

# Error code -> HTTP status. Unknown codes fall back to 400.
ERROR_STATUS = {
    "INVALID_REQUEST": status.HTTP_400_BAD_REQUEST,
    "INVALID_RANGE": status.HTTP_400_BAD_REQUEST,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CONFLICT": status.HTTP_409_CONFLICT,
    "UPLOAD_SESSION_NOT_ACTIVE": status.HTTP_409_CONFLICT,
    "LOCK_UNAVAILABLE": status.HTTP_409_CONFLICT,
    "UPLOAD_INCOMPLETE": status.HTTP_409_CONFLICT,
    "CONTENT_HASH_MISMATCH": status.HTTP_409_CONFLICT,
    "STORAGE_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "LOCK_SERVICE_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(result: ServiceResult) -> Response:
    """Build the HTTP error response for a failed service result."""
    body = {"error": result.error, "error_code": result.error_code}
    if result.details:
        body["details"] = result.details
    response = Response(
        body,
        status=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )
    if result.retryable:
        response["Retry-After"] = "1"
    return response


def invalid_request(errors: dict) -> Response:
    """Build the 400 response for a request that failed serializer validation."""
    return Response(
        {
            "error": "Invalid request",
            "error_code": "INVALID_REQUEST",
            "details": errors,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


class UploadSessionView(APIView):
    """
    Initiate a resumable upload.

    POST /api/v1/media/uploads/
        Declare a file and open an upload session.

    Authentication:
        Requires valid JWT token.

    Request:
        - filename (required): Original filename
        - size (required): Total file size in bytes
        - mime (optional): MIME type
        - taken_at (optional): Capture timestamp
        - hash (optional): Content hash; enables dedup

    Response:
        201 Created: {session_id, offset: 0}
        200 OK: {status: "exists", asset_id} when the content is already stored
        400 Bad Request: Invalid metadata
        401 Unauthorized: Not authenticated
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="initiate_upload",
        summary="Initiate upload",
        description=(
            "Open a resumable upload session. When a content hash is given and "
            "the caller already owns an asset with that hash, no session is "
            "created and the existing asset id is returned instead."
        ),
        request=UploadInitiateSerializer,
        responses={
            201: OpenApiResponse(
                response=InitiateResponseSerializer,
                description="Session created; upload chunks starting at offset 0",
            ),
            200: OpenApiResponse(
                response=InitiateResponseSerializer,
                description="Content already stored; nothing to upload",
            ),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid metadata"),
            401: OpenApiResponse(description="Authentication required"),
            503: OpenApiResponse(response=ErrorResponseSerializer, description="Storage unavailable"),
        },
        tags=["Media - Uploads"],
    )
    def post(self, request):
        """Initiate an upload session."""
        serializer = UploadInitiateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)

        data = serializer.validated_data
        result = UploadSessionManager().initiate(
            owner=request.user,
            filename=data["filename"],
            total_size=data["size"],
            mime_type=data["mime"],
            taken_at=data["taken_at"],
            content_hash=data["hash"],
        )
        if not result.success:
            return error_response(result)

        outcome = result.data
        if not outcome.created:
            return Response(
                {"status": outcome.status, "asset_id": str(outcome.asset_id)},
                status=status.HTTP_200_OK,
            )
        return Response(
            {"session_id": str(outcome.session_id), "offset": outcome.offset},
            status=status.HTTP_201_CREATED,
        )


class UploadSessionDetailView(APIView):
    """
    Get or abort an upload session.

    GET /api/v1/media/uploads/{session_id}/
        Get session status and progress.

    DELETE /api/v1/media/uploads/{session_id}/
        Abort the upload and release its staged bytes.

    Authentication:
        Requires valid JWT token.
        Only the session owner can access or abort.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_upload_session",
        summary="Get upload session status",
        description=(
            "Get the current status of an upload session. offset is the "
            "highest byte written so far."
        ),
        responses={
            200: OpenApiResponse(
                response=UploadSessionSerializer,
                description="Session status and progress details",
            ),
            404: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Session not found or not owned by user",
            ),
        },
        tags=["Media - Uploads"],
    )
    def get(self, request, session_id):
        """Get session status."""
        result = UploadSessionManager().get_status(request.user, session_id)
        if not result.success:
            return error_response(result)

        serializer = UploadSessionSerializer(result.data)
        return Response(serializer.data)

    @extend_schema(
        operation_id="abort_upload_session",
        summary="Abort upload session",
        description=(
            "Abort an in-progress upload and delete its staged bytes. "
            "Aborting an already aborted session succeeds."
        ),
        responses={
            204: OpenApiResponse(description="Session aborted"),
            404: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Session not found or not owned by user",
            ),
            409: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Session already completed, or busy",
            ),
        },
        tags=["Media - Uploads"],
    )
    def delete(self, request, session_id):
        """Abort the upload session."""
        result = UploadSessionManager().abort(request.user, session_id)
        if not result.success:
            return error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class UploadChunkView(APIView):
    """
    Write a chunk.

    PUT /api/v1/media/uploads/{session_id}/chunk/?offset=N
        Write the raw request body at byte offset N.

    Chunks may be sent in any order and retried; writing the same bytes
    at the same offset twice is harmless.

    Authentication:
        Requires valid JWT token.
        Only the session owner can upload.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="write_upload_chunk",
        summary="Write chunk",
        description=(
            "Write raw binary data at the given byte offset of the upload. "
            "offset + body length must not exceed the declared size."
        ),
        parameters=[
            OpenApiParameter(
                name="offset",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                required=True,
                description="Byte offset of the chunk",
            ),
        ],
        request={"application/octet-stream": {"type": "string", "format": "binary"}},
        responses={
            200: OpenApiResponse(
                response=ChunkWriteResponseSerializer,
                description="Chunk stored with updated offset",
            ),
            400: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Missing offset or range outside the file",
            ),
            404: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Session not found or not owned by user",
            ),
            409: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Session not active, or busy",
            ),
            503: OpenApiResponse(response=ErrorResponseSerializer, description="Storage unavailable"),
        },
        tags=["Media - Uploads"],
    )
    def put(self, request, session_id):
        """Write a chunk."""
        params = ChunkOffsetSerializer(data=request.query_params)
        if not params.is_valid():
            return invalid_request(params.errors)

        result = ChunkWriter().write_chunk(
            owner=request.user,
            session_id=session_id,
            offset=params.validated_data["offset"],
            data=request.body,
        )
        if not result.success:
            return error_response(result)

        serializer = ChunkWriteResponseSerializer(result.data)
        return Response(serializer.data)


class UploadCompleteView(APIView):
    """
    Complete an upload.

    POST /api/v1/media/uploads/{session_id}/complete/
        Verify the staged bytes, promote them to durable storage and
        create the Asset.

    Completing an already completed session returns its asset again.

    Authentication:
        Requires valid JWT token.
        Only the session owner can complete.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="complete_upload",
        summary="Complete upload",
        description=(
            "Seal the upload into an Asset. status is 'exists' when the same "
            "content was stored by another upload in the meantime."
        ),
        request=None,
        responses={
            200: OpenApiResponse(
                response=CompletionResponseSerializer,
                description="Upload sealed",
            ),
            404: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Session not found or not owned by user",
            ),
            409: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Upload incomplete, hash mismatch, session aborted or busy",
            ),
            503: OpenApiResponse(response=ErrorResponseSerializer, description="Storage unavailable"),
        },
        tags=["Media - Uploads"],
    )
    def post(self, request, session_id):
        """Complete the upload."""
        result = CompletionCoordinator().complete(request.user, session_id)
        if not result.success:
            return error_response(result)

        serializer = CompletionResponseSerializer(result.data)
        return Response(serializer.data)
