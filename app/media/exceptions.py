"""
Upload domain exceptions.

Every failure an upload operation can report maps to one class here, rooted
in core.exceptions so views can map the error_code to an HTTP status.

Exception Hierarchy:
    ValidationError
    ├── InvalidUploadRequestError - malformed initiate/chunk request
    └── InvalidRangeError - chunk outside [0, total_size]
    NotFoundError
    └── UploadSessionNotFoundError - unknown session or wrong owner
    ConflictError
    └── UploadSessionStateError - session is not active
    BaseApplicationError
    └── UploadIncompleteError - staged bytes do not match the declaration
        └── ContentHashMismatchError - staged digest differs from declared hash
    ExternalServiceError
    └── StorageUnavailableError - staging, durable storage or database failure
"""

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)


class InvalidUploadRequestError(ValidationError):
    """Raised for malformed upload input: blank filename, negative or oversized size."""

    default_error_code = "INVALID_REQUEST"


class InvalidRangeError(ValidationError):
    """Raised when offset + len(data) falls outside the declared total size."""

    default_error_code = "INVALID_RANGE"


class UploadSessionNotFoundError(NotFoundError):
    """
    Raised when a session does not exist or belongs to another owner.

    Both cases use the same error so session ids cannot be probed.
    """

    default_error_code = "NOT_FOUND"


class UploadSessionStateError(ConflictError):
    """Raised when an operation needs an active session and it is completed or aborted."""

    default_error_code = "UPLOAD_SESSION_NOT_ACTIVE"


class UploadIncompleteError(BaseApplicationError):
    """
    Raised when completion is requested before all declared bytes are staged.

    The session stays active; the client can upload the missing ranges
    and ask again.
    """

    default_error_code = "UPLOAD_INCOMPLETE"


class ContentHashMismatchError(UploadIncompleteError):
    """Raised when the staged bytes do not hash to the declared content hash."""

    default_error_code = "CONTENT_HASH_MISMATCH"


class StorageUnavailableError(ExternalServiceError):
    """
    Raised when staging I/O, durable storage or the session store fails.

    Session progress is never advanced past a failed write, so the
    client can retry the same request.
    """

    default_error_code = "STORAGE_UNAVAILABLE"
