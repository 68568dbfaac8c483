"""
Application error hierarchy.

Services raise these internally and convert them to ServiceResult at their
public boundary (see core.services). The error_code travels to the client
unchanged, so codes are part of the API contract.

    BaseApplicationError
    ├── ValidationError        INVALID_REQUEST, never retried
    ├── NotFoundError          NOT_FOUND, also used for foreign resources
    ├── ConflictError          CONFLICT, wrong state for the operation
    │   └── LockAcquisitionError   LOCK_UNAVAILABLE, retryable
    └── ExternalServiceError   database, staging or object storage down, retryable
        └── LockServiceError       LOCK_SERVICE_UNAVAILABLE, Redis down

Usage:
    from core.exceptions import NotFoundError

    raise NotFoundError("Upload session not found", details={"session_id": str(pk)})

DRF still owns authentication and request parsing errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Root of all domain errors.

    Attributes:
        message: Text shown to the client
        error_code: Stable machine-readable code
        details: JSON-safe context, returned to the client with the error
        retryable: Whether the same request may succeed later unchanged
    """

    default_error_code: str = "APPLICATION_ERROR"
    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """Malformed input: missing fields, negative sizes, bad ranges."""

    default_error_code: str = "INVALID_REQUEST"


class NotFoundError(BaseApplicationError):
    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """The resource exists but its current state forbids the operation."""

    default_error_code: str = "CONFLICT"


class LockAcquisitionError(ConflictError):
    """Another request holds the resource's lock."""

    default_error_code: str = "LOCK_UNAVAILABLE"
    retryable = True


class ExternalServiceError(BaseApplicationError):
    """
    A backing service failed: database, staging filesystem or object storage.

    The message is client-facing; chain the original exception with
    ``raise ... from exc`` so the cause is kept in logs only.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    retryable = True


class LockServiceError(ExternalServiceError):
    """Redis could not be reached while taking, refreshing or releasing a lock."""

    default_error_code: str = "LOCK_SERVICE_UNAVAILABLE"
