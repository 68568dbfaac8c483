"""
Service layer primitives.

Public service operations never raise domain errors at their callers.
Internally they raise BaseApplicationError subclasses; at the operation
boundary the error is logged once and folded into a failed ServiceResult,
which views turn into an HTTP response and tasks into stats.

Usage:
    from core.services import BaseService, ServiceResult

    class UploadSessionManager(BaseService):
        def abort(self, owner, session_id) -> ServiceResult[UploadSession]:
            try:
                session = self._abort(session_id, owner=owner)
            except BaseApplicationError as exc:
                return self.handle_exception(exc, f"Abort {session_id} failed")
            return ServiceResult.success(session)

    result = UploadSessionManager().abort(request.user, session_id)
    if not result.success:
        return error_response(result)
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of a service operation.

    Attributes:
        success: Whether the operation succeeded
        data: Operation payload when successful
        error: Human-readable message when failed
        error_code: Machine-readable code when failed (e.g. "NOT_FOUND")
        details: Structured context copied from the raised error
        retryable: Whether repeating the same call may succeed
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    retryable: bool = False

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str, **details: Any) -> ServiceResult[T]:
        return cls(success=False, error=error, error_code=error_code, details=details)

    @classmethod
    def from_exception(cls, exc: Exception) -> ServiceResult[T]:
        """
        Build a failed result from a raised error.

        Application errors keep their message, code, details and retryable
        flag; anything else is reported under its class name.
        """
        if isinstance(exc, BaseApplicationError):
            return cls(
                success=False,
                error=exc.message,
                error_code=exc.error_code,
                details=dict(exc.details),
                retryable=exc.retryable,
            )
        return cls(
            success=False,
            error=str(exc),
            error_code=exc.__class__.__name__.upper(),
        )

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """Base class for services: a per-class logger and the error boundary."""

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named "<module>.<ClassName>" so each service can be filtered."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.WARNING,
    ) -> ServiceResult:
        """
        Log an error raised inside an operation and convert it to a result.

        Args:
            exc: The caught exception
            context: Prefix for the log message, usually the operation and id
            log_level: WARNING for expected domain failures; pass ERROR to
                include the traceback

        Returns:
            Failed ServiceResult carrying the error's code and details
        """
        message = f"{context}: {exc}" if context else str(exc)
        cls.get_logger().log(
            log_level,
            message,
            exc_info=log_level >= logging.ERROR,
            extra={
                "event_type": "service_error",
                "error_code": getattr(exc, "error_code", exc.__class__.__name__),
            },
        )
        return ServiceResult.from_exception(exc)


def backoff_delay(attempt: int, base: float = 1.0, max_delay: float = 60.0) -> float:
    """
    Exponential backoff with up to 25% jitter.

    Args:
        attempt: Zero-based attempt number
        base: Delay for attempt 0, in seconds
        max_delay: Cap applied before jitter

    Example:
        backoff_delay(0)  # 1.0 - 1.25
        backoff_delay(2)  # 4.0 - 5.0
    """
    delay = min(base * (2**attempt), max_delay)
    return delay + delay * random.uniform(0, 0.25)
