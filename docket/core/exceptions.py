"""
Custom exceptions for the application.

Expected scheduling outcomes (a rejected manual placement, an exhausted
overflow search) are returned as typed results, not raised. The exceptions
below cover what a caller cannot treat as a normal answer.
"""

from typing import Any, Optional
from uuid import UUID


class DocketError(Exception):
    """Base exception for docket."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(DocketError):
    """Resource not found."""

    pass


class ValidationError(DocketError):
    """Validation error with a machine-readable reason."""

    def __init__(self, message: str, reason: str, details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.reason = reason


class BusinessLogicError(DocketError):
    """Business logic constraint violation."""

    pass


class ConflictError(DocketError):
    """Write rejected because the stored state moved on."""

    pass


class ConcurrencyError(ConflictError):
    """Optimistic version check failed (stale-version)."""

    reason = "stale-version"

    def __init__(
        self,
        task_id: UUID,
        expected_version: int,
        actual_version: Optional[int] = None,
    ):
        super().__init__(
            f"Task {task_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})",
            details={
                "task_id": str(task_id),
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )
        self.task_id = task_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class InfrastructureError(DocketError):
    """Infrastructure-related error (DB, external services, etc.)."""

    retryable = False


class CollaboratorUnavailableError(InfrastructureError):
    """An external collaborator (e.g. the event source) could not be reached."""

    retryable = True


class SchedulingLockTimeoutError(InfrastructureError):
    """The per-assignee scheduling lock could not be acquired in time."""

    retryable = True

    def __init__(self, assignee_id: str, timeout_seconds: float):
        super().__init__(
            f"Scheduling lock for assignee {assignee_id} not acquired within {timeout_seconds}s",
            details={"assignee_id": assignee_id, "timeout_seconds": timeout_seconds},
        )
        self.assignee_id = assignee_id
        self.timeout_seconds = timeout_seconds
