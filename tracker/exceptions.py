"""Shared exceptions for the task tracker.

This module contains exception classes used across services and the API
layer so that routes can map domain failures to HTTP responses without
importing service internals.

Taxonomy:
    InvalidStateTransitionError: Operation attempted from the wrong status.
    ValidationFailedError: Malformed caller input (field-level messages).
    TaskNotFoundError: Dangling or out-of-scope task reference.
    ConcurrencyConflictError: Optimistic version check lost a race.
    ConfigurationError: Invalid environment configuration.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tracker.models import TaskStatus


class ConfigurationError(Exception):
    """Raised when an environment setting is present but unusable.

    Example: TRANSITION_MAX_ATTEMPTS=0 or LOG_FORMAT=xml.
    """

    pass


class InvalidStateTransitionError(Exception):
    """Raised when a lifecycle operation is attempted from the wrong status.

    The allowed graph lives in Task.VALID_TRANSITIONS. A failed transition
    never leaves partial state behind: the check runs before any mutation.

    Attributes:
        message: Human-readable error message describing the invalid transition.
        from_status: The current TaskStatus before the attempted transition.
        to_status: The TaskStatus that was attempted but is not valid.

    Example:
        >>> task.status = TaskStatus.PENDING
        >>> task.status = TaskStatus.COMPLETED  # Invalid - never started
        InvalidStateTransitionError: Invalid transition: pending → completed
    """

    def __init__(self, message: str, from_status: "TaskStatus", to_status: "TaskStatus"):
        """Initialize InvalidStateTransitionError with transition details.

        Args:
            message: Human-readable error message.
            from_status: Current status before transition attempt.
            to_status: Target status that was attempted.
        """
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(message)

    @property
    def message(self) -> str:
        return super().__str__()

    def __str__(self) -> str:
        """Return detailed error message with transition context."""
        return f"{self.message} (from={self.from_status.value}, to={self.to_status.value})"


class ValidationFailedError(Exception):
    """Raised when caller-supplied input fails validation.

    Attributes:
        errors: Mapping of field name to human-readable message.
    """

    def __init__(self, message: str, errors: dict[str, str] | None = None):
        self.errors = errors or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": str(self), "errors": self.errors}


class TaskNotFoundError(Exception):
    """Raised when a task does not exist or is outside the caller's scope."""

    def __init__(self, task_id: Any):
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class ConcurrencyConflictError(Exception):
    """Raised when a concurrent writer changed the task first.

    The lifecycle service retries these internally. Callers only see one
    after the retry budget is spent and should retry the request.

    Attributes:
        task_id: Task whose version check failed.
        attempts: Number of attempts made before giving up.
    """

    def __init__(self, task_id: Any, attempts: int = 1):
        self.task_id = task_id
        self.attempts = attempts
        super().__init__(
            f"Task {task_id} was modified concurrently (after {attempts} attempt(s))"
        )
