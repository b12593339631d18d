"""
Workflow error taxonomy.

Every failure raised by the posting lifecycle and the assessment workflow is a
local, synchronous error. None of them are retried; the API layer maps each
class to a response code through ``status_code``.
"""

from typing import Any, Optional


class WorkflowError(Exception):
    """Base class for all workflow failures."""

    code: str = "WORKFLOW_ERROR"
    status_code: int = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Serializable representation used in error responses."""
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.context:
            payload["context"] = {k: _plain(v) for k, v in self.context.items()}
        return payload


def _plain(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


class ValidationError(WorkflowError, ValueError):
    """Malformed input: quiz shape, missing required comments, etc."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ForbiddenTransitionError(WorkflowError, PermissionError):
    """The caller's role is not the actor for the requested event."""

    code = "FORBIDDEN_TRANSITION"
    status_code = 403


class NotFoundError(WorkflowError, LookupError):
    """The persistence collaborator has no entity for the given id."""

    code = "NOT_FOUND"
    status_code = 404


class InvalidStateTransitionError(WorkflowError):
    """The event is not valid from the entity's current state."""

    code = "INVALID_STATE_TRANSITION"
    status_code = 409


class NotReviewableError(WorkflowError):
    """A reviewer decision was applied outside ``ceo_approval``."""

    code = "NOT_REVIEWABLE"
    status_code = 409


class OutOfOrderError(WorkflowError):
    """An assessment stage was requested before its prerequisite."""

    code = "OUT_OF_ORDER"
    status_code = 409


class AlreadyAttemptedError(WorkflowError):
    """The assessment stage was already started or submitted."""

    code = "ALREADY_ATTEMPTED"
    status_code = 409


class ExpiredError(WorkflowError):
    """Submission arrived after the stage deadline."""

    code = "STAGE_EXPIRED"
    status_code = 410


def describe(exc: WorkflowError, job_id: Optional[str] = None) -> str:
    """One-line summary for log records."""
    prefix = f"[{job_id}] " if job_id else ""
    return f"{prefix}{exc.code}: {exc.message}"
