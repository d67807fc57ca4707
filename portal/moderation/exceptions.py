"""Exceptions for the moderation workflow.

The same hierarchy is raised by the backend service and re-raised by the
client after it decodes an error response, so callers on both sides handle a
state conflict, a validation failure and an authorization failure the same
way.
"""

from fastapi import HTTPException, status


class ModerationError(Exception):
    """Base exception for moderation workflow errors."""

    def __init__(self, message: str, error_type: str = "moderation_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(message)


class StateConflictError(ModerationError):
    """Raised when an action is not allowed from the submission's current status."""

    def __init__(self, current_status: str, action: str, message: str | None = None):
        super().__init__(
            message or f"Cannot {action} a submission in status '{current_status}'",
            "state_conflict",
        )
        self.current_status = current_status
        self.action = action


class ModerationValidationError(ModerationError):
    """Raised when required transition input is missing or malformed."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, "validation_error")
        self.field = field


class ModerationAuthorizationError(ModerationError):
    """Raised when the actor's role does not permit the action."""

    def __init__(self, message: str):
        super().__init__(message, "authorization_error")


class SubmissionNotFoundError(ModerationError):
    """Raised when a submission is not found."""

    def __init__(self, identifier: str | int):
        super().__init__(f"Submission '{identifier}' not found", "submission_not_found")
        self.identifier = identifier


class ActionInProgressError(ModerationError):
    """Raised client-side when an action on the same submission is still in flight."""

    def __init__(self, submission_id: int):
        super().__init__(
            f"An action on submission {submission_id} is already in progress",
            "action_in_progress",
        )
        self.submission_id = submission_id


class TransientError(ModerationError):
    """Raised client-side when a request failed before the outcome was known."""

    def __init__(self, message: str):
        super().__init__(message, "transient_error")


STATUS_CODES: dict[str, int] = {
    "state_conflict": status.HTTP_409_CONFLICT,
    "validation_error": 422,
    "authorization_error": status.HTTP_403_FORBIDDEN,
    "submission_not_found": status.HTTP_404_NOT_FOUND,
    "moderation_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_http_exception(error: ModerationError) -> None:
    """Convert a ModerationError into a problem-details HTTPException."""
    code = STATUS_CODES.get(error.error_type, status.HTTP_500_INTERNAL_SERVER_ERROR)
    problem = {
        "type": error.error_type,
        "title": error.error_type.replace("_", " ").title(),
        "status": code,
        "detail": error.message,
    }
    for attr in ("current_status", "action", "field"):
        value = getattr(error, attr, None)
        if value is not None:
            problem[attr] = value
    raise HTTPException(status_code=code, detail=problem)
