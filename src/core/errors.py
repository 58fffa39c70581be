"""Domain exceptions and error classification for API responses."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel

from src.core.db_client import DatabaseError, RecordNotFoundError, UniqueConstraintError


class InvalidFrequencyError(ValueError):
    """Raised when a frequency cannot produce a next due date (e.g., CUSTOM without days)."""


class ScheduleConflictError(Exception):
    """Raised when an asset already has an active schedule for a template."""

    def __init__(self, *, asset_id: str, template_id: str) -> None:
        self.asset_id = asset_id
        self.template_id = template_id
        super().__init__("Template already applied to this asset")


class InvalidStateTransitionError(ValueError):
    """Raised when a task action is not allowed from its current status."""

    def __init__(self, *, task_id: str, current_status: str, action: str) -> None:
        self.task_id = task_id
        self.current_status = current_status
        self.action = action
        super().__init__(f"Cannot {action} task {task_id} in state {current_status}")


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Lookup errors
    ERR_NOT_FOUND = "ERR_NOT_FOUND"

    # Scheduling errors
    ERR_SCHEDULE_CONFLICT = "ERR_SCHEDULE_CONFLICT"
    ERR_INVALID_FREQUENCY = "ERR_INVALID_FREQUENCY"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"
    ERR_VALIDATION = "ERR_VALIDATION"

    # Infrastructure errors
    ERR_DUPLICATE_RECORD = "ERR_DUPLICATE_RECORD"
    ERR_DATABASE = "ERR_DATABASE"
    ERR_TIMEOUT = "ERR_TIMEOUT"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


HTTP_STATUS_BY_CODE: dict[str, int] = {
    ErrorCode.ERR_NOT_FOUND: 404,
    ErrorCode.ERR_SCHEDULE_CONFLICT: 409,
    ErrorCode.ERR_DUPLICATE_RECORD: 409,
    ErrorCode.ERR_INVALID_FREQUENCY: 400,
    ErrorCode.ERR_INVALID_STATE_TRANSITION: 400,
    ErrorCode.ERR_VALIDATION: 400,
    ErrorCode.ERR_TIMEOUT: 504,
}


_ERROR_PATTERNS: dict[Literal["timeout", "locked"], dict[str, list[str] | set[str]]] = {
    "timeout": {
        "phrases": ["timed out", "timeout", "deadline exceeded"],
        "exception_types": {"TimeoutError", "CancelledError"},
    },
    "locked": {
        "phrases": ["database is locked", "database table is locked"],
        "exception_types": set(),
    },
}


def _match_error_pattern(*, error_str: str, exception_type: str, pattern_type: Literal["timeout", "locked"]) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    error_str = str(exception).lower()
    exception_type = type(exception).__name__

    if isinstance(exception, ScheduleConflictError):
        return ErrorResponse(
            code=ErrorCode.ERR_SCHEDULE_CONFLICT,
            message=str(exception),
            suggestion="Update the existing schedule instead of applying the template again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, RecordNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message=exception.args[0] if exception.args else "Record not found",
            suggestion="Check the id and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, InvalidStateTransitionError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_STATE_TRANSITION,
            message=str(exception),
            suggestion="Check the task status and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, InvalidFrequencyError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_FREQUENCY,
            message=str(exception),
            suggestion="Provide a positive day count for CUSTOM frequency.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, UniqueConstraintError):
        return ErrorResponse(
            code=ErrorCode.ERR_DUPLICATE_RECORD,
            message="A matching record already exists.",
            suggestion="Refresh and retry; the record may have been created concurrently.",
            severity=ErrorSeverity.LOW,
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="timeout"):
        return ErrorResponse(
            code=ErrorCode.ERR_TIMEOUT,
            message="The operation did not finish in time.",
            suggestion="Retry later; completed work is kept.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, DatabaseError) or _match_error_pattern(
        error_str=error_str, exception_type=exception_type, pattern_type="locked"
    ):
        return ErrorResponse(
            code=ErrorCode.ERR_DATABASE,
            message="The data store is unavailable.",
            suggestion="Please try again later.",
            severity=ErrorSeverity.HIGH,
        )

    if isinstance(exception, ValueError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception),
            suggestion="Fix the request and try again.",
            severity=ErrorSeverity.LOW,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )


def http_status_for(response: ErrorResponse) -> int:
    """HTTP status code for a classified error (500 when unmapped)."""
    return HTTP_STATUS_BY_CODE.get(response.code, 500)
