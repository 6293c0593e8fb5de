"""Domain error types and their classification into caller-facing responses."""

from datetime import timedelta
from enum import Enum

from pydantic import BaseModel, ValidationError


class ErrorCategory(Enum):
    """Categories of errors raised by the scoring engine."""

    VALIDATION = "validation"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    CONFIGURATION = "configuration"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_DUPLICATE_BEHAVIOR = "ERR_DUPLICATE_BEHAVIOR"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_INVALID_SETTINGS = "ERR_INVALID_SETTINGS"
    ERR_TIMEOUT = "ERR_TIMEOUT"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class PetOfTheDayError(Exception):
    """Base class for every error the engine raises on purpose."""

    category: ErrorCategory = ErrorCategory.UNKNOWN


class DomainValidationError(PetOfTheDayError):
    """Malformed input: catalog fields, empty ids, notes too long, bad logged-at time."""

    category = ErrorCategory.VALIDATION


class RateLimitError(PetOfTheDayError):
    """A behavior was logged again before its minimum interval elapsed."""

    category = ErrorCategory.RATE_LIMIT_EXCEEDED

    def __init__(self, message: str, *, retry_after: timedelta, elapsed: timedelta) -> None:
        super().__init__(message)
        self.retry_after = retry_after
        self.elapsed = elapsed


class AuthorizationError(PetOfTheDayError):
    """The caller lacks access to a pet, group or log."""

    category = ErrorCategory.PERMISSION_DENIED


class NotFoundError(PetOfTheDayError):
    """An unknown behavior, log, score or group was referenced."""

    category = ErrorCategory.NOT_FOUND


class ConfigurationError(PetOfTheDayError):
    """Unparsable timezone or reset time in a user's settings."""

    category = ErrorCategory.CONFIGURATION


class RequestTimeoutError(PetOfTheDayError):
    """The caller's request deadline passed before the operation finished."""

    category = ErrorCategory.TIMEOUT


def validation_error_from(error: ValidationError) -> DomainValidationError:
    """Convert a pydantic ValidationError into the engine's validation error."""
    messages = [str(detail["msg"]).removeprefix("Value error, ") for detail in error.errors()]
    return DomainValidationError("; ".join(messages))


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    http_status: int
    retry_after_seconds: int | None = None


def format_wait(duration: timedelta) -> str:
    """Render a wait duration rounded up to whole minutes."""
    minutes = max(1, -(-int(duration.total_seconds()) // 60))
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"


def classify_error(exception: Exception) -> ErrorCategory:
    """Return the category of an exception; anything foreign is UNKNOWN."""
    if isinstance(exception, PetOfTheDayError):
        return exception.category
    return ErrorCategory.UNKNOWN


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised by an engine operation

    Returns:
        ErrorResponse with code, message, suggestion, severity and HTTP status
    """
    category = classify_error(exception)

    if category is ErrorCategory.VALIDATION:
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception),
            suggestion="Check the submitted values and try again.",
            severity=ErrorSeverity.LOW,
            http_status=400,
        )

    if category is ErrorCategory.RATE_LIMIT_EXCEEDED and isinstance(exception, RateLimitError):
        return ErrorResponse(
            code=ErrorCode.ERR_DUPLICATE_BEHAVIOR,
            message="This behavior was logged too recently.",
            suggestion=f"Please wait {format_wait(exception.retry_after)} before logging it again.",
            severity=ErrorSeverity.LOW,
            http_status=429,
            retry_after_seconds=max(1, int(exception.retry_after.total_seconds())),
        )

    if category is ErrorCategory.PERMISSION_DENIED:
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            message="You don't have permission for this action.",
            suggestion="Ask the pet's owner or a group member to grant you access.",
            severity=ErrorSeverity.MEDIUM,
            http_status=403,
        )

    if category is ErrorCategory.NOT_FOUND:
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message=str(exception),
            suggestion="Refresh and make sure the item still exists.",
            severity=ErrorSeverity.LOW,
            http_status=404,
        )

    if category is ErrorCategory.CONFIGURATION:
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_SETTINGS,
            message=str(exception),
            suggestion="Use an IANA timezone such as 'Europe/Paris' and a reset time like '21:00'.",
            severity=ErrorSeverity.LOW,
            http_status=400,
        )

    if category is ErrorCategory.TIMEOUT:
        return ErrorResponse(
            code=ErrorCode.ERR_TIMEOUT,
            message="The request took too long to complete.",
            suggestion="Please try again in a moment.",
            severity=ErrorSeverity.MEDIUM,
            http_status=504,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.HIGH,
        http_status=500,
    )
