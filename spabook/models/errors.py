"""Booking error taxonomy.

Exceptions are raised inside the scheduler; the orchestrator converts
caught validation and conflict errors into ``BookingFailure`` records
so callers receive typed results instead of exceptions.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class BookingError(Exception):
    """Base class for all booking errors."""

    error_type: "ErrorType"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(BookingError):
    """Input rejected before any write was attempted."""


class OutOfWindowError(ValidationError):
    """Requested time is outside the bookable window."""


class SpecialtyMismatchError(ValidationError):
    """Staff member is not qualified for the service."""


class InvalidTransitionError(ValidationError):
    """Appointment status change not allowed from the current state."""


class NotFoundError(BookingError):
    """Referenced record does not exist."""


class ConflictError(BookingError):
    """Slot was taken between the availability read and the commit."""


class StoreUnavailable(BookingError):
    """Catalog or reservation store could not be reached."""

    def __init__(self, message: str, operation: str, entity_id: str | None = None):
        super().__init__(message, operation=operation, entity_id=entity_id)
        self.operation = operation
        self.entity_id = entity_id


class NotificationFailure(BookingError):
    """Confirmation could not be delivered. Never fails a booking."""


# =============================================================================
# Structured failure record
# =============================================================================


class ErrorType(str, Enum):
    """Categories of booking failure."""

    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STORE_UNAVAILABLE = "store_unavailable"
    NOTIFICATION_FAILURE = "notification_failure"
    UNKNOWN_ERROR = "unknown_error"


BookingError.error_type = ErrorType.UNKNOWN_ERROR
ValidationError.error_type = ErrorType.VALIDATION_ERROR
NotFoundError.error_type = ErrorType.NOT_FOUND
ConflictError.error_type = ErrorType.CONFLICT
StoreUnavailable.error_type = ErrorType.STORE_UNAVAILABLE
NotificationFailure.error_type = ErrorType.NOTIFICATION_FAILURE

_RETRYABLE = {ErrorType.STORE_UNAVAILABLE}


class BookingFailure(BaseModel):
    """Structured error information returned to the caller."""

    type: ErrorType = Field(description="Category of error")
    message: str = Field(description="Human-readable error message")
    operation: str = Field(description="Operation where the error occurred")
    timestamp: datetime = Field(default_factory=datetime.now)
    retryable: bool = Field(default=False, description="Whether a retry may succeed")
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, e: Exception, operation: str) -> "BookingFailure":
        """Create a BookingFailure from an exception.

        Args:
            e: The exception that occurred
            operation: Name of the failing operation

        Returns:
            BookingFailure instance
        """
        if isinstance(e, BookingError):
            error_type = e.error_type
            details = {k: v for k, v in e.details.items() if v is not None}
        else:
            error_type = ErrorType.UNKNOWN_ERROR
            details = {}
        details["exception_type"] = type(e).__name__

        return cls(
            type=error_type,
            message=str(e),
            operation=operation,
            retryable=error_type in _RETRYABLE,
            details=details,
        )
