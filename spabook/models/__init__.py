"""Typed records, errors, and session state for spabook."""

from spabook.models.errors import (
    BookingError,
    BookingFailure,
    ConflictError,
    ErrorType,
    InvalidTransitionError,
    NotFoundError,
    NotificationFailure,
    OutOfWindowError,
    SpecialtyMismatchError,
    StoreUnavailable,
    ValidationError,
)
from spabook.models.schemas import (
    Appointment,
    AppointmentStatus,
    ClientInfo,
    PaymentDetails,
    PaymentMethod,
    PaymentStatus,
    Service,
    ServiceSnapshot,
    StaffMember,
    TimeSlot,
)
from spabook.models.session import BookingSession, SessionStep

__all__ = [
    # Records
    "Appointment",
    "AppointmentStatus",
    "ClientInfo",
    "PaymentDetails",
    "PaymentMethod",
    "PaymentStatus",
    "Service",
    "ServiceSnapshot",
    "StaffMember",
    "TimeSlot",
    # Session
    "BookingSession",
    "SessionStep",
    # Errors
    "BookingError",
    "BookingFailure",
    "ConflictError",
    "ErrorType",
    "InvalidTransitionError",
    "NotFoundError",
    "NotificationFailure",
    "OutOfWindowError",
    "SpecialtyMismatchError",
    "StoreUnavailable",
    "ValidationError",
]
