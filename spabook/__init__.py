"""SpaBook - spa appointment availability and booking.

Computes bookable slots per staff member and commits multi-service
bookings atomically, without double booking.
"""

from spabook.models import (
    Appointment,
    AppointmentStatus,
    BookingFailure,
    BookingSession,
    ClientInfo,
    ConflictError,
    OutOfWindowError,
    PaymentDetails,
    PaymentMethod,
    Service,
    SessionStep,
    StaffMember,
    StoreUnavailable,
    TimeSlot,
    ValidationError,
)
from spabook.scheduling import (
    AppointmentManager,
    AvailabilityCalculator,
    BookingOrchestrator,
    BookingWindow,
    CommitResult,
    SlotPolicy,
)
from spabook.storage import AsyncBookingStore, SpaBookDB

__all__ = [
    # Records
    "Appointment",
    "AppointmentStatus",
    "ClientInfo",
    "PaymentDetails",
    "PaymentMethod",
    "Service",
    "StaffMember",
    "TimeSlot",
    # Session
    "BookingSession",
    "SessionStep",
    # Errors
    "BookingFailure",
    "ConflictError",
    "OutOfWindowError",
    "StoreUnavailable",
    "ValidationError",
    # Scheduling
    "AppointmentManager",
    "AvailabilityCalculator",
    "BookingOrchestrator",
    "BookingWindow",
    "CommitResult",
    "SlotPolicy",
    # Storage
    "AsyncBookingStore",
    "SpaBookDB",
]
