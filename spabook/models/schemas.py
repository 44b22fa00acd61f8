"""Pydantic models for catalog and reservation records.

Records are validated at construction so that a malformed service,
staff member, or appointment never reaches the scheduler.
"""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from spabook.utils.validators import (
    mask_card_number,
    validate_card_number,
    validate_cvv,
    validate_expiry,
)

# =============================================================================
# Enumerations
# =============================================================================


class AppointmentStatus(str, Enum):
    """Lifecycle state of an appointment."""

    BOOKED = "booked"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)


class PaymentMethod(str, Enum):
    """How the client pays for the booking."""

    WEB = "web"  # Paid online, discounted
    ON_SITE = "on_site"  # Paid at the spa


class PaymentStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"


# =============================================================================
# Catalog
# =============================================================================


class Service(BaseModel):
    """A bookable treatment offered by the spa."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = Field(min_length=1)
    specialty: str = Field(min_length=1, description="e.g. 'Massage', 'Facial'")
    price: Decimal = Field(ge=0, decimal_places=2)
    duration_minutes: int = Field(gt=0, le=480)
    description: str = ""

    def snapshot(self) -> "ServiceSnapshot":
        """Copy of the fields an appointment keeps for historical accuracy."""
        return ServiceSnapshot(
            id=self.id,
            name=self.name,
            price=self.price,
            duration_minutes=self.duration_minutes,
        )


class StaffMember(BaseModel):
    """A therapist qualified for exactly one specialty."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str = Field(min_length=1)
    specialty: str = Field(min_length=1)
    email: str | None = None

    def can_perform(self, service: Service) -> bool:
        return self.specialty == service.specialty


# =============================================================================
# Schedule
# =============================================================================


class TimeSlot(BaseModel):
    """A half-hour cell of the daily schedule grid."""

    model_config = ConfigDict(frozen=True)

    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)

    @property
    def key(self) -> str:
        """Occupancy key, e.g. '09:30'."""
        return f"{self.hour:02d}:{self.minute:02d}"

    @property
    def minutes_since_midnight(self) -> int:
        return self.hour * 60 + self.minute

    def at(self, day: date) -> datetime:
        """Combine with a calendar date into a naive local datetime."""
        return datetime.combine(day, time(self.hour, self.minute))

    def __lt__(self, other: "TimeSlot") -> bool:
        return self.minutes_since_midnight < other.minutes_since_midnight

    def __str__(self) -> str:
        return self.key

    @classmethod
    def from_key(cls, key: str) -> "TimeSlot":
        """Parse an 'HH:MM' string.

        Raises:
            ValueError: If the string is not a valid clock time
        """
        try:
            hour_str, minute_str = key.strip().split(":")
            return cls(hour=int(hour_str), minute=int(minute_str))
        except (AttributeError, ValueError) as e:
            raise ValueError(f"Invalid time slot '{key}', expected HH:MM") from e

    @classmethod
    def from_datetime(cls, value: datetime) -> "TimeSlot":
        return cls(hour=value.hour, minute=value.minute)


# =============================================================================
# Reservations
# =============================================================================


class ServiceSnapshot(BaseModel):
    """Service fields denormalized into an appointment at booking time."""

    id: str
    name: str
    price: Decimal
    duration_minutes: int


class Appointment(BaseModel):
    """One booked service instance for one client.

    A multi-service booking produces sibling appointments that share
    ``scheduled_at``, ``client_id`` and ``group_id``.
    """

    id: str | None = None
    client_id: str
    client_name: str
    client_email: str | None = None
    service: ServiceSnapshot
    staff_id: str
    staff_name: str
    scheduled_at: datetime
    status: AppointmentStatus = AppointmentStatus.BOOKED
    payment_method: PaymentMethod = PaymentMethod.ON_SITE
    payment_status: PaymentStatus = PaymentStatus.PENDING
    discount_applied: bool = False
    total_price: Decimal = Field(ge=0)
    group_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _check_payment_consistency(self) -> "Appointment":
        if self.discount_applied and self.payment_method != PaymentMethod.WEB:
            raise ValueError("Discount only applies to web payments")
        return self

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot.from_datetime(self.scheduled_at)

    @property
    def occupies_slot(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED


class ClientInfo(BaseModel):
    """The authenticated client making a booking."""

    id: str
    name: str = Field(min_length=1)
    email: str | None = None


class PaymentDetails(BaseModel):
    """Card-like credential captured for web payments.

    Only the format is checked; the card number is never stored in full.
    """

    card_number: str
    expiry: str = Field(description="MM/YY")
    cvv: str
    cardholder: str = ""

    @field_validator("card_number")
    @classmethod
    def _check_card_number(cls, value: str) -> str:
        return validate_card_number(value)

    @field_validator("expiry")
    @classmethod
    def _check_expiry(cls, value: str) -> str:
        return validate_expiry(value)

    @field_validator("cvv")
    @classmethod
    def _check_cvv(cls, value: str) -> str:
        return validate_cvv(value)

    @property
    def masked(self) -> str:
        return mask_card_number(self.card_number)
