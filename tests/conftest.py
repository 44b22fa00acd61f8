"""Shared test fixtures for spabook tests."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from spabook.models import (
    Appointment,
    AppointmentStatus,
    ClientInfo,
    PaymentMethod,
    PaymentStatus,
    Service,
    StaffMember,
)
from spabook.scheduling import BookingOrchestrator, BookingWindow
from spabook.storage import AsyncBookingStore, SpaBookDB

# Fixed "now": Monday 2 March 2026, 08:00
NOW = datetime(2026, 3, 2, 8, 0)
# Three days ahead, every grid slot is inside the booking window
BOOKING_DAY = date(2026, 3, 5)


@pytest.fixture
def db() -> Generator[SpaBookDB, None, None]:
    """In-memory database for testing."""
    database = SpaBookDB(":memory:")
    database.init_schema()
    yield database
    database.close()


@pytest.fixture
def store(db) -> AsyncBookingStore:
    return AsyncBookingStore(db)


@pytest.fixture
def catalog(db) -> dict:
    """Two massage therapists, one facialist and three services."""
    return {
        "massage": db.create_service(
            name="Swedish Massage",
            specialty="Massage",
            price=Decimal("100.00"),
            duration_minutes=60,
        ),
        "hot_stone": db.create_service(
            name="Hot Stone",
            specialty="Massage",
            price=Decimal("80.00"),
            duration_minutes=90,
        ),
        "facial": db.create_service(
            name="Hydrating Facial",
            specialty="Facial",
            price=Decimal("50.00"),
            duration_minutes=45,
        ),
        "ana": db.create_staff(display_name="Ana", specialty="Massage"),
        "marco": db.create_staff(display_name="Marco", specialty="Massage"),
        "lucia": db.create_staff(display_name="Lucía", specialty="Facial"),
    }


@pytest.fixture
def window() -> BookingWindow:
    """Booking window pinned to NOW."""
    return BookingWindow(clock=lambda: NOW)


@pytest.fixture
def notifier() -> MagicMock:
    """Notifier whose sends always succeed."""
    mock = MagicMock()
    mock.send_booking_confirmation = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def orchestrator(store, window, notifier) -> BookingOrchestrator:
    return BookingOrchestrator(store, store, notifier=notifier, window=window)


@pytest.fixture
def client() -> ClientInfo:
    return ClientInfo(id="client_1", name="Carla Gómez", email="carla@example.com")


@pytest.fixture
def card() -> dict:
    """Well-formed web payment details."""
    return {
        "card_number": "4242 4242 4242 4242",
        "expiry": "12/39",
        "cvv": "123",
        "cardholder": "Carla Gomez",
    }


@pytest.fixture
def make_appointment():
    """Factory for appointments written straight to the database."""

    def _create(
        db: SpaBookDB,
        service: Service,
        staff: StaffMember,
        when: datetime,
        status: AppointmentStatus = AppointmentStatus.BOOKED,
        client_id: str = "client_x",
    ) -> Appointment:
        appt = Appointment(
            client_id=client_id,
            client_name="Existing Client",
            service=service.snapshot(),
            staff_id=staff.id,
            staff_name=staff.display_name,
            scheduled_at=when,
            status=status,
            payment_method=PaymentMethod.ON_SITE,
            payment_status=PaymentStatus.PENDING,
            total_price=service.price,
        )
        appt_id = db.create_appointment(appt)
        return appt.model_copy(update={"id": appt_id})

    return _create


def at(hour: int, minute: int = 0, day: date = BOOKING_DAY) -> datetime:
    """Datetime on the booking day."""
    return datetime(day.year, day.month, day.day, hour, minute)


def days_after(days: int, day: date = BOOKING_DAY) -> date:
    return day + timedelta(days=days)


@pytest.fixture
def mock_resend():
    """Mock Resend email API."""
    with patch("spabook.notifications.email.resend.Emails.send") as mock:
        mock.return_value = {"id": "test-email-id"}
        yield mock
