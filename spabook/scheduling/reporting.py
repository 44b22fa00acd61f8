"""Admin dashboard statistics."""

from collections import Counter
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from spabook.config import RECENT_APPOINTMENTS_LIMIT, TREND_MONTHS
from spabook.models import Appointment, AppointmentStatus
from spabook.storage.async_store import AsyncBookingStore


class MonthCount(BaseModel):
    month: str = Field(description="YYYY-MM")
    appointments: int


class DashboardStats(BaseModel):
    """Everything the admin dashboard shows."""

    services: int
    staff: int
    appointments: int
    clients: int
    revenue: Decimal
    trend: list[MonthCount]
    service_distribution: dict[str, int]
    recent: list[Appointment]


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def monthly_trend(
    appointments: list[Appointment], today: date, months: int = TREND_MONTHS
) -> list[MonthCount]:
    """Appointment counts for the last ``months`` months, oldest first."""
    counts = Counter(a.scheduled_at.strftime("%Y-%m") for a in appointments)
    trend = []
    for offset in range(months - 1, -1, -1):
        year, month = _shift_month(today.year, today.month, -offset)
        key = f"{year:04d}-{month:02d}"
        trend.append(MonthCount(month=key, appointments=counts.get(key, 0)))
    return trend


def service_distribution(appointments: list[Appointment]) -> dict[str, int]:
    """Number of appointments per service name, most booked first."""
    return dict(Counter(a.service.name for a in appointments).most_common())


def revenue(appointments: list[Appointment]) -> Decimal:
    """Sum of prices of appointments that were not cancelled."""
    return sum(
        (a.total_price for a in appointments if a.status != AppointmentStatus.CANCELLED),
        Decimal("0.00"),
    )


async def build_dashboard(
    store: AsyncBookingStore, today: date | None = None
) -> DashboardStats:
    """Collect dashboard statistics from the store."""
    today = today or date.today()
    appointments = await store.list_appointments()
    recent = await store.list_appointments(
        limit=RECENT_APPOINTMENTS_LIMIT, newest_first=True
    )

    return DashboardStats(
        services=await store.count("services"),
        staff=await store.count("staff"),
        appointments=len(appointments),
        clients=len({a.client_id for a in appointments}),
        revenue=revenue(appointments),
        trend=monthly_trend(appointments, today),
        service_distribution=service_distribution(appointments),
        recent=recent,
    )
