"""Booking window rules.

A booking must be made at least ``MIN_LEAD_HOURS`` ahead and at most
``MAX_HORIZON_DAYS`` ahead. Both bounds are inclusive.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable

from spabook.config import MAX_HORIZON_DAYS, MIN_LEAD_HOURS
from spabook.models import OutOfWindowError


@dataclass
class BookingWindow:
    """Configurable lead-time and horizon limits.

    ``clock`` returns the current naive local time and can be replaced
    in tests.
    """

    min_lead: timedelta = field(default_factory=lambda: timedelta(hours=MIN_LEAD_HOURS))
    max_horizon: timedelta = field(default_factory=lambda: timedelta(days=MAX_HORIZON_DAYS))
    clock: Callable[[], datetime] = datetime.now

    def bounds(self, now: datetime | None = None) -> tuple[datetime, datetime]:
        now = now or self.clock()
        return now + self.min_lead, now + self.max_horizon

    def contains(self, when: datetime, now: datetime | None = None) -> bool:
        earliest, latest = self.bounds(now)
        return earliest <= when <= latest

    def validate(self, when: datetime, now: datetime | None = None) -> datetime:
        """Return ``when`` if bookable.

        Raises:
            OutOfWindowError: If too soon or too far ahead
        """
        earliest, latest = self.bounds(now)
        if when < earliest:
            raise OutOfWindowError(
                f"Appointments must be booked at least "
                f"{_describe(self.min_lead)} in advance",
                requested=when.isoformat(),
                earliest=earliest.isoformat(),
            )
        if when > latest:
            raise OutOfWindowError(
                f"Appointments cannot be booked more than "
                f"{_describe(self.max_horizon)} ahead",
                requested=when.isoformat(),
                latest=latest.isoformat(),
            )
        return when

    def bookable_dates(self, now: datetime | None = None) -> list[date]:
        """Calendar dates with at least some bookable time."""
        earliest, latest = self.bounds(now)
        days = (latest.date() - earliest.date()).days
        return [earliest.date() + timedelta(days=i) for i in range(days + 1)]


def _describe(delta: timedelta) -> str:
    if delta.days and not delta.seconds:
        return f"{delta.days} days"
    return f"{int(delta.total_seconds() // 3600)} hours"
