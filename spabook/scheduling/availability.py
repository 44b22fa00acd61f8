"""Availability calculation for staff schedules.

The day is a fixed grid of half-hour slots from opening time up to,
but excluding, closing time. A slot is free for a staff member when no
occupying appointment of theirs starts in it.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from spabook.config import (
    BLOCK_FULL_DURATION,
    CANCELLED_BLOCKS_SLOT,
    CLOSING_HOUR,
    OPENING_HOUR,
    SLOT_MINUTES,
)
from spabook.models import Appointment, StoreUnavailable, TimeSlot
from spabook.storage.base import ReservationStore
from spabook.storage.database import end_of_day, start_of_day

logger = logging.getLogger(__name__)


def build_slot_grid(
    opening_hour: int = OPENING_HOUR,
    closing_hour: int = CLOSING_HOUR,
    step_minutes: int = SLOT_MINUTES,
) -> list[TimeSlot]:
    """Build the daily slot grid, e.g. 09:00, 09:30, ... 16:30.

    Raises:
        ValueError: If the hours or step do not describe a usable grid
    """
    if not 0 <= opening_hour < closing_hour <= 24:
        raise ValueError(f"Invalid opening hours: {opening_hour}-{closing_hour}")
    if step_minutes <= 0 or 60 % step_minutes:
        raise ValueError(f"Slot step must divide an hour, got {step_minutes}")

    return [
        TimeSlot(hour=minutes // 60, minute=minutes % 60)
        for minutes in range(opening_hour * 60, closing_hour * 60, step_minutes)
    ]


@dataclass(frozen=True)
class SlotPolicy:
    """Rules deciding which appointments occupy which slots.

    Attributes:
        cancelled_blocks: Treat cancelled appointments as occupying (legacy).
            Commits honour it too, so a hidden slot cannot be booked
        block_duration: Occupy ceil(duration / step) consecutive slots
            instead of only the starting slot
    """

    cancelled_blocks: bool = CANCELLED_BLOCKS_SLOT
    block_duration: bool = BLOCK_FULL_DURATION
    opening_hour: int = OPENING_HOUR
    closing_hour: int = CLOSING_HOUR
    step_minutes: int = SLOT_MINUTES
    _grid: tuple[TimeSlot, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        grid = build_slot_grid(self.opening_hour, self.closing_hour, self.step_minutes)
        object.__setattr__(self, "_grid", tuple(grid))

    @property
    def grid(self) -> list[TimeSlot]:
        return list(self._grid)

    def on_grid(self, slot: TimeSlot) -> bool:
        return slot in self._grid

    def slots_needed(self, duration_minutes: int | None) -> int:
        if not self.block_duration or not duration_minutes:
            return 1
        return math.ceil(duration_minutes / self.step_minutes)

    def occupies(self, appointment: Appointment) -> bool:
        return self.cancelled_blocks or appointment.occupies_slot

    def occupied_keys(self, appointments: list[Appointment]) -> set[str]:
        """Slot keys taken by the given appointments."""
        keys: set[str] = set()
        for appt in appointments:
            if not self.occupies(appt):
                continue
            count = self.slots_needed(appt.service.duration_minutes)
            for i in range(count):
                start = appt.scheduled_at + timedelta(minutes=i * self.step_minutes)
                keys.add(TimeSlot.from_datetime(start).key)
        return keys


class AvailabilityCalculator:
    """Computes bookable slots for a staff member on a date."""

    def __init__(self, store: ReservationStore, policy: SlotPolicy | None = None):
        self.store = store
        self.policy = policy or SlotPolicy()

    async def available_slots(
        self,
        staff_id: str | None,
        day: date,
        duration_minutes: int | None = None,
    ) -> list[TimeSlot]:
        """Return free slots in ascending order.

        The result is a snapshot; the commit re-checks at write time.

        Args:
            staff_id: Staff member (None or empty means nobody chosen yet)
            day: Calendar date
            duration_minutes: With ``block_duration``, only offer start slots
                where the whole service fits before closing

        Raises:
            StoreUnavailable: If existing appointments cannot be read
        """
        if not staff_id:
            return []

        try:
            appointments = await self.store.find_appointments(
                staff_id, start_of_day(day), end_of_day(day)
            )
        except StoreUnavailable:
            logger.error(f"Availability lookup failed for {staff_id} on {day}")
            raise
        except (OSError, ConnectionError) as e:
            raise StoreUnavailable(
                f"Reservation store unreachable: {e}",
                operation="find_appointments",
                entity_id=staff_id,
            ) from e

        occupied = self.policy.occupied_keys(appointments)
        grid = self.policy.grid
        free = [slot for slot in grid if slot.key not in occupied]

        needed = self.policy.slots_needed(duration_minutes)
        if needed > 1:
            free_keys = {slot.key for slot in free}
            free = [
                slot
                for slot in free
                if self._run_is_free(slot, needed, day, free_keys, grid[-1])
            ]

        logger.debug(f"{len(free)}/{len(grid)} slots free for {staff_id} on {day}")
        return free

    async def safe_available_slots(
        self,
        staff_id: str | None,
        day: date,
        duration_minutes: int | None = None,
    ) -> list[TimeSlot]:
        """Like ``available_slots`` but reports no slots when the store is down."""
        try:
            return await self.available_slots(staff_id, day, duration_minutes)
        except StoreUnavailable as e:
            logger.warning(f"⚠️ Showing no availability for {staff_id}: {e}")
            return []

    async def is_available(
        self, staff_id: str, when: datetime, duration_minutes: int | None = None
    ) -> bool:
        slot = TimeSlot.from_datetime(when)
        free = await self.available_slots(staff_id, when.date(), duration_minutes)
        return slot in free

    def _run_is_free(
        self,
        start: TimeSlot,
        needed: int,
        day: date,
        free_keys: set[str],
        last_slot: TimeSlot,
    ) -> bool:
        at = start.at(day)
        for i in range(needed):
            slot = TimeSlot.from_datetime(at + timedelta(minutes=i * self.policy.step_minutes))
            if last_slot < slot or slot.key not in free_keys:
                return False
        return True
