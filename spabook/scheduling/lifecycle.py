"""Appointment lifecycle and listings.

An appointment starts ``booked`` and may move once, to ``completed`` or
``cancelled``. Both are terminal.
"""

import logging
from datetime import date, datetime

from spabook.models import (
    Appointment,
    AppointmentStatus,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from spabook.storage.base import ReservationStore
from spabook.storage.database import end_of_day, start_of_day

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.BOOKED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class AppointmentManager:
    """Status changes and read views used by clients, staff and admins."""

    def __init__(self, store: ReservationStore):
        self.store = store

    async def get(self, appointment_id: str) -> Appointment:
        appt = await self.store.get_appointment(appointment_id)
        if appt is None:
            raise NotFoundError(
                f"Appointment not found: {appointment_id}",
                appointment_id=appointment_id,
            )
        return appt

    async def transition(
        self,
        appointment_id: str,
        target: AppointmentStatus,
        client_id: str | None = None,
    ) -> Appointment:
        """Move an appointment to ``target``.

        Args:
            appointment_id: Appointment to change
            target: New status
            client_id: When given, the appointment must belong to this client

        Raises:
            NotFoundError: If the appointment does not exist
            ValidationError: If it belongs to another client
            InvalidTransitionError: If the change is not allowed
        """
        appt = await self.get(appointment_id)
        if client_id is not None and appt.client_id != client_id:
            raise ValidationError(
                "Appointment belongs to another client", appointment_id=appointment_id
            )

        target = AppointmentStatus(target)
        if not can_transition(appt.status, target):
            raise InvalidTransitionError(
                f"Cannot change a {appt.status.value} appointment to {target.value}",
                appointment_id=appointment_id,
            )

        # Conditional update: loses cleanly to a concurrent transition
        if not await self.store.update_status(appointment_id, target, expected=appt.status):
            raise InvalidTransitionError(
                "Appointment changed while updating; reload and retry",
                appointment_id=appointment_id,
            )

        logger.info(f"Appointment {appointment_id}: {appt.status.value} → {target.value}")
        return appt.model_copy(update={"status": target})

    async def cancel(self, appointment_id: str, client_id: str | None = None) -> Appointment:
        return await self.transition(appointment_id, AppointmentStatus.CANCELLED, client_id)

    async def complete(self, appointment_id: str) -> Appointment:
        return await self.transition(appointment_id, AppointmentStatus.COMPLETED)

    async def client_appointments(
        self, client_id: str, status: AppointmentStatus | None = None
    ) -> list[Appointment]:
        """A client's appointments, newest first, optionally by status."""
        return await self.store.list_appointments(
            client_id=client_id, status=status, newest_first=True
        )

    async def staff_agenda(
        self, staff_id: str, day: date, include_cancelled: bool = False
    ) -> list[Appointment]:
        """A staff member's appointments for one day, in time order."""
        appts = await self.store.find_appointments(
            staff_id, start_of_day(day), end_of_day(day)
        )
        if include_cancelled:
            return appts
        return [a for a in appts if a.status != AppointmentStatus.CANCELLED]

    async def upcoming(
        self,
        client_id: str | None = None,
        staff_id: str | None = None,
        now: datetime | None = None,
    ) -> list[Appointment]:
        """Booked appointments from now on."""
        return await self.store.list_appointments(
            client_id=client_id,
            staff_id=staff_id,
            status=AppointmentStatus.BOOKED,
            start=now or datetime.now(),
        )
