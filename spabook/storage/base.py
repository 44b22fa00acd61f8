"""Store interfaces the scheduler depends on.

Any object with these async methods can back the scheduler; the
bundled implementation is ``AsyncBookingStore`` over SQLite.
"""

from datetime import datetime
from typing import Protocol

from spabook.models import Appointment, AppointmentStatus, Service, StaffMember


class CatalogStore(Protocol):
    """Read-only access to services and staff."""

    async def list_services(self) -> list[Service]: ...

    async def list_staff(self) -> list[StaffMember]: ...

    async def get_service(self, service_id: str) -> Service | None: ...

    async def get_staff(self, staff_id: str) -> StaffMember | None: ...


class ReservationStore(Protocol):
    """Appointment reads and atomic appointment writes."""

    async def find_appointments(
        self, staff_id: str, start: datetime, end: datetime
    ) -> list[Appointment]: ...

    async def create_appointments(
        self,
        appointments: list[Appointment],
        block_duration: bool = False,
        cancelled_blocks: bool = False,
    ) -> list[str]: ...

    async def get_appointment(self, appointment_id: str) -> Appointment | None: ...

    async def list_appointments(self, **filters) -> list[Appointment]: ...

    async def update_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        expected: AppointmentStatus = AppointmentStatus.BOOKED,
    ) -> bool: ...
