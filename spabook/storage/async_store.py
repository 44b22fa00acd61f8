"""Async facade over the SQLite store.

sqlite3 is blocking, so every call is run on a shared thread pool via
run_in_executor. The scheduler only talks to this facade.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from functools import partial
from typing import Any, Callable, TypeVar

from spabook.models import Appointment, AppointmentStatus, Service, StaffMember
from spabook.storage.database import SpaBookDB

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Shared executor for running sync database calls
_executor: ThreadPoolExecutor | None = None


def get_executor() -> ThreadPoolExecutor:
    """Get or create the shared thread pool executor."""
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="spabook-db")
    return _executor


def shutdown_executor() -> None:
    """Shutdown the thread pool executor.

    Call this during application shutdown to clean up resources.
    """
    global _executor
    if _executor is not None:
        _executor.shutdown(wait=True)
        _executor = None


class AsyncBookingStore:
    """Catalog and reservation store with async methods."""

    def __init__(self, db: SpaBookDB):
        self.db = db

    async def _run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(get_executor(), partial(fn, *args, **kwargs))

    # Catalog

    async def list_services(self, specialty: str | None = None) -> list[Service]:
        return await self._run(self.db.list_services, specialty)

    async def list_staff(self, specialty: str | None = None) -> list[StaffMember]:
        return await self._run(self.db.list_staff, specialty)

    async def get_service(self, service_id: str) -> Service | None:
        return await self._run(self.db.get_service, service_id)

    async def get_staff(self, staff_id: str) -> StaffMember | None:
        return await self._run(self.db.get_staff, staff_id)

    # Reservations

    async def find_appointments(
        self, staff_id: str, start: datetime, end: datetime
    ) -> list[Appointment]:
        return await self._run(self.db.find_appointments, staff_id, start, end)

    async def create_appointments(
        self,
        appointments: list[Appointment],
        block_duration: bool = False,
        cancelled_blocks: bool = False,
    ) -> list[str]:
        return await self._run(
            self.db.create_appointments,
            appointments,
            block_duration=block_duration,
            cancelled_blocks=cancelled_blocks,
        )

    async def get_appointment(self, appointment_id: str) -> Appointment | None:
        return await self._run(self.db.get_appointment, appointment_id)

    async def list_appointments(self, **filters: Any) -> list[Appointment]:
        return await self._run(self.db.list_appointments, **filters)

    async def update_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        expected: AppointmentStatus = AppointmentStatus.BOOKED,
    ) -> bool:
        return await self._run(
            self.db.update_status, appointment_id, status, expected=expected
        )

    async def count(self, table: str) -> int:
        return await self._run(self.db.count, table)
