"""SQLite storage for the spa catalog and appointments.

Provides CRUD operations for Service, StaffMember and Appointment.

Double booking is prevented at the storage layer: a partial unique index
on ``(staff_id, scheduled_at)`` covers every appointment that is not
cancelled, and multi-service bookings are written in one transaction so
a failed row leaves no sibling behind.
"""

import math
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Iterator

import pydantic

from spabook.config import DATABASE_PATH, SLOT_MINUTES
from spabook.models import (
    Appointment,
    AppointmentStatus,
    ConflictError,
    PaymentMethod,
    PaymentStatus,
    Service,
    ServiceSnapshot,
    StaffMember,
    StoreUnavailable,
    ValidationError,
)

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S"


def generate_id(prefix: str) -> str:
    """Generate a prefixed UUID."""
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def _build_service(**fields) -> Service:
    try:
        return Service(**fields)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid service: {e}", service_id=fields.get("id")) from e


def _ts(value: datetime) -> str:
    return value.strftime(_TS_FORMAT)


def blocked_minutes(duration_minutes: int, slot_minutes: int = SLOT_MINUTES) -> int:
    """Wall-clock minutes a booking occupies when whole slots are blocked."""
    return math.ceil(duration_minutes / slot_minutes) * slot_minutes


class SpaBookDB:
    """SQLite database for catalog and reservation records.

    One connection is shared and guarded by a lock so the instance can be
    used from the thread pool that backs ``AsyncBookingStore``.
    """

    def __init__(self, db_path: str | Path | None = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite file, or ":memory:" for in-memory.
                     Defaults to SPABOOK_DB_PATH or outputs/spabook.db
        """
        if db_path is None:
            db_path = DATABASE_PATH
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.db_path = str(db_path)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()

    def init_schema(self) -> None:
        """Create tables if they don't exist."""
        with self._lock:
            self.conn.executescript("""
                CREATE TABLE IF NOT EXISTS services (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    specialty TEXT NOT NULL,
                    price TEXT NOT NULL,
                    duration_minutes INTEGER NOT NULL,
                    description TEXT DEFAULT '',
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS staff (
                    id TEXT PRIMARY KEY,
                    display_name TEXT NOT NULL,
                    specialty TEXT NOT NULL,
                    email TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS appointments (
                    id TEXT PRIMARY KEY,
                    client_id TEXT NOT NULL,
                    client_name TEXT NOT NULL,
                    client_email TEXT,
                    service_id TEXT NOT NULL,
                    service_name TEXT NOT NULL,
                    service_price TEXT NOT NULL,
                    service_duration INTEGER NOT NULL,
                    staff_id TEXT NOT NULL,
                    staff_name TEXT NOT NULL,
                    scheduled_at TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'booked'
                        CHECK(status IN ('booked', 'completed', 'cancelled')),
                    payment_method TEXT NOT NULL
                        CHECK(payment_method IN ('web', 'on_site')),
                    payment_status TEXT NOT NULL
                        CHECK(payment_status IN ('paid', 'pending')),
                    discount_applied INTEGER NOT NULL DEFAULT 0,
                    total_price TEXT NOT NULL,
                    group_id TEXT,
                    created_at TEXT NOT NULL
                );
                CREATE UNIQUE INDEX IF NOT EXISTS idx_appointments_live_slot
                    ON appointments(staff_id, scheduled_at)
                    WHERE status != 'cancelled';
                CREATE INDEX IF NOT EXISTS idx_appointments_staff_time
                    ON appointments(staff_id, scheduled_at);
                CREATE INDEX IF NOT EXISTS idx_appointments_client
                    ON appointments(client_id);
            """)
            self.conn.commit()

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            self.conn.close()

    @contextmanager
    def _guard(self, operation: str, entity_id: str | None = None) -> Iterator[None]:
        """Serialize access and translate sqlite errors into booking errors."""
        with self._lock:
            try:
                yield
            except sqlite3.IntegrityError as e:
                raise ConflictError(
                    "Time slot is no longer available",
                    operation=operation,
                    entity_id=entity_id,
                ) from e
            except (sqlite3.OperationalError, sqlite3.ProgrammingError) as e:
                raise StoreUnavailable(
                    f"{operation} failed: {e}",
                    operation=operation,
                    entity_id=entity_id,
                ) from e

    # =========================================================================
    # Service operations
    # =========================================================================

    def create_service(
        self,
        name: str,
        specialty: str,
        price: Decimal | str | float,
        duration_minutes: int,
        description: str = "",
    ) -> Service:
        """Create a new service."""
        service = _build_service(
            id=generate_id("svc"),
            name=name,
            specialty=specialty,
            price=Decimal(str(price)),
            duration_minutes=duration_minutes,
            description=description,
        )
        with self._guard("create_service", service.id):
            self.conn.execute(
                """INSERT INTO services
                   (id, name, specialty, price, duration_minutes, description, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    service.id,
                    service.name,
                    service.specialty,
                    str(service.price),
                    service.duration_minutes,
                    service.description,
                    datetime.now().isoformat(),
                ),
            )
            self.conn.commit()
        return service

    def get_service(self, service_id: str) -> Service | None:
        """Get service by ID."""
        with self._guard("get_service", service_id):
            row = self.conn.execute(
                "SELECT * FROM services WHERE id = ?", (service_id,)
            ).fetchone()
        return None if row is None else self._row_to_service(row)

    def list_services(self, specialty: str | None = None) -> list[Service]:
        """List services, optionally restricted to one specialty."""
        query = "SELECT * FROM services"
        params: list = []
        if specialty:
            query += " WHERE specialty = ?"
            params.append(specialty)
        query += " ORDER BY name"

        with self._guard("list_services"):
            rows = self.conn.execute(query, params).fetchall()
        return [self._row_to_service(row) for row in rows]

    def update_service(self, service_id: str, **fields) -> Service | None:
        """Update a service. Existing appointments keep their snapshot."""
        current = self.get_service(service_id)
        if current is None:
            return None

        updated = _build_service(**{**current.model_dump(), **fields, "id": service_id})
        with self._guard("update_service", service_id):
            self.conn.execute(
                """UPDATE services
                   SET name = ?, specialty = ?, price = ?, duration_minutes = ?,
                       description = ?
                   WHERE id = ?""",
                (
                    updated.name,
                    updated.specialty,
                    str(updated.price),
                    updated.duration_minutes,
                    updated.description,
                    service_id,
                ),
            )
            self.conn.commit()
        return updated

    def delete_service(self, service_id: str) -> bool:
        """Delete service by ID. Returns True if deleted."""
        with self._guard("delete_service", service_id):
            cursor = self.conn.execute(
                "DELETE FROM services WHERE id = ?", (service_id,)
            )
            self.conn.commit()
        return cursor.rowcount > 0

    # =========================================================================
    # Staff operations
    # =========================================================================

    def create_staff(
        self, display_name: str, specialty: str, email: str | None = None
    ) -> StaffMember:
        """Create a new staff member."""
        member = StaffMember(
            id=generate_id("stf"),
            display_name=display_name,
            specialty=specialty,
            email=email,
        )
        with self._guard("create_staff", member.id):
            self.conn.execute(
                """INSERT INTO staff (id, display_name, specialty, email, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    member.id,
                    member.display_name,
                    member.specialty,
                    member.email,
                    datetime.now().isoformat(),
                ),
            )
            self.conn.commit()
        return member

    def get_staff(self, staff_id: str) -> StaffMember | None:
        """Get staff member by ID."""
        with self._guard("get_staff", staff_id):
            row = self.conn.execute(
                "SELECT * FROM staff WHERE id = ?", (staff_id,)
            ).fetchone()
        return None if row is None else self._row_to_staff(row)

    def list_staff(self, specialty: str | None = None) -> list[StaffMember]:
        """List staff, optionally restricted to one specialty."""
        query = "SELECT * FROM staff"
        params: list = []
        if specialty:
            query += " WHERE specialty = ?"
            params.append(specialty)
        query += " ORDER BY display_name"

        with self._guard("list_staff"):
            rows = self.conn.execute(query, params).fetchall()
        return [self._row_to_staff(row) for row in rows]

    def delete_staff(self, staff_id: str) -> bool:
        """Delete staff member by ID. Returns True if deleted."""
        with self._guard("delete_staff", staff_id):
            cursor = self.conn.execute("DELETE FROM staff WHERE id = ?", (staff_id,))
            self.conn.commit()
        return cursor.rowcount > 0

    # =========================================================================
    # Appointment operations
    # =========================================================================

    def find_appointments(
        self, staff_id: str, start: datetime, end: datetime
    ) -> list[Appointment]:
        """Appointments of any status for a staff member within [start, end]."""
        with self._guard("find_appointments", staff_id):
            rows = self.conn.execute(
                """SELECT * FROM appointments
                   WHERE staff_id = ? AND scheduled_at >= ? AND scheduled_at <= ?
                   ORDER BY scheduled_at""",
                (staff_id, _ts(start), _ts(end)),
            ).fetchall()
        return [self._row_to_appointment(row) for row in rows]

    def create_appointment(self, appointment: Appointment) -> str:
        """Create a single appointment. Returns its ID."""
        return self.create_appointments([appointment])[0]

    def create_appointments(
        self,
        appointments: list[Appointment],
        block_duration: bool = False,
        cancelled_blocks: bool = False,
    ) -> list[str]:
        """Create several appointments atomically.

        Either every appointment is written or none is.

        Args:
            appointments: Appointments to insert (IDs are generated if missing)
            block_duration: Also reject bookings whose full duration overlaps
                another live booking of the same staff member
            cancelled_blocks: Also reject slots held by a cancelled appointment

        Returns:
            IDs of the created appointments, in input order

        Raises:
            ConflictError: If any slot is already taken
            StoreUnavailable: If the database cannot be written
        """
        ids = [appt.id or generate_id("appt") for appt in appointments]
        entity = appointments[0].staff_id if appointments else None

        with self._guard("create_appointments", entity):
            with self.conn:
                for appt_id, appt in zip(ids, appointments):
                    if cancelled_blocks:
                        self._check_cancelled(appt)
                    if block_duration:
                        self._check_overlap(appt, cancelled_blocks)
                    self._insert_appointment(appt_id, appt)
        return ids

    def _check_cancelled(self, appt: Appointment) -> None:
        """Raise ConflictError if a cancelled appointment still holds the slot."""
        row = self.conn.execute(
            """SELECT 1 FROM appointments
               WHERE staff_id = ? AND scheduled_at = ? AND status = 'cancelled'""",
            (appt.staff_id, _ts(appt.scheduled_at)),
        ).fetchone()
        if row is not None:
            raise ConflictError(
                "Slot is held by a cancelled appointment",
                operation="create_appointments",
                entity_id=appt.staff_id,
            )

    def _check_overlap(self, appt: Appointment, include_cancelled: bool = False) -> None:
        """Raise ConflictError if the booking overlaps another for the staff."""
        status_clause = "" if include_cancelled else "AND status != 'cancelled'"
        day = appt.scheduled_at.date()
        start = appt.scheduled_at
        end = start + timedelta(minutes=blocked_minutes(appt.service.duration_minutes))

        rows = self.conn.execute(
            f"""SELECT scheduled_at, service_duration FROM appointments
                WHERE staff_id = ? {status_clause}
                  AND scheduled_at >= ? AND scheduled_at < ?""",
            (
                appt.staff_id,
                _ts(datetime.combine(day, time.min)),
                _ts(datetime.combine(day + timedelta(days=1), time.min)),
            ),
        ).fetchall()

        for row in rows:
            other_start = datetime.fromisoformat(row["scheduled_at"])
            other_end = other_start + timedelta(
                minutes=blocked_minutes(row["service_duration"])
            )
            if start < other_end and other_start < end:
                raise ConflictError(
                    "Booking overlaps an existing appointment",
                    operation="create_appointments",
                    entity_id=appt.staff_id,
                )

    def _insert_appointment(self, appt_id: str, appt: Appointment) -> None:
        self.conn.execute(
            """INSERT INTO appointments
               (id, client_id, client_name, client_email,
                service_id, service_name, service_price, service_duration,
                staff_id, staff_name, scheduled_at, status,
                payment_method, payment_status, discount_applied, total_price,
                group_id, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                appt_id,
                appt.client_id,
                appt.client_name,
                appt.client_email,
                appt.service.id,
                appt.service.name,
                str(appt.service.price),
                appt.service.duration_minutes,
                appt.staff_id,
                appt.staff_name,
                _ts(appt.scheduled_at),
                appt.status.value,
                appt.payment_method.value,
                appt.payment_status.value,
                int(appt.discount_applied),
                str(appt.total_price),
                appt.group_id,
                appt.created_at.isoformat(),
            ),
        )

    def get_appointment(self, appointment_id: str) -> Appointment | None:
        """Get appointment by ID."""
        with self._guard("get_appointment", appointment_id):
            row = self.conn.execute(
                "SELECT * FROM appointments WHERE id = ?", (appointment_id,)
            ).fetchone()
        return None if row is None else self._row_to_appointment(row)

    def list_appointments(
        self,
        client_id: str | None = None,
        staff_id: str | None = None,
        status: AppointmentStatus | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
        newest_first: bool = False,
    ) -> list[Appointment]:
        """List appointments with optional filters."""
        query = "SELECT * FROM appointments WHERE 1=1"
        params: list = []

        if client_id:
            query += " AND client_id = ?"
            params.append(client_id)
        if staff_id:
            query += " AND staff_id = ?"
            params.append(staff_id)
        if status is not None:
            query += " AND status = ?"
            params.append(AppointmentStatus(status).value)
        if start is not None:
            query += " AND scheduled_at >= ?"
            params.append(_ts(start))
        if end is not None:
            query += " AND scheduled_at <= ?"
            params.append(_ts(end))

        query += " ORDER BY scheduled_at DESC" if newest_first else " ORDER BY scheduled_at"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self._guard("list_appointments"):
            rows = self.conn.execute(query, params).fetchall()
        return [self._row_to_appointment(row) for row in rows]

    def update_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        expected: AppointmentStatus = AppointmentStatus.BOOKED,
    ) -> bool:
        """Change status if the appointment is currently ``expected``.

        Returns:
            True if a row was updated
        """
        with self._guard("update_status", appointment_id):
            cursor = self.conn.execute(
                "UPDATE appointments SET status = ? WHERE id = ? AND status = ?",
                (AppointmentStatus(status).value, appointment_id, expected.value),
            )
            self.conn.commit()
        return cursor.rowcount > 0

    def count(self, table: str) -> int:
        """Row count for one of the known tables."""
        if table not in ("services", "staff", "appointments"):
            raise ValueError(f"Unknown table: {table}")
        with self._guard("count"):
            row = self.conn.execute(f"SELECT COUNT(*) AS n FROM {table}").fetchone()
        return row["n"]

    # =========================================================================
    # Row mapping
    # =========================================================================

    @staticmethod
    def _row_to_service(row: sqlite3.Row) -> Service:
        return Service(
            id=row["id"],
            name=row["name"],
            specialty=row["specialty"],
            price=Decimal(row["price"]),
            duration_minutes=row["duration_minutes"],
            description=row["description"] or "",
        )

    @staticmethod
    def _row_to_staff(row: sqlite3.Row) -> StaffMember:
        return StaffMember(
            id=row["id"],
            display_name=row["display_name"],
            specialty=row["specialty"],
            email=row["email"],
        )

    @staticmethod
    def _row_to_appointment(row: sqlite3.Row) -> Appointment:
        return Appointment(
            id=row["id"],
            client_id=row["client_id"],
            client_name=row["client_name"],
            client_email=row["client_email"],
            service=ServiceSnapshot(
                id=row["service_id"],
                name=row["service_name"],
                price=Decimal(row["service_price"]),
                duration_minutes=row["service_duration"],
            ),
            staff_id=row["staff_id"],
            staff_name=row["staff_name"],
            scheduled_at=datetime.fromisoformat(row["scheduled_at"]),
            status=AppointmentStatus(row["status"]),
            payment_method=PaymentMethod(row["payment_method"]),
            payment_status=PaymentStatus(row["payment_status"]),
            discount_applied=bool(row["discount_applied"]),
            total_price=Decimal(row["total_price"]),
            group_id=row["group_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time(23, 59, 59))
