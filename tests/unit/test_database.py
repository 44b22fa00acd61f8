"""Tests for spabook.storage.database module."""

import sqlite3
from datetime import datetime
from decimal import Decimal

import pytest

from spabook.models import (
    Appointment,
    AppointmentStatus,
    ConflictError,
    PaymentMethod,
    PaymentStatus,
    StoreUnavailable,
    ValidationError,
)
from spabook.storage import (
    SpaBookDB,
    blocked_minutes,
    end_of_day,
    generate_id,
    start_of_day,
)
from tests.conftest import BOOKING_DAY, at


def _appointment(service, staff, when, client_id="client_1", **overrides) -> Appointment:
    fields = dict(
        client_id=client_id,
        client_name="Carla",
        service=service.snapshot(),
        staff_id=staff.id,
        staff_name=staff.display_name,
        scheduled_at=when,
        total_price=service.price,
    )
    fields.update(overrides)
    return Appointment(**fields)


class TestSchema:
    def test_init_schema_is_idempotent(self, db):
        db.init_schema()
        assert db.count("services") == 0

    def test_file_database_creates_parent_dir(self, tmp_path):
        path = tmp_path / "nested" / "spa.db"
        database = SpaBookDB(path)
        database.init_schema()
        database.close()

        assert path.exists()

    def test_count_rejects_unknown_table(self, db):
        with pytest.raises(ValueError):
            db.count("sqlite_master")


class TestServiceCRUD:
    """Tests for service operations."""

    def test_create_and_get(self, db):
        service = db.create_service(
            name="Swedish Massage", specialty="Massage", price="60.00", duration_minutes=60
        )

        fetched = db.get_service(service.id)

        assert service.id.startswith("svc_")
        assert fetched == service
        assert fetched.price == Decimal("60.00")

    def test_get_missing(self, db):
        assert db.get_service("svc_missing") is None

    def test_list_by_specialty(self, db, catalog):
        names = [s.name for s in db.list_services("Massage")]
        assert names == ["Hot Stone", "Swedish Massage"]

    def test_update_service(self, db, catalog):
        updated = db.update_service(catalog["facial"].id, price=Decimal("55.00"))

        assert updated.price == Decimal("55.00")
        assert db.get_service(catalog["facial"].id).price == Decimal("55.00")

    def test_update_missing(self, db):
        assert db.update_service("svc_missing", name="x") is None

    def test_create_rejects_sub_cent_price(self, db):
        with pytest.raises(ValidationError, match="Invalid service"):
            db.create_service(
                name="Manicure", specialty="Beauty", price="10.005", duration_minutes=30
            )

        assert db.count("services") == 0

    def test_update_rejects_sub_cent_price(self, db, catalog):
        with pytest.raises(ValidationError):
            db.update_service(catalog["facial"].id, price=Decimal("10.005"))

        assert db.get_service(catalog["facial"].id).price == catalog["facial"].price

    def test_delete_service(self, db, catalog):
        assert db.delete_service(catalog["facial"].id) is True
        assert db.get_service(catalog["facial"].id) is None
        assert db.delete_service(catalog["facial"].id) is False


class TestStaffCRUD:
    def test_create_and_list(self, db, catalog):
        massage = db.list_staff("Massage")

        assert [m.display_name for m in massage] == ["Ana", "Marco"]
        assert len(db.list_staff()) == 3

    def test_delete_staff(self, db, catalog):
        assert db.delete_staff(catalog["lucia"].id) is True
        assert db.get_staff(catalog["lucia"].id) is None


class TestCreateAppointments:
    """Tests for atomic appointment writes."""

    def test_round_trip_keeps_snapshot(self, db, catalog):
        appt = _appointment(
            catalog["massage"], catalog["ana"], at(10),
            payment_method=PaymentMethod.WEB,
            payment_status=PaymentStatus.PAID,
            discount_applied=True,
            total_price=Decimal("85.00"),
            group_id="grp",
        )

        [appt_id] = db.create_appointments([appt])
        stored = db.get_appointment(appt_id)

        assert stored.service.name == "Swedish Massage"
        assert stored.service.price == Decimal("100.00")
        assert stored.total_price == Decimal("85.00")
        assert stored.discount_applied is True
        assert stored.scheduled_at == at(10)
        assert stored.group_id == "grp"

    def test_snapshot_survives_catalog_change(self, db, catalog):
        appt_id = db.create_appointment(_appointment(catalog["massage"], catalog["ana"], at(10)))

        db.update_service(catalog["massage"].id, price=Decimal("150.00"), name="Renamed")

        stored = db.get_appointment(appt_id)
        assert stored.service.price == Decimal("100.00")
        assert stored.service.name == "Swedish Massage"

    def test_same_staff_same_slot_conflicts(self, db, catalog):
        db.create_appointment(_appointment(catalog["massage"], catalog["ana"], at(10)))

        with pytest.raises(ConflictError):
            db.create_appointment(
                _appointment(catalog["hot_stone"], catalog["ana"], at(10), client_id="other")
            )

    def test_different_staff_same_slot_allowed(self, db, catalog):
        db.create_appointment(_appointment(catalog["massage"], catalog["ana"], at(10)))
        db.create_appointment(_appointment(catalog["massage"], catalog["marco"], at(10)))

        assert db.count("appointments") == 2

    def test_failed_batch_writes_nothing(self, db, catalog):
        db.create_appointment(_appointment(catalog["massage"], catalog["marco"], at(10)))
        batch = [
            _appointment(catalog["massage"], catalog["ana"], at(10), client_id="c2"),
            _appointment(catalog["hot_stone"], catalog["marco"], at(10), client_id="c2"),
        ]

        with pytest.raises(ConflictError):
            db.create_appointments(batch)

        assert db.list_appointments(client_id="c2") == []
        assert db.count("appointments") == 1

    def test_cancelled_slot_can_be_rebooked(self, db, catalog):
        first = db.create_appointment(_appointment(catalog["massage"], catalog["ana"], at(10)))
        assert db.update_status(first, AppointmentStatus.CANCELLED)

        second = db.create_appointment(
            _appointment(catalog["massage"], catalog["ana"], at(10), client_id="c2")
        )

        assert second != first
        assert len(db.find_appointments(catalog["ana"].id, at(0), at(23, 59))) == 2

    def test_cancelled_blocks_rejects_cancelled_slot(self, db, catalog):
        first = db.create_appointment(_appointment(catalog["massage"], catalog["ana"], at(10)))
        db.update_status(first, AppointmentStatus.CANCELLED)

        with pytest.raises(ConflictError, match="cancelled"):
            db.create_appointments(
                [_appointment(catalog["massage"], catalog["ana"], at(10), client_id="c2")],
                cancelled_blocks=True,
            )

        assert db.list_appointments(client_id="c2") == []

    def test_cancelled_blocks_with_duration_overlap(self, db, catalog):
        first = db.create_appointment(
            _appointment(catalog["hot_stone"], catalog["ana"], at(10))
        )
        db.update_status(first, AppointmentStatus.CANCELLED)

        with pytest.raises(ConflictError, match="overlaps"):
            db.create_appointments(
                [_appointment(catalog["massage"], catalog["ana"], at(11), client_id="c2")],
                block_duration=True,
                cancelled_blocks=True,
            )

    def test_block_duration_rejects_overlap(self, db, catalog):
        db.create_appointment(_appointment(catalog["hot_stone"], catalog["ana"], at(10)))

        with pytest.raises(ConflictError, match="overlaps"):
            db.create_appointments(
                [_appointment(catalog["massage"], catalog["ana"], at(11), client_id="c2")],
                block_duration=True,
            )

    def test_block_duration_allows_adjacent(self, db, catalog):
        db.create_appointment(_appointment(catalog["hot_stone"], catalog["ana"], at(10)))

        db.create_appointments(
            [_appointment(catalog["massage"], catalog["ana"], at(11, 30), client_id="c2")],
            block_duration=True,
        )

        assert db.count("appointments") == 2

    def test_closed_connection_is_unavailable(self, db, catalog):
        appt = _appointment(catalog["massage"], catalog["ana"], at(10))
        db.close()

        with pytest.raises(StoreUnavailable) as exc_info:
            db.create_appointments([appt])

        assert exc_info.value.operation == "create_appointments"
        assert isinstance(exc_info.value.__cause__, sqlite3.ProgrammingError)


class TestQueries:
    """Tests for appointment reads and status updates."""

    def test_find_appointments_window_is_inclusive(self, db, catalog):
        db.create_appointment(_appointment(catalog["massage"], catalog["ana"], at(9)))
        db.create_appointment(_appointment(catalog["massage"], catalog["ana"], at(16, 30)))

        found = db.find_appointments(catalog["ana"].id, at(9), at(16, 30))

        assert [a.scheduled_at for a in found] == [at(9), at(16, 30)]

    def test_list_appointments_filters(self, db, catalog):
        db.create_appointment(_appointment(catalog["massage"], catalog["ana"], at(9)))
        db.create_appointment(
            _appointment(catalog["facial"], catalog["lucia"], at(11), client_id="c2")
        )
        db.create_appointment(_appointment(catalog["massage"], catalog["marco"], at(13)))

        mine = db.list_appointments(client_id="client_1", newest_first=True)

        assert [a.scheduled_at for a in mine] == [at(13), at(9)]
        assert len(db.list_appointments(staff_id=catalog["lucia"].id)) == 1
        assert len(db.list_appointments(limit=2)) == 2
        assert len(db.list_appointments(start=at(10), end=at(12))) == 1

    def test_update_status_requires_expected(self, db, catalog):
        appt_id = db.create_appointment(_appointment(catalog["massage"], catalog["ana"], at(9)))

        assert db.update_status(appt_id, AppointmentStatus.COMPLETED) is True
        assert db.update_status(appt_id, AppointmentStatus.CANCELLED) is False
        assert db.get_appointment(appt_id).status == AppointmentStatus.COMPLETED

    def test_list_by_status(self, db, catalog):
        appt_id = db.create_appointment(_appointment(catalog["massage"], catalog["ana"], at(9)))
        db.update_status(appt_id, AppointmentStatus.CANCELLED)

        assert db.list_appointments(status=AppointmentStatus.BOOKED) == []
        assert len(db.list_appointments(status="cancelled")) == 1


class TestHelpers:
    def test_generate_id(self):
        first, second = generate_id("appt"), generate_id("appt")

        assert first.startswith("appt_")
        assert first != second

    def test_blocked_minutes(self):
        assert blocked_minutes(45) == 60
        assert blocked_minutes(60) == 60
        assert blocked_minutes(90) == 90

    def test_day_bounds(self):
        assert start_of_day(BOOKING_DAY) == at(0)
        assert end_of_day(BOOKING_DAY) == datetime(2026, 3, 5, 23, 59, 59)
