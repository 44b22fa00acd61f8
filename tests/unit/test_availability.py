"""Tests for spabook.scheduling.availability module."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from spabook.models import AppointmentStatus, StoreUnavailable, TimeSlot
from spabook.scheduling.availability import (
    AvailabilityCalculator,
    SlotPolicy,
    build_slot_grid,
)
from tests.conftest import BOOKING_DAY, at, days_after


def _keys(slots: list[TimeSlot]) -> list[str]:
    return [slot.key for slot in slots]


class TestSlotGrid:
    """Tests for build_slot_grid."""

    def test_default_grid(self):
        grid = build_slot_grid()

        assert len(grid) == 16
        assert grid[0].key == "09:00"
        assert grid[-1].key == "16:30"

    def test_custom_hours(self):
        assert _keys(build_slot_grid(10, 12, 60)) == ["10:00", "11:00"]

    @pytest.mark.parametrize(
        "opening,closing,step", [(17, 9, 30), (9, 9, 30), (9, 17, 0), (9, 17, 45)]
    )
    def test_rejects_unusable_grid(self, opening, closing, step):
        with pytest.raises(ValueError):
            build_slot_grid(opening, closing, step)


class TestSlotPolicy:
    def test_slots_needed(self):
        policy = SlotPolicy(block_duration=True)

        assert policy.slots_needed(30) == 1
        assert policy.slots_needed(45) == 2
        assert policy.slots_needed(90) == 3

    def test_slots_needed_without_duration_blocking(self):
        assert SlotPolicy(block_duration=False).slots_needed(90) == 1

    def test_on_grid(self):
        policy = SlotPolicy()

        assert policy.on_grid(TimeSlot(hour=9, minute=0))
        assert not policy.on_grid(TimeSlot(hour=9, minute=15))
        assert not policy.on_grid(TimeSlot(hour=17, minute=0))


class TestAvailableSlots:
    """Tests for AvailabilityCalculator.available_slots."""

    @pytest.mark.asyncio
    async def test_empty_day_returns_full_grid(self, store, catalog):
        calc = AvailabilityCalculator(store)

        slots = await calc.available_slots(catalog["ana"].id, BOOKING_DAY)

        assert _keys(slots) == _keys(build_slot_grid())

    @pytest.mark.asyncio
    async def test_no_staff_returns_nothing(self, store):
        calc = AvailabilityCalculator(store)

        assert await calc.available_slots(None, BOOKING_DAY) == []
        assert await calc.available_slots("", BOOKING_DAY) == []

    @pytest.mark.asyncio
    async def test_booked_slot_is_excluded(self, db, store, catalog, make_appointment):
        make_appointment(db, catalog["massage"], catalog["ana"], at(10))
        calc = AvailabilityCalculator(store)

        slots = _keys(await calc.available_slots(catalog["ana"].id, BOOKING_DAY))

        assert "10:00" not in slots
        assert "09:30" in slots
        assert "10:30" in slots
        assert len(slots) == 15

    @pytest.mark.asyncio
    async def test_result_is_sorted(self, db, store, catalog, make_appointment):
        make_appointment(db, catalog["massage"], catalog["ana"], at(12))
        calc = AvailabilityCalculator(store)

        slots = await calc.available_slots(catalog["ana"].id, BOOKING_DAY)

        assert slots == sorted(slots)

    @pytest.mark.asyncio
    async def test_other_staff_unaffected(self, db, store, catalog, make_appointment):
        make_appointment(db, catalog["massage"], catalog["ana"], at(10))
        calc = AvailabilityCalculator(store)

        slots = await calc.available_slots(catalog["marco"].id, BOOKING_DAY)

        assert "10:00" in _keys(slots)

    @pytest.mark.asyncio
    async def test_other_day_unaffected(self, db, store, catalog, make_appointment):
        make_appointment(db, catalog["massage"], catalog["ana"], at(10, day=days_after(1)))
        calc = AvailabilityCalculator(store)

        slots = await calc.available_slots(catalog["ana"].id, BOOKING_DAY)

        assert len(slots) == 16

    @pytest.mark.asyncio
    async def test_completed_appointment_blocks(self, db, store, catalog, make_appointment):
        make_appointment(
            db, catalog["massage"], catalog["ana"], at(11),
            status=AppointmentStatus.COMPLETED,
        )
        calc = AvailabilityCalculator(store)

        slots = await calc.available_slots(catalog["ana"].id, BOOKING_DAY)

        assert "11:00" not in _keys(slots)


class TestCancelledAppointments:
    """Cancelled appointments free their slot unless the legacy policy is on."""

    @pytest.mark.asyncio
    async def test_cancelled_frees_slot_by_default(
        self, db, store, catalog, make_appointment
    ):
        make_appointment(
            db, catalog["massage"], catalog["ana"], at(10),
            status=AppointmentStatus.CANCELLED,
        )
        calc = AvailabilityCalculator(store)

        slots = await calc.available_slots(catalog["ana"].id, BOOKING_DAY)

        assert "10:00" in _keys(slots)

    @pytest.mark.asyncio
    async def test_cancelled_blocks_with_legacy_policy(
        self, db, store, catalog, make_appointment
    ):
        make_appointment(
            db, catalog["massage"], catalog["ana"], at(10),
            status=AppointmentStatus.CANCELLED,
        )
        calc = AvailabilityCalculator(store, SlotPolicy(cancelled_blocks=True))

        slots = await calc.available_slots(catalog["ana"].id, BOOKING_DAY)

        assert "10:00" not in _keys(slots)


class TestDurationBlocking:
    """Tests for SlotPolicy(block_duration=True)."""

    @pytest.mark.asyncio
    async def test_long_service_blocks_following_slots(
        self, db, store, catalog, make_appointment
    ):
        # 90 minutes at 10:00 covers 10:00, 10:30 and 11:00
        make_appointment(db, catalog["hot_stone"], catalog["ana"], at(10))
        calc = AvailabilityCalculator(store, SlotPolicy(block_duration=True))

        slots = _keys(await calc.available_slots(catalog["ana"].id, BOOKING_DAY))

        assert "10:00" not in slots
        assert "10:30" not in slots
        assert "11:00" not in slots
        assert "11:30" in slots

    @pytest.mark.asyncio
    async def test_start_slot_needs_room_for_whole_service(
        self, db, store, catalog, make_appointment
    ):
        make_appointment(db, catalog["massage"], catalog["ana"], at(10))
        calc = AvailabilityCalculator(store, SlotPolicy(block_duration=True))

        slots = _keys(await calc.available_slots(catalog["ana"].id, BOOKING_DAY, 60))

        # 09:30 would run into the 10:00 booking
        assert "09:30" not in slots
        assert "09:00" in slots
        # must finish by closing time
        assert "16:00" in slots
        assert "16:30" not in slots

    @pytest.mark.asyncio
    async def test_start_slot_only_without_policy(
        self, db, store, catalog, make_appointment
    ):
        make_appointment(db, catalog["hot_stone"], catalog["ana"], at(10))
        calc = AvailabilityCalculator(store)

        slots = _keys(await calc.available_slots(catalog["ana"].id, BOOKING_DAY, 90))

        assert "10:00" not in slots
        assert "10:30" in slots
        assert "16:30" in slots


class TestFailClosed:
    """A store failure must never look like an empty schedule."""

    @pytest.mark.asyncio
    async def test_store_unavailable_propagates(self):
        store = MagicMock()
        store.find_appointments = AsyncMock(
            side_effect=StoreUnavailable("down", operation="find_appointments")
        )
        calc = AvailabilityCalculator(store)

        with pytest.raises(StoreUnavailable):
            await calc.available_slots("stf_1", BOOKING_DAY)

    @pytest.mark.asyncio
    async def test_connection_error_is_wrapped(self):
        store = MagicMock()
        store.find_appointments = AsyncMock(side_effect=ConnectionError("refused"))
        calc = AvailabilityCalculator(store)

        with pytest.raises(StoreUnavailable) as exc_info:
            await calc.available_slots("stf_1", BOOKING_DAY)

        assert exc_info.value.entity_id == "stf_1"

    @pytest.mark.asyncio
    async def test_safe_variant_shows_nothing(self):
        store = MagicMock()
        store.find_appointments = AsyncMock(
            side_effect=StoreUnavailable("down", operation="find_appointments")
        )
        calc = AvailabilityCalculator(store)

        assert await calc.safe_available_slots("stf_1", BOOKING_DAY) == []

    @pytest.mark.asyncio
    async def test_closed_database_is_unavailable(self, db, store, catalog):
        staff_id = catalog["ana"].id
        db.close()
        calc = AvailabilityCalculator(store)

        with pytest.raises(StoreUnavailable):
            await calc.available_slots(staff_id, BOOKING_DAY)


class TestIsAvailable:
    @pytest.mark.asyncio
    async def test_is_available(self, db, store, catalog, make_appointment):
        make_appointment(db, catalog["massage"], catalog["ana"], at(10))
        calc = AvailabilityCalculator(store)

        assert await calc.is_available(catalog["ana"].id, at(10, 30))
        assert not await calc.is_available(catalog["ana"].id, at(10))
