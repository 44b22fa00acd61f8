"""CLI command implementations.

Contains all cmd_* functions for CLI subcommands.
"""

import asyncio
import sys
from argparse import Namespace
from datetime import date

from spabook.models import AppointmentStatus, BookingError
from spabook.scheduling import (
    AppointmentManager,
    AvailabilityCalculator,
    BookingOrchestrator,
    build_dashboard,
)
from spabook.seed import seed_catalog
from spabook.storage import AsyncBookingStore, SpaBookDB, shutdown_executor


def _open_db(args: Namespace) -> SpaBookDB:
    db = SpaBookDB(getattr(args, "db", None))
    db.init_schema()
    return db


def parse_date(value: str) -> date:
    """Parse YYYY-MM-DD, exiting with a message on bad input."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        print(f"❌ Invalid date '{value}', expected YYYY-MM-DD")
        sys.exit(1)


def _run(coro):
    try:
        return asyncio.run(coro)
    finally:
        shutdown_executor()


def cmd_init_db(args: Namespace) -> None:
    """Create the database schema."""
    db = _open_db(args)
    print(f"✅ Database ready: {db.db_path}")
    db.close()


def cmd_seed(args: Namespace) -> None:
    """Load the sample catalog."""
    db = _open_db(args)
    services, staff = seed_catalog(db)
    print(f"🌱 Catalog has {len(services)} services and {len(staff)} staff members")
    db.close()


def cmd_services(args: Namespace) -> None:
    """List services."""
    db = _open_db(args)
    services = db.list_services(args.specialty)
    if not services:
        print("No services found.")
    for s in services:
        print(f"  {s.id:14} {s.name:24} {s.specialty:10} ${s.price:>8}  {s.duration_minutes} min")
    db.close()


def cmd_staff(args: Namespace) -> None:
    """List staff members."""
    db = _open_db(args)
    for m in db.list_staff(args.specialty):
        print(f"  {m.id:14} {m.display_name:24} {m.specialty}")
    db.close()


def cmd_slots(args: Namespace) -> None:
    """Show free slots for a staff member on a date."""
    day = parse_date(args.date)
    db = _open_db(args)
    store = AsyncBookingStore(db)

    async def _slots():
        if args.ignore_window:
            return await AvailabilityCalculator(store).available_slots(args.staff_id, day)
        return await BookingOrchestrator(store, store).bookable_slots(args.staff_id, day)

    try:
        slots = _run(_slots())
    except BookingError as e:
        print(f"❌ {e}")
        sys.exit(1)
    finally:
        db.close()

    if not slots:
        print(f"No bookable slots for {args.staff_id} on {day}")
        return
    print(f"🗓️  {args.staff_id} on {day}:")
    print("   " + " ".join(slot.key for slot in slots))


def cmd_appointments(args: Namespace) -> None:
    """List appointments with optional filters."""
    db = _open_db(args)
    status = AppointmentStatus(args.status) if args.status else None
    appointments = db.list_appointments(
        client_id=args.client, staff_id=args.staff, status=status
    )
    db.close()

    if not appointments:
        print("No appointments found.")
        return
    for a in appointments:
        print(
            f"  {a.id:14} {a.scheduled_at:%Y-%m-%d %H:%M}  {a.service.name:22} "
            f"{a.staff_name:18} {a.client_name:18} {a.status.value:9} ${a.total_price}"
        )


def _transition(args: Namespace, complete: bool) -> None:
    db = _open_db(args)
    manager = AppointmentManager(AsyncBookingStore(db))
    action = manager.complete if complete else manager.cancel
    try:
        appt = _run(action(args.appointment_id))
    except BookingError as e:
        print(f"❌ {e}")
        sys.exit(1)
    finally:
        db.close()
    print(f"✅ {appt.id} is now {appt.status.value}")


def cmd_cancel(args: Namespace) -> None:
    """Cancel a booked appointment."""
    _transition(args, complete=False)


def cmd_complete(args: Namespace) -> None:
    """Mark a booked appointment completed."""
    _transition(args, complete=True)


def cmd_stats(args: Namespace) -> None:
    """Print dashboard statistics."""
    db = _open_db(args)
    try:
        stats = _run(build_dashboard(AsyncBookingStore(db)))
    finally:
        db.close()

    print("\n📊 Dashboard")
    print(f"   Services:     {stats.services}")
    print(f"   Staff:        {stats.staff}")
    print(f"   Appointments: {stats.appointments}")
    print(f"   Clients:      {stats.clients}")
    print(f"   Revenue:      ${stats.revenue}")
    print("\n   Last months:")
    for point in stats.trend:
        print(f"     {point.month}: {point.appointments}")
    if stats.service_distribution:
        print("\n   By service:")
        for name, count in stats.service_distribution.items():
            print(f"     {name}: {count}")


def cmd_serve(args: Namespace) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("spabook.main:app", host=args.host, port=args.port, reload=args.reload)
