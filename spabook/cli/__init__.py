"""SpaBook CLI - Command-line interface for spabook.

Usage:
    spabook init-db
    spabook seed
    spabook slots stf_1a2b3c4d 2026-11-03
    spabook appointments --status booked
    spabook cancel appt_1a2b3c4d
    spabook stats
    spabook serve --port 8000
"""

import argparse

from spabook.cli import commands
from spabook.cli.commands import (
    cmd_appointments,
    cmd_cancel,
    cmd_complete,
    cmd_init_db,
    cmd_seed,
    cmd_serve,
    cmd_services,
    cmd_slots,
    cmd_staff,
    cmd_stats,
)
from spabook.config import HOST, PORT
from spabook.utils.logging import setup_logging

__all__ = [
    # Submodules
    "commands",
    # Entry points
    "main",
    "create_parser",
]


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser.

    Returns:
        Configured ArgumentParser for testing and main().
    """
    parser = argparse.ArgumentParser(
        description="SpaBook - spa appointment scheduling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--db", type=str, default=None, help="SQLite database path (default: SPABOOK_DB_PATH)"
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.set_defaults(func=cmd_init_db)

    seed_parser = subparsers.add_parser("seed", help="Load the sample catalog")
    seed_parser.set_defaults(func=cmd_seed)

    services_parser = subparsers.add_parser("services", help="List services")
    services_parser.add_argument("--specialty", "-s", help="Filter by specialty")
    services_parser.set_defaults(func=cmd_services)

    staff_parser = subparsers.add_parser("staff", help="List staff members")
    staff_parser.add_argument("--specialty", "-s", help="Filter by specialty")
    staff_parser.set_defaults(func=cmd_staff)

    # Availability
    slots_parser = subparsers.add_parser("slots", help="Show free slots")
    slots_parser.add_argument("staff_id", help="Staff member ID")
    slots_parser.add_argument("date", help="Date (YYYY-MM-DD)")
    slots_parser.add_argument(
        "--ignore-window",
        action="store_true",
        help="Show free slots even outside the booking window",
    )
    slots_parser.set_defaults(func=cmd_slots)

    # Appointments
    appts_parser = subparsers.add_parser("appointments", help="List appointments")
    appts_parser.add_argument("--client", "-c", help="Filter by client ID")
    appts_parser.add_argument("--staff", help="Filter by staff ID")
    appts_parser.add_argument(
        "--status", choices=["booked", "completed", "cancelled"], help="Filter by status"
    )
    appts_parser.set_defaults(func=cmd_appointments)

    cancel_parser = subparsers.add_parser("cancel", help="Cancel an appointment")
    cancel_parser.add_argument("appointment_id", help="Appointment ID")
    cancel_parser.set_defaults(func=cmd_cancel)

    complete_parser = subparsers.add_parser("complete", help="Complete an appointment")
    complete_parser.add_argument("appointment_id", help="Appointment ID")
    complete_parser.set_defaults(func=cmd_complete)

    stats_parser = subparsers.add_parser("stats", help="Show dashboard statistics")
    stats_parser.set_defaults(func=cmd_stats)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=HOST, help="Bind address")
    serve_parser.add_argument("--port", "-p", type=int, default=PORT, help="Port")
    serve_parser.add_argument("--reload", action="store_true", help="Auto-reload")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main():
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
