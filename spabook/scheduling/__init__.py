"""Scheduling: availability, booking orchestration, lifecycle and reporting."""

from spabook.scheduling.availability import (
    AvailabilityCalculator,
    SlotPolicy,
    build_slot_grid,
)
from spabook.scheduling.lifecycle import AppointmentManager, can_transition
from spabook.scheduling.orchestrator import BookingOrchestrator, CommitResult
from spabook.scheduling.pricing import apply_discount, compute_total
from spabook.scheduling.reporting import DashboardStats, build_dashboard
from spabook.scheduling.window import BookingWindow

__all__ = [
    "AppointmentManager",
    "AvailabilityCalculator",
    "BookingOrchestrator",
    "BookingWindow",
    "CommitResult",
    "DashboardStats",
    "SlotPolicy",
    "apply_discount",
    "build_dashboard",
    "build_slot_grid",
    "can_transition",
    "compute_total",
]
