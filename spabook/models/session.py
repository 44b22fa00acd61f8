"""Booking session value object.

A session carries everything a client has chosen so far. It is never
persisted; the caller keeps it and passes it back into each orchestrator
call, which returns an updated copy.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from spabook.models.schemas import PaymentDetails, PaymentMethod


class SessionStep(str, Enum):
    """Steps of the booking flow, in order."""

    SELECTING_SERVICES = "selecting_services"
    ASSIGNING_STAFF = "assigning_staff"
    SELECTING_DATETIME = "selecting_datetime"
    SELECTING_PAYMENT = "selecting_payment"
    COMMITTED = "committed"

    @property
    def order(self) -> int:
        return _STEP_ORDER.index(self)


_STEP_ORDER = list(SessionStep)


class BookingSession(BaseModel):
    """In-progress booking for one client."""

    model_config = ConfigDict(frozen=True)

    step: SessionStep = SessionStep.SELECTING_SERVICES
    cart: tuple[str, ...] = ()
    staff_assignments: dict[str, str] = Field(default_factory=dict)
    scheduled: dict[str, datetime] = Field(default_factory=dict)
    payment_method: PaymentMethod | None = None
    payment_details: PaymentDetails | None = None
    committed_ids: tuple[str, ...] = ()

    @classmethod
    def new(cls) -> "BookingSession":
        """Start a fresh session (also used for 'book another')."""
        return cls()

    @property
    def is_committed(self) -> bool:
        return self.step == SessionStep.COMMITTED

    @property
    def unassigned(self) -> list[str]:
        return [sid for sid in self.cart if sid not in self.staff_assignments]

    @property
    def unscheduled(self) -> list[str]:
        return [sid for sid in self.cart if sid not in self.scheduled]

    @property
    def scheduled_dates(self) -> set[date]:
        return {when.date() for when in self.scheduled.values()}

    def toggle(self, service_id: str) -> "BookingSession":
        """Add the service to the cart, or remove it if already present."""
        if service_id in self.cart:
            cart = tuple(sid for sid in self.cart if sid != service_id)
            assignments = {
                k: v for k, v in self.staff_assignments.items() if k != service_id
            }
            scheduled = {k: v for k, v in self.scheduled.items() if k != service_id}
        else:
            cart = self.cart + (service_id,)
            assignments = dict(self.staff_assignments)
            scheduled = dict(self.scheduled)

        return self.model_copy(
            update={
                "cart": cart,
                "staff_assignments": assignments,
                "scheduled": scheduled,
                "step": SessionStep.SELECTING_SERVICES,
            }
        )

    def go_back(self, step: SessionStep) -> "BookingSession":
        """Return to an earlier step, discarding everything captured after it.

        Raises:
            ValueError: If ``step`` is not earlier than the current step
        """
        if step.order >= self.step.order:
            raise ValueError(
                f"Cannot go back from {self.step.value} to {step.value}"
            )
        if self.is_committed:
            raise ValueError("Committed session cannot be edited; start a new one")

        update: dict = {"step": step, "payment_method": None, "payment_details": None}
        if step.order <= SessionStep.ASSIGNING_STAFF.order:
            update["scheduled"] = {}
        if step == SessionStep.SELECTING_SERVICES:
            update["staff_assignments"] = {}
        return self.model_copy(update=update)

    def advance(self, step: SessionStep, **changes) -> "BookingSession":
        """Move forward to ``step`` applying ``changes``."""
        return self.model_copy(update={"step": step, **changes})
