"""Booking orchestration.

Drives a ``BookingSession`` through service selection, staff assignment,
date/time selection and payment, then commits one appointment per
service in a single atomic write.
"""

import asyncio
import logging
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Protocol

import pydantic
from pydantic import BaseModel, Field

from spabook.models import (
    Appointment,
    AppointmentStatus,
    BookingFailure,
    BookingSession,
    ClientInfo,
    ConflictError,
    NotFoundError,
    PaymentDetails,
    PaymentMethod,
    PaymentStatus,
    Service,
    SessionStep,
    SpecialtyMismatchError,
    StaffMember,
    TimeSlot,
    ValidationError,
)
from spabook.notifications.email import BookingConfirmation
from spabook.scheduling.availability import AvailabilityCalculator, SlotPolicy
from spabook.scheduling.pricing import apply_discount, compute_total, discount_applies
from spabook.scheduling.window import BookingWindow
from spabook.storage.base import CatalogStore, ReservationStore
from spabook.storage.database import blocked_minutes

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send_booking_confirmation(self, confirmation: BookingConfirmation) -> None: ...


class CommitResult(BaseModel):
    """Outcome of a commit attempt.

    Attributes:
        success: Whether every appointment was written
        appointments: Written appointments (empty on failure)
        error: BookingFailure describing why nothing was written
        session: Session after the attempt (COMMITTED on success)
    """

    success: bool
    appointments: list[Appointment] = Field(default_factory=list)
    error: BookingFailure | None = None
    session: BookingSession

    @property
    def total(self) -> Decimal:
        return sum((appt.total_price for appt in self.appointments), Decimal(0))


class BookingOrchestrator:
    """Owns the rules of a booking session.

    Example:
        orchestrator = BookingOrchestrator(store, store, notifier=EmailNotifier())
        session = await orchestrator.select_services(BookingSession.new(), ["svc_1"])
        session = await orchestrator.assign_staff(session, "svc_1", "stf_1")
        session = await orchestrator.select_slot(session, day, TimeSlot.from_key("10:00"))
        session = orchestrator.select_payment(session, PaymentMethod.ON_SITE)
        result = await orchestrator.commit(session, client)
    """

    def __init__(
        self,
        catalog: CatalogStore,
        reservations: ReservationStore,
        notifier: Notifier | None = None,
        window: BookingWindow | None = None,
        policy: SlotPolicy | None = None,
    ):
        self.catalog = catalog
        self.reservations = reservations
        self.notifier = notifier
        self.window = window or BookingWindow()
        self.policy = policy or SlotPolicy()
        self.availability = AvailabilityCalculator(reservations, self.policy)
        self._pending: set[asyncio.Task] = set()

    # =========================================================================
    # Catalog lookups
    # =========================================================================

    async def _require_service(self, service_id: str) -> Service:
        service = await self.catalog.get_service(service_id)
        if service is None:
            raise NotFoundError(f"Unknown service: {service_id}", service_id=service_id)
        return service

    async def _require_staff(self, staff_id: str) -> StaffMember:
        member = await self.catalog.get_staff(staff_id)
        if member is None:
            raise NotFoundError(f"Unknown staff member: {staff_id}", staff_id=staff_id)
        return member

    async def cart_services(self, session: BookingSession) -> list[Service]:
        return [await self._require_service(sid) for sid in session.cart]

    async def eligible_staff(self, service_id: str) -> list[StaffMember]:
        """Staff whose specialty matches the service."""
        service = await self._require_service(service_id)
        return [m for m in await self.catalog.list_staff() if m.can_perform(service)]

    # =========================================================================
    # Session steps
    # =========================================================================

    async def select_services(
        self, session: BookingSession, service_ids: list[str]
    ) -> BookingSession:
        """Toggle each service in or out of the cart.

        Raises:
            ValidationError: If a service does not exist
        """
        self._ensure_editable(session)
        for service_id in service_ids:
            if service_id not in session.cart:
                try:
                    await self._require_service(service_id)
                except NotFoundError as e:
                    raise ValidationError(e.message, service_id=service_id) from e
            session = session.toggle(service_id)
        return session

    async def assign_staff(
        self, session: BookingSession, service_id: str, staff_id: str
    ) -> BookingSession:
        """Assign a staff member to one service in the cart.

        Raises:
            ValidationError: If the service is not in the cart or the staff
                member is unknown
            SpecialtyMismatchError: If the staff member's specialty differs
        """
        self._ensure_editable(session)
        if service_id not in session.cart:
            raise ValidationError(
                f"Service {service_id} is not in the cart", service_id=service_id
            )

        service = await self._require_service(service_id)
        try:
            member = await self._require_staff(staff_id)
        except NotFoundError as e:
            raise ValidationError(e.message, staff_id=staff_id) from e

        if not member.can_perform(service):
            raise SpecialtyMismatchError(
                f"{member.display_name} ({member.specialty}) cannot perform "
                f"{service.name} ({service.specialty})",
                service_id=service_id,
                staff_id=staff_id,
            )

        assignments = {**session.staff_assignments, service_id: staff_id}
        # A new therapist invalidates any time picked against the old one
        scheduled = {k: v for k, v in session.scheduled.items() if k != service_id}
        return session.advance(
            SessionStep.ASSIGNING_STAFF,
            staff_assignments=assignments,
            scheduled=scheduled,
            payment_method=None,
            payment_details=None,
        )

    def validate_date(self, when: datetime) -> datetime:
        """Check ``when`` lies inside the booking window.

        Raises:
            OutOfWindowError: If too soon or too far ahead
        """
        return self.window.validate(when)

    def compute_total(
        self, services: list[Service], payment_method: PaymentMethod
    ) -> Decimal:
        return compute_total(services, payment_method)

    async def offer_slots(
        self, session: BookingSession, service_id: str, day: date
    ) -> list[TimeSlot]:
        """Bookable slots for the staff assigned to ``service_id`` on ``day``.

        Slots outside the booking window are dropped, so a day entirely
        outside the window yields nothing.
        """
        staff_id = session.staff_assignments.get(service_id)
        if not staff_id:
            return []

        duration = None
        if self.policy.block_duration:
            duration = (await self._require_service(service_id)).duration_minutes
        return await self.bookable_slots(staff_id, day, duration)

    async def bookable_slots(
        self, staff_id: str, day: date, duration_minutes: int | None = None
    ) -> list[TimeSlot]:
        """Free slots for a staff member that also fall inside the window."""
        slots = await self.availability.available_slots(staff_id, day, duration_minutes)
        now = self.window.clock()
        return [slot for slot in slots if self.window.contains(slot.at(day), now)]

    async def select_slot(
        self,
        session: BookingSession,
        day: date,
        slot: TimeSlot,
        service_ids: list[str] | None = None,
    ) -> BookingSession:
        """Pick the date and time for some or all services in the cart.

        Raises:
            ValidationError: If staff is missing, the slot is off the grid,
                or the time is outside the booking window
        """
        self._ensure_editable(session)
        targets = service_ids or list(session.cart)
        if not targets:
            raise ValidationError("Select at least one service first")

        missing = [sid for sid in targets if sid not in session.staff_assignments]
        if missing:
            raise ValidationError(
                "Assign staff before choosing a time", service_ids=missing
            )
        if not self.policy.on_grid(slot):
            raise ValidationError(f"{slot.key} is not a bookable time", slot=slot.key)

        when = self.validate_date(slot.at(day))
        scheduled = {**session.scheduled, **{sid: when for sid in targets}}
        return session.advance(
            SessionStep.SELECTING_DATETIME,
            scheduled=scheduled,
            payment_method=None,
            payment_details=None,
        )

    def select_payment(
        self,
        session: BookingSession,
        payment_method: PaymentMethod,
        details: PaymentDetails | dict[str, Any] | None = None,
    ) -> BookingSession:
        """Choose how to pay.

        Raises:
            ValidationError: If web payment details are missing or malformed
        """
        self._ensure_editable(session)
        if session.unscheduled:
            raise ValidationError(
                "Choose a date and time first", service_ids=session.unscheduled
            )

        method = PaymentMethod(payment_method)
        parsed = self._parse_payment(method, details)
        return session.advance(
            SessionStep.SELECTING_PAYMENT,
            payment_method=method,
            payment_details=parsed,
        )

    def go_back(self, session: BookingSession, step: SessionStep) -> BookingSession:
        """Return to an earlier step, discarding later choices.

        Raises:
            ValidationError: If ``step`` is not behind the current one
        """
        try:
            return session.go_back(step)
        except ValueError as e:
            raise ValidationError(str(e), step=step.value) from e

    # =========================================================================
    # Commit
    # =========================================================================

    async def commit(self, session: BookingSession, client: ClientInfo) -> CommitResult:
        """Write one appointment per cart entry, all or nothing.

        Validation and slot conflicts come back as a failed ``CommitResult``;
        ``StoreUnavailable`` propagates so the caller can decide to retry.
        """
        try:
            appointments = await self._prepare(session, client)
            ids = await self.reservations.create_appointments(
                appointments,
                block_duration=self.policy.block_duration,
                cancelled_blocks=self.policy.cancelled_blocks,
            )
        except (ValidationError, NotFoundError, ConflictError) as e:
            logger.info(f"Booking rejected for client {client.id}: {e}")
            return CommitResult(
                success=False,
                error=BookingFailure.from_exception(e, operation="commit"),
                session=session,
            )

        written = [
            appt.model_copy(update={"id": appt_id})
            for appt_id, appt in zip(ids, appointments)
        ]
        logger.info(
            f"✅ Booked {len(written)} appointment(s) for client {client.id} "
            f"(group {written[0].group_id})"
        )

        self._notify(written)
        return CommitResult(
            success=True,
            appointments=written,
            session=session.advance(SessionStep.COMMITTED, committed_ids=tuple(ids)),
        )

    async def _prepare(
        self, session: BookingSession, client: ClientInfo
    ) -> list[Appointment]:
        """Validate the whole session and build the appointment records."""
        if session.is_committed:
            raise ValidationError("Session already committed; start a new booking")
        if not session.cart:
            raise ValidationError("Cart is empty")
        if session.unassigned:
            raise ValidationError(
                "Every service needs a staff member", service_ids=session.unassigned
            )
        if session.unscheduled:
            raise ValidationError(
                "Every service needs a date and time", service_ids=session.unscheduled
            )
        if len(session.scheduled_dates) > 1:
            raise ValidationError(
                "All services in one booking must be on the same day",
                dates=sorted(d.isoformat() for d in session.scheduled_dates),
            )
        if session.payment_method is None:
            raise ValidationError("Choose a payment method")

        method = session.payment_method
        self._parse_payment(method, session.payment_details)

        now = self.window.clock()
        group_id = uuid.uuid4().hex
        appointments = []
        for service_id in session.cart:
            service = await self._require_service(service_id)
            member = await self._require_staff(session.staff_assignments[service_id])
            if not member.can_perform(service):
                raise SpecialtyMismatchError(
                    f"{member.display_name} cannot perform {service.name}",
                    service_id=service_id,
                    staff_id=member.id,
                )

            when = session.scheduled[service_id]
            self.window.validate(when, now)
            if not self.policy.on_grid(TimeSlot.from_datetime(when)):
                raise ValidationError(f"{when:%H:%M} is not a bookable time")

            try:
                appointments.append(
                    Appointment(
                        client_id=client.id,
                        client_name=client.name,
                        client_email=client.email,
                        service=service.snapshot(),
                        staff_id=member.id,
                        staff_name=member.display_name,
                        scheduled_at=when,
                        status=AppointmentStatus.BOOKED,
                        payment_method=method,
                        payment_status=(
                            PaymentStatus.PAID
                            if method == PaymentMethod.WEB
                            else PaymentStatus.PENDING
                        ),
                        discount_applied=discount_applies(method),
                        total_price=apply_discount(service.price, method),
                        group_id=group_id,
                        created_at=now,
                    )
                )
            except pydantic.ValidationError as e:
                raise ValidationError(f"Invalid appointment: {e}") from e

        self._check_internal_overlap(appointments)
        return appointments

    def _check_internal_overlap(self, appointments: list[Appointment]) -> None:
        """Reject a cart that books one staff member twice at once."""
        by_staff: dict[str, list[tuple[datetime, datetime]]] = {}
        for appt in appointments:
            minutes = (
                blocked_minutes(appt.service.duration_minutes, self.policy.step_minutes)
                if self.policy.block_duration
                else self.policy.step_minutes
            )
            start = appt.scheduled_at
            end = start + timedelta(minutes=minutes)
            for other_start, other_end in by_staff.get(appt.staff_id, []):
                if start < other_end and other_start < end:
                    raise ValidationError(
                        f"{appt.staff_name} is booked twice at {start:%H:%M} "
                        "in this cart",
                        staff_id=appt.staff_id,
                    )
            by_staff.setdefault(appt.staff_id, []).append((start, end))

    @staticmethod
    def _parse_payment(
        method: PaymentMethod, details: PaymentDetails | dict[str, Any] | None
    ) -> PaymentDetails | None:
        if method != PaymentMethod.WEB:
            return None
        if details is None:
            raise ValidationError("Card details are required for online payment")
        if isinstance(details, PaymentDetails):
            return details
        try:
            return PaymentDetails(**details)
        except pydantic.ValidationError as e:
            messages = "; ".join(err["msg"] for err in e.errors())
            raise ValidationError(f"Invalid payment details: {messages}") from e

    @staticmethod
    def _ensure_editable(session: BookingSession) -> None:
        if session.is_committed:
            raise ValidationError("Session already committed; start a new booking")

    # =========================================================================
    # Notifications
    # =========================================================================

    def _notify(self, appointments: list[Appointment]) -> None:
        """Schedule confirmations without waiting for them."""
        if self.notifier is None:
            return
        for appt in appointments:
            task = asyncio.create_task(self._send_confirmation(appt))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _send_confirmation(self, appointment: Appointment) -> None:
        try:
            await self.notifier.send_booking_confirmation(
                BookingConfirmation.from_appointment(appointment)
            )
        except Exception as e:
            logger.warning(f"⚠️ Confirmation for {appointment.id} not sent: {e}")

    async def drain_notifications(self) -> None:
        """Wait for in-flight confirmations (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
