"""FastAPI application factory for the spa booking API."""

from datetime import date
from decimal import Decimal
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from spabook.models import (
    Appointment,
    AppointmentStatus,
    BookingError,
    BookingFailure,
    BookingSession,
    ClientInfo,
    ConflictError,
    ErrorType,
    NotFoundError,
    PaymentMethod,
    Service,
    StaffMember,
    StoreUnavailable,
    TimeSlot,
    ValidationError,
)
from spabook.notifications.email import EmailNotifier
from spabook.scheduling import (
    AppointmentManager,
    BookingOrchestrator,
    BookingWindow,
    DashboardStats,
    SlotPolicy,
    build_dashboard,
)
from spabook.storage import AsyncBookingStore, SpaBookDB

_STATUS_CODES: dict[type[BookingError], int] = {
    ValidationError: 422,
    NotFoundError: 404,
    ConflictError: 409,
    StoreUnavailable: 503,
}


def status_code_for(error: BookingError) -> int:
    for error_type, code in _STATUS_CODES.items():
        if isinstance(error, error_type):
            return code
    return 500


# --- Request/Response Models ---


class CreateService(BaseModel):
    name: str
    specialty: str
    price: Decimal = Field(ge=0, decimal_places=2)
    duration_minutes: int = Field(gt=0, le=480)
    description: str = ""


class UpdateService(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    specialty: str | None = Field(default=None, min_length=1)
    price: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    duration_minutes: int | None = Field(default=None, gt=0, le=480)
    description: str | None = None


class CreateStaff(BaseModel):
    display_name: str
    specialty: str
    email: str | None = None


class BookingItem(BaseModel):
    service_id: str
    staff_id: str


class BookingRequest(BaseModel):
    """Request to book one or more services at one date and time."""

    client: ClientInfo
    items: list[BookingItem] = Field(min_length=1)
    date: date
    time: str = Field(description="HH:MM")
    payment_method: PaymentMethod = PaymentMethod.ON_SITE
    payment_details: dict[str, Any] | None = None

    @field_validator("items")
    @classmethod
    def unique_services(cls, items: list[BookingItem]) -> list[BookingItem]:
        seen = set()
        for item in items:
            if item.service_id in seen:
                raise ValueError(f"Service {item.service_id} is listed more than once")
            seen.add(item.service_id)
        return items


class BookingResponse(BaseModel):
    appointments: list[Appointment]
    total: Decimal


class AvailabilityResponse(BaseModel):
    staff_id: str
    date: date
    slots: list[str]


def create_app(
    db: SpaBookDB | None = None,
    notifier: Any | None = None,
    window: BookingWindow | None = None,
    policy: SlotPolicy | None = None,
) -> FastAPI:
    """Create FastAPI app with optional dependency injection.

    Args:
        db: Database instance. If None, creates the default SQLite DB.
        notifier: Confirmation notifier. Defaults to EmailNotifier.
        window: Booking window (tests inject a fixed clock).
        policy: Slot occupancy policy.

    Returns:
        Configured FastAPI application.
    """
    if db is None:
        db = SpaBookDB()
        db.init_schema()

    app = FastAPI(title="Spa Booking API", version="0.1.0")

    store = AsyncBookingStore(db)
    app.state.db = db
    app.state.store = store
    app.state.orchestrator = BookingOrchestrator(
        store,
        store,
        notifier=notifier if notifier is not None else EmailNotifier(),
        window=window,
        policy=policy,
    )
    app.state.manager = AppointmentManager(store)

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
        failure = BookingFailure.from_exception(exc, operation=request.url.path)
        return JSONResponse(
            status_code=status_code_for(exc),
            content=failure.model_dump(mode="json"),
        )

    # --- Catalog Routes ---

    @app.get("/services", response_model=list[Service])
    async def list_services(specialty: str | None = None) -> list[Service]:
        """List services, optionally filtered by specialty."""
        return await app.state.store.list_services(specialty)

    @app.post("/services", response_model=Service, status_code=201)
    def create_service(data: CreateService) -> Service:
        """Create a new service."""
        return app.state.db.create_service(**data.model_dump())

    @app.get("/services/{service_id}", response_model=Service)
    async def get_service(service_id: str) -> Service:
        """Get a service by ID."""
        service = await app.state.store.get_service(service_id)
        if service is None:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    @app.patch("/services/{service_id}", response_model=Service)
    def update_service(service_id: str, data: UpdateService) -> Service:
        """Update a service. Booked appointments keep their snapshot."""
        service = app.state.db.update_service(
            service_id, **data.model_dump(exclude_none=True)
        )
        if service is None:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    @app.delete("/services/{service_id}", status_code=204)
    def delete_service(service_id: str) -> None:
        """Delete a service. Booked appointments keep their snapshot."""
        if not app.state.db.delete_service(service_id):
            raise HTTPException(status_code=404, detail="Service not found")

    @app.get("/services/{service_id}/staff", response_model=list[StaffMember])
    async def eligible_staff(service_id: str) -> list[StaffMember]:
        """Staff qualified to perform a service."""
        return await app.state.orchestrator.eligible_staff(service_id)

    @app.get("/specialties", response_model=list[str])
    async def list_specialties() -> list[str]:
        """Distinct specialties offered."""
        services = await app.state.store.list_services()
        return sorted({s.specialty for s in services})

    @app.get("/staff", response_model=list[StaffMember])
    async def list_staff(specialty: str | None = None) -> list[StaffMember]:
        """List staff members."""
        return await app.state.store.list_staff(specialty)

    @app.post("/staff", response_model=StaffMember, status_code=201)
    def create_staff(data: CreateStaff) -> StaffMember:
        """Create a new staff member."""
        return app.state.db.create_staff(**data.model_dump())

    @app.delete("/staff/{staff_id}", status_code=204)
    def delete_staff(staff_id: str) -> None:
        """Delete a staff member."""
        if not app.state.db.delete_staff(staff_id):
            raise HTTPException(status_code=404, detail="Staff member not found")

    # --- Availability Routes ---

    @app.get("/staff/{staff_id}/availability", response_model=AvailabilityResponse)
    async def availability(
        staff_id: str, date: date, service_id: str | None = None
    ) -> AvailabilityResponse:
        """Bookable slots for a staff member on a date."""
        orchestrator: BookingOrchestrator = app.state.orchestrator
        if await app.state.store.get_staff(staff_id) is None:
            raise HTTPException(status_code=404, detail="Staff member not found")

        duration = None
        if service_id and orchestrator.policy.block_duration:
            service = await app.state.store.get_service(service_id)
            if service is None:
                raise HTTPException(status_code=404, detail="Service not found")
            duration = service.duration_minutes
        slots = await orchestrator.bookable_slots(staff_id, date, duration)
        return AvailabilityResponse(
            staff_id=staff_id, date=date, slots=[s.key for s in slots]
        )

    @app.get("/bookable-dates", response_model=list[date])
    def bookable_dates() -> list[date]:
        """Calendar dates inside the booking window."""
        return app.state.orchestrator.window.bookable_dates()

    @app.get("/staff/{staff_id}/agenda", response_model=list[Appointment])
    async def agenda(staff_id: str, date: date) -> list[Appointment]:
        """A staff member's appointments for one day."""
        return await app.state.manager.staff_agenda(staff_id, date)

    # --- Booking Routes ---

    @app.post("/bookings", response_model=BookingResponse, status_code=201)
    async def create_booking(data: BookingRequest) -> BookingResponse:
        """Book one or more services in one atomic commit."""
        orchestrator: BookingOrchestrator = app.state.orchestrator
        try:
            slot = TimeSlot.from_key(data.time)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        session = await orchestrator.select_services(
            BookingSession.new(), [item.service_id for item in data.items]
        )
        for item in data.items:
            session = await orchestrator.assign_staff(
                session, item.service_id, item.staff_id
            )
        session = await orchestrator.select_slot(session, data.date, slot)
        session = orchestrator.select_payment(
            session, data.payment_method, data.payment_details
        )

        result = await orchestrator.commit(session, data.client)
        if not result.success:
            return JSONResponse(
                status_code=409 if result.error.type == ErrorType.CONFLICT else 422,
                content=result.error.model_dump(mode="json"),
            )
        return BookingResponse(appointments=result.appointments, total=result.total)

    # --- Appointment Routes ---

    @app.get("/appointments", response_model=list[Appointment])
    async def list_appointments(
        client_id: str | None = None,
        staff_id: str | None = None,
        status: AppointmentStatus | None = None,
        upcoming: bool = False,
    ) -> list[Appointment]:
        """List appointments with optional filters."""
        if upcoming:
            return await app.state.manager.upcoming(
                client_id=client_id,
                staff_id=staff_id,
                now=app.state.orchestrator.window.clock(),
            )
        return await app.state.store.list_appointments(
            client_id=client_id, staff_id=staff_id, status=status
        )

    @app.get("/appointments/{appointment_id}", response_model=Appointment)
    async def get_appointment(appointment_id: str) -> Appointment:
        """Get an appointment by ID."""
        return await app.state.manager.get(appointment_id)

    @app.patch("/appointments/{appointment_id}/cancel", response_model=Appointment)
    async def cancel_appointment(
        appointment_id: str, client_id: str | None = None
    ) -> Appointment:
        """Cancel a booked appointment (frees the slot)."""
        return await app.state.manager.cancel(appointment_id, client_id=client_id)

    @app.patch("/appointments/{appointment_id}/complete", response_model=Appointment)
    async def complete_appointment(appointment_id: str) -> Appointment:
        """Mark a booked appointment as completed."""
        return await app.state.manager.complete(appointment_id)

    # --- Admin Routes ---

    @app.get("/dashboard", response_model=DashboardStats)
    async def dashboard() -> DashboardStats:
        """Admin dashboard statistics."""
        return await build_dashboard(app.state.store)

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint."""
        return {"status": "ok"}

    return app
