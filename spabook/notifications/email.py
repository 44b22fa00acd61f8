"""Booking confirmation emails using Resend API."""

import asyncio
import logging
from datetime import datetime
from decimal import Decimal
from functools import partial
from html import escape

import resend
from pydantic import BaseModel

from spabook.config import BOOKING_FROM_EMAIL, NOTIFICATIONS_ENABLED, RESEND_API_KEY
from spabook.models import Appointment, NotificationFailure

logger = logging.getLogger(__name__)

# Configure Resend API key from environment
resend.api_key = RESEND_API_KEY


class BookingConfirmation(BaseModel):
    """What the client is told about one booked service."""

    appointment_id: str
    client_name: str
    client_email: str | None = None
    service_name: str
    staff_name: str
    scheduled_at: datetime
    total_price: Decimal
    payment_method: str
    payment_status: str

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "BookingConfirmation":
        return cls(
            appointment_id=appointment.id or "",
            client_name=appointment.client_name,
            client_email=appointment.client_email,
            service_name=appointment.service.name,
            staff_name=appointment.staff_name,
            scheduled_at=appointment.scheduled_at,
            total_price=appointment.total_price,
            payment_method=appointment.payment_method.value,
            payment_status=appointment.payment_status.value,
        )


def format_subject(confirmation: BookingConfirmation) -> str:
    when = confirmation.scheduled_at.strftime("%d/%m/%Y %H:%M")
    return f"Booking confirmed: {confirmation.service_name} on {when}"


def render_confirmation_html(confirmation: BookingConfirmation) -> str:
    """Render the confirmation body."""
    paid = "Paid online" if confirmation.payment_status == "paid" else "Pay at the spa"
    return (
        f"<h2>Hi {escape(confirmation.client_name)},</h2>"
        f"<p>Your appointment is booked.</p>"
        f"<ul>"
        f"<li><strong>Service:</strong> {escape(confirmation.service_name)}</li>"
        f"<li><strong>With:</strong> {escape(confirmation.staff_name)}</li>"
        f"<li><strong>When:</strong> "
        f"{confirmation.scheduled_at.strftime('%A %d %B %Y, %H:%M')}</li>"
        f"<li><strong>Total:</strong> ${confirmation.total_price} ({paid})</li>"
        f"</ul>"
        f"<p>Reference: {escape(confirmation.appointment_id)}</p>"
    )


def send_confirmation_email(
    confirmation: BookingConfirmation, dry_run: bool = False
) -> bool:
    """Send via Resend API. Skip if dry run or no recipient.

    Returns:
        True if an email was handed to Resend

    Raises:
        NotificationFailure: If Resend rejects the request
    """
    if dry_run:
        logger.info("🔕 Dry run - skipping confirmation email")
        return False

    if not confirmation.client_email:
        logger.info("🔕 No recipient - skipping confirmation email")
        return False

    try:
        resend.Emails.send(
            {
                "from": BOOKING_FROM_EMAIL,
                "to": [confirmation.client_email],
                "subject": format_subject(confirmation),
                "html": render_confirmation_html(confirmation),
            }
        )
    except Exception as e:
        raise NotificationFailure(
            f"Confirmation email failed: {e}",
            appointment_id=confirmation.appointment_id,
        ) from e

    logger.info(f"📬 Confirmation sent to {confirmation.client_email}")
    return True


class EmailNotifier:
    """Async notifier that sends confirmations off the event loop."""

    def __init__(self, enabled: bool = NOTIFICATIONS_ENABLED, dry_run: bool = False):
        self.enabled = enabled
        self.dry_run = dry_run or not RESEND_API_KEY

    async def send_booking_confirmation(self, confirmation: BookingConfirmation) -> None:
        if not self.enabled:
            return
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, partial(send_confirmation_email, confirmation, dry_run=self.dry_run)
        )
