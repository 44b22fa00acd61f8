"""Tests for booking confirmation emails."""

from datetime import datetime
from decimal import Decimal

import pytest

from spabook.models import NotificationFailure
from spabook.notifications import (
    BookingConfirmation,
    EmailNotifier,
    render_confirmation_html,
    send_confirmation_email,
)
from spabook.notifications.email import format_subject


def _confirmation(**overrides) -> BookingConfirmation:
    fields = dict(
        appointment_id="appt_1",
        client_name="Carla",
        client_email="carla@example.com",
        service_name="Swedish Massage",
        staff_name="Ana",
        scheduled_at=datetime(2026, 3, 5, 10, 0),
        total_price=Decimal("85.00"),
        payment_method="web",
        payment_status="paid",
    )
    fields.update(overrides)
    return BookingConfirmation(**fields)


class TestSendConfirmationEmail:
    """Tests for send_confirmation_email."""

    def test_sends_email_with_resend(self, mock_resend):
        """send_confirmation_email calls Resend API."""
        assert send_confirmation_email(_confirmation()) is True

        mock_resend.assert_called_once()
        payload = mock_resend.call_args[0][0]
        assert payload["to"] == ["carla@example.com"]

    def test_skips_when_dry_run(self, mock_resend):
        assert send_confirmation_email(_confirmation(), dry_run=True) is False
        mock_resend.assert_not_called()

    def test_skips_when_no_recipient(self, mock_resend):
        assert send_confirmation_email(_confirmation(client_email=None)) is False
        mock_resend.assert_not_called()

    def test_subject_has_service_and_date(self, mock_resend):
        send_confirmation_email(_confirmation())

        subject = mock_resend.call_args[0][0]["subject"]
        assert "Swedish Massage" in subject
        assert "05/03/2026 10:00" in subject

    def test_resend_error_becomes_notification_failure(self, mock_resend):
        mock_resend.side_effect = RuntimeError("rate limited")

        with pytest.raises(NotificationFailure, match="rate limited"):
            send_confirmation_email(_confirmation())


class TestRendering:
    def test_html_is_escaped(self):
        html = render_confirmation_html(_confirmation(client_name="<script>x</script>"))

        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_payment_wording(self):
        assert "Paid online" in render_confirmation_html(_confirmation())
        assert "Pay at the spa" in render_confirmation_html(
            _confirmation(payment_method="on_site", payment_status="pending")
        )

    def test_format_subject(self):
        assert format_subject(_confirmation()).startswith("Booking confirmed")


class TestEmailNotifier:
    """Tests for the async notifier."""

    @pytest.mark.asyncio
    async def test_disabled_sends_nothing(self, mock_resend):
        notifier = EmailNotifier(enabled=False)

        await notifier.send_booking_confirmation(_confirmation())

        mock_resend.assert_not_called()

    @pytest.mark.asyncio
    async def test_dry_run_sends_nothing(self, mock_resend):
        notifier = EmailNotifier(dry_run=True)

        await notifier.send_booking_confirmation(_confirmation())

        mock_resend.assert_not_called()

    @pytest.mark.asyncio
    async def test_sends_in_executor(self, mock_resend):
        notifier = EmailNotifier(enabled=True)
        notifier.dry_run = False

        await notifier.send_booking_confirmation(_confirmation())

        mock_resend.assert_called_once()
