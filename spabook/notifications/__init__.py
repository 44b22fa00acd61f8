"""Best-effort booking notifications."""

from spabook.notifications.email import (
    BookingConfirmation,
    EmailNotifier,
    render_confirmation_html,
    send_confirmation_email,
)

__all__ = [
    "BookingConfirmation",
    "EmailNotifier",
    "render_confirmation_html",
    "send_confirmation_email",
]
