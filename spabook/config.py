"""Centralized configuration for the spabook package.

Provides paths, business rules, and environment configuration
used across all modules.
"""

import os
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

# Package root (spabook/ directory)
PACKAGE_ROOT = Path(__file__).parent

# Working directory (where the user runs the CLI or server from)
WORKING_DIR = Path.cwd()

# Load environment variables from current working directory
load_dotenv(WORKING_DIR / ".env")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Storage
OUTPUTS_DIR = WORKING_DIR / "outputs"
DATABASE_PATH = Path(os.getenv("SPABOOK_DB_PATH", str(OUTPUTS_DIR / "spabook.db")))

# Daily slot grid (24-hour clock, closing hour exclusive)
OPENING_HOUR = int(os.getenv("SPABOOK_OPENING_HOUR", "9"))
CLOSING_HOUR = int(os.getenv("SPABOOK_CLOSING_HOUR", "17"))
SLOT_MINUTES = int(os.getenv("SPABOOK_SLOT_MINUTES", "30"))

# Booking window
MIN_LEAD_HOURS = int(os.getenv("SPABOOK_MIN_LEAD_HOURS", "48"))
MAX_HORIZON_DAYS = int(os.getenv("SPABOOK_MAX_HORIZON_DAYS", "30"))

# Pricing
WEB_DISCOUNT_RATE = Decimal(os.getenv("SPABOOK_WEB_DISCOUNT_RATE", "0.15"))
CURRENCY_QUANTUM = Decimal("0.01")

# Availability policy
# Legacy behaviour treated every appointment, cancelled ones included, as occupying.
CANCELLED_BLOCKS_SLOT = _env_bool("SPABOOK_CANCELLED_BLOCKS_SLOT", False)
BLOCK_FULL_DURATION = _env_bool("SPABOOK_BLOCK_FULL_DURATION", False)

# Notifications (Resend)
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
BOOKING_FROM_EMAIL = os.getenv(
    "SPABOOK_FROM_EMAIL", "Spa Bookings <bookings-no-reply@resend.dev>"
)
NOTIFICATIONS_ENABLED = _env_bool("SPABOOK_NOTIFICATIONS_ENABLED", True)

# Logging
LOG_LEVEL = os.getenv("SPABOOK_LOG_LEVEL", "INFO")

# HTTP server
HOST = os.getenv("SPABOOK_HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

# Dashboard
RECENT_APPOINTMENTS_LIMIT = 5
TREND_MONTHS = 6
