"""Payment credential format validators.

Format checks only; no card is ever charged or verified with an issuer.
"""

import re
from datetime import date

_CARD_RE = re.compile(r"^\d{13,19}$")
_EXPIRY_RE = re.compile(r"^(0[1-9]|1[0-2])/(\d{2})$")
_CVV_RE = re.compile(r"^\d{3}$")


def normalize_card_number(value: str) -> str:
    """Strip the spaces and dashes a masked input field inserts."""
    return re.sub(r"[\s-]", "", value or "")


def validate_card_number(value: str) -> str:
    """Validate a card number.

    Args:
        value: Card number, optionally grouped with spaces or dashes

    Returns:
        The digits-only card number

    Raises:
        ValueError: If the number is not 13-19 digits
    """
    digits = normalize_card_number(value)
    if not _CARD_RE.match(digits):
        raise ValueError("Card number must contain 13 to 19 digits")
    return digits


def validate_expiry(value: str, today: date | None = None) -> str:
    """Validate an MM/YY expiry that has not already passed.

    Raises:
        ValueError: If malformed or in the past
    """
    match = _EXPIRY_RE.match((value or "").strip())
    if not match:
        raise ValueError("Expiry must use the MM/YY format")

    today = today or date.today()
    month, year = int(match.group(1)), 2000 + int(match.group(2))
    if (year, month) < (today.year, today.month):
        raise ValueError("Card has expired")
    return match.group(0)


def validate_cvv(value: str) -> str:
    """Validate a 3-digit CVV.

    Raises:
        ValueError: If not exactly three digits
    """
    if not _CVV_RE.match((value or "").strip()):
        raise ValueError("CVV must be 3 digits")
    return value.strip()


def mask_card_number(digits: str) -> str:
    """Render a card number keeping only the last four digits."""
    return f"**** **** **** {digits[-4:]}"
