"""Utility functions for logging and input validation."""

from spabook.utils.logging import setup_logging
from spabook.utils.validators import (
    mask_card_number,
    normalize_card_number,
    validate_card_number,
    validate_cvv,
    validate_expiry,
)

__all__ = [
    # Logging
    "setup_logging",
    # Payment validation
    "mask_card_number",
    "normalize_card_number",
    "validate_card_number",
    "validate_cvv",
    "validate_expiry",
]
