"""Logging setup for spabook.

Modules log through ``logging.getLogger(__name__)``; entry points
(CLI, HTTP server) call ``setup_logging`` once.
"""

import logging
import sys

from spabook.config import LOG_LEVEL

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure the ``spabook`` logger hierarchy.

    Safe to call more than once; handlers are only attached the first time.

    Args:
        level: Log level name (defaults to SPABOOK_LOG_LEVEL)

    Returns:
        The package root logger
    """
    logger = logging.getLogger("spabook")
    logger.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
        logger.addHandler(handler)

    return logger
