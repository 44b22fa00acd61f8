"""Storage for catalog and reservation records."""

from spabook.storage.async_store import (
    AsyncBookingStore,
    get_executor,
    shutdown_executor,
)
from spabook.storage.base import CatalogStore, ReservationStore
from spabook.storage.database import (
    SpaBookDB,
    blocked_minutes,
    end_of_day,
    generate_id,
    start_of_day,
)

__all__ = [
    "AsyncBookingStore",
    "CatalogStore",
    "ReservationStore",
    "SpaBookDB",
    "blocked_minutes",
    "end_of_day",
    "generate_id",
    "get_executor",
    "shutdown_executor",
    "start_of_day",
]
