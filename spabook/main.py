"""Booking API entry point.

Run with:
    uvicorn spabook.main:app --reload

Or:
    python -m spabook.main
"""

import logging
from contextlib import asynccontextmanager

from spabook.api.app import create_app
from spabook.config import DATABASE_PATH, HOST, PORT
from spabook.storage import SpaBookDB, shutdown_executor
from spabook.utils.logging import setup_logging

logger = logging.getLogger(__name__)

setup_logging()

_db = SpaBookDB(DATABASE_PATH)
_db.init_schema()
logger.info(f"✅ Database initialized: {DATABASE_PATH}")


@asynccontextmanager
async def lifespan(app):
    """Flush pending notifications and release resources on shutdown."""
    yield

    await app.state.orchestrator.drain_notifications()
    shutdown_executor()
    _db.close()
    logger.info("✅ Database closed")


# Create app with lifespan
app = create_app(db=_db)
app.router.lifespan_context = lifespan


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("spabook.main:app", host=HOST, port=PORT, reload=True)
