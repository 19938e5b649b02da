"""FastAPI entry point for the resolution tracker."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI

from .bug_tracker import get_bug_tracker
from .config import settings
from .issue_tracker import get_issue_tracker, webhook_router
from .ledger import PostgresDocumentStore, get_document_store
from .triage import task_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)


async def _connect_ledger(store: PostgresDocumentStore, logger: logging.Logger) -> None:
    """Connect the ledger store, retrying a few times before giving up."""
    for attempt in range(3):
        try:
            logger.info(f"Connecting to database (attempt {attempt + 1}/3)...")
            await asyncio.wait_for(store.connect(), timeout=30)
            logger.info("Database connected successfully")
            return
        except asyncio.TimeoutError:
            logger.warning(f"Database connection timeout (attempt {attempt + 1})")
        except Exception as e:
            logger.warning(f"Database connection failed (attempt {attempt + 1}): {e}")
        if attempt < 2:
            await asyncio.sleep(5)

    # Requests will still try to connect lazily
    logger.error("Failed to connect to database after 3 attempts")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger = logging.getLogger("resolution_tracker.startup")
    logger.info("Starting resolution tracker...")

    store = get_document_store()
    startup_task = None
    if isinstance(store, PostgresDocumentStore):
        # Connect in background so health checks respond immediately
        startup_task = asyncio.create_task(_connect_ledger(store, logger))

    logger.info("Resolution tracker accepting requests")
    yield

    logger.info("Shutting down resolution tracker...")

    if startup_task is not None and not startup_task.done():
        startup_task.cancel()
        try:
            await startup_task
        except asyncio.CancelledError:
            pass

    await get_issue_tracker().close()
    await get_bug_tracker().close()
    await store.close()


app = FastAPI(
    title="Resolution Tracker",
    description="Mirrors working group resolutions and triages them into the bug tracker",
    version="0.1.0",
    lifespan=lifespan,
)

# Register routers
app.include_router(webhook_router)
app.include_router(task_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": "Resolution Tracker",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/api/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


def run() -> None:
    """Run the application."""
    uvicorn.run(
        "resolution_tracker.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )


if __name__ == "__main__":
    run()
