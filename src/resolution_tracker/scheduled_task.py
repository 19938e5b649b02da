"""Entrypoint for the scheduled poll of new resolutions.

Runs a single poll cycle and exits. Meant to be triggered by cron
(EventBridge schedule or similar) every few minutes.
"""

import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("resolution_tracker.scheduled_task")

POLL_LOCK_ID = 7311


async def main() -> int:
    from .issue_tracker import get_issue_tracker
    from .ledger import PostgresDocumentStore, ResolutionLedger
    from .resolutions import ResolutionPoller

    logger.info("Starting scheduled poll cycle...")

    store = PostgresDocumentStore()
    try:
        try:
            await store.connect()
            # Advisory locks are per session, so hold one connection for the whole cycle
            conn = await store._pool.acquire()
        except Exception:
            logger.exception("Could not connect to the ledger database")
            return 1
        logger.info("Database connected")

        try:
            acquired = await conn.fetchval("SELECT pg_try_advisory_lock($1)", POLL_LOCK_ID)
            if not acquired:
                logger.info("Another poll cycle is already running, exiting")
                return 0

            try:
                poller = ResolutionPoller(ledger=ResolutionLedger(store))
                await poller.run_once()
                logger.info("Scheduled poll cycle completed successfully")
                return 0
            except Exception:
                logger.exception("Scheduled poll cycle failed")
                return 1
            finally:
                await conn.execute("SELECT pg_advisory_unlock($1)", POLL_LOCK_ID)
        finally:
            await store._pool.release(conn)
    finally:
        await get_issue_tracker().close()
        await store.close()
        logger.info("Cleanup complete")


def cli() -> None:
    """Console entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
