"""
Task relay worker.

Polls the SQS task queue and delivers each due HttpTask to its handler URL,
which is how delayed triage tasks reach the web service.

Usage:
    python -m resolution_tracker.worker

Environment variables:
    RESOLUTION_TRACKER_SQS_TASK_QUEUE_URL: URL of the task queue
    RESOLUTION_TRACKER_AWS_REGION: AWS region (default: us-west-2)
    AWS_PROFILE: AWS credentials profile (recommended for local use)
"""

import asyncio
import logging
import signal
import sys

import httpx

from .config import settings
from .triage.task_queue import HttpTask, SQSTaskQueue, get_task_queue

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("resolution_tracker.worker")


class TaskRelay:
    """
    Delivers queued HTTP tasks once their schedule time has passed.

    A task that is not due yet is hidden until it is. A delivery that fails
    leaves the message in the queue, so SQS redelivers it after the
    visibility timeout.
    """

    def __init__(
        self,
        task_queue: SQSTaskQueue | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._queue = task_queue or get_task_queue()
        self._http = http_client or httpx.AsyncClient(timeout=settings.task_delivery_timeout_seconds)
        self._running = False

    async def start(self) -> None:
        """Start the relay loop."""
        logger.info("=" * 60)
        logger.info("Task Relay Starting")
        logger.info("=" * 60)
        logger.info(f"Task Queue: {settings.sqs_task_queue_url}")
        logger.info(f"Region: {settings.aws_region}")
        logger.info("=" * 60)

        if not settings.sqs_task_queue_url:
            logger.error("SQS task queue URL not configured!")
            logger.error("Set RESOLUTION_TRACKER_SQS_TASK_QUEUE_URL")
            return

        self._running = True

        while self._running:
            try:
                await self.poll_once()
            except Exception as e:
                logger.exception(f"Error in relay loop: {e}")
                await asyncio.sleep(5)

        await self._http.aclose()
        logger.info("Relay stopped")

    async def stop(self) -> None:
        """Stop after the current poll returns."""
        logger.info("Stopping relay...")
        self._running = False

    async def poll_once(self) -> int:
        """Receive one batch and deliver what is due. Returns tasks delivered."""
        tasks = await self._queue.receive_tasks(wait_time_seconds=settings.sqs_wait_time_seconds)

        delivered = 0
        for task, receipt_handle in tasks:
            wait = task.seconds_until_due()
            if wait > 0:
                logger.debug(f"Task for {task.url} due in {wait}s, deferring")
                await self._queue.defer_task(receipt_handle, wait)
                continue

            if await self.deliver(task):
                await self._queue.delete_task(receipt_handle)
                delivered += 1

        return delivered

    async def deliver(self, task: HttpTask) -> bool:
        """POST a task to its URL. Returns True on a 2xx response."""
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        if task.auth_token:
            headers["Authorization"] = f"Bearer {task.auth_token}"

        try:
            response = await self._http.post(task.url, content=task.body, headers=headers)
        except httpx.TransportError as e:
            logger.error(f"Delivering task to {task.url} failed: {e}")
            return False

        if not response.is_success:
            logger.error(f"Task handler {task.url} returned {response.status_code}, will retry")
            return False

        logger.info(f"Delivered task to {task.url}")
        return True


async def async_main() -> None:
    """Async entry point."""
    relay = TaskRelay()

    # Set up signal handlers for graceful shutdown
    loop = asyncio.get_event_loop()

    def signal_handler() -> None:
        logger.info("Received shutdown signal")
        asyncio.create_task(relay.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    await relay.start()


def main() -> None:
    """Entry point for the relay."""
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Relay interrupted")
        sys.exit(0)


if __name__ == "__main__":
    main()
