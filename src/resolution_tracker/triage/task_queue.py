"""Delayed HTTP task queue backed by SQS."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

import boto3
from botocore.exceptions import ClientError
from pydantic import BaseModel, ValidationError

from ..common import utc_now
from ..config import settings

logger = logging.getLogger("resolution_tracker.task_queue")

# SQS caps per-message delay and visibility timeout
MAX_DELAY_SECONDS = 900
MAX_VISIBILITY_TIMEOUT_SECONDS = 43200


class HttpTask(BaseModel):
    """An HTTP POST to deliver at or after ``schedule_time``."""

    url: str
    body: str  # application/x-www-form-urlencoded
    auth_token: str = ""
    schedule_time: datetime

    def seconds_until_due(self, now: datetime | None = None) -> int:
        remaining = (self.schedule_time - (now or utc_now())).total_seconds()
        return max(0, int(remaining + 0.999))


class TaskQueue(ABC):
    """Abstract interface for a delayed task queue."""

    @abstractmethod
    async def enqueue(self, task: HttpTask) -> str:
        """Enqueue a task and return its queue-assigned id."""
        pass


class SQSTaskQueue(TaskQueue):
    """
    SQS-backed task queue.

    Producer side is used by the scheduler; consumer side by the relay
    worker, which delivers each due task to its URL.
    """

    def __init__(self, queue_url: str | None = None, region: str | None = None):
        self._queue_url = queue_url or settings.sqs_task_queue_url
        self._region = region or settings.aws_region
        self._client: Any = None

    def _get_client(self) -> Any:
        """Get or create the SQS client (lazy initialization)."""
        if self._client is None:
            self._client = boto3.client("sqs", region_name=self._region)
        return self._client

    async def enqueue(self, task: HttpTask) -> str:
        if not self._queue_url:
            raise ValueError("Task queue URL not configured")

        client = self._get_client()
        delay = min(task.seconds_until_due(), MAX_DELAY_SECONDS)

        # Run in thread pool since boto3 is synchronous
        loop = asyncio.get_event_loop()
        response = await loop.run_in_executor(
            None,
            lambda: client.send_message(
                QueueUrl=self._queue_url,
                MessageBody=task.model_dump_json(),
                DelaySeconds=delay,
            )
        )

        message_id = response["MessageId"]
        logger.info(f"Enqueued task for {task.url} as message {message_id} (delay={delay}s)")
        return message_id

    async def receive_tasks(
        self,
        max_messages: int = 10,
        wait_time_seconds: int = 20,
    ) -> list[tuple[HttpTask, str]]:
        """
        Long-poll for tasks.

        Returns:
            List of (HttpTask, receipt_handle) tuples. Undecodable messages
            are deleted rather than returned.
        """
        if not self._queue_url:
            raise ValueError("Task queue URL not configured")

        client = self._get_client()
        loop = asyncio.get_event_loop()

        try:
            response = await loop.run_in_executor(
                None,
                lambda: client.receive_message(
                    QueueUrl=self._queue_url,
                    MaxNumberOfMessages=max_messages,
                    WaitTimeSeconds=wait_time_seconds,
                    VisibilityTimeout=settings.sqs_visibility_timeout_seconds,
                )
            )
        except ClientError as e:
            logger.error(f"Failed to poll task queue: {e}")
            return []

        results = []
        for msg in response.get("Messages", []):
            try:
                task = HttpTask.model_validate_json(msg["Body"])
            except ValidationError as e:
                logger.error(f"Dropping malformed task message {msg.get('MessageId')}: {e}")
                await self.delete_task(msg["ReceiptHandle"])
                continue
            results.append((task, msg["ReceiptHandle"]))

        return results

    async def delete_task(self, receipt_handle: str) -> None:
        """Delete a message after it was delivered."""
        client = self._get_client()
        loop = asyncio.get_event_loop()

        try:
            await loop.run_in_executor(
                None,
                lambda: client.delete_message(
                    QueueUrl=self._queue_url,
                    ReceiptHandle=receipt_handle,
                )
            )
        except ClientError as e:
            logger.error(f"Failed to delete message: {e}")

    async def defer_task(self, receipt_handle: str, seconds: int) -> None:
        """Hide a message that is not due yet for ``seconds``."""
        client = self._get_client()
        loop = asyncio.get_event_loop()
        timeout = min(max(seconds, 0), MAX_VISIBILITY_TIMEOUT_SECONDS)

        try:
            await loop.run_in_executor(
                None,
                lambda: client.change_message_visibility(
                    QueueUrl=self._queue_url,
                    ReceiptHandle=receipt_handle,
                    VisibilityTimeout=timeout,
                )
            )
        except ClientError as e:
            logger.error(f"Failed to defer message: {e}")


# Global instance
_task_queue: SQSTaskQueue | None = None


def get_task_queue() -> SQSTaskQueue:
    """Get the global task queue instance."""
    global _task_queue
    if _task_queue is None:
        _task_queue = SQSTaskQueue()
    return _task_queue
