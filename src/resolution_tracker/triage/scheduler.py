"""Debounced scheduling of triage tasks per mirror issue.

The first qualifying event for an idle mirror issue flips its
``has_pending_triage`` flag and enqueues one task delayed by the grace
period. Events arriving while the flag is set are absorbed, so a burst of
collaborator comments is evaluated once. The task clears the flag when it
finishes.
"""

import logging
from datetime import timedelta
from urllib.parse import urlencode

from ..common import utc_now
from ..config import Settings, settings
from ..ledger import LEDGER_VERSION, ResolutionLedger, get_ledger
from .task_queue import HttpTask, TaskQueue, get_task_queue

logger = logging.getLogger("resolution_tracker.scheduler")

MIRROR_ISSUE_FIELD = "MirrorIssueId"


def build_triage_task(mirror_issue_id: int, config: Settings) -> HttpTask:
    """The delayed request that will triage ``mirror_issue_id``."""
    return HttpTask(
        url=config.task_handler_url,
        body=urlencode({MIRROR_ISSUE_FIELD: mirror_issue_id}),
        auth_token=config.task_auth_token,
        schedule_time=utc_now() + timedelta(seconds=config.triage_grace_period_seconds),
    )


class DebouncedScheduler:
    """Collapses bursts of triage-worthy events into one delayed task."""

    def __init__(
        self,
        ledger: ResolutionLedger | None = None,
        task_queue: TaskQueue | None = None,
        config: Settings | None = None,
    ):
        self._ledger = ledger or get_ledger()
        self._task_queue = task_queue or get_task_queue()
        self._config = config or settings

    async def schedule(self, mirror_issue_id: int) -> bool:
        """
        Schedule triage for a mirror issue unless one is already pending.

        Returns:
            True if a task was enqueued.
        """
        entry = await self._ledger.load_by_mirror_id(mirror_issue_id)

        if not entry.is_tracked:
            logger.info(f"Mirror issue #{mirror_issue_id} is not in the ledger, not scheduling")
            return False

        # Stale schema must not be silently processed
        if entry.version != LEDGER_VERSION:
            logger.warning(
                f"Ledger {entry.doc_id} has version {entry.version!r}, "
                f"expected {LEDGER_VERSION!r}; not scheduling"
            )
            return False

        if entry.has_pending_triage:
            logger.debug(f"Triage already pending for mirror issue #{mirror_issue_id}")
            return False

        if not await self._ledger.try_mark_pending(entry.doc_id):
            logger.info(f"Lost scheduling race for mirror issue #{mirror_issue_id}, already pending")
            return False

        task = build_triage_task(mirror_issue_id, self._config)
        try:
            await self._task_queue.enqueue(task)
        except Exception:
            # Leave the issue schedulable by the next event
            await self._ledger.set_pending_triage(entry.doc_id, False)
            raise

        logger.info(
            f"Scheduled triage for mirror issue #{mirror_issue_id} "
            f"at {task.schedule_time.isoformat()}"
        )
        return True


# Global instance
_scheduler: DebouncedScheduler | None = None


def get_scheduler() -> DebouncedScheduler:
    """Get the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = DebouncedScheduler()
    return _scheduler
