"""One poll cycle over the source repository's new comments."""

import logging
from datetime import timedelta

from ..common import utc_now
from ..config import Settings, settings
from ..issue_tracker.public_api import IssueTracker, get_issue_tracker
from ..ledger import ResolutionLedger, get_ledger
from .publisher import MirrorIssuePublisher, PublishOutcome
from .scanner import parse_resolutions

logger = logging.getLogger("resolution_tracker.poller")


class ResolutionPoller:
    """
    Mirrors resolutions recorded since the last completed cycle.

    The checkpoint only advances after every record is published, so a
    failed cycle is replayed in full next time. Replays are safe because
    publishing is idempotent per source comment.
    """

    def __init__(
        self,
        tracker: IssueTracker | None = None,
        ledger: ResolutionLedger | None = None,
        config: Settings | None = None,
        publisher: MirrorIssuePublisher | None = None,
    ):
        self._tracker = tracker or get_issue_tracker()
        self._ledger = ledger or get_ledger()
        self._config = config or settings
        self._publisher = publisher or MirrorIssuePublisher(
            tracker=self._tracker,
            ledger=self._ledger,
            config=self._config,
        )

    async def run_once(self) -> list[PublishOutcome]:
        start_time = utc_now()

        since = await self._ledger.load_checkpoint()
        if since is None:
            since = start_time - timedelta(hours=self._config.initial_lookback_hours)
            logger.warning(f"No checkpoint stored, looking back to {since.isoformat()}")
        logger.info(f"Polling {self._config.source_repo} for comments since {since.isoformat()}")

        comments = await self._tracker.list_repo_comments(self._config.source_repo, since)
        records = parse_resolutions(comments)
        outcomes = await self._publisher.publish(records)

        await self._ledger.save_checkpoint(start_time)

        created = outcomes.count(PublishOutcome.CREATED)
        commented = outcomes.count(PublishOutcome.COMMENTED)
        logger.info(
            f"Poll cycle complete: {created} mirror issue(s) created, "
            f"{commented} comment(s) added, {len(outcomes) - created - commented} already recorded"
        )
        return outcomes
