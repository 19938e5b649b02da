"""The delayed triage task body."""

import logging

from ..bug_tracker import BugTracker
from ..config import Settings, settings
from ..issue_tracker.public_api import IssueTracker, get_issue_tracker
from ..ledger import ResolutionLedger, get_ledger
from .bug_publisher import BugTrackerPublisher
from .directive import parse_directive

logger = logging.getLogger("resolution_tracker.triage")


class TriageTaskRunner:
    """
    Evaluates a mirror issue once its grace period has passed.

    Whatever happens, the entry's pending flag is cleared on the way out so
    the next qualifying event can schedule again.
    """

    def __init__(
        self,
        tracker: IssueTracker | None = None,
        bug_tracker: BugTracker | None = None,
        ledger: ResolutionLedger | None = None,
        publisher: BugTrackerPublisher | None = None,
        config: Settings | None = None,
    ):
        self._tracker = tracker or get_issue_tracker()
        self._ledger = ledger or get_ledger()
        self._config = config or settings
        self._publisher = publisher or BugTrackerPublisher(
            tracker=self._tracker,
            bug_tracker=bug_tracker,
            ledger=self._ledger,
            config=self._config,
        )

    async def run(self, mirror_issue_id: int) -> int | None:
        """Triage a mirror issue. Returns the bug id filed or updated, if any."""
        entry = await self._ledger.load_by_mirror_id(mirror_issue_id)
        if not entry.is_tracked:
            logger.warning(f"No ledger entry for mirror issue #{mirror_issue_id}, dropping task")
            return None

        try:
            if entry.crbug_id != 0:
                logger.info(f"Mirror issue #{mirror_issue_id} already triaged as crbug {entry.crbug_id}")
                return None

            repo = self._config.mirror_repo
            issue = await self._tracker.get_issue(repo, mirror_issue_id)
            comments = await self._tracker.list_comments(repo, mirror_issue_id)
            collaborators = await self._tracker.list_collaborators(repo)

            directive = parse_directive(issue, comments, collaborators, self._config)
            return await self._publisher.publish(entry, issue, directive, comments)
        finally:
            await self._ledger.set_pending_triage(entry.doc_id, False)


# Global instance
_runner: TriageTaskRunner | None = None


def get_triage_runner() -> TriageTaskRunner:
    """Get the global triage runner instance."""
    global _runner
    if _runner is None:
        _runner = TriageTaskRunner()
    return _runner
