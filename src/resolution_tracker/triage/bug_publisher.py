"""Filing or updating bugs from triage directives."""

import logging

from ..bug_tracker import BugTracker, CreateBugRequest, ModifyBugRequest, get_bug_tracker
from ..config import Settings, settings
from ..issue_tracker.public_api import Comment, IssueInfo, IssueState, IssueTracker, get_issue_tracker
from ..ledger import LedgerEntry, ResolutionLedger, get_ledger
from .directive import Directive

logger = logging.getLogger("resolution_tracker.bug_publisher")

NO_ACTION_BOILERPLATE = (
    "If no action is needed, feel free to close this bug. Otherwise, please "
    "prioritize the work needed for the above resolutions."
)


class BugTrackerPublisher:
    """
    Files a new bug (or comments on an existing one) for a mirror issue,
    then closes the mirror issue and records the bug in the ledger.
    """

    def __init__(
        self,
        tracker: IssueTracker | None = None,
        bug_tracker: BugTracker | None = None,
        ledger: ResolutionLedger | None = None,
        config: Settings | None = None,
    ):
        self._tracker = tracker or get_issue_tracker()
        self._bug_tracker = bug_tracker or get_bug_tracker()
        self._ledger = ledger or get_ledger()
        self._config = config or settings

    async def publish(
        self,
        entry: LedgerEntry,
        issue: IssueInfo,
        directive: Directive | None,
        comments: list[Comment] | None = None,
    ) -> int | None:
        """
        Act on a directive.

        Returns:
            The bug id of record, or None if nothing was done.
        """
        if entry.crbug_id != 0:
            logger.info(f"Mirror issue #{issue.number} already has crbug {entry.crbug_id}")
            return None

        if not issue.is_open:
            logger.info(f"Mirror issue #{issue.number} is closed, nothing to publish")
            return None

        if directive is None or not directive.is_actionable:
            logger.info(f"Mirror issue #{issue.number} has no component or bug id yet")
            return None

        description = self.build_description(issue, directive)

        if directive.crbug == 0:
            bug = await self._bug_tracker.create_bug(
                CreateBugRequest(
                    project=self._config.bug_tracker_project,
                    summary=issue.title,
                    description=f"{description}{NO_ACTION_BOILERPLATE}\n",
                    components=list(directive.components),
                    owner=directive.owner,
                    cc_list=list(directive.cc_list),
                )
            )
            crbug_id = bug.id
            action = "filed"
        else:
            # TODO: send owner/cc/components in the delta once the service account may edit them
            await self._bug_tracker.modify_bug(
                ModifyBugRequest(
                    project=self._config.bug_tracker_project,
                    bug_id=directive.crbug,
                    comment=description,
                )
            )
            crbug_id = directive.crbug
            action = "updated"

        triaged_ids = [comment.id for comment in comments or []]
        try:
            await self._comment_and_close(issue, action, crbug_id)
        finally:
            # Recorded even if closing failed, so a retry cannot file a second bug
            await self._ledger.record_triage_result(entry.doc_id, crbug_id, triaged_ids)

        logger.info(f"Mirror issue #{issue.number}: {action} crbug {crbug_id}")
        return crbug_id

    def build_description(self, issue: IssueInfo, directive: Directive) -> str:
        description = issue.body or ""
        description += "\n\n"
        if directive.comment:
            description += f"{directive.commenter} left an additional comment:\n{directive.comment}\n\n"
        description += f"This issue has been triaged via {self._issue_url(issue)}\n"
        return description

    async def _comment_and_close(self, issue: IssueInfo, action: str, crbug_id: int) -> None:
        bug_url = self._config.bug_tracker_url_template.format(bug_id=crbug_id)
        comment_text = f"I have {action} [crbug.com/{crbug_id}]({bug_url})\n\n"
        comment_text += "That is all that can be done here, closing issue."

        repo = self._config.mirror_repo
        await self._tracker.add_comment(repo, issue.number, comment_text)
        await self._tracker.update_issue_state(repo, issue.number, IssueState.CLOSED)

    def _issue_url(self, issue: IssueInfo) -> str:
        return issue.html_url or f"https://github.com/{self._config.mirror_repo}/issues/{issue.number}"
