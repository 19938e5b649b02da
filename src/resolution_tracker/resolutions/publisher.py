"""Mirror issue publishing for recorded resolutions."""

import logging
from enum import Enum

from ..config import Settings, settings
from ..issue_tracker.public_api import IssueTracker, get_issue_tracker
from ..ledger import LedgerEntry, ResolutionLedger, get_ledger
from .scanner import ResolutionRecord

logger = logging.getLogger("resolution_tracker.publisher")


class PublishOutcome(str, Enum):
    """What publishing a single record did."""

    CREATED = "created"
    COMMENTED = "commented"
    ALREADY_RECORDED = "already_recorded"


def build_resolution_text(resolution_lines: list[str], comment_url: str) -> str:
    """Body used for both new mirror issues and follow-up comments."""
    body = "The working group added the following resolution(s):\n\n"
    for line in resolution_lines:
        body += f"> {line}\n"
    body += f"\nin {comment_url}\n"
    return body


class MirrorIssuePublisher:
    """
    Creates one mirror issue per source issue and one mirror comment per
    resolution comment, using the ledger so re-processing is a no-op.
    """

    def __init__(
        self,
        tracker: IssueTracker | None = None,
        ledger: ResolutionLedger | None = None,
        config: Settings | None = None,
    ):
        self._tracker = tracker or get_issue_tracker()
        self._ledger = ledger or get_ledger()
        self._config = config or settings

    async def publish(self, records: list[ResolutionRecord]) -> list[PublishOutcome]:
        """Publish records in order. The first failure aborts the rest."""
        return [await self.publish_record(record) for record in records]

    async def publish_record(self, record: ResolutionRecord) -> PublishOutcome:
        entry = await self._ledger.load_by_issue(record.issue_number)

        if entry is None:
            await self._create_mirror_issue(record)
            return PublishOutcome.CREATED

        if record.comment_id in entry.recorded_comment_ids:
            logger.debug(
                f"Comment {record.comment_id} already recorded on mirror issue #{entry.mirror_issue_id}"
            )
            return PublishOutcome.ALREADY_RECORDED

        body = build_resolution_text(record.resolution_lines, record.comment_url)
        await self._tracker.add_comment(self._config.mirror_repo, entry.mirror_issue_id, body)
        await self._ledger.append_recorded_comment(entry.doc_id, record.comment_id)
        logger.info(
            f"Recorded comment {record.comment_id} of source issue #{record.issue_number} "
            f"on mirror issue #{entry.mirror_issue_id}"
        )
        return PublishOutcome.COMMENTED

    async def _create_mirror_issue(self, record: ResolutionRecord) -> None:
        source = await self._tracker.get_issue(self._config.source_repo, record.issue_number)
        labels = [
            label for label in source.labels
            if label.startswith(self._config.mirror_label_prefix)
        ]

        mirror = await self._tracker.create_issue(
            self._config.mirror_repo,
            title=source.title,
            body=build_resolution_text(record.resolution_lines, record.comment_url),
            labels=labels or None,
        )

        entry = LedgerEntry(
            source_issue_id=record.issue_number,
            mirror_issue_id=mirror.number,
            recorded_comment_ids=[record.comment_id],
        )
        await self._ledger.save(entry.doc_id, entry)
        logger.info(
            f"Created mirror issue #{mirror.number} for source issue #{record.issue_number} "
            f"(labels={labels})"
        )
