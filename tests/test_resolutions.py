"""Tests for mirror issue publishing and the poll cycle."""

import pytest

from resolution_tracker.common import MalformedReference
from resolution_tracker.issue_tracker import Comment, IssueInfo
from resolution_tracker.resolutions import (
    MirrorIssuePublisher,
    PublishOutcome,
    ResolutionPoller,
    ResolutionRecord,
    build_resolution_text,
)

from .conftest import MIRROR_REPO, SOURCE_REPO, at

COMMENT_URL = "https://github.com/w3c/csswg-drafts/issues/42#issuecomment-501"
ISSUE_API_URL = "https://api.github.com/repos/w3c/csswg-drafts/issues/42"


def make_record(comment_id: int = 501, lines: list[str] | None = None) -> ResolutionRecord:
    return ResolutionRecord(
        issue_number=42,
        resolution_lines=lines or ["RESOLVED: Do X"],
        comment_id=comment_id,
        comment_url=f"https://github.com/w3c/csswg-drafts/issues/42#issuecomment-{comment_id}",
    )


def source_comment(comment_id: int, body: str, minutes: int, issue_url: str = ISSUE_API_URL) -> Comment:
    return Comment(
        id=comment_id,
        body=body,
        author_login="css-meeting-bot",
        html_url=f"https://github.com/w3c/csswg-drafts/issues/42#issuecomment-{comment_id}",
        issue_url=issue_url,
        created_at=at(minutes),
    )


@pytest.fixture
def source_issue(tracker):
    return tracker.add_issue(
        SOURCE_REPO,
        IssueInfo(
            number=42,
            title="[css-grid] Subgrid gaps",
            labels=["css-grid-2", "Agenda+", "css-align-3"],
        ),
    )


@pytest.fixture
def publisher(tracker, ledger, config):
    return MirrorIssuePublisher(tracker=tracker, ledger=ledger, config=config)


class TestBuildResolutionText:
    def test_quotes_each_line_and_links(self):
        text = build_resolution_text(["RESOLVED: Do X", "RESOLVED: Do Y"], COMMENT_URL)

        assert text == (
            "The working group added the following resolution(s):\n\n"
            "> RESOLVED: Do X\n"
            "> RESOLVED: Do Y\n"
            f"\nin {COMMENT_URL}\n"
        )


class TestMirrorIssuePublisher:
    """Tests for idempotent mirror issue creation and commenting."""

    @pytest.mark.asyncio
    async def test_creates_mirror_issue(self, publisher, tracker, ledger, source_issue):
        """First resolution on a source issue creates the mirror issue."""
        outcome = await publisher.publish_record(make_record())

        assert outcome == PublishOutcome.CREATED
        assert len(tracker.created) == 1
        repo, title, body, labels = tracker.created[0]
        assert repo == MIRROR_REPO
        assert title == "[css-grid] Subgrid gaps"
        assert "> RESOLVED: Do X" in body
        assert labels == ["css-grid-2", "css-align-3"]

        entry = await ledger.load_by_issue(42)
        assert entry.source_issue_id == 42
        assert entry.mirror_issue_id == 1001
        assert entry.recorded_comment_ids == [501]

    @pytest.mark.asyncio
    async def test_no_matching_labels(self, publisher, tracker):
        tracker.add_issue(SOURCE_REPO, IssueInfo(number=42, title="Untagged", labels=["Agenda+"]))

        await publisher.publish_record(make_record())

        assert tracker.created[0][3] is None

    @pytest.mark.asyncio
    async def test_comments_on_existing_mirror(self, publisher, tracker, ledger, source_issue):
        await publisher.publish_record(make_record(comment_id=501))

        outcome = await publisher.publish_record(make_record(comment_id=502, lines=["RESOLVED: Do Y"]))

        assert outcome == PublishOutcome.COMMENTED
        assert len(tracker.created) == 1
        assert len(tracker.added_comments) == 1
        repo, number, body = tracker.added_comments[0]
        assert (repo, number) == (MIRROR_REPO, 1001)
        assert "> RESOLVED: Do Y" in body

        entry = await ledger.load_by_issue(42)
        assert entry.recorded_comment_ids == [501, 502]

    @pytest.mark.asyncio
    async def test_idempotent(self, publisher, tracker, source_issue):
        """The same comment published many times yields one issue and no comments."""
        records = [make_record(comment_id=501)] * 3

        outcomes = await publisher.publish(records)

        assert outcomes == [
            PublishOutcome.CREATED,
            PublishOutcome.ALREADY_RECORDED,
            PublishOutcome.ALREADY_RECORDED,
        ]
        assert len(tracker.created) == 1
        assert tracker.added_comments == []

    @pytest.mark.asyncio
    async def test_failure_aborts_remaining_records(self, publisher, tracker, ledger, source_issue):
        await publisher.publish_record(make_record(comment_id=501))
        tracker.fail_add_comment = True

        with pytest.raises(RuntimeError):
            await publisher.publish([make_record(comment_id=502), make_record(comment_id=503)])

        entry = await ledger.load_by_issue(42)
        assert entry.recorded_comment_ids == [501]


class TestResolutionPoller:
    """Tests for the poll cycle and its checkpoint."""

    @pytest.fixture
    def poller(self, tracker, ledger, config):
        return ResolutionPoller(tracker=tracker, ledger=ledger, config=config)

    @pytest.mark.asyncio
    async def test_creation_scenario(self, poller, tracker, ledger, source_issue):
        """A new RESOLVED: comment after the checkpoint creates a mirror issue."""
        await ledger.save_checkpoint(at(0))
        tracker.repo_comments = [
            source_comment(501, "Discussion...\nRESOLVED: Do X\n", minutes=10),
            source_comment(502, "Unrelated comment", minutes=11),
        ]

        outcomes = await poller.run_once()

        assert outcomes == [PublishOutcome.CREATED]
        _, title, body, _ = tracker.created[0]
        assert title == "[css-grid] Subgrid gaps"
        assert "> RESOLVED: Do X" in body
        assert "issuecomment-501" in body

        entry = await ledger.load_by_issue(42)
        assert entry.recorded_comment_ids == [501]
        assert await ledger.load_checkpoint() > at(0)

    @pytest.mark.asyncio
    async def test_replay_scenario(self, poller, tracker, ledger, source_issue):
        """Reprocessing a window does not duplicate mirror comments."""
        tracker.repo_comments = [source_comment(501, "RESOLVED: Do X", minutes=10)]

        await ledger.save_checkpoint(at(0))
        await poller.run_once()
        await ledger.save_checkpoint(at(0))
        outcomes = await poller.run_once()

        assert outcomes == [PublishOutcome.ALREADY_RECORDED]
        assert len(tracker.created) == 1
        assert tracker.added_comments == []

    @pytest.mark.asyncio
    async def test_missing_checkpoint_uses_lookback(self, poller, tracker, ledger, source_issue):
        """Without a checkpoint, the initial lookback window is scanned."""
        tracker.repo_comments = [source_comment(501, "RESOLVED: Do X", minutes=10)]

        outcomes = await poller.run_once()

        # BASE_TIME is far older than 24h, so nothing is in the window
        assert outcomes == []
        assert await ledger.load_checkpoint() is not None

    @pytest.mark.asyncio
    async def test_failure_does_not_advance_checkpoint(self, poller, tracker, ledger, source_issue):
        await ledger.save_checkpoint(at(0))
        tracker.repo_comments = [
            source_comment(501, "RESOLVED: Do X", minutes=10, issue_url="https://example.com/bad"),
        ]

        with pytest.raises(MalformedReference):
            await poller.run_once()

        assert await ledger.load_checkpoint() == at(0)
        assert tracker.created == []
