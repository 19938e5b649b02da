"""In-memory fakes for the external capabilities."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from resolution_tracker.bug_tracker import BugInfo, BugTracker, CreateBugRequest, ModifyBugRequest
from resolution_tracker.common import DocumentNotFoundError
from resolution_tracker.config import Settings
from resolution_tracker.issue_tracker import Comment, IssueInfo, IssueState, IssueTracker
from resolution_tracker.ledger import DocumentStore, ResolutionLedger
from resolution_tracker.triage import HttpTask, TaskQueue

SOURCE_REPO = "w3c/csswg-drafts"
MIRROR_REPO = "chromium-helper/csswg-resolutions"

BASE_TIME = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """A fixed timestamp ``minutes`` after BASE_TIME."""
    return BASE_TIME + timedelta(minutes=minutes)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed document store with the same semantics as the Postgres one."""

    def __init__(self):
        self.docs: dict[str, dict[str, Any]] = {}

    async def get(self, doc_id: str) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        data = self.docs.get(doc_id)
        return dict(data) if data is not None else None

    async def set(self, doc_id: str, data: dict[str, Any]) -> None:
        self.docs[doc_id] = dict(data)

    async def update(self, doc_id: str, updates: dict[str, Any]) -> None:
        if doc_id not in self.docs:
            raise DocumentNotFoundError("test", doc_id)
        self.docs[doc_id].update(updates)

    async def update_if(self, doc_id: str, expected: dict[str, Any], updates: dict[str, Any]) -> bool:
        data = self.docs.get(doc_id)
        if data is None:
            return False
        if any(data.get(key) != value for key, value in expected.items()):
            return False
        data.update(updates)
        return True

    async def find_first(self, field: str, value: Any) -> tuple[str, dict[str, Any]] | None:
        # Yield so concurrent callers interleave between read and conditional write
        await asyncio.sleep(0)
        for doc_id in sorted(self.docs):
            if self.docs[doc_id].get(field) == value:
                return doc_id, dict(self.docs[doc_id])
        return None

    async def close(self) -> None:
        pass


class FakeIssueTracker(IssueTracker):
    """Records every write; reads come from dictionaries set up by the test."""

    def __init__(self):
        self.issues: dict[tuple[str, int], IssueInfo] = {}
        self.comments: dict[tuple[str, int], list[Comment]] = {}
        self.repo_comments: list[Comment] = []
        self.collaborators: set[str] = set()
        self.created: list[tuple[str, str, str, list[str] | None]] = []
        self.added_comments: list[tuple[str, int, str]] = []
        self.state_changes: list[tuple[str, int, IssueState]] = []
        self.fail_add_comment = False
        self._next_number = 1000

    def add_issue(self, repo: str, issue: IssueInfo) -> IssueInfo:
        self.issues[(repo, issue.number)] = issue
        return issue

    async def list_repo_comments(self, repo: str, since: datetime) -> list[Comment]:
        return [c for c in self.repo_comments if c.created_at >= since]

    async def get_issue(self, repo: str, number: int) -> IssueInfo:
        return self.issues[(repo, number)]

    async def list_comments(self, repo: str, number: int) -> list[Comment]:
        return list(self.comments.get((repo, number), []))

    async def list_collaborators(self, repo: str) -> set[str]:
        return set(self.collaborators)

    async def create_issue(
        self,
        repo: str,
        title: str,
        body: str,
        labels: list[str] | None = None,
    ) -> IssueInfo:
        self._next_number += 1
        issue = IssueInfo(number=self._next_number, title=title, body=body, labels=labels or [])
        self.issues[(repo, issue.number)] = issue
        self.created.append((repo, title, body, labels))
        return issue

    async def add_comment(self, repo: str, number: int, body: str) -> None:
        if self.fail_add_comment:
            raise RuntimeError("comment failed")
        self.added_comments.append((repo, number, body))

    async def update_issue_state(self, repo: str, number: int, state: IssueState) -> None:
        self.state_changes.append((repo, number, state))
        issue = self.issues.get((repo, number))
        if issue is not None:
            self.issues[(repo, number)] = issue.model_copy(update={"state": state})

    async def close(self) -> None:
        pass


class FakeBugTracker(BugTracker):
    def __init__(self, next_id: int = 1234567):
        self.next_id = next_id
        self.created: list[CreateBugRequest] = []
        self.modified: list[ModifyBugRequest] = []

    async def create_bug(self, request: CreateBugRequest) -> BugInfo:
        self.created.append(request)
        bug = BugInfo(id=self.next_id, summary=request.summary, status="Untriaged")
        self.next_id += 1
        return bug

    async def modify_bug(self, request: ModifyBugRequest) -> None:
        self.modified.append(request)

    async def close(self) -> None:
        pass


class FakeTaskQueue(TaskQueue):
    def __init__(self, fail: bool = False):
        self.tasks: list[HttpTask] = []
        self.fail = fail

    async def enqueue(self, task: HttpTask) -> str:
        if self.fail:
            raise RuntimeError("queue unavailable")
        self.tasks.append(task)
        return f"msg-{len(self.tasks)}"


@pytest.fixture
def config():
    """Settings independent of the environment."""
    return Settings(
        github_login="chromium-helper",
        source_repo=SOURCE_REPO,
        mirror_repo=MIRROR_REPO,
        mirror_label_prefix="css-",
        action_label_prefix="crbug:",
        component_label_prefix="crbug:",
        meta_label="meta",
        default_account_domain="chromium.org",
        initial_lookback_hours=24,
        triage_grace_period_seconds=120,
        task_handler_url="https://tracker.example.com/tasks/triage",
        task_auth_token="task-token",
        bug_tracker_project="chromium",
        bug_tracker_url_template="https://crbug.com/{bug_id}",
    )


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def ledger(store):
    return ResolutionLedger(store)


@pytest.fixture
def tracker():
    return FakeIssueTracker()


@pytest.fixture
def bug_tracker():
    return FakeBugTracker()


@pytest.fixture
def task_queue():
    return FakeTaskQueue()
