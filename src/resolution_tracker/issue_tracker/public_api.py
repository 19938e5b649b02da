"""Public API for issue tracker module.

This module defines the public interface and models for the issue tracker.
Implementation modules import from here, not the other way around.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from ..common import utc_now


# =============================================================================
# Models
# =============================================================================

class IssueState(str, Enum):
    """State of an issue."""

    OPEN = "open"
    CLOSED = "closed"


class Comment(BaseModel):
    """A comment on an issue.

    Comments listed repository-wide carry ``issue_url`` pointing at their
    parent issue; the issue number is derived from its last path segment.
    """

    id: int
    body: str
    author_login: str = ""
    html_url: str = ""
    issue_url: str = ""
    created_at: datetime = Field(default_factory=utc_now)


class IssueInfo(BaseModel):
    """Information about an issue from the issue tracker."""

    number: int
    title: str
    body: str | None = None
    state: IssueState = IssueState.OPEN
    labels: list[str] = Field(default_factory=list)
    html_url: str = ""

    @property
    def is_open(self) -> bool:
        return self.state == IssueState.OPEN


# =============================================================================
# Service Interface (ABC)
# =============================================================================

class IssueTracker(ABC):
    """Abstract interface for issue tracking systems."""

    @abstractmethod
    async def list_repo_comments(self, repo: str, since: datetime) -> list[Comment]:
        """
        List comments on all issues of a repository created at or after a time.

        Args:
            repo: Repository in owner/name format.
            since: Lower bound on comment creation time.

        Returns:
            Comments ordered by creation time.
        """
        pass

    @abstractmethod
    async def get_issue(self, repo: str, number: int) -> IssueInfo:
        """
        Get information about an issue.

        Args:
            repo: Repository in owner/name format.
            number: Issue number.

        Returns:
            IssueInfo with title, body, labels and state.
        """
        pass

    @abstractmethod
    async def list_comments(self, repo: str, number: int) -> list[Comment]:
        """List all comments on an issue in chronological order."""
        pass

    @abstractmethod
    async def list_collaborators(self, repo: str) -> set[str]:
        """Return the logins of all repository collaborators."""
        pass

    @abstractmethod
    async def create_issue(
        self,
        repo: str,
        title: str,
        body: str,
        labels: list[str] | None = None,
    ) -> IssueInfo:
        """
        Create a new issue.

        Args:
            repo: Repository in owner/name format.
            title: Issue title.
            body: Issue body/description.
            labels: Optional labels to apply.

        Returns:
            IssueInfo for the created issue.
        """
        pass

    @abstractmethod
    async def add_comment(self, repo: str, number: int, body: str) -> None:
        """Add a comment to an issue."""
        pass

    @abstractmethod
    async def update_issue_state(self, repo: str, number: int, state: IssueState) -> None:
        """Open or close an issue."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        pass


# =============================================================================
# Service Factory
# =============================================================================

# Singleton instance
_issue_tracker: IssueTracker | None = None


def get_issue_tracker() -> IssueTracker:
    """Get the global issue tracker instance."""
    global _issue_tracker
    if _issue_tracker is None:
        from .github_client import GitHubClient

        _issue_tracker = GitHubClient()
    return _issue_tracker


async def set_issue_tracker(tracker: IssueTracker) -> None:
    """Set the global issue tracker instance (for testing)."""
    global _issue_tracker
    if _issue_tracker is not None:
        await _issue_tracker.close()
    _issue_tracker = tracker
