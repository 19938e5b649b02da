"""Public API for the corporate bug tracker."""

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


# =============================================================================
# Models
# =============================================================================

class CreateBugRequest(BaseModel):
    """A new bug. Status, priority and type are fixed by the client."""

    project: str
    summary: str
    description: str
    components: list[str] = Field(default_factory=list)
    owner: str = ""
    cc_list: list[str] = Field(default_factory=list)


class ModifyBugRequest(BaseModel):
    """A delta on an existing bug. Unset fields are left untouched."""

    project: str
    bug_id: int
    comment: str = ""
    status: str = ""
    owner: str = ""
    cc_list: list[str] = Field(default_factory=list)
    components: list[str] = Field(default_factory=list)


class BugInfo(BaseModel):
    """A bug as returned by the tracker."""

    id: int
    summary: str = ""
    status: str = ""


# =============================================================================
# Service Interface (ABC)
# =============================================================================

class BugTracker(ABC):
    """Abstract interface for the bug tracker."""

    @abstractmethod
    async def create_bug(self, request: CreateBugRequest) -> BugInfo:
        """File a new bug and return it with its numeric id."""
        pass

    @abstractmethod
    async def modify_bug(self, request: ModifyBugRequest) -> None:
        """Apply a delta and/or append a comment to an existing bug."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        pass


# =============================================================================
# Service Factory
# =============================================================================

_bug_tracker: BugTracker | None = None


def get_bug_tracker() -> BugTracker:
    """Get the global bug tracker instance."""
    global _bug_tracker
    if _bug_tracker is None:
        from .monorail_client import MonorailClient

        _bug_tracker = MonorailClient()
    return _bug_tracker


async def set_bug_tracker(tracker: BugTracker) -> None:
    """Set the global bug tracker instance (for testing)."""
    global _bug_tracker
    if _bug_tracker is not None:
        await _bug_tracker.close()
    _bug_tracker = tracker
