"""Issue tracker abstraction layer."""

from .github_client import GitHubClient
from .public_api import (
    # Models
    Comment,
    IssueInfo,
    IssueState,
    # ABC interface
    IssueTracker,
    # Service factory
    get_issue_tracker,
    set_issue_tracker,
)
from .webhook_handler import verify_signature, webhook_router

__all__ = [
    # Public API - Models
    "Comment",
    "IssueInfo",
    "IssueState",
    # Public API - Interface and factory
    "IssueTracker",
    "get_issue_tracker",
    "set_issue_tracker",
    # Implementations
    "GitHubClient",
    # Routers
    "verify_signature",
    "webhook_router",
]
