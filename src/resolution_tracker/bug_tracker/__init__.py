"""Corporate bug tracker integration."""

from .monorail_client import MonorailClient
from .public_api import (
    BugInfo,
    BugTracker,
    CreateBugRequest,
    ModifyBugRequest,
    get_bug_tracker,
    set_bug_tracker,
)

__all__ = [
    "BugInfo",
    "BugTracker",
    "CreateBugRequest",
    "ModifyBugRequest",
    "MonorailClient",
    "get_bug_tracker",
    "set_bug_tracker",
]
