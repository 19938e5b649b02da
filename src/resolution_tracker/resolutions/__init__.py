"""Mirroring of source-repository resolutions into the mirror repository."""

from .poller import ResolutionPoller
from .publisher import MirrorIssuePublisher, PublishOutcome, build_resolution_text
from .scanner import ResolutionRecord, issue_number_from_url, parse_resolutions

__all__ = [
    "MirrorIssuePublisher",
    "PublishOutcome",
    "ResolutionPoller",
    "ResolutionRecord",
    "build_resolution_text",
    "issue_number_from_url",
    "parse_resolutions",
]
