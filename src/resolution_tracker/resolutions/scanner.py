"""Extraction of RESOLVED: statements from source issue comments."""

import logging
import re

from pydantic import BaseModel

from ..common import MalformedReference
from ..issue_tracker.public_api import Comment

logger = logging.getLogger("resolution_tracker.scanner")

# A line that starts with optional whitespace/backtick/asterisk markup
# followed by "RESOLVED:". Case-sensitive on purpose.
RESOLUTION_PATTERN = re.compile(r"^[ \t`*]*(RESOLVED:.*)$", re.MULTILINE)

TRAILING_MARKUP = " \t\r`*"


class ResolutionRecord(BaseModel):
    """Resolutions recorded by a single source comment."""

    issue_number: int
    resolution_lines: list[str]
    comment_id: int
    comment_url: str


def issue_number_from_url(issue_url: str) -> int:
    """Parse the issue number from the last path segment of an issue URL."""
    last_segment = issue_url.rstrip("/").rsplit("/", 1)[-1]
    try:
        return int(last_segment)
    except ValueError:
        raise MalformedReference(issue_url) from None


def extract_resolution_lines(body: str) -> list[str]:
    """Return each RESOLVED: line in a comment body, in order."""
    return [
        match.group(1).rstrip(TRAILING_MARKUP)
        for match in RESOLUTION_PATTERN.finditer(body)
    ]


def parse_resolutions(comments: list[Comment]) -> list[ResolutionRecord]:
    """
    Build one ResolutionRecord per comment that contains resolutions.

    Raises:
        MalformedReference: If a matching comment's parent issue URL does not
            end in an issue number. This aborts the whole batch.
    """
    records = []
    for comment in comments:
        lines = extract_resolution_lines(comment.body)
        if not lines:
            continue

        records.append(
            ResolutionRecord(
                issue_number=issue_number_from_url(comment.issue_url),
                resolution_lines=lines,
                comment_id=comment.id,
                comment_url=comment.html_url,
            )
        )

    logger.info(f"Found {len(records)} resolution comment(s) in {len(comments)} comment(s)")
    return records
