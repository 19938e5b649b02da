"""Triage directives folded from collaborator comments on a mirror issue.

Collaborators steer triage with lines such as::

    crbug: 1234567
    owner: someone
    cc: a@example.com, b
    comment: Please look at the grid changes first.

Comments are folded in chronological order and each recognized line replaces
the previous value of its field, so the newest instruction of each kind wins.
Comments from non-collaborators are ignored entirely.
"""

import logging
import re
from functools import reduce

from pydantic import BaseModel, ConfigDict

from ..config import Settings, settings
from ..issue_tracker.public_api import Comment, IssueInfo

logger = logging.getLogger("resolution_tracker.directive")

BUG_ID_PATTERN = re.compile(r"[0-9]{5,}")

BUG_PREFIXES = ("crbug:", "bug:")
OWNER_PREFIX = "owner:"
CC_PREFIX = "cc:"
COMMENT_PREFIX = "comment:"


class Directive(BaseModel):
    """Structured triage instruction for one mirror issue."""

    model_config = ConfigDict(frozen=True)

    components: tuple[str, ...] = ()
    crbug: int = 0  # 0 means file a new bug
    owner: str = ""
    cc_list: tuple[str, ...] = ()
    commenter: str = ""
    comment: str = ""

    @property
    def is_actionable(self) -> bool:
        """A bug can only be filed with a component or updated with a bug id."""
        return bool(self.components) or self.crbug != 0


def normalize_account(value: str, default_domain: str) -> str:
    """Trim an account and qualify bare usernames with the default domain."""
    account = value.strip()
    if not account:
        return ""
    if "@" not in account:
        account = f"{account}@{default_domain}"
    return account


def parse_components(labels: list[str], component_prefix: str, meta_label: str) -> tuple[str, ...] | None:
    """
    Collect components from prefixed labels.

    Returns:
        The components in label order, or None if the issue carries the meta
        label and must not be triaged at all.
    """
    if meta_label in labels:
        return None

    components: list[str] = []
    for label in labels:
        if not label.startswith(component_prefix):
            continue
        component = label[len(component_prefix):].strip()
        if component and component not in components:
            components.append(component)
    return tuple(components)


def parse_bug_id(line: str) -> int:
    """First run of 5+ digits in a line, or 0 if there is none."""
    match = BUG_ID_PATTERN.search(line)
    if match is None:
        logger.warning(f"Could not parse crbug from {line!r}")
        return 0
    return int(match.group(0))


def apply_line(directive: Directive, line: str, author: str, default_domain: str) -> Directive:
    """Return the directive updated by one lower-cased comment line."""
    if line.startswith(BUG_PREFIXES):
        return directive.model_copy(update={"crbug": parse_bug_id(line)})

    if line.startswith(OWNER_PREFIX):
        owner = normalize_account(line[len(OWNER_PREFIX):], default_domain)
        return directive.model_copy(update={"owner": owner})

    if line.startswith(CC_PREFIX):
        accounts = (normalize_account(part, default_domain) for part in line[len(CC_PREFIX):].split(","))
        return directive.model_copy(update={"cc_list": tuple(a for a in accounts if a)})

    if line.startswith(COMMENT_PREFIX):
        return directive.model_copy(
            update={
                "comment": line[len(COMMENT_PREFIX):].strip(),
                "commenter": author,
            }
        )

    return directive


def apply_comment(directive: Directive, comment: Comment, default_domain: str) -> Directive:
    """Fold every line of an authorized comment into the directive."""
    lines = (line.strip() for line in comment.body.lower().split("\n"))
    return reduce(
        lambda current, line: apply_line(current, line, comment.author_login, default_domain),
        lines,
        directive,
    )


def parse_directive(
    issue: IssueInfo,
    comments: list[Comment],
    collaborators: set[str],
    config: Settings | None = None,
) -> Directive | None:
    """
    Build the directive for a mirror issue.

    Args:
        issue: The mirror issue (its labels supply components).
        comments: All comments on the issue.
        collaborators: Logins trusted to author directives.
        config: Label prefixes, meta label and default account domain.

    Returns:
        The directive, or None if the issue is a meta issue and must be skipped.
    """
    config = config or settings
    components = parse_components(issue.labels, config.component_label_prefix, config.meta_label)
    if components is None:
        logger.info(f"Mirror issue #{issue.number} is labeled {config.meta_label!r}, skipping")
        return None

    authorized = [
        comment
        for comment in sorted(comments, key=lambda c: c.created_at)
        if comment.author_login in collaborators
    ]
    return reduce(
        lambda directive, comment: apply_comment(directive, comment, config.default_account_domain),
        authorized,
        Directive(components=components),
    )
