"""Classification of inbound mirror-repository webhook events.

This is a quick filter for events we definitely don't care about. It may let
through events that turn out to need no triage (the task re-checks
everything), but it must never drop one that does.
"""

from typing import Any

from ..config import Settings, settings


def is_triage_candidate(issue: dict[str, Any], meta_label: str) -> bool:
    """An issue is a candidate if it is open and not tagged as a meta issue."""
    if issue.get("number") is None:
        return False

    if issue.get("state") != "open":
        return False

    labels = [(label or {}).get("name", "") for label in issue.get("labels") or []]
    return meta_label not in labels


def should_trigger(event_type: str, payload: dict[str, Any], config: Settings | None = None) -> bool:
    """Decide whether a webhook event should schedule triage of its issue."""
    config = config or settings
    action = payload.get("action")
    issue = payload.get("issue")
    if not isinstance(issue, dict):
        return False

    if event_type == "issues":
        if action != "labeled":
            return False
        label_name = (payload.get("label") or {}).get("name", "")
        if not label_name.startswith(config.action_label_prefix):
            return False
        return is_triage_candidate(issue, config.meta_label)

    if event_type == "issue_comment":
        if action != "created":
            return False
        # Our own closing comments must not re-trigger triage
        author = ((payload.get("comment") or {}).get("user") or {}).get("login", "")
        if author == config.github_login:
            return False
        return is_triage_candidate(issue, config.meta_label)

    return False
