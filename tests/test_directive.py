"""Tests for directive parsing."""

import pytest
from pydantic import ValidationError

from resolution_tracker.issue_tracker import Comment, IssueInfo
from resolution_tracker.triage import Directive, parse_directive
from resolution_tracker.triage.directive import normalize_account, parse_bug_id, parse_components

from .conftest import at

COLLABORATORS = {"alice", "bob"}


def make_issue(labels: list[str] | None = None) -> IssueInfo:
    return IssueInfo(number=7, title="Mirror issue", body="Resolutions", labels=labels or [])


def make_comment(comment_id: int, author: str, body: str, minutes: int | None = None) -> Comment:
    return Comment(
        id=comment_id,
        body=body,
        author_login=author,
        created_at=at(comment_id if minutes is None else minutes),
    )


class TestHelpers:
    def test_normalize_account_adds_domain(self):
        assert normalize_account("  someone ", "chromium.org") == "someone@chromium.org"

    def test_normalize_account_keeps_email(self):
        assert normalize_account("a@x.com", "chromium.org") == "a@x.com"

    def test_normalize_account_empty(self):
        assert normalize_account("   ", "chromium.org") == ""

    def test_parse_bug_id(self):
        assert parse_bug_id("crbug: https://crbug.com/1234567") == 1234567

    def test_parse_bug_id_too_short(self):
        assert parse_bug_id("crbug: 1234") == 0

    def test_parse_components(self):
        labels = ["crbug:Blink>Layout", "css-grid-2", "crbug:UI", "crbug:UI"]
        assert parse_components(labels, "crbug:", "meta") == ("Blink>Layout", "UI")

    def test_parse_components_meta(self):
        assert parse_components(["crbug:UI", "meta"], "crbug:", "meta") is None


class TestParseDirective:
    """Tests for folding collaborator comments into a directive."""

    def test_components_from_labels(self, config):
        directive = parse_directive(make_issue(["crbug:UI"]), [], COLLABORATORS, config)

        assert directive.components == ("UI",)
        assert directive.crbug == 0
        assert directive.is_actionable is True

    def test_meta_issue_is_skipped(self, config):
        """Meta exclusion: no directive even with a component label."""
        assert parse_directive(make_issue(["crbug:UI", "meta"]), [], COLLABORATORS, config) is None

    def test_last_write_wins(self, config):
        """Later collaborator lines replace earlier ones; outsiders are ignored."""
        comments = [
            make_comment(1, "alice", "owner: a@x.com"),
            make_comment(2, "mallory", "owner: evil@x.com"),
            make_comment(3, "bob", "owner: b@x.com"),
            make_comment(4, "mallory", "owner: evil2@x.com"),
        ]

        directive = parse_directive(make_issue(), comments, COLLABORATORS, config)

        assert directive.owner == "b@x.com"

    def test_comments_folded_chronologically(self, config):
        comments = [
            make_comment(1, "bob", "owner: later", minutes=20),
            make_comment(2, "alice", "owner: earlier", minutes=10),
        ]

        directive = parse_directive(make_issue(), comments, COLLABORATORS, config)

        assert directive.owner == "later@chromium.org"

    def test_all_fields(self, config):
        body = (
            "Thanks!\n"
            "Bug: 1234567\n"
            "  Owner: someone\n"
            "CC: a@x.com, b ,\n"
            "Comment: Please check the grid tests first\n"
        )

        directive = parse_directive(make_issue(), [make_comment(1, "alice", body)], COLLABORATORS, config)

        assert directive == Directive(
            crbug=1234567,
            owner="someone@chromium.org",
            cc_list=("a@x.com", "b@chromium.org"),
            commenter="alice",
            comment="please check the grid tests first",
        )

    def test_cc_list_is_replaced(self, config):
        comments = [
            make_comment(1, "alice", "cc: one, two"),
            make_comment(2, "bob", "cc: three"),
        ]

        directive = parse_directive(make_issue(), comments, COLLABORATORS, config)

        assert directive.cc_list == ("three@chromium.org",)

    def test_unparsable_bug_resets_to_zero(self, config):
        """A bad crbug line clears an earlier id without aborting the fold."""
        comments = [
            make_comment(1, "alice", "crbug: 1234567"),
            make_comment(2, "bob", "crbug: none\nowner: bob"),
        ]

        directive = parse_directive(make_issue(), comments, COLLABORATORS, config)

        assert directive.crbug == 0
        assert directive.owner == "bob@chromium.org"

    def test_not_actionable_without_component_or_bug(self, config):
        directive = parse_directive(
            make_issue(), [make_comment(1, "alice", "owner: someone")], COLLABORATORS, config
        )

        assert directive.is_actionable is False

    def test_directive_is_immutable(self):
        directive = Directive(owner="a@x.com")
        with pytest.raises(ValidationError):
            directive.owner = "b@x.com"
