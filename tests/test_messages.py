"""Tests for commit message formatting."""

import pytest

from conftest import make_proposal
from shipit.messages import (
    build_commit_messages,
    build_full_commit_message,
    decapitalize_first_letter,
    extract_jira_ticket_id,
    pluralize,
    wrap_text,
)


class TestBuildCommitMessages:
    """Tests for build_commit_messages."""

    def test_plain(self):
        """Should build a conventional subject and bold display prefix."""
        messages = build_commit_messages(make_proposal(description="Add login form"))
        assert messages.subject == "feat: add login form"
        assert messages.display == "[bold]feat: [/bold]add login form"

    def test_scope_and_breaking(self):
        """Should include scope and breaking marker."""
        proposal = make_proposal(type="refactor", scope="api", breaking=True, description="drop v1 routes")
        assert build_commit_messages(proposal).subject == "refactor(api)!: drop v1 routes"

    def test_empty_scope_is_omitted(self):
        """Should drop empty scopes."""
        proposal = make_proposal(type="fix", scope="", description="handle empty input")
        assert build_commit_messages(proposal).subject == "fix: handle empty input"

    def test_redundant_prefix_is_not_duplicated(self):
        """Should not repeat a prefix the model already wrote."""
        proposal = make_proposal(type="fix", scope="auth", description="fix(auth): expire stale sessions")
        assert build_commit_messages(proposal).subject == "fix(auth): expire stale sessions"

    def test_near_miss_prefix_is_kept(self):
        """Should only strip exactly matching prefixes."""
        proposal = make_proposal(type="fix", scope="auth", description="fix(AUTH): expire stale sessions")
        assert build_commit_messages(proposal).subject == "fix(auth): fix(AUTH): expire stale sessions"

    def test_bare_type_word_counts_as_prefix(self):
        """Should treat a description starting with the bare type as already prefixed."""
        proposal = make_proposal(type="test", description="test coverage for x")
        assert build_commit_messages(proposal).subject == "test coverage for x"

    def test_display_escapes_markup(self):
        """Should escape rich markup in the display line."""
        proposal = make_proposal(description="support [bold] tags")
        assert "\\[bold]" in build_commit_messages(proposal).display

    def test_jira(self):
        """Should build a hyphenated Jira subject."""
        proposal = make_proposal(
            type="fix", scope="auth", breaking=True, description="Handle   expired\ttokens", body="Details."
        )
        messages = build_commit_messages(proposal, "PROJ-123")
        assert messages.subject == "PROJ-123-fix!-handle-expired-tokens"
        assert messages.display == messages.subject


class TestBuildFullCommitMessage:
    """Tests for build_full_commit_message."""

    def test_subject_only(self):
        """Should return just the subject without body or footers."""
        assert build_full_commit_message(make_proposal(), "feat: add something") == "feat: add something"

    def test_body_and_footers(self):
        """Should append the wrapped body and footers as paragraphs."""
        body = " ".join(["word"] * 30)
        proposal = make_proposal(body=body, footers=["Refs: #12", "BREAKING CHANGE: gone"])

        message = build_full_commit_message(proposal, "feat: add something")
        subject, wrapped, footers = message.split("\n\n")

        assert subject == "feat: add something"
        assert all(len(line) <= 80 for line in wrapped.splitlines())
        assert len(wrapped.splitlines()) == 2
        assert footers == "Refs: #12\nBREAKING CHANGE: gone"

    def test_body_list_is_kept(self):
        """Should persist a bulleted body line by line."""
        proposal = make_proposal(body="Changes:\n- add x\n- drop y")
        message = build_full_commit_message(proposal, "feat: add something")
        assert message == "feat: add something\n\nChanges:\n- add x\n- drop y"

    def test_jira_keeps_body(self):
        """Should keep the body under a Jira subject."""
        proposal = make_proposal(body="Why it matters.")
        subject = build_commit_messages(proposal, "AB-1").subject
        assert build_full_commit_message(proposal, subject) == "AB-1-feat-add-something\n\nWhy it matters."


class TestWrapText:
    """Tests for wrap_text."""

    TEXT = (
        "Streaming proposals are applied in the order the model emits them so later "
        "commits can rely on earlier ones having moved their files out of the working tree."
    )

    @pytest.mark.parametrize("width", [10, 20, 40, 80])
    def test_round_trip(self, width):
        """Should only move whitespace and respect the width."""
        wrapped = wrap_text(self.TEXT, width)
        assert " ".join(wrapped.splitlines()) == " ".join(self.TEXT.split())
        assert all(len(line) <= width for line in wrapped.splitlines())

    def test_long_word_gets_own_line(self):
        """Should put an overlong word on its own line."""
        wrapped = wrap_text("short averyveryverylongword end", 10)
        assert wrapped.splitlines() == ["short", "averyveryverylongword", "end"]

    def test_collapses_whitespace(self):
        """Should collapse runs of whitespace."""
        assert wrap_text("a   b\tc") == "a b c"

    def test_keeps_paragraphs(self):
        """Should keep blank-line separated paragraphs."""
        assert wrap_text("first one\n\nsecond one", 80) == "first one\n\nsecond one"

    def test_keeps_line_breaks(self):
        """Should wrap each line on its own so list items survive."""
        assert wrap_text("Changes:\n- add x\n- drop y") == "Changes:\n- add x\n- drop y"
        assert wrap_text("- one two three\n- four", 9) == "- one two\nthree\n- four"

    def test_exact_fit(self):
        """Should allow lines of exactly the maximum width."""
        assert wrap_text("abcd efgh", 9) == "abcd efgh"
        assert wrap_text("abcd efgh", 8) == "abcd\nefgh"


class TestHelpers:
    """Tests for the small text helpers."""

    def test_extract_jira_ticket_id(self):
        """Should find the first ticket ID in a branch name."""
        assert extract_jira_ticket_id("feature/PROJ-123-fix-login") == "PROJ-123"
        assert extract_jira_ticket_id("main") is None
        assert extract_jira_ticket_id("AB-1-and-CD-2") == "AB-1"
        assert extract_jira_ticket_id("x/A-12") is None
        assert extract_jira_ticket_id("proj-123") is None

    def test_decapitalize(self):
        """Should lower only the first letter."""
        assert decapitalize_first_letter("Add API") == "add API"
        assert decapitalize_first_letter("") == ""

    def test_pluralize(self):
        """Should pick singular or plural forms."""
        assert pluralize(1, "file") == "file"
        assert pluralize(0, "file") == "files"
        assert pluralize(2, "batch", "batches") == "batches"
