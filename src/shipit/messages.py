"""Commit message formatting and small text helpers."""

from __future__ import annotations

import re
from typing import NamedTuple

from rich.markup import escape

from shipit.models import CommitProposal

WRAP_WIDTH = 80

# 2+ uppercase letters, hyphen, 1+ digits (ABC-123, PROJ-4567)
JIRA_TICKET_PATTERN = re.compile(r"([A-Z]{2,}-\d+)")


class CommitMessages(NamedTuple):
    subject: str
    display: str


def decapitalize_first_letter(text: str) -> str:
    return text[:1].lower() + text[1:]


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    if count == 1:
        return singular
    return plural or f"{singular}s"


def wrap_text(text: str, max_width: int = WRAP_WIDTH) -> str:
    """Greedily wrap text to max_width columns.

    Every input line is wrapped on its own, so paragraphs and list items keep
    their breaks. A word longer than max_width is put on its own line rather
    than split.

    Args:
        text: The text to wrap.
        max_width: The maximum width of each line.

    Returns:
        The wrapped text as a single string with newlines.
    """
    paragraphs = [p for p in re.split(r"\n\s*\n", text.strip()) if p.strip()]
    wrapped: list[str] = []

    for paragraph in paragraphs:
        lines: list[str] = []
        for source_line in paragraph.splitlines():
            current = ""
            for word in source_line.split():
                if not current:
                    current = word
                elif len(current) + 1 + len(word) > max_width:
                    lines.append(current)
                    current = word
                else:
                    current = f"{current} {word}"
            if current:
                lines.append(current)
        wrapped.append("\n".join(lines))

    return "\n\n".join(wrapped)


def extract_jira_ticket_id(branch_name: str) -> str | None:
    """Extract the first Jira ticket ID from a branch name, if any."""
    match = JIRA_TICKET_PATTERN.search(branch_name)
    return match.group(1) if match else None


def build_commit_messages(proposal: CommitProposal, jira_ticket_id: str | None = None) -> CommitMessages:
    """Build the subject line and its rich-markup display version.

    With a Jira ticket the subject becomes ``TICKET-type[!]-hyphenated-description``
    and scope is dropped. Otherwise the conventional ``type(scope)!: description``
    form is used, unless the model already wrote that prefix into the
    description itself.

    Args:
        proposal: The commit proposed by the model.
        jira_ticket_id: Optional Jira ticket ID taken from the branch name.

    Returns:
        CommitMessages with the plain subject and the display line.
    """
    description = decapitalize_first_letter(proposal.description)
    bang = "!" if proposal.breaking else ""

    if jira_ticket_id:
        slug = re.sub(r"\s+", "-", description.strip())
        subject = f"{jira_ticket_id}-{proposal.type}{bang}-{slug}"
        return CommitMessages(subject=subject, display=escape(subject))

    scope = f"({proposal.scope})" if proposal.scope else ""
    prefix = f"{proposal.type}{scope}{bang}"

    # Exact matches only: the model sometimes repeats the prefix verbatim
    if description.startswith(prefix):
        return CommitMessages(subject=description, display=escape(description))

    return CommitMessages(
        subject=f"{prefix}: {description}",
        display=f"[bold]{escape(prefix)}: [/bold]{escape(description)}",
    )


def build_full_commit_message(proposal: CommitProposal, subject: str) -> str:
    """Subject, then the wrapped body and the footers as trailing paragraphs."""
    message = subject
    if proposal.body:
        message += f"\n\n{wrap_text(proposal.body)}"
    if proposal.footers:
        message += "\n\n" + "\n".join(proposal.footers)
    return message
