"""Prompt assembly and token cost estimation.

The prompt is built once per run from an immutable RepositoryState. Its
estimated size is mapped onto a fixed ladder of risk tiers; the top tiers
ask the user before the expensive model call is made.
"""

from __future__ import annotations

import json
import math

from pydantic import BaseModel, ConfigDict

from shipit.models import RepositoryState
from shipit.prompts import user_instruction

# Rough average for English prose and source code
CHARS_PER_TOKEN = 4


class TokenRiskTier(BaseModel):
    """How expensive and slow a prompt of a given size is likely to be."""

    model_config = ConfigDict(frozen=True)

    level: int
    upper_bound: int | None
    emoji: str
    label: str
    hint: str
    description: str | None = None
    needs_confirmation: bool = False


# Ascending, non-overlapping: a count belongs to the first tier whose
# upper_bound it is below.
TOKEN_TIERS: tuple[TokenRiskTier, ...] = (
    TokenRiskTier(level=0, upper_bound=5_000, emoji="🟢", label="looking fresh", hint="instant response"),
    TokenRiskTier(level=1, upper_bound=15_000, emoji="🟡", label="still vibing", hint="1-2 seconds"),
    TokenRiskTier(level=2, upper_bound=50_000, emoji="🟠", label="getting spicy", hint="3-5 seconds"),
    TokenRiskTier(
        level=3,
        upper_bound=100_000,
        emoji="🔴",
        label="woah there territory",
        hint="may hit rate limits",
        description="This will take 10+ seconds and cost significantly more",
        needs_confirmation=True,
    ),
    TokenRiskTier(
        level=4,
        upper_bound=None,
        emoji="💀",
        label="an absolute unit",
        hint="exceeds most API limits",
        description="This exceeds most API limits and will be very expensive",
        needs_confirmation=True,
    ),
)


def build_prompt(state: RepositoryState, commit_history: list[str] | None = None) -> str:
    """Build the user prompt for a repository state.

    Pure: the same state and history always give the same prompt.

    Args:
        state: The collected repository state.
        commit_history: Optional recent commit messages for style matching.

    Returns:
        The prompt text.
    """
    status_json = state.status.model_dump_json(indent=2, exclude_defaults=True)
    summary = {
        "changed": len(state.diff_summary.files),
        "insertions": state.diff_summary.insertions,
        "deletions": state.diff_summary.deletions,
        "files": [f.model_dump(exclude_defaults=True) for f in state.diff_summary.files],
    }
    return user_instruction(status_json, json.dumps(summary, indent=2), state.diff, commit_history)


def estimate_tokens(prompt: str) -> int:
    """Estimate the token count of a prompt without a tokenizer."""
    return math.ceil(len(prompt) / CHARS_PER_TOKEN)


def classify_token_count(token_count: int) -> TokenRiskTier:
    for tier in TOKEN_TIERS:
        if tier.upper_bound is None or token_count < tier.upper_bound:
            return tier
    return TOKEN_TIERS[-1]


def categorize_changes_count(changes_count: int) -> str:
    """Return a playful remark based on the number of touched files."""
    if changes_count < 10:
        return "Nice!"
    if changes_count < 50:
        return "[bold]Damn, solid work![/bold]"
    if changes_count < 100:
        return "[green]Holy... we cookin'![/green]"
    return "[red]Yikes, you'd better buy your reviewers some coffee![/red]"
