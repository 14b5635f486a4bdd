"""Prompt templates and the response schema sent to the model."""

from __future__ import annotations

from typing import Any, get_args

from shipit.models import CommitType

COMMIT_TYPES: tuple[str, ...] = get_args(CommitType)

SYSTEM_INSTRUCTION = f"""<role>
You are an expert software engineer specializing in git workflow optimization. You analyze uncommitted changes and split them into clean, atomic commits that follow the Conventional Commits specification.
</role>

<instructions>
1. Read the repository status, the diff summary and the full diff.
2. Work out what each change does and why it was made.
3. Group related files into commits based on:
   - Semantic relationship (same feature, bugfix or refactor)
   - Single responsibility (one logical change per commit)
   - Dependency order (earlier commits must not depend on later ones)
4. Write a conventional commit for every group.
5. Check that every changed file is assigned to exactly one commit.
</instructions>

<constraints>
- type MUST be one of: {', '.join(COMMIT_TYPES)}
- scope is optional, short and lowercase (e.g. "auth", "api")
- description MUST use imperative mood, start lowercase, have no trailing period and stay under 72 characters
- description MUST NOT repeat the type or scope prefix
- breaking MUST be true only for changes that break backwards compatibility
- body is optional; use it to explain what and why, not how
- footers are optional (e.g. "Refs: #123", "BREAKING CHANGE: ...")
- files MUST only contain paths that appear in the status or diff, exactly as written there
- Emit commits in the order they should be applied
</constraints>"""

HISTORY_INSTRUCTION = (
    "Match the style of these recent commit messages from this repository "
    "where it does not conflict with the constraints above:"
)

_NULLABLE_STRING = {"type": ["string", "null"]}

# Object root with every key required and no extras, so the same schema is
# accepted by OpenAI strict mode, Anthropic tool input and plain validation.
COMMIT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {"type": "string", "enum": list(COMMIT_TYPES)},
        "scope": _NULLABLE_STRING,
        "description": {"type": "string"},
        "breaking": {"type": "boolean"},
        "body": _NULLABLE_STRING,
        "footers": {"type": ["array", "null"], "items": {"type": "string"}},
        "files": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["type", "scope", "description", "breaking", "body", "footers", "files"],
    "additionalProperties": False,
}

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "elements": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"commits": {"type": "array", "items": COMMIT_SCHEMA}},
                "required": ["commits"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["elements"],
    "additionalProperties": False,
}


def user_instruction(
    status_json: str,
    diff_summary_json: str,
    diff: str,
    commit_history: list[str] | None = None,
) -> str:
    """Render the user prompt from already serialized repository data."""
    sections = [
        "Split these uncommitted changes into conventional commits.",
        f"<status>\n{status_json}\n</status>",
        f"<diff_summary>\n{diff_summary_json}\n</diff_summary>",
        f"<diff>\n{diff}\n</diff>",
    ]
    if commit_history:
        history = "\n---\n".join(commit_history)
        sections.append(f"{HISTORY_INSTRUCTION}\n<commit_history>\n{history}\n</commit_history>")
    return "\n\n".join(sections)
