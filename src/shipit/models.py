"""Data models for shipit."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

CommitType = Literal[
    "feat", "fix", "docs", "style", "refactor", "perf", "test", "build", "ci", "chore", "revert"
]


class FileStatus(BaseModel):
    """Working tree status split by change state."""

    model_config = ConfigDict(frozen=True)

    current: str | None = Field(default=None, description="Current branch name")
    staged: list[str] = Field(default_factory=list, description="Files with changes in the index")
    modified: list[str] = Field(default_factory=list, description="Tracked files with unstaged changes")
    deleted: list[str] = Field(default_factory=list, description="Files deleted in the working tree or index")
    renamed: list[str] = Field(default_factory=list, description="Renames as 'old -> new'")
    not_added: list[str] = Field(default_factory=list, description="Untracked files")
    conflicted: list[str] = Field(default_factory=list, description="Files with unresolved conflicts")

    @property
    def is_clean(self) -> bool:
        return not (
            self.staged or self.modified or self.deleted
            or self.renamed or self.not_added or self.conflicted
        )


class DiffFileStat(BaseModel):
    """Per-file change counts from `git diff --numstat`."""

    model_config = ConfigDict(frozen=True)

    file: str
    insertions: int = 0
    deletions: int = 0
    binary: bool = False

    @property
    def changes(self) -> int:
        return self.insertions + self.deletions


class DiffSummary(BaseModel):
    """Aggregate change counts for the selected paths."""

    model_config = ConfigDict(frozen=True)

    files: list[DiffFileStat] = Field(default_factory=list)

    @property
    def insertions(self) -> int:
        return sum(f.insertions for f in self.files)

    @property
    def deletions(self) -> int:
        return sum(f.deletions for f in self.files)


class RepositoryState(BaseModel):
    """Everything the model gets to see about the working tree."""

    model_config = ConfigDict(frozen=True)

    status: FileStatus
    diff_summary: DiffSummary
    diff: str = Field(description="Full unified diff text")
    paths: tuple[str, ...] = Field(default=(), description="Path filters the state was collected for")

    @property
    def changed_files(self) -> list[str]:
        """All paths touched by the working tree changes, in first-seen order."""
        seen: dict[str, None] = {}
        for stat in self.diff_summary.files:
            seen.setdefault(stat.file, None)
        for group in (self.status.staged, self.status.modified, self.status.deleted, self.status.not_added):
            for path in group:
                seen.setdefault(path, None)
        return list(seen)


class CommitProposal(BaseModel):
    """A single commit suggested by the model."""

    type: str = Field(description="Conventional commit type")
    scope: str | None = Field(default=None, description="Optional conventional commit scope")
    description: str = Field(description="Short imperative summary")
    breaking: bool = Field(default=False, description="Whether this is a breaking change")
    body: str | None = Field(default=None, description="Optional longer explanation")
    footers: list[str] | None = Field(default=None, description="Optional trailers, one per line")
    files: list[str] = Field(description="Paths that belong to this commit")


class CommitBatch(BaseModel):
    """One streamed element: an ordered group of proposals."""

    commits: list[CommitProposal] = Field(default_factory=list)


class CommitResult(BaseModel):
    """What git reports back after a commit."""

    branch: str
    commit: str = Field(description="Full commit hash")
    changes: int = 0
    insertions: int = 0
    deletions: int = 0

    @property
    def short_hash(self) -> str:
        return self.commit[:7]


class CommitOutcome(BaseModel):
    """Per-proposal result of the interactive loop."""

    subject: str
    applied: bool
    result: CommitResult | None = None
