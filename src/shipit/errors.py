"""Exception types used across shipit.

The CLI maps these onto exit codes: terminal "nothing to do" conditions
exit 0, everything else exits 1.
"""

from __future__ import annotations


class ShipitError(Exception):
    """Base class for all shipit specific errors."""

    exit_code: int = 1


class ConfigError(ShipitError):
    """Raised when no usable AI provider configuration is found."""


class GitError(ShipitError):
    """Raised when a git operation fails."""


class NotARepositoryError(GitError):
    """Raised when the working directory is not inside a git repository."""


class MergeConflictError(GitError):
    """Raised when the working tree has unresolved merge conflicts."""

    def __init__(self, files: list[str]):
        self.files = list(files)
        noun = "conflict" if len(self.files) == 1 else "conflicts"
        super().__init__(
            f"Fix your {len(self.files)} {noun} first: {', '.join(self.files)}"
        )


class AmbiguousPathSelectionError(GitError):
    """Raised when staged files exist and explicit paths were also given."""

    def __init__(self, staged: list[str]):
        self.staged = list(staged)
        super().__init__(
            "You've got staged files AND specified paths? That's not gonna work.\n\n"
            "Pick a lane:\n"
            "- Unstage your files: `git reset`\n"
            "- Commit the staged stuff first: `git commit`\n"
            "- Or run without paths to handle everything"
        )


class CleanWorkingTree(GitError):
    """Raised when there is nothing to commit. Not a failure."""

    exit_code = 0


class AIProviderError(ShipitError):
    """Raised when the model invocation or its stream fails."""


class CommitApplyError(ShipitError):
    """Raised when staging or committing a proposal fails."""

    def __init__(self, message: str, subject: str):
        self.subject = subject
        super().__init__(message)


class PostCommitError(ShipitError):
    """Raised when the pull request or push step fails."""


class RunDeclined(ShipitError):
    """Raised when the user declines the token-cost confirmation."""

    exit_code = 0
