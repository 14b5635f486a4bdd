"""Git operations layer for shipit."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from shipit.errors import (
    AmbiguousPathSelectionError,
    CleanWorkingTree,
    GitError,
    MergeConflictError,
    NotARepositoryError,
)
from shipit.models import CommitResult, DiffFileStat, DiffSummary, FileStatus, RepositoryState

logger = logging.getLogger(__name__)

# Porcelain XY codes that mean "unmerged"
CONFLICT_CODES = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}

HISTORY_LIMIT = 100


def get_repo(path: str | Path = ".") -> Repo:
    """Get the git repository at the given path.

    Args:
        path: Path inside the repository. Defaults to current directory.

    Returns:
        The git Repo object.

    Raises:
        NotARepositoryError: If the path is not inside a git repository.
    """
    try:
        return Repo(path, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError):
        raise NotARepositoryError(
            f"Not a git repo? What are you trying to commit here? Run `git init` first! ({path})"
        )


def get_repo_root(repo: Repo) -> Path:
    """Get the root directory of the repository."""
    return Path(repo.working_dir)


def has_commits(repo: Repo) -> bool:
    """Whether HEAD points at an actual commit (False in a fresh repo)."""
    return repo.head.is_valid()


def get_status(repo: Repo, paths: Sequence[str] = ()) -> FileStatus:
    """Get the working tree status, optionally restricted to some paths.

    Args:
        repo: The git Repo object.
        paths: Optional path filters. Empty means the whole working tree.

    Returns:
        FileStatus with staged, modified, deleted, renamed, untracked and
        conflicted files.

    Raises:
        GitError: If `git status` fails.
    """
    try:
        output = repo.git.status("--porcelain=v1", "-z", "--untracked-files=all", "--", *paths)
    except GitCommandError as e:
        raise GitError(f"Failed to get status: {e}")

    staged: list[str] = []
    modified: list[str] = []
    deleted: list[str] = []
    renamed: list[str] = []
    not_added: list[str] = []
    conflicted: list[str] = []

    entries = output.split("\0")
    i = 0
    while i < len(entries):
        entry = entries[i]
        i += 1
        if len(entry) < 4:
            continue
        x, y, path = entry[0], entry[1], entry[3:]
        code = x + y

        if code in CONFLICT_CODES:
            conflicted.append(path)
            continue
        if code == "??":
            not_added.append(path)
            continue

        if x in "RC":
            # -z puts the original path in the next field
            original = entries[i] if i < len(entries) else ""
            i += 1
            renamed.append(f"{original} -> {path}")
        if x not in " ?!":
            staged.append(path)
        if y in "MT":
            modified.append(path)
        if "D" in code:
            deleted.append(path)

    return FileStatus(
        current=get_current_branch(repo),
        staged=staged,
        modified=modified,
        deleted=deleted,
        renamed=renamed,
        not_added=not_added,
        conflicted=conflicted,
    )


def _untracked_diff(repo: Repo, path: str) -> str:
    # --no-index exits 1 when the files differ, which is always the case here
    return repo.git.diff("--no-index", "--", "/dev/null", path, with_exceptions=False)


def _count_added_lines(diff: str) -> tuple[int, bool]:
    binary = diff.startswith("Binary files") or "\nBinary files" in diff
    added = sum(
        1 for line in diff.splitlines()
        if line.startswith("+") and not line.startswith("+++")
    )
    return added, binary


def get_diff_summary(repo: Repo, paths: Sequence[str] = (), untracked: Sequence[str] = ()) -> DiffSummary:
    """Get per-file insertion/deletion counts for the uncommitted changes.

    Args:
        repo: The git Repo object.
        paths: Optional path filters.
        untracked: Untracked files to include (git diff ignores them).

    Returns:
        DiffSummary with one entry per changed file.

    Raises:
        GitError: If the diff cannot be computed.
    """
    try:
        if has_commits(repo):
            outputs = [repo.git.diff("HEAD", "--numstat", "--", *paths)]
        else:
            outputs = [
                repo.git.diff("--cached", "--numstat", "--", *paths),
                repo.git.diff("--numstat", "--", *paths),
            ]
    except GitCommandError as e:
        raise GitError(f"Failed to get diff summary: {e}")

    files: list[DiffFileStat] = []
    seen: set[str] = set()
    for output in outputs:
        for line in output.splitlines():
            parts = line.split("\t", 2)
            if len(parts) != 3 or parts[2] in seen:
                continue
            ins, dels, path = parts
            seen.add(path)
            if ins == "-" and dels == "-":
                files.append(DiffFileStat(file=path, binary=True))
            else:
                files.append(DiffFileStat(file=path, insertions=int(ins), deletions=int(dels)))

    for path in untracked:
        if path in seen:
            continue
        added, binary = _count_added_lines(_untracked_diff(repo, path))
        files.append(DiffFileStat(file=path, insertions=added, binary=binary))

    return DiffSummary(files=files)


def get_diff(repo: Repo, paths: Sequence[str] = (), untracked: Sequence[str] = ()) -> str:
    """Get the unified diff of all uncommitted changes (staged and unstaged).

    Args:
        repo: The git Repo object.
        paths: Optional path filters. Empty means the whole working tree.
        untracked: Untracked files whose content should be shown as additions.

    Returns:
        The diff content as a string.

    Raises:
        GitError: If there's an error getting the diff.
    """
    try:
        if has_commits(repo):
            chunks = [repo.git.diff("HEAD", "--", *paths)]
        else:
            chunks = [repo.git.diff("--cached", "--", *paths), repo.git.diff("--", *paths)]
        chunks.extend(_untracked_diff(repo, path) for path in untracked)
    except GitCommandError as e:
        raise GitError(f"Failed to get diff: {e}")
    return "\n".join(chunk for chunk in chunks if chunk)


def collect_repository_state(repo: Repo, paths: Sequence[str] = ()) -> RepositoryState:
    """Validate the working tree and collect everything needed for the prompt.

    Checks run in order, and the diff is only computed once all of them pass.

    Args:
        repo: The git Repo object.
        paths: Optional path filters. Empty means the whole working tree.

    Returns:
        The RepositoryState for this run.

    Raises:
        CleanWorkingTree: Nothing to commit.
        MergeConflictError: Unresolved conflicts are present.
        AmbiguousPathSelectionError: Staged files exist and paths were given.
        GitError: Any git query failed.
    """
    paths = tuple(paths)
    status = get_status(repo, paths)

    if status.is_clean:
        raise CleanWorkingTree("Huh... squeaky clean. Nothing to see here.")
    if status.conflicted:
        raise MergeConflictError(status.conflicted)
    if paths and status.staged:
        raise AmbiguousPathSelectionError(status.staged)

    summary = get_diff_summary(repo, paths, untracked=status.not_added)
    diff = get_diff(repo, paths, untracked=status.not_added)
    logger.debug("Collected %d changed files, %d diff characters", len(summary.files), len(diff))

    return RepositoryState(status=status, diff_summary=summary, diff=diff, paths=paths)


def get_commit_history(repo: Repo, n: int = HISTORY_LIMIT) -> list[str]:
    """Get recent commit messages for style matching.

    Args:
        repo: The git Repo object.
        n: Number of recent commits to retrieve.

    Returns:
        Commit messages, newest first. Empty for a repository without commits.

    Raises:
        GitError: If the log cannot be read.
    """
    if not has_commits(repo):
        return []
    try:
        return [commit.message.strip() for commit in repo.iter_commits(max_count=n)]
    except (GitCommandError, ValueError) as e:
        raise GitError(f"Failed to read commit history: {e}")


def get_current_branch(repo: Repo) -> str:
    """Get the current branch name, or "HEAD" when detached."""
    try:
        return repo.active_branch.name
    except TypeError:
        return "HEAD"


def _removed_from_index(repo: Repo, path: str) -> bool:
    # Already staged as removed (git rm, or the old side of git mv)
    if (get_repo_root(repo) / path).exists() or not has_commits(repo):
        return False
    if repo.git.ls_files("--", path):
        return False
    return bool(repo.git.ls_tree("-r", "--name-only", "HEAD", "--", path))


def stage_files(repo: Repo, file_paths: Sequence[str]) -> None:
    """Stage specific files for commit, including deletions.

    Paths whose removal is already staged are left to the commit itself,
    since `git add` no longer matches them.

    Args:
        repo: The git Repo object.
        file_paths: List of file paths to stage.

    Raises:
        GitError: If staging fails.
    """
    if not file_paths:
        raise GitError("No files to stage")
    try:
        to_add = [path for path in file_paths if not _removed_from_index(repo, path)]
        if to_add:
            repo.git.add("--all", "--", *to_add)
    except GitCommandError as e:
        raise GitError(f"Failed to stage files: {e}")


def create_commit(repo: Repo, message: str, file_paths: Sequence[str]) -> CommitResult:
    """Create a commit containing only the given files.

    Args:
        repo: The git Repo object.
        message: The full commit message.
        file_paths: Files to include; anything else staged is left alone.

    Returns:
        CommitResult with the branch, hash and change statistics.

    Raises:
        GitError: If the commit fails.
    """
    if not file_paths:
        raise GitError("Refusing to commit without an explicit file list")
    try:
        repo.git.commit("-m", message, "--", *file_paths)
        head = repo.head.commit
        stats = head.stats.total
    except (GitCommandError, ValueError) as e:
        raise GitError(f"Failed to create commit: {e}")

    return CommitResult(
        branch=get_current_branch(repo),
        commit=head.hexsha,
        changes=stats.get("files", 0),
        insertions=stats.get("insertions", 0),
        deletions=stats.get("deletions", 0),
    )


def get_base_branch(repo: Repo) -> str | None:
    """Get the remote base branch, trying 'main' first, then 'master'."""
    for branch in ("main", "master"):
        try:
            repo.git.rev_parse("--verify", f"origin/{branch}")
            return branch
        except GitCommandError:
            continue
    return None


def has_upstream(repo: Repo) -> bool:
    """Whether the current branch tracks a remote branch."""
    try:
        return repo.active_branch.tracking_branch() is not None
    except TypeError:
        return False


def push(repo: Repo, remote: str = "origin", branch: str | None = None, set_upstream: bool = False) -> None:
    """Push the current branch.

    Args:
        repo: The git Repo object.
        remote: Remote name, only used together with branch.
        branch: Branch to push. Defaults to git's configured behaviour.
        set_upstream: Set upstream tracking for branch.

    Raises:
        GitError: If the push fails.
    """
    args: list[str] = []
    if set_upstream:
        args.append("--set-upstream")
    if branch:
        args.extend([remote, branch])
    try:
        repo.git.push(*args)
    except GitCommandError as e:
        raise GitError(f"Failed to push: {e}")
    logger.info("Pushed %s", branch or "current branch")


def normalize_paths(repo: Repo, paths: Sequence[str], cwd: str | Path | None = None) -> tuple[str, ...]:
    """Turn user supplied paths into paths relative to the repository root.

    Git commands run from the repository root, so paths typed in a
    subdirectory have to be rebased first.
    """
    root = get_repo_root(repo).resolve()
    base = Path(cwd).resolve() if cwd is not None else Path.cwd().resolve()
    normalized: list[str] = []
    for raw in paths:
        absolute = (base / raw).resolve()
        try:
            relative = absolute.relative_to(root)
        except ValueError:
            raise GitError(f"Path is outside the repository: {raw}")
        normalized.append(relative.as_posix() or ".")
    return tuple(normalized)
