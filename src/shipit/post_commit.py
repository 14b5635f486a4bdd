"""Pull request and push steps that run after the commit loop."""

from __future__ import annotations

import logging
import subprocess

from git import Repo

from shipit import git_ops
from shipit.errors import GitError, PostCommitError
from shipit.ui import Prompter

logger = logging.getLogger(__name__)


def _ensure_pushed(repo: Repo, branch: str) -> None:
    if git_ops.has_upstream(repo):
        git_ops.push(repo)
    else:
        git_ops.push(repo, branch=branch, set_upstream=True)


def handle_pull_request(repo: Repo, prompter: Prompter) -> str | None:
    """Offer to open a pull request for the current branch via the GitHub CLI.

    Args:
        repo: The git Repo object.
        prompter: Console used for the question and the result.

    Returns:
        The pull request URL, or None when no pull request was created.

    Raises:
        PostCommitError: If pushing or `gh pr create` fails.
    """
    base = git_ops.get_base_branch(repo)
    if base is None:
        prompter.warn("No origin/main or origin/master found, skipping the pull request")
        return None

    branch = git_ops.get_current_branch(repo)
    if branch in (base, "HEAD"):
        prompter.warn(f"You're on '{branch}', create a feature branch to open a pull request")
        return None

    if not prompter.confirm(f"Create a pull request from '{branch}' into '{base}'?", default=False):
        return None

    try:
        with prompter.spinner(f"Pushing {branch}..."):
            _ensure_pushed(repo, branch)
    except GitError as e:
        raise PostCommitError(str(e))

    try:
        with prompter.spinner("Opening pull request..."):
            result = subprocess.run(
                ["gh", "pr", "create", "--base", base, "--head", branch, "--fill"],
                capture_output=True,
                text=True,
                check=False,
                cwd=str(git_ops.get_repo_root(repo)),
            )
    except FileNotFoundError:
        raise PostCommitError("GitHub CLI (gh) not found. Install it from https://cli.github.com")

    if result.returncode != 0:
        raise PostCommitError(f"Failed to create pull request: {result.stderr.strip() or result.stdout.strip()}")

    url = result.stdout.strip().splitlines()[-1] if result.stdout.strip() else ""
    prompter.success(f"Pull request created: [cyan]{url}[/cyan]")
    return url


def handle_push(repo: Repo, prompter: Prompter) -> None:
    """Push the current branch, setting upstream tracking when missing.

    Raises:
        PostCommitError: If the push fails.
    """
    branch = git_ops.get_current_branch(repo)
    if branch == "HEAD":
        raise PostCommitError("Can't push a detached HEAD, check out a branch first")
    try:
        with prompter.spinner(f"Pushing {branch}..."):
            _ensure_pushed(repo, branch)
    except GitError as e:
        raise PostCommitError(str(e))
    prompter.success(f"Pushed [bold]{branch}[/bold]")


def run_post_commit(
    repo: Repo,
    prompter: Prompter,
    commit_count: int,
    pull_request: bool = False,
    push: bool = False,
    force: bool = False,
) -> None:
    """Run the optional pull request and push steps.

    Nothing happens unless at least one commit was made. The pull request
    flow needs human judgement, so it is skipped under force.
    """
    if commit_count == 0:
        return
    if pull_request and not force:
        handle_pull_request(repo, prompter)
    if push:
        handle_push(repo, prompter)
