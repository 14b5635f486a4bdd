"""Tests for the pull request and push steps."""

import subprocess

import pytest
from git import Repo

from conftest import ScriptedPrompter
from shipit import post_commit
from shipit.errors import PostCommitError
from shipit.post_commit import handle_pull_request, handle_push, run_post_commit


@pytest.fixture
def remote(repo_with_commit, tmp_path_factory):
    """A bare origin that already has main pushed."""
    path = tmp_path_factory.mktemp("origin") / "origin.git"
    bare = Repo.init(path, bare=True)
    repo_with_commit.git.branch("-M", "main")
    repo_with_commit.create_remote("origin", str(path))
    repo_with_commit.git.push("--set-upstream", "origin", "main")
    return bare


@pytest.fixture
def feature_branch(repo_with_commit, remote, tmp_path):
    repo_with_commit.git.checkout("-b", "feature/login")
    (tmp_path / "login.txt").write_text("login\n")
    repo_with_commit.index.add(["login.txt"])
    repo_with_commit.index.commit("feat: add login")
    return repo_with_commit


class TestRunPostCommit:
    """Tests for run_post_commit."""

    def test_nothing_committed(self, repo_with_commit, monkeypatch):
        """Should do nothing when no commits were made."""
        calls = []
        monkeypatch.setattr(post_commit, "handle_pull_request", lambda *a: calls.append("pr"))
        monkeypatch.setattr(post_commit, "handle_push", lambda *a: calls.append("push"))

        run_post_commit(repo_with_commit, ScriptedPrompter(), 0, pull_request=True, push=True)

        assert calls == []

    def test_order(self, repo_with_commit, monkeypatch):
        """Should offer the pull request before pushing."""
        calls = []
        monkeypatch.setattr(post_commit, "handle_pull_request", lambda *a: calls.append("pr"))
        monkeypatch.setattr(post_commit, "handle_push", lambda *a: calls.append("push"))

        run_post_commit(repo_with_commit, ScriptedPrompter(), 2, pull_request=True, push=True)

        assert calls == ["pr", "push"]

    def test_force_skips_pull_request(self, repo_with_commit, monkeypatch):
        """Should skip the pull request under force."""
        calls = []
        monkeypatch.setattr(post_commit, "handle_pull_request", lambda *a: calls.append("pr"))
        monkeypatch.setattr(post_commit, "handle_push", lambda *a: calls.append("push"))

        run_post_commit(repo_with_commit, ScriptedPrompter(force=True), 1, pull_request=True, push=True, force=True)

        assert calls == ["push"]


class TestHandlePush:
    """Tests for handle_push against a local bare remote."""

    def test_sets_upstream(self, feature_branch, remote):
        """Should push a new branch with upstream tracking."""
        prompter = ScriptedPrompter()

        handle_push(feature_branch, prompter)

        assert feature_branch.active_branch.tracking_branch() is not None
        assert remote.commit("feature/login").message.strip() == "feat: add login"
        assert "Pushed" in prompter.output

    def test_existing_upstream(self, repo_with_commit, remote, tmp_path):
        """Should push to the existing upstream."""
        (tmp_path / "more.txt").write_text("more\n")
        repo_with_commit.index.add(["more.txt"])
        repo_with_commit.index.commit("chore: more")

        handle_push(repo_with_commit, ScriptedPrompter())

        assert remote.commit("main").message.strip() == "chore: more"

    def test_no_remote(self, repo_with_commit):
        """Should raise PostCommitError when the push fails."""
        with pytest.raises(PostCommitError, match="Failed to push"):
            handle_push(repo_with_commit, ScriptedPrompter())

    def test_detached_head(self, repo_with_commit):
        """Should refuse to push a detached HEAD."""
        repo_with_commit.git.checkout("--detach")
        with pytest.raises(PostCommitError, match="detached"):
            handle_push(repo_with_commit, ScriptedPrompter())


class TestHandlePullRequest:
    """Tests for handle_pull_request with a fake gh binary."""

    def test_no_base_branch(self, repo_with_commit):
        """Should skip when no base branch exists."""
        prompter = ScriptedPrompter()

        assert handle_pull_request(repo_with_commit, prompter) is None
        assert "skipping the pull request" in prompter.output
        assert prompter.questions == []

    def test_on_base_branch(self, repo_with_commit, remote):
        """Should skip when already on the base branch."""
        prompter = ScriptedPrompter()

        assert handle_pull_request(repo_with_commit, prompter) is None
        assert "feature branch" in prompter.output

    def test_declined(self, feature_branch, monkeypatch):
        """Should not push or call gh when declined."""
        monkeypatch.setattr(post_commit.subprocess, "run", pytest.fail)
        prompter = ScriptedPrompter([False])

        assert handle_pull_request(feature_branch, prompter) is None
        assert prompter.questions[0][1] is False

    def test_creates_pull_request(self, feature_branch, remote, monkeypatch):
        """Should push and create the pull request with gh."""
        calls = []

        def fake_run(args, **kwargs):
            calls.append(args)
            return subprocess.CompletedProcess(args, 0, stdout="https://github.com/acme/app/pull/7\n", stderr="")

        monkeypatch.setattr(post_commit.subprocess, "run", fake_run)
        prompter = ScriptedPrompter([True])

        url = handle_pull_request(feature_branch, prompter)

        assert url == "https://github.com/acme/app/pull/7"
        assert calls == [["gh", "pr", "create", "--base", "main", "--head", "feature/login", "--fill"]]
        assert remote.commit("feature/login").message.strip() == "feat: add login"

    def test_gh_missing(self, feature_branch, monkeypatch):
        """Should raise PostCommitError when gh is not installed."""
        def missing(args, **kwargs):
            raise FileNotFoundError("gh")

        monkeypatch.setattr(post_commit.subprocess, "run", missing)

        with pytest.raises(PostCommitError, match="gh"):
            handle_pull_request(feature_branch, ScriptedPrompter([True]))

    def test_gh_fails(self, feature_branch, monkeypatch):
        """Should raise PostCommitError with the gh error output."""
        def failing(args, **kwargs):
            return subprocess.CompletedProcess(args, 1, stdout="", stderr="a pull request already exists\n")

        monkeypatch.setattr(post_commit.subprocess, "run", failing)

        with pytest.raises(PostCommitError, match="already exists"):
            handle_pull_request(feature_branch, ScriptedPrompter([True]))
