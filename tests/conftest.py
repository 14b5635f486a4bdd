"""Shared fixtures for shipit tests."""

import io

import pytest
from git import Repo
from rich.console import Console

from shipit.config import AnthropicProvider
from shipit.models import CommitBatch, CommitProposal
from shipit.ui import Prompter


class ScriptedPrompter(Prompter):
    """Prompter that answers confirmations from a list and records questions."""

    def __init__(self, answers=(), silent=False, force=False):
        super().__init__(Console(file=io.StringIO(), width=200), silent=silent, force=force)
        self.answers = list(answers)
        self.questions = []

    def confirm(self, message, default=None):
        self.questions.append((message, default))
        if self.force:
            return True
        return self.answers.pop(0)

    @property
    def output(self):
        return self.console.file.getvalue()


def make_proposal(**overrides):
    data = {
        "type": "feat",
        "scope": None,
        "description": "add something",
        "breaking": False,
        "body": None,
        "footers": None,
        "files": ["a.txt"],
    }
    data.update(overrides)
    return CommitProposal(**data)


def make_batch(*proposals):
    return CommitBatch(commits=list(proposals))


@pytest.fixture
def temp_repo(tmp_path):
    """Create a temporary git repository for testing."""
    repo = Repo.init(tmp_path)

    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")
        config.set_value("commit", "gpgsign", "false")

    return repo


@pytest.fixture
def repo_with_commit(temp_repo, tmp_path):
    """Create a repo with an initial commit."""
    test_file = tmp_path / "initial.txt"
    test_file.write_text("initial content\n")
    temp_repo.index.add(["initial.txt"])
    temp_repo.index.commit("Initial commit")

    return temp_repo


@pytest.fixture
def provider():
    return AnthropicProvider(name="Fake Model", model="fake-model", api_key="test-key")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path_factory):
    """Keep real credentials and config files out of the tests."""
    for name in (
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
        "GOOGLE_GENERATIVE_AI_API_KEY",
        "GOOGLE_API_KEY",
        "SHIPIT_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path_factory.mktemp("xdg")))
