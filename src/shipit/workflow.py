"""The shipit run: collect changes, stream proposals, apply approved commits.

A run moves through the stages in RunStage in order. The confirm/apply pair
repeats once per proposal until the model stream ends; any stage can fail,
which ends the run. Commits already made are never rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator

from git import Repo
from rich.markup import escape

from shipit import git_ops
from shipit.agent import stream_commit_batches
from shipit.config import AIProviderConfig, Config, detect_ai_provider, load_config
from shipit.context import build_prompt, categorize_changes_count, classify_token_count, estimate_tokens
from shipit.errors import CommitApplyError, GitError, RunDeclined, ShipitError
from shipit.messages import (
    build_commit_messages,
    build_full_commit_message,
    extract_jira_ticket_id,
    pluralize,
    wrap_text,
)
from shipit.models import CommitBatch, CommitOutcome, CommitProposal
from shipit.post_commit import run_post_commit
from shipit.ui import Prompter

logger = logging.getLogger(__name__)

BatchStream = Callable[[AIProviderConfig, str], Iterator[CommitBatch]]


class RunStage(str, Enum):
    CONFIGURING = "configuring"
    COLLECTING = "collecting changes"
    BUILDING_PROMPT = "building the prompt"
    STREAMING = "streaming proposals"
    CONFIRMING = "confirming a proposal"
    APPLYING = "applying a commit"
    POST_COMMIT = "running post-commit steps"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunOptions:
    paths: list[str] = field(default_factory=list)
    silent: bool = False
    force: bool = False
    unsafe: bool = False
    push: bool = False
    pull_request: bool = False
    jira: bool = False
    thinking: bool = False
    history: bool = False


@dataclass
class RunSummary:
    outcomes: list[CommitOutcome] = field(default_factory=list)

    @property
    def commit_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.applied)

    @property
    def skipped_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.applied)


class CommitApplier:
    """Shows each proposal, asks for approval and commits exactly its files."""

    def __init__(
        self,
        repo: Repo,
        prompter: Prompter,
        jira_ticket_id: str | None = None,
        on_stage: Callable[[RunStage], None] | None = None,
    ):
        self.repo = repo
        self.prompter = prompter
        self.jira_ticket_id = jira_ticket_id
        self.on_stage = on_stage or (lambda stage: None)
        self.outcomes: list[CommitOutcome] = []
        self.commit_count = 0

    def apply_batch(self, batch: CommitBatch) -> None:
        for proposal in batch.commits:
            self.apply(proposal)

    def render(self, proposal: CommitProposal, display: str) -> None:
        p = self.prompter
        p.message("━━━", style="grey50")
        p.message(display)
        if proposal.body:
            p.message(escape(wrap_text(proposal.body)), style="dim")
        if proposal.footers:
            p.message(escape("\n".join(wrap_text(footer) for footer in proposal.footers)))
        p.message("━━━", style="grey50")

        count = len(proposal.files)
        files = escape(wrap_text(", ".join(proposal.files)))
        p.message(f"Applies to these [bold]{count} {pluralize(count, 'file')}[/bold]:")
        p.message(files, style="dim")

    def apply(self, proposal: CommitProposal) -> CommitOutcome:
        """Run one proposal through render, confirm and (maybe) commit.

        Raises:
            CommitApplyError: If staging or committing fails. Nothing is
                unstaged or rolled back.
        """
        messages = build_commit_messages(proposal, self.jira_ticket_id)

        self.on_stage(RunStage.CONFIRMING)
        self.render(proposal, messages.display)
        if not self.prompter.confirm("Ship it?"):
            self.prompter.info("Your loss, champ. Next!")
            outcome = CommitOutcome(subject=messages.subject, applied=False)
            self.outcomes.append(outcome)
            return outcome

        self.on_stage(RunStage.APPLYING)
        message = build_full_commit_message(proposal, messages.subject)

        try:
            git_ops.stage_files(self.repo, proposal.files)
        except GitError as e:
            raise CommitApplyError(f"Dang, couldn't stage the files: {e}", messages.subject)

        try:
            result = git_ops.create_commit(self.repo, message, proposal.files)
        except GitError as e:
            raise CommitApplyError(f"Commit failed: {e}", messages.subject)

        self.commit_count += 1
        logger.info("Committed %s as %s", messages.subject, result.short_hash)
        self.prompter.success(
            f"Committed to {escape(result.branch)}: [bold]{result.short_hash}[/bold] "
            f"[dim]({result.changes} changes, [green]+{result.insertions}[/green], "
            f"[red]-{result.deletions}[/red])[/dim]"
        )

        outcome = CommitOutcome(subject=messages.subject, applied=True, result=result)
        self.outcomes.append(outcome)
        return outcome


class Shipper:
    """Drives one run from change collection to the post-commit steps.

    Collaborators can be injected: a provider (skips credential lookup), a
    config, and the batch stream factory used to talk to the model.
    """

    def __init__(
        self,
        options: RunOptions,
        prompter: Prompter,
        *,
        config: Config | None = None,
        provider: AIProviderConfig | None = None,
        stream: BatchStream = stream_commit_batches,
        cwd: str | Path | None = None,
    ):
        self.options = options
        self.prompter = prompter
        self.config = config
        self.provider = provider
        self.stream = stream
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self.stage = RunStage.CONFIGURING
        self.failed_stage: RunStage | None = None

    def _enter(self, stage: RunStage) -> None:
        logger.debug("Entering stage: %s", stage.value)
        self.stage = stage

    def run(self) -> RunSummary:
        try:
            return self._run()
        except ShipitError as e:
            if e.exit_code == 0:
                self._enter(RunStage.DONE)
            else:
                self.failed_stage = self.stage
                self._enter(RunStage.FAILED)
            raise

    def _run(self) -> RunSummary:
        options = self.options
        prompter = self.prompter

        self._enter(RunStage.CONFIGURING)
        provider = self.provider
        if provider is None:
            provider = detect_ai_provider(self.config or load_config(), options.thinking)
        if prompter.chatty:
            prompter.note(
                "[italic]Because writing 'fix stuff' gets old real quick...[/italic]",
                title="[bold]🧹 Ship It[/bold]",
            )
            thinking = " [cyan](thinking mode enabled)[/cyan]" if options.thinking else ""
            prompter.info(f"Using [bold]{provider.name}[/bold] for AI assistance{thinking}")

        self._enter(RunStage.COLLECTING)
        repo = git_ops.get_repo(self.cwd)
        jira_ticket_id = self._jira_ticket_id(repo)

        with prompter.spinner("Let's see what mess you've made this time..."):
            paths = git_ops.normalize_paths(repo, options.paths, self.cwd)
            state = git_ops.collect_repository_state(repo, paths)

        count = len(state.diff_summary.files) or len(state.changed_files)
        prompter.success(
            f"{categorize_changes_count(count)} You've touched "
            f"[bold]{count} {pluralize(count, 'file')}[/bold]!"
        )
        history = self._commit_history(repo)

        self._enter(RunStage.BUILDING_PROMPT)
        prompt = build_prompt(state, history)
        tokens = estimate_tokens(prompt)
        tier = classify_token_count(tokens)
        logger.info("Prompt is ~%d tokens (tier %d)", tokens, tier.level)
        prompter.info(f"{tier.emoji} ~{tokens:,} tokens, {tier.label} [dim]({tier.hint})[/dim]")

        if tier.needs_confirmation and not options.unsafe:
            question = (
                f"[bold]{tier.emoji} Whoa there![/bold] {tier.description}. "
                "[italic dim]You sure you want to burn those tokens?[/italic dim]"
            )
            if not prompter.confirm(question, default=False):
                raise RunDeclined("Smart move. Maybe split that monster diff next time?")

        self._enter(RunStage.STREAMING)
        applier = CommitApplier(repo, prompter, jira_ticket_id, on_stage=self._enter)
        batches = self.stream(provider, prompt)
        try:
            with prompter.spinner("Crafting commit messages that don't suck..."):
                batch = next(batches, None)
            while batch is not None:
                prompter.message()
                applier.apply_batch(batch)
                self._enter(RunStage.STREAMING)
                batch = next(batches, None)
        finally:
            close = getattr(batches, "close", None)
            if close is not None:
                close()

        summary = RunSummary(outcomes=applier.outcomes)

        self._enter(RunStage.POST_COMMIT)
        run_post_commit(
            repo,
            prompter,
            applier.commit_count,
            pull_request=options.pull_request,
            push=options.push,
            force=options.force,
        )

        self._enter(RunStage.DONE)
        if summary.commit_count:
            prompter.outro(
                f"Boom! {summary.commit_count} {pluralize(summary.commit_count, 'commit')} "
                "that actually makes sense. You're welcome!"
            )
        else:
            prompter.outro("No commits? Time to get to work! 🙄")
        return summary

    def _jira_ticket_id(self, repo: Repo) -> str | None:
        if not self.options.jira:
            return None
        branch = git_ops.get_current_branch(repo)
        ticket = extract_jira_ticket_id(branch)
        if ticket:
            if self.prompter.chatty:
                self.prompter.info(f"🎫 Found Jira ticket: [bold]{ticket}[/bold]")
        else:
            logger.info("No Jira ticket ID in branch %r", branch)
            self.prompter.warn(f"Jira integration enabled but no ticket ID found in branch '{escape(branch)}'")
            self.prompter.info("Expected format: XX-YYYY (e.g., PROJ-123)")
        return ticket

    def _commit_history(self, repo: Repo) -> list[str] | None:
        if not self.options.history:
            return None
        try:
            messages = git_ops.get_commit_history(repo)
        except GitError as e:
            logger.info("Commit history unavailable: %s", e)
            self.prompter.warn(f"Failed to fetch commit history: {e}")
            return None
        if messages and self.prompter.chatty:
            n = len(messages)
            self.prompter.info(
                f"Including [bold]{n}[/bold] recent commit {pluralize(n, 'message')} as additional context"
            )
        return messages or None
