"""CLI entry point for shipit."""

from __future__ import annotations

import logging
import signal
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from shipit import __version__
from shipit.errors import ShipitError
from shipit.logging_utils import configure_logging
from shipit.ui import Prompter
from shipit.workflow import RunOptions, Shipper

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="shipit",
    help="AI-powered commit splitter - turn your uncommitted mess into clean conventional commits",
    add_completion=False,
)
console = Console()


class Terminated(BaseException):
    """Raised from the SIGTERM handler so the run unwinds like on Ctrl+C."""


def _raise_terminated(signum, frame) -> None:
    raise Terminated()


def supervise(shipper: Shipper) -> int:
    """Run shipper and turn every way the run can end into an exit code.

    Returns:
        0 for success and "nothing to do" endings, 1 for any failure.
    """
    prompter = shipper.prompter
    previous = signal.signal(signal.SIGTERM, _raise_terminated)
    try:
        shipper.run()
        return 0
    except ShipitError as e:
        if e.exit_code == 0:
            prompter.outro(escape(str(e)))
            return 0
        stage = shipper.failed_stage.value if shipper.failed_stage else shipper.stage.value
        prompter.error(f"{escape(str(e))} [dim](while {stage})[/dim]")
        return e.exit_code
    except KeyboardInterrupt:
        Prompter(prompter.console).outro("👋 Interrupted by user. Goodbye!")
        return 0
    except Terminated:
        Prompter(prompter.console).outro("👋 Terminated. Goodbye!")
        return 0
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        prompter.error(f"💥 Unexpected error: {escape(str(e))}")
        prompter.console.print("Please report this issue if it persists.")
        return 1
    finally:
        signal.signal(signal.SIGTERM, previous)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"shipit {__version__}")
        raise typer.Exit()


@app.command()
def ship(
    paths: Optional[List[str]] = typer.Argument(None, help="Only consider changes under these paths"),
    silent: bool = typer.Option(False, "--silent", "-s", help="Only log fatal errors to the console"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Automatically accept all commits, same as --force"),
    force: bool = typer.Option(False, "--force", "-f", help="Automatically accept all commits, same as --yes"),
    unsafe: bool = typer.Option(False, "--unsafe", "-u", help="Skip token count verification"),
    push: bool = typer.Option(False, "--push", "-p", help="Push the changes if any after processing all commits"),
    pr: bool = typer.Option(False, "--pr", help="Offer to create a pull request"),
    jira: bool = typer.Option(False, "--jira", "-j", help="Enable Jira ticket ID integration from branch name"),
    thinking: bool = typer.Option(False, "--thinking", "-t", help="Enable thinking models for deeper reasoning"),
    history: bool = typer.Option(
        False, "--history", "-h", help="Include last 100 commit messages as additional context"
    ),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Show diagnostic logging (repeatable)"),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
) -> None:
    """Send changes to AI to categorize and generate commit messages."""
    configure_logging(verbose)

    options = RunOptions(
        paths=list(paths or []),
        silent=silent,
        force=force or yes,
        unsafe=unsafe,
        push=push,
        pull_request=pr,
        jira=jira,
        thinking=thinking,
        history=history,
    )
    prompter = Prompter(console, silent=silent, force=options.force)

    exit_code = supervise(Shipper(options, prompter))
    if exit_code:
        raise typer.Exit(exit_code)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
