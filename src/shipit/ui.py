"""Console output and confirmations."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.prompt import Confirm
from rich.spinner import Spinner

GUTTER = "[grey50]│[/grey50]"


class Prompter:
    """Everything shipit says to, or asks of, the user.

    silent hides everything but errors. force answers every confirmation
    with yes without asking.
    """

    def __init__(self, console: Console | None = None, silent: bool = False, force: bool = False):
        self.console = console or Console()
        self.silent = silent
        self.force = force

    @property
    def chatty(self) -> bool:
        """Whether optional flavour output should be shown."""
        return not (self.silent or self.force)

    def _print(self, text: str) -> None:
        if not self.silent:
            self.console.print(text)

    def note(self, text: str, title: str) -> None:
        if not self.silent:
            self.console.print(Panel.fit(text, title=title, border_style="blue"))

    def info(self, text: str) -> None:
        self._print(f"[blue]●[/blue] {text}")

    def warn(self, text: str) -> None:
        self._print(f"[yellow]▲[/yellow] {text}")

    def error(self, text: str) -> None:
        self.console.print(f"[red]✗[/red] {text}")

    def success(self, text: str) -> None:
        self._print(f"[green]✓[/green] {text}")

    def message(self, text: str = "", style: str | None = None) -> None:
        """Print text behind the gutter, styling each line separately."""
        if not text:
            self._print(GUTTER)
            return
        for line in text.splitlines():
            if style and line:
                line = f"[{style}]{line}[/{style}]"
            self._print(f"{GUTTER} {line}")

    def outro(self, text: str) -> None:
        self._print(f"[grey50]└[/grey50] {text}")

    @contextmanager
    def spinner(self, text: str) -> Iterator[None]:
        if self.silent:
            yield
            return
        with Live(Spinner("dots", text=f"[cyan]{text}[/cyan]"), console=self.console, transient=True):
            yield

    def confirm(self, message: str, default: bool | None = None) -> bool:
        """Ask a yes/no question.

        Without a default the question is repeated until answered.
        """
        if self.force:
            return True
        if default is None:
            return Confirm.ask(message, console=self.console)
        return Confirm.ask(message, console=self.console, default=default)
