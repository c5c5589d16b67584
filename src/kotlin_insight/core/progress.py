"""Progress reporting: wraps rich or runs silently."""

from typing import Callable, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

# (completed, total, relative_path) after each analyzed file.
ProgressCallback = Callable[[int, int, str], None]


class ProgressReporter:
    """Rich progress bar wrapper."""

    def __init__(self, console: Console):
        self.console = console

    def run(self, callback: Callable[[Optional[ProgressCallback]], object]):
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        ) as progress:
            task = progress.add_task("[cyan]Analyzing Kotlin files...", total=None)

            def advance(completed: int, total: int, relative_path: str) -> None:
                progress.update(
                    task,
                    completed=completed,
                    total=total,
                    description=f"[cyan]Analyzing[/cyan] {relative_path}",
                )

            return callback(advance)


class SilentReporter:
    """No-op reporter for tests and --quiet mode."""

    def run(self, callback: Callable[[Optional[ProgressCallback]], object]):
        return callback(None)
