"""CLI entry point: registers all subcommands."""

from typing import Optional

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="kotlin-insight",
    help="Kotlin Insight - Code Quality Analysis for Kotlin/Android projects",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _show_version(value: bool) -> None:
    if value:
        console.print(f"[bold cyan]Kotlin Insight[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)


@app.callback()
def _root(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        callback=_show_version,
        is_eager=True,
    ),
) -> None:
    """Static analysis of Kotlin sources against Android architecture conventions."""


# Import subcommands to register them
from .analyze import analyze as _analyze  # noqa: F401, E402
from .analyzers import list_analyzers as _list_analyzers  # noqa: F401, E402
from .baseline import baseline_app as _baseline_app  # noqa: F401, E402


def main() -> None:
    app()
