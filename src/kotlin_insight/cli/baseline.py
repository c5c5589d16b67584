"""Baseline inspection commands."""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..baseline import BaselineStore
from ..exceptions import KotlinInsightError
from ..models import Category, Priority
from . import app
from ._common import EXIT_ERROR, console, resolve_config

baseline_app = typer.Typer(help="Inspect the saved baseline and history snapshots.")
app.add_typer(baseline_app, name="baseline")

_ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Configuration file (TOML)",
    exists=True,
    file_okay=True,
    dir_okay=False,
    readable=True,
)
_OutputDirOption = typer.Option(
    None, "--output-dir", "-o", help="Directory holding the baseline", file_okay=False
)


@baseline_app.command("show")
def show(
    config: Optional[Path] = _ConfigOption,
    output_dir: Optional[Path] = _OutputDirOption,
):
    """Show the saved baseline."""
    try:
        settings = resolve_config(config=config, output_dir=output_dir)
        data = BaselineStore().load(settings.baseline_path)
    except KotlinInsightError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(EXIT_ERROR)

    if data is None:
        console.print("[yellow]No baseline found.[/yellow]")
        raise typer.Exit(0)

    m = data.metrics
    console.print(f"[bold cyan]Baseline[/bold cyan] ({settings.baseline_path})")
    console.print(f"  Saved:    {data.timestamp}")
    console.print(f"  Files:    {m.total_files}")
    console.print(f"  Findings: {len(data.finding_ids)}")

    table = Table(expand=False)
    table.add_column("Priority")
    table.add_column("Count", justify="right")
    for priority in Priority:
        table.add_row(priority.value, str(m.count(priority)))
    console.print(table)

    counts = [(c, m.findings_by_category.get(c.value, 0)) for c in Category]
    for category, count in counts:
        if count:
            console.print(f"  {count:5d}  {category.label}")


@baseline_app.command("history")
def history(
    config: Optional[Path] = _ConfigOption,
    output_dir: Optional[Path] = _OutputDirOption,
):
    """List history snapshots, oldest first."""
    try:
        settings = resolve_config(config=config, output_dir=output_dir)
    except KotlinInsightError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(EXIT_ERROR)

    snapshots = BaselineStore().list_history(settings.history_dir)
    if not snapshots:
        console.print("[yellow]No history snapshots found.[/yellow]")
        raise typer.Exit(0)
    for path in snapshots:
        console.print(f"  {path.name}")
