"""Rich terminal formatter for Kotlin Insight."""

import io
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models import AnalysisResult, Category, Comparison, Priority
from .base import BaseFormatter

TOP_FINDINGS = 20

PRIORITY_STYLES = {
    Priority.CRITICAL: "red bold",
    Priority.HIGH: "red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "cyan",
}


def _priority_label(priority: Priority) -> str:
    style = PRIORITY_STYLES[priority]
    return f"[{style}]{priority.value}[/{style}]"


class RichFormatter(BaseFormatter):
    """Terminal summary panel, breakdown tables and the top findings."""

    name = "rich"

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def render(self, result: AnalysisResult, comparison: Optional[Comparison] = None) -> None:
        self._print_summary(result, comparison)
        self._print_breakdown(result)
        self._print_findings(result)

    def format(
        self,
        result: AnalysisResult,
        comparison: Optional[Comparison] = None,
        generated_at: Optional[str] = None,
    ) -> str:
        console = Console(record=True, width=120, file=io.StringIO())
        RichFormatter(console).render(result, comparison)
        return console.export_text()

    # -- private helpers --

    def _print_summary(self, result: AnalysisResult, comparison: Optional[Comparison]) -> None:
        m = result.metrics
        parts = [
            f"[bold]{m.total_files}[/bold] files",
            f"[yellow]{m.total_findings}[/yellow] findings",
            f"avg complexity [blue]{m.average_complexity:.2f}[/blue]",
        ]
        if result.skipped_files:
            parts.append(f"[red]{len(result.skipped_files)}[/red] skipped")
        if comparison is not None:
            parts.append(
                f"[red]+{len(comparison.new_ids)}[/red] new / "
                f"[green]-{len(comparison.resolved_ids)}[/green] resolved"
            )
        if result.cancelled:
            parts.append("[yellow]cancelled[/yellow]")
        self.console.print(
            Panel("  |  ".join(parts), title="[bold cyan]Kotlin Insight[/bold cyan]", expand=False)
        )
        self.console.print()

    def _print_breakdown(self, result: AnalysisResult) -> None:
        if not result.findings:
            self.console.print("[green]No issues found.[/green]")
            return
        m = result.metrics
        table = Table(title="Findings", expand=False)
        table.add_column("Priority")
        table.add_column("Count", justify="right")
        for priority in Priority:
            table.add_row(_priority_label(priority), str(m.count(priority)))

        categories = Table(title="By Category", expand=False)
        categories.add_column("Category")
        categories.add_column("Count", justify="right")
        for category in Category:
            count = m.findings_by_category.get(category.value, 0)
            if count:
                categories.add_row(category.label, str(count))

        self.console.print(table)
        self.console.print(categories)
        self.console.print()

    def _print_findings(self, result: AnalysisResult) -> None:
        if not result.findings:
            return
        shown = result.findings[:TOP_FINDINGS]
        table = Table(title=f"Top {len(shown)} Findings", expand=True)
        table.add_column("#", style="dim", width=4)
        table.add_column("Priority", width=10)
        table.add_column("Title", ratio=3)
        table.add_column("Location", style="yellow", ratio=3)
        for i, f in enumerate(shown, 1):
            table.add_row(str(i), _priority_label(f.priority), f.title, f.location)
        self.console.print(table)
        if len(result.findings) > TOP_FINDINGS:
            self.console.print(
                f"[dim]... and {len(result.findings) - TOP_FINDINGS} more findings[/dim]"
            )
        if result.diagnostics:
            self.console.print()
            self.console.print(f"[bold]Diagnostics ({len(result.diagnostics)}):[/bold]")
            for d in result.diagnostics:
                self.console.print(f"  [red]-[/red] {d.file_path} ({d.kind.value}): {d.message}")


