"""List the registered analyzers."""

from rich.table import Table

from ..analyzers import ANALYZER_CLASSES
from . import app
from ._common import console


@app.command("analyzers")
def list_analyzers() -> None:
    """List available analyzers in registry order."""
    table = Table(title="Analyzers", expand=False)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Category", style="yellow")
    for cls in ANALYZER_CLASSES:
        table.add_row(cls.id, cls.name, cls.category.value)
    console.print(table)
