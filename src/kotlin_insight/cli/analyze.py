"""Main analysis command."""

from pathlib import Path
from typing import List, Optional

import click
import typer

from ..baseline import BaselineStore
from ..config import AnalysisConfig
from ..core import AnalysisOrchestrator, ProgressReporter, SilentReporter
from ..exceptions import ConfigurationError, KotlinInsightError
from ..formatters import get_formatter
from ..logging_config import setup_logging
from ..models import AnalysisResult, Comparison
from . import app
from ._common import (
    EXIT_ERROR,
    EXIT_INTERRUPTED,
    console,
    ensure_output_dir,
    err_console,
    resolve_config,
    resolve_targets,
)

REPORT_NAME = "analysis-report"
INCREMENTAL_SUFFIX = "-incremental"


@app.command()
def analyze(
    paths: Optional[List[Path]] = typer.Argument(
        None,
        help="Project root, or files/directories for an incremental run (default: current directory)",
    ),
    analyzers: Optional[str] = typer.Option(
        None,
        "--analyzers",
        "-a",
        help="Comma-separated analyzer ids to run (default: all)",
    ),
    baseline: bool = typer.Option(
        True,
        "--baseline/--no-baseline",
        help="Compare against the saved baseline when one exists",
    ),
    update_baseline: bool = typer.Option(
        False,
        "--update-baseline",
        help="Save this run as the new baseline",
    ),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory for the report, baseline and history",
        file_okay=False,
        dir_okay=True,
    ),
    report_format: Optional[str] = typer.Option(
        None,
        "--format",
        "-f",
        help="Report format: markdown | json | rich",
        click_type=click.Choice(["markdown", "json", "rich"], case_sensitive=False),
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-w",
        help="Parallel workers (default: CPU count, at most 8)",
        min=1,
        max=32,
    ),
    parser: Optional[str] = typer.Option(
        None,
        "--parser",
        help="Parser backend: auto | tree-sitter | structural",
        click_type=click.Choice(["auto", "tree-sitter", "structural"]),
    ),
    history: bool = typer.Option(
        False,
        "--history",
        help="Keep a timestamped snapshot of this run",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors, no progress bar"),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Also append plain-text log records to this file",
        dir_okay=False,
    ),
):
    """
    Analyze Kotlin sources and write a code quality report.

    Findings never fail the run: the exit code is 0 whenever analysis
    completes, 1 for configuration errors and 130 when interrupted.

    [bold cyan]Examples:[/bold cyan]

      kotlin-insight analyze

      kotlin-insight analyze app/src/main --format rich

      kotlin-insight analyze --analyzers security,database --update-baseline

    Passing files or several paths runs incrementally: the report is
    written as analysis-report-incremental and the baseline and history
    are left alone.
    """
    logger = setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    try:
        settings = resolve_config(
            config=config,
            analyzers=analyzers,
            output_dir=output_dir,
            report_format=report_format.lower() if report_format else None,
            workers=workers,
            parser=parser,
            history=history,
            verbose=verbose,
            quiet=quiet,
        )
        root, subset = resolve_targets(paths or [])
        incremental = subset is not None
        # ids of a partial run are relative to another root than the baseline's
        keep_history = settings.enable_history and not incremental
        if incremental and (update_baseline or settings.enable_history):
            logger.warning("Incremental run; baseline and history not updated")
            update_baseline = False
        formatter = get_formatter(settings.report_format)
        out = Path(settings.output_dir)
        if formatter.extension or update_baseline or keep_history:
            ensure_output_dir(out)

        store = BaselineStore()
        previous = None
        if baseline and not incremental:
            previous = store.load(settings.baseline_path)

        reporter = SilentReporter() if quiet else ProgressReporter(err_console)
        result = reporter.run(lambda progress: _run(settings, root, subset, progress))

        comparison = None
        if previous is not None:
            comparison = store.compare(result.findings, previous, result.metrics)

        _emit(formatter, result, comparison, out, incremental)

        if result.cancelled:
            logger.warning("Run was cancelled; baseline and history not updated")
            return
        if update_baseline:
            store.save(settings.baseline_path, result.findings, result.metrics)
            console.print(f"[green]Baseline saved to {settings.baseline_path}[/green]")
        if keep_history:
            snapshot = store.save_history(settings.history_dir, result.findings, result.metrics)
            logger.info(f"History snapshot written to {snapshot}")

    except typer.Exit:
        raise

    except (ConfigurationError, ValueError) as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(EXIT_ERROR)

    except KotlinInsightError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(EXIT_ERROR)

    except KeyboardInterrupt:
        logger.info("Analysis interrupted by user")
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(EXIT_INTERRUPTED)

    except Exception as e:
        logger.exception("Unexpected error during analysis")
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(EXIT_ERROR)


def _run(
    settings: AnalysisConfig,
    root: Path,
    subset: Optional[List[Path]],
    progress,
) -> AnalysisResult:
    orchestrator = AnalysisOrchestrator(settings, progress=progress)
    try:
        if subset is None:
            return orchestrator.analyze_all(root)
        return orchestrator.analyze_paths(root, subset)
    except KeyboardInterrupt:
        orchestrator.cancel()
        raise


def _emit(
    formatter,
    result: AnalysisResult,
    comparison: Optional[Comparison],
    out: Path,
    incremental: bool = False,
) -> None:
    if formatter.extension is None:
        formatter.render(result, comparison)
        return
    name = f"{REPORT_NAME}{INCREMENTAL_SUFFIX}" if incremental else REPORT_NAME
    report_path = out / f"{name}{formatter.extension}"
    report_path.write_text(formatter.format(result, comparison), encoding="utf-8")
    console.print(
        f"[bold]{result.metrics.total_findings}[/bold] findings in "
        f"[bold]{result.metrics.total_files}[/bold] files. Report: [cyan]{report_path}[/cyan]"
    )
