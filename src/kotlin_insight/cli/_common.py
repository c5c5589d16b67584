"""Shared CLI helpers."""

import os
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from ..config import AnalysisConfig, load_config, parse_id_list
from ..exceptions import InvalidPathError, OutputDirectoryError

console = Console()
err_console = Console(stderr=True)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def resolve_config(
    config: Optional[Path] = None,
    analyzers: Optional[str] = None,
    output_dir: Optional[Path] = None,
    report_format: Optional[str] = None,
    workers: Optional[int] = None,
    parser: Optional[str] = None,
    history: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> AnalysisConfig:
    """Build the run configuration from CLI options."""
    return load_config(
        config_file=config,
        analyzers=parse_id_list(analyzers),
        output_dir=str(output_dir) if output_dir is not None else None,
        report_format=report_format,
        workers=workers,
        parser=parser,
        enable_history=True if history else None,
        verbose=verbose,
        quiet=quiet,
    )


def resolve_targets(paths: Sequence[Path]) -> tuple[Path, Optional[list[Path]]]:
    """Split CLI paths into an analysis root and an optional incremental subset.

    No paths means the current directory; a single directory is the root.
    Anything else is analyzed incrementally under the paths' common root.

    Raises:
        InvalidPathError: If a path does not exist
    """
    if not paths:
        return Path.cwd(), None
    resolved = []
    for path in paths:
        if not path.exists():
            raise InvalidPathError(path, "path does not exist")
        resolved.append(path.resolve())
    if len(resolved) == 1 and resolved[0].is_dir():
        return resolved[0], None
    root = Path(os.path.commonpath([str(p) for p in resolved]))
    if root.is_file():
        root = root.parent
    return root, resolved


def ensure_output_dir(path: Path) -> Path:
    """Create ``path`` if needed and check it is writable.

    Raises:
        OutputDirectoryError: If the directory cannot be created or written
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputDirectoryError(path, e.strerror or str(e))
    if not path.is_dir():
        raise OutputDirectoryError(path, "not a directory")
    if not os.access(path, os.W_OK):
        raise OutputDirectoryError(path, "permission denied")
    return path
