"""
Logging for Kotlin Insight.

Records are rendered by rich on stderr so stdout stays free for reports.
``kotlin-insight analyze --log-file PATH`` additionally appends plain
timestamped lines to PATH.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "kotlin_insight"

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _level(verbose: bool, quiet: bool) -> int:
    # quiet wins over verbose
    if quiet:
        return logging.ERROR
    return logging.DEBUG if verbose else logging.WARNING


def _file_handler(path: Union[str, Path]) -> logging.Handler:
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    return handler


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Route kotlin_insight log records to stderr and, optionally, a file.

    Args:
        verbose: Log DEBUG records, with times, source paths and locals
        quiet: Log ERROR records only
        log_file: Path to append plain-text records to

    Returns:
        The ``kotlin_insight`` logger
    """
    level = _level(verbose, quiet)
    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
            show_time=verbose,
            show_path=verbose,
        )
    ]
    if log_file is not None:
        handlers.append(_file_handler(log_file))

    # repeated CLI invocations in one process reconfigure from scratch
    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=True)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for ``name`` nested under ``kotlin_insight``."""
    if name is None:
        return logging.getLogger(ROOT_LOGGER)
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
