"""Public API for Kotlin Insight.

Example:
    >>> from kotlin_insight import analyze
    >>>
    >>> result = analyze("app/src/main")
    >>> result.metrics.total_findings
    12
    >>>
    >>> # With customization
    >>> result = analyze("app", analyzers=["security", "database"], parser="structural")
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from .config import load_config
from .core import AnalysisOrchestrator
from .logging_config import get_logger
from .models import AnalysisResult

logger = get_logger(__name__)


def analyze(
    path: Union[str, Path] = ".",
    config_file: Optional[Path] = None,
    **overrides,
) -> AnalysisResult:
    """Analyze every Kotlin file under ``path``.

    Args:
        path: Project root (default: current directory)
        config_file: Optional explicit config file path
        **overrides: Configuration overrides (e.g. workers=2, analyzers=["naming"])

    Returns:
        Aggregated AnalysisResult

    Raises:
        ConfigurationError: If configuration is invalid, the path is not a
            directory or an analyzer id is unknown
    """
    config = load_config(config_file=config_file, **overrides)
    logger.debug(f"Analyzing {path} with parser={config.parser}")
    return AnalysisOrchestrator(config).analyze_all(Path(path))
