"""Pattern-detection passes over Kotlin syntax trees."""

from .base import BaseAnalyzer
from .complexity import collect_file_stats, cyclomatic_complexity, max_nesting_depth
from .registry import ANALYZER_CLASSES, ANALYZER_IDS, create_analyzers, get_analyzer_class

__all__ = [
    "BaseAnalyzer",
    "ANALYZER_CLASSES",
    "ANALYZER_IDS",
    "create_analyzers",
    "get_analyzer_class",
    "collect_file_stats",
    "cyclomatic_complexity",
    "max_nesting_depth",
]
