"""Exception hierarchy for Kotlin Insight."""

from .analysis import (
    AnalysisError,
    AnalyzerError,
    BaselineError,
    DiscoveryError,
    ParseError,
)
from .base import KotlinInsightError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
    OutputDirectoryError,
    UnknownAnalyzerError,
)

__all__ = [
    "KotlinInsightError",
    "AnalysisError",
    "DiscoveryError",
    "ParseError",
    "AnalyzerError",
    "BaselineError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
    "UnknownAnalyzerError",
    "OutputDirectoryError",
]
