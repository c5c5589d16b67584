"""
Kotlin Insight - Code Quality Analysis for Kotlin/Android projects

Parses Kotlin sources into syntax trees, runs pattern analyzers for
architecture, Compose, state, DI, Room, security and style conventions,
then aggregates findings and diffs them against a saved baseline.
"""

__version__ = "0.1.0"

from .api import analyze
from .models import AnalysisMetrics, AnalysisResult, Category, Finding, Priority

__all__ = [
    "analyze",
    "AnalysisResult",
    "AnalysisMetrics",
    "Finding",
    "Category",
    "Priority",
]
