"""Analysis pipeline: orchestration, aggregation and progress."""

from .aggregator import aggregate, apply_priority_floor, compute_metrics
from .orchestrator import AnalysisOrchestrator, FileOutcome
from .progress import ProgressReporter, SilentReporter

__all__ = [
    "AnalysisOrchestrator",
    "FileOutcome",
    "aggregate",
    "apply_priority_floor",
    "compute_metrics",
    "ProgressReporter",
    "SilentReporter",
]
