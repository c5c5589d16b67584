"""Base formatter interface for Kotlin Insight output rendering."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models import AnalysisResult, Comparison


class BaseFormatter(ABC):
    """Abstract base class for output formatters.

    ``extension`` is the report file suffix, or None for formatters that
    only write to the terminal.
    """

    name: str = ""
    extension: Optional[str] = None

    @abstractmethod
    def format(
        self,
        result: AnalysisResult,
        comparison: Optional[Comparison] = None,
        generated_at: Optional[str] = None,
    ) -> str:
        """Return the formatted report."""

    def render(self, result: AnalysisResult, comparison: Optional[Comparison] = None) -> None:
        """Print the report to stdout."""
        print(self.format(result, comparison))
