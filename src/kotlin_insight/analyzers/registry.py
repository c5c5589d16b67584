"""Fixed, ordered analyzer registry.

The order of ``ANALYZER_CLASSES`` is the aggregator's tie-break between
analyzers that report the same finding.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..config import ThresholdConfig
from ..exceptions import UnknownAnalyzerError
from .architecture import ArchitectureAnalyzer
from .base import BaseAnalyzer
from .code_smell import CodeSmellAnalyzer
from .compose import ComposeAnalyzer
from .database import DatabaseAnalyzer
from .dependency_injection import DependencyInjectionAnalyzer
from .documentation import DocumentationAnalyzer
from .error_handling import ErrorHandlingAnalyzer
from .naming import NamingAnalyzer
from .performance import PerformanceAnalyzer
from .security import SecurityAnalyzer
from .state_management import StateManagementAnalyzer
from .test_coverage import TestCoverageAnalyzer

ANALYZER_CLASSES: tuple[type[BaseAnalyzer], ...] = (
    CodeSmellAnalyzer,
    ArchitectureAnalyzer,
    ComposeAnalyzer,
    StateManagementAnalyzer,
    ErrorHandlingAnalyzer,
    DependencyInjectionAnalyzer,
    DatabaseAnalyzer,
    PerformanceAnalyzer,
    NamingAnalyzer,
    TestCoverageAnalyzer,
    DocumentationAnalyzer,
    SecurityAnalyzer,
)

ANALYZER_IDS: tuple[str, ...] = tuple(cls.id for cls in ANALYZER_CLASSES)


def get_analyzer_class(analyzer_id: str) -> type[BaseAnalyzer]:
    for cls in ANALYZER_CLASSES:
        if cls.id == analyzer_id:
            return cls
    raise UnknownAnalyzerError(analyzer_id, ANALYZER_IDS)


def create_analyzers(
    ids: Optional[Sequence[str]] = None,
    thresholds: Optional[ThresholdConfig] = None,
) -> list[BaseAnalyzer]:
    """Instantiate the selected analyzers in registry order.

    Args:
        ids: Allowlist of analyzer ids; None or empty selects every analyzer
        thresholds: Passed to each analyzer's constructor

    Raises:
        UnknownAnalyzerError: If ``ids`` names an unregistered analyzer
    """
    if not ids:
        return [cls(thresholds) for cls in ANALYZER_CLASSES]
    selected = {get_analyzer_class(analyzer_id).id for analyzer_id in ids}
    return [cls(thresholds) for cls in ANALYZER_CLASSES if cls.id in selected]
