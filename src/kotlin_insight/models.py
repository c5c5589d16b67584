"""Data models for Kotlin Insight.

Findings and file records are frozen dataclasses: an analyzer creates them
once and every later stage (aggregation, baseline diffing, reporting) only
reads them or builds new values with ``dataclasses.replace``.
"""

from __future__ import annotations

import hashlib
from collections import Counter
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


class Category(str, Enum):
    """Finding category. Declaration order is the report/sort order."""

    STRUCTURAL_SMELL = "structural-smell"
    ARCHITECTURE = "architecture"
    FRAMEWORK_IDIOM = "framework-idiom"
    STATE_MANAGEMENT = "state-management"
    ERROR_HANDLING = "error-handling"
    DEPENDENCY_WIRING = "dependency-wiring"
    PERSISTENCE = "persistence"
    PERFORMANCE = "performance"
    NAMING = "naming"
    TEST_COVERAGE = "test-coverage"
    DOCUMENTATION = "documentation"
    SECURITY = "security"

    @property
    def order(self) -> int:
        return _CATEGORY_ORDER[self]

    @property
    def label(self) -> str:
        return self.value.replace("-", " ").title()


class Priority(str, Enum):
    """Finding priority, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """0 for critical, 3 for low."""
        return _PRIORITY_RANK[self]


class Effort(str, Enum):
    """Estimated fix effort, cheapest first."""

    TRIVIAL = "trivial"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"

    @property
    def rank(self) -> int:
        return _EFFORT_RANK[self]


class Layer(str, Enum):
    """Coarse architectural layer inferred from a file path."""

    DATA = "data"
    DOMAIN = "domain"
    PRESENTATION = "presentation"
    DI = "di"
    TEST = "test"
    UNKNOWN = "unknown"


class DiagnosticKind(str, Enum):
    DISCOVERY = "discovery"
    PARSE = "parse"
    ANALYZER = "analyzer"


_CATEGORY_ORDER = {c: i for i, c in enumerate(Category)}
_PRIORITY_RANK = {p: i for i, p in enumerate(Priority)}
_EFFORT_RANK = {e: i for i, e in enumerate(Effort)}


def fingerprint(category: Category, file_path: str, line: int, title: str) -> str:
    """Stable finding id: sha256 of ``category:file_path:line:title``.

    Any change to one of the four inputs (including a reworded title)
    produces a different id.
    """
    raw = f"{Category(category).value}:{file_path}:{line}:{title}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class Finding:
    """One detected issue with location and remediation guidance."""

    id: str
    analyzer_id: str
    category: Category
    priority: Priority
    title: str
    description: str
    file_path: str
    line: int
    code_snippet: str = ""
    recommendation: str = ""
    column: Optional[int] = None
    before_example: Optional[str] = None
    after_example: Optional[str] = None
    effort: Effort = Effort.SMALL
    auto_fixable: bool = False
    references: Tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        *,
        analyzer_id: str,
        category: Category,
        priority: Priority,
        title: str,
        description: str,
        file_path: str,
        line: int,
        **kwargs: Any,
    ) -> "Finding":
        """Build a finding with its id derived from category, path, line and title."""
        if "references" in kwargs:
            kwargs["references"] = tuple(kwargs["references"])
        return cls(
            id=fingerprint(category, file_path, line, title),
            analyzer_id=analyzer_id,
            category=category,
            priority=priority,
            title=title,
            description=description,
            file_path=file_path,
            line=line,
            **kwargs,
        )

    @property
    def location(self) -> str:
        if self.column is not None:
            return f"{self.file_path}:{self.line}:{self.column}"
        return f"{self.file_path}:{self.line}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        data["priority"] = self.priority.value
        data["effort"] = self.effort.value
        data["references"] = list(self.references)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Finding":
        """Rebuild a serialized finding. The stored id is kept as-is."""
        return cls(
            id=data["id"],
            analyzer_id=data["analyzer_id"],
            category=Category(data["category"]),
            priority=Priority(data["priority"]),
            title=data["title"],
            description=data.get("description", ""),
            file_path=data["file_path"],
            line=int(data["line"]),
            code_snippet=data.get("code_snippet", ""),
            recommendation=data.get("recommendation", ""),
            column=data.get("column"),
            before_example=data.get("before_example"),
            after_example=data.get("after_example"),
            effort=Effort(data.get("effort", Effort.SMALL.value)),
            auto_fixable=bool(data.get("auto_fixable", False)),
            references=tuple(data.get("references", ())),
        )


@dataclass(frozen=True)
class FileInfo:
    """A discovered source file and its path-derived metadata."""

    path: Path
    relative_path: str
    layer: Layer = Layer.UNKNOWN
    is_test: bool = False
    package: Optional[str] = None

    @property
    def name(self) -> str:
        return self.relative_path.rsplit("/", 1)[-1]

    @property
    def stem(self) -> str:
        return self.name.rsplit(".", 1)[0]


@dataclass(frozen=True)
class FileStats:
    """Raw per-file samples the aggregator turns into averages."""

    file_path: str
    line_count: int = 0
    function_complexities: Tuple[int, ...] = ()
    function_lengths: Tuple[int, ...] = ()
    type_lengths: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Diagnostic:
    """A recovered file- or analyzer-scoped failure."""

    kind: DiagnosticKind
    file_path: str
    message: str
    analyzer_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "file_path": self.file_path,
            "message": self.message,
            "analyzer_id": self.analyzer_id,
        }


def _zero_priorities() -> Dict[str, int]:
    return {p.value: 0 for p in Priority}


def _zero_categories() -> Dict[str, int]:
    return {c.value: 0 for c in Category}


@dataclass(frozen=True)
class AnalysisMetrics:
    """Aggregate counters for one run, computed after deduplication."""

    total_files: int = 0
    total_findings: int = 0
    findings_by_priority: Dict[str, int] = field(default_factory=_zero_priorities)
    findings_by_category: Dict[str, int] = field(default_factory=_zero_categories)
    average_complexity: float = 0.0
    average_function_length: float = 0.0
    average_type_length: float = 0.0
    max_complexity: int = 0
    total_lines: int = 0
    test_files: int = 0

    def count(self, priority: Priority) -> int:
        return self.findings_by_priority.get(priority.value, 0)

    def numeric(self) -> Dict[str, float]:
        """Flat name -> value map of every metric a baseline delta applies to."""
        values: Dict[str, float] = {
            "total_files": float(self.total_files),
            "total_findings": float(self.total_findings),
            "total_lines": float(self.total_lines),
            "test_files": float(self.test_files),
            "average_complexity": self.average_complexity,
            "average_function_length": self.average_function_length,
            "average_type_length": self.average_type_length,
            "max_complexity": float(self.max_complexity),
        }
        for key, count in self.findings_by_priority.items():
            values[f"priority.{key}"] = float(count)
        for key, count in self.findings_by_category.items():
            values[f"category.{key}"] = float(count)
        return values

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisMetrics":
        by_priority = _zero_priorities()
        by_priority.update({k: int(v) for k, v in data.get("findings_by_priority", {}).items()})
        by_category = _zero_categories()
        by_category.update({k: int(v) for k, v in data.get("findings_by_category", {}).items()})
        return cls(
            total_files=int(data.get("total_files", 0)),
            total_findings=int(data.get("total_findings", 0)),
            findings_by_priority=by_priority,
            findings_by_category=by_category,
            average_complexity=float(data.get("average_complexity", 0.0)),
            average_function_length=float(data.get("average_function_length", 0.0)),
            average_type_length=float(data.get("average_type_length", 0.0)),
            max_complexity=int(data.get("max_complexity", 0)),
            total_lines=int(data.get("total_lines", 0)),
            test_files=int(data.get("test_files", 0)),
        )


@dataclass(frozen=True)
class Baseline:
    """Snapshot of a prior run: metrics plus the ids present at that time."""

    timestamp: str
    metrics: AnalysisMetrics
    finding_ids: frozenset = frozenset()
    findings: Tuple[Finding, ...] = ()


@dataclass(frozen=True)
class Comparison:
    """Diff of the current run against a baseline. Never persisted."""

    new_ids: frozenset
    resolved_ids: frozenset
    unchanged_ids: frozenset
    metric_deltas: Dict[str, Optional[float]]
    baseline_timestamp: Optional[str] = None

    @property
    def has_changes(self) -> bool:
        return bool(self.new_ids or self.resolved_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseline_timestamp": self.baseline_timestamp,
            "new_ids": sorted(self.new_ids),
            "resolved_ids": sorted(self.resolved_ids),
            "unchanged": len(self.unchanged_ids),
            "metric_deltas": dict(sorted(self.metric_deltas.items())),
        }


@dataclass
class AnalysisResult:
    """Everything one run produced, in final (aggregated) form."""

    findings: List[Finding]
    metrics: AnalysisMetrics
    files: List[FileInfo] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    analyzer_ids: List[str] = field(default_factory=list)
    root: Optional[str] = None
    cancelled: bool = False

    @property
    def skipped_files(self) -> List[str]:
        """Files that were not analyzed at all (discovery or parse failure)."""
        skipped = {
            d.file_path
            for d in self.diagnostics
            if d.kind in (DiagnosticKind.DISCOVERY, DiagnosticKind.PARSE)
        }
        return sorted(skipped)

    @property
    def diagnostics_by_kind(self) -> Dict[str, int]:
        counts = Counter(d.kind.value for d in self.diagnostics)
        return {kind.value: counts.get(kind.value, 0) for kind in DiagnosticKind}
