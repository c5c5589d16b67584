"""Finding deduplication, ordering and run metrics."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Sequence

import numpy as np

from ..models import AnalysisMetrics, Category, FileStats, Finding, Priority

# Categories whose findings are always reported at a fixed priority.
PRIORITY_FLOORS = {Category.SECURITY: Priority.CRITICAL}


def apply_priority_floor(finding: Finding) -> Finding:
    floor = PRIORITY_FLOORS.get(finding.category)
    if floor is None or finding.priority == floor:
        return finding
    return replace(finding, priority=floor)


def _analyzer_rank(order: Sequence[str]):
    ranks = {analyzer_id: i for i, analyzer_id in enumerate(order)}
    unknown = len(ranks)
    return lambda analyzer_id: ranks.get(analyzer_id, unknown)


def aggregate(findings: Iterable[Finding], analyzer_order: Sequence[str] = ()) -> list[Finding]:
    """Deduplicate by id and return findings in report order.

    For each id the kept finding has the highest priority, then the earliest
    analyzer in ``analyzer_order``, then the longest description. Output is
    sorted by priority, category, path, line, analyzer and title, so the
    result does not depend on the order findings arrive in and
    ``aggregate(aggregate(xs)) == aggregate(xs)``.
    """
    rank = _analyzer_rank(analyzer_order)

    def preference(f: Finding) -> tuple:
        return (f.priority.rank, rank(f.analyzer_id), -len(f.description), f.title)

    best: dict[str, Finding] = {}
    for finding in findings:
        finding = apply_priority_floor(finding)
        current = best.get(finding.id)
        if current is None or preference(finding) < preference(current):
            best[finding.id] = finding

    return sorted(
        best.values(),
        key=lambda f: (
            f.priority.rank,
            f.category.order,
            f.file_path,
            f.line,
            rank(f.analyzer_id),
            f.title,
            f.id,
        ),
    )


def _mean(samples: Sequence[int]) -> float:
    if not samples:
        return 0.0
    return round(float(np.mean(np.asarray(samples, dtype=float))), 2)


def compute_metrics(
    findings: Sequence[Finding],
    total_files: int,
    stats: Iterable[FileStats] = (),
    test_files: int = 0,
) -> AnalysisMetrics:
    """Run metrics over the already deduplicated findings."""
    stats = list(stats)
    by_priority = {p.value: 0 for p in Priority}
    by_category = {c.value: 0 for c in Category}
    for finding in findings:
        by_priority[finding.priority.value] += 1
        by_category[finding.category.value] += 1

    complexities = [c for s in stats for c in s.function_complexities]
    function_lengths = [n for s in stats for n in s.function_lengths]
    type_lengths = [n for s in stats for n in s.type_lengths]

    return AnalysisMetrics(
        total_files=total_files,
        total_findings=len(findings),
        findings_by_priority=by_priority,
        findings_by_category=by_category,
        average_complexity=_mean(complexities),
        average_function_length=_mean(function_lengths),
        average_type_length=_mean(type_lengths),
        max_complexity=int(np.max(complexities)) if complexities else 0,
        total_lines=sum(s.line_count for s in stats),
        test_files=test_files,
    )


