"""Markdown report, the reference output of an analysis run."""

from __future__ import annotations

from typing import Optional

from ..models import AnalysisResult, Category, Comparison, Finding, Priority
from .base import BaseFormatter

PRIORITY_PREVIEW = 5
CATEGORY_PREVIEW = 3
BASELINE_PREVIEW = 10

_METRIC_LABELS = (
    ("average_complexity", "Average Complexity"),
    ("average_function_length", "Average Function Length"),
    ("average_type_length", "Average Class Length"),
    ("max_complexity", "Max Complexity"),
)


def _delta(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    return f"{value * 100:+.1f}%"


def _location(finding: Finding) -> str:
    return f"`{finding.location}`"


class MarkdownFormatter(BaseFormatter):
    """Render an AnalysisResult as a Markdown document.

    Output depends only on its inputs: the generation time appears only when
    ``generated_at`` is passed.
    """

    name = "markdown"
    extension = ".md"

    def format(
        self,
        result: AnalysisResult,
        comparison: Optional[Comparison] = None,
        generated_at: Optional[str] = None,
    ) -> str:
        lines: list[str] = ["# Code Quality Analysis Report", ""]
        if generated_at:
            lines += [f"**Generated:** {generated_at}", ""]
        if result.cancelled:
            lines += ["> Analysis was cancelled; results are partial.", ""]

        self._summary(lines, result, comparison)
        self._by_priority(lines, result)
        self._by_category(lines, result)
        self._details(lines, result)
        return "\n".join(lines).rstrip() + "\n"

    def _summary(
        self, lines: list[str], result: AnalysisResult, comparison: Optional[Comparison]
    ) -> None:
        m = result.metrics
        lines += [
            "## Summary",
            "",
            "| Metric | Value |",
            "|--------|-------|",
            f"| Files Analyzed | {m.total_files} |",
            f"| Test Files | {m.test_files} |",
            f"| Total Lines | {m.total_lines} |",
            f"| Total Findings | {m.total_findings} |",
        ]
        for priority in Priority:
            lines.append(f"| {priority.value.title()} | {m.count(priority)} |")
        for attr, label in _METRIC_LABELS:
            value = getattr(m, attr)
            shown = f"{value:.2f}" if isinstance(value, float) else str(value)
            lines.append(f"| {label} | {shown} |")
        lines.append("")

        by_category = [(c, m.findings_by_category.get(c.value, 0)) for c in Category]
        by_category = [(c, n) for c, n in by_category if n]
        if by_category:
            lines += ["| Category | Findings |", "|----------|----------|"]
            lines += [f"| {c.label} | {n} |" for c, n in by_category]
            lines.append("")

        if result.diagnostics:
            skipped = result.skipped_files
            lines += [
                f"**Skipped:** {len(skipped)} file(s) not analyzed, "
                f"{len(result.diagnostics)} diagnostic(s) recorded.",
                "",
            ]
            for d in result.diagnostics:
                scope = f" [{d.analyzer_id}]" if d.analyzer_id else ""
                lines.append(f"- `{d.file_path}` ({d.kind.value}{scope}): {d.message}")
            lines.append("")

        if comparison is not None:
            self._changes(lines, result, comparison)

    def _changes(self, lines: list[str], result: AnalysisResult, comparison: Comparison) -> None:
        lines += ["### Changes Since Baseline", ""]
        if comparison.baseline_timestamp:
            lines += [f"Baseline from {comparison.baseline_timestamp}.", ""]
        lines += [
            f"- New findings: {len(comparison.new_ids)}",
            f"- Resolved findings: {len(comparison.resolved_ids)}",
            f"- Unchanged findings: {len(comparison.unchanged_ids)}",
            "",
        ]
        new = [f for f in result.findings if f.id in comparison.new_ids]
        if new:
            lines += ["**New:**", ""]
            for f in new[:BASELINE_PREVIEW]:
                lines.append(f"- **{f.priority.value}** {f.title} ({_location(f)})")
            if len(new) > BASELINE_PREVIEW:
                lines.append(f"- ... and {len(new) - BASELINE_PREVIEW} more")
            lines.append("")
        if comparison.resolved_ids:
            lines += ["**Resolved:**", ""]
            for finding_id in sorted(comparison.resolved_ids)[:BASELINE_PREVIEW]:
                lines.append(f"- `{finding_id}`")
            if len(comparison.resolved_ids) > BASELINE_PREVIEW:
                lines.append(f"- ... and {len(comparison.resolved_ids) - BASELINE_PREVIEW} more")
            lines.append("")
        if comparison.metric_deltas:
            lines += ["| Metric | Change |", "|--------|--------|"]
            for name, value in sorted(comparison.metric_deltas.items()):
                lines.append(f"| {name} | {_delta(value)} |")
            lines.append("")

    def _by_priority(self, lines: list[str], result: AnalysisResult) -> None:
        lines += ["## Findings by Priority", ""]
        if not result.findings:
            lines += ["No findings.", ""]
            return
        for priority in Priority:
            findings = [f for f in result.findings if f.priority == priority]
            if not findings:
                continue
            lines += [f"### {priority.value.title()}: {len(findings)}", ""]
            for f in findings[:PRIORITY_PREVIEW]:
                lines.append(f"- **{f.category.label}**: {f.title} ({_location(f)})")
            if len(findings) > PRIORITY_PREVIEW:
                lines.append(
                    f"- _... and {len(findings) - PRIORITY_PREVIEW} more {priority.value} priority findings_"
                )
            lines.append("")

    def _by_category(self, lines: list[str], result: AnalysisResult) -> None:
        lines += ["## Findings by Category", ""]
        if not result.findings:
            lines += ["No findings.", ""]
            return
        for category in Category:
            findings = [f for f in result.findings if f.category == category]
            if not findings:
                continue
            lines += [f"### {category.label}: {len(findings)}", ""]
            for f in findings[:CATEGORY_PREVIEW]:
                lines.append(f"- **{f.priority.value}** {f.title} ({_location(f)})")
            if len(findings) > CATEGORY_PREVIEW:
                lines.append(f"- _... and {len(findings) - CATEGORY_PREVIEW} more_")
            lines.append("")

    def _details(self, lines: list[str], result: AnalysisResult) -> None:
        lines += ["## Detailed Findings", ""]
        if not result.findings:
            lines += ["No issues found.", ""]
            return
        for f in result.findings:
            lines += [
                f"### {f.title}",
                "",
                f"- **ID:** `{f.id}`",
                f"- **Priority:** {f.priority.value}",
                f"- **Category:** {f.category.label}",
                f"- **Location:** {_location(f)}",
                f"- **Effort:** {f.effort.value}" + (" (auto-fixable)" if f.auto_fixable else ""),
                "",
                f.description,
                "",
            ]
            if f.code_snippet:
                lines += ["```kotlin", f.code_snippet, "```", ""]
            if f.recommendation:
                lines += [f"**Recommendation:** {f.recommendation}", ""]
            if f.before_example:
                lines += ["**Before:**", "", "```kotlin", f.before_example, "```", ""]
            if f.after_example:
                lines += ["**After:**", "", "```kotlin", f.after_example, "```", ""]
            if f.references:
                lines += ["**References:**", ""]
                lines += [f"- {ref}" for ref in f.references]
                lines.append("")
            lines += ["---", ""]
