"""Hot-path inefficiencies in loops and Compose recomposition."""

from __future__ import annotations

import re

from ..models import Category, Effort, FileInfo, Finding, Priority
from ..scanning.tree import LOOP_KINDS, NodeKind, SyntaxNode, SyntaxTree
from .base import BaseAnalyzer, is_composable, line_at, line_text

CHAIN_OPERATIONS = (".filter", ".map", ".flatMap", ".distinct", ".sorted")
MATERIALIZING_CALLS = (".toList()", ".toSet()", ".toMutableList()")
ITERATING_CALLS = ("forEach", "forEachIndexed")
UNSTABLE_TYPES = ("MutableList", "ArrayList", "MutableSet", "HashSet", "MutableMap", "HashMap", "Array<")

_STRING_VAR = re.compile(r"\bvar\s+(\w+)\s*(?::\s*String\b|=\s*\")")


def loop_nodes(root: SyntaxNode) -> list[SyntaxNode]:
    """Loop statements and forEach-style calls below ``root``."""
    return [
        node
        for node in root.walk()
        if node.kind in LOOP_KINDS
        or (node.kind == NodeKind.CALL and node.name in ITERATING_CALLS)
    ]


def chained_operations(line: str) -> int:
    return sum(1 for op in CHAIN_OPERATIONS if op in line)


class PerformanceAnalyzer(BaseAnalyzer):
    """Flags collection pipelines and string building inside loops."""

    id = "performance"
    name = "Performance Analyzer"
    category = Category.PERFORMANCE

    def analyze(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        findings: list[Finding] = []
        findings.extend(self._check_list_operations(file, tree))
        for fn in tree.functions():
            if not fn.name:
                continue
            findings.extend(self._check_string_concatenation(file, fn))
            if is_composable(fn):
                findings.extend(self._check_unstable_parameters(file, fn))
        return findings

    def _check_list_operations(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        findings = []
        seen: set[int] = set()
        for loop in loop_nodes(tree.root):
            lines = loop.text.splitlines()
            # header line runs once
            for offset, line in enumerate(lines[1:], start=1):
                line_no = loop.start_line + offset
                if line_no in seen:
                    continue
                ops = chained_operations(line)
                if ops >= 2 or (ops >= 1 and any(c in line for c in MATERIALIZING_CALLS)):
                    seen.add(line_no)
                    findings.append(
                        self.finding(
                            file,
                            line_no,
                            snippet=line.strip(),
                            title="Inefficient List Operations in Loop",
                            description=(
                                f"A chain of collection operations inside the loop starting at "
                                f"line {loop.line} allocates intermediate lists on every iteration."
                            ),
                            priority=Priority.MEDIUM,
                            effort=Effort.TRIVIAL,
                            recommendation=(
                                "Hoist the computation out of the loop or use asSequence() to "
                                "avoid intermediate collections."
                            ),
                            before=(
                                "for (meal in meals) {\n"
                                "    val names = meal.ingredients.filter { it.isFresh }.map { it.name }\n"
                                "}"
                            ),
                            after=(
                                "for (meal in meals) {\n"
                                "    val names = meal.ingredients.asSequence()\n"
                                "        .filter { it.isFresh }.map { it.name }.toList()\n"
                                "}"
                            ),
                            references=("https://kotlinlang.org/docs/sequences.html",),
                        )
                    )
        return findings

    def _check_string_concatenation(self, file: FileInfo, fn: SyntaxNode) -> list[Finding]:
        names = set(_STRING_VAR.findall(fn.text))
        if not names:
            return []
        findings = []
        seen: set[int] = set()
        for loop in loop_nodes(fn):
            for name in sorted(names):
                pattern = re.compile(
                    rf"\b{re.escape(name)}\s*\+=|\b{re.escape(name)}\s*=\s*{re.escape(name)}\s*\+"
                )
                for match in pattern.finditer(loop.text):
                    line_no = line_at(loop, match.start())
                    if line_no in seen:
                        continue
                    seen.add(line_no)
                    findings.append(
                        self.finding(
                            file,
                            line_no,
                            snippet=line_text(loop.text, match.start()),
                            title="String Concatenation in Loop",
                            description=(
                                f"'{name}' is extended with '+' inside a loop in '{fn.name}'. "
                                "Each iteration copies the whole string."
                            ),
                            priority=Priority.MEDIUM,
                            effort=Effort.SMALL,
                            recommendation="Use buildString { } or a StringBuilder.",
                            before='var result = ""\nfor (item in items) {\n    result += item.name\n}',
                            after="val result = buildString {\n    for (item in items) append(item.name)\n}",
                            references=(
                                "https://kotlinlang.org/api/latest/jvm/stdlib/kotlin.text/build-string.html",
                            ),
                        )
                    )
        return findings

    def _check_unstable_parameters(self, file: FileInfo, fn: SyntaxNode) -> list[Finding]:
        unstable = [
            p for p in fn.parameters if any(t in p.type_text for t in UNSTABLE_TYPES)
        ]
        if not unstable:
            return []
        listed = ", ".join(f"{p.name}: {p.type_text}" for p in unstable)
        return [
            self.finding(
                file,
                fn,
                snippet_lines=5,
                title="Unstable Compose Parameters Cause Excessive Recomposition",
                description=(
                    f"Composable '{fn.name}' takes mutable collection parameters ({listed}). "
                    "Compose treats them as unstable and cannot skip recomposition."
                ),
                priority=Priority.MEDIUM,
                effort=Effort.SMALL,
                recommendation=(
                    "Accept read-only List/Set/Map (or kotlinx immutable collections) and "
                    "annotate wrapper types with @Immutable."
                ),
                before="@Composable\nfun MealList(meals: MutableList<Meal>)",
                after="@Composable\nfun MealList(meals: List<Meal>)",
                references=(
                    "https://developer.android.com/jetpack/compose/performance/stability",
                ),
            )
        ]
