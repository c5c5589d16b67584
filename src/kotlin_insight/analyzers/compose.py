"""Jetpack Compose idioms: modifier parameters, lazy lists and remember."""

from __future__ import annotations

import re

from ..models import Category, Effort, FileInfo, Finding, Layer, Priority
from ..scanning.tree import NodeKind, SyntaxNode, SyntaxTree
from .base import (
    BaseAnalyzer,
    call_arguments,
    inside_call,
    is_composable,
    walk_with_ancestors,
)

EXPENSIVE_OPERATIONS = (
    "filter",
    "map",
    "flatMap",
    "sorted",
    "sortedBy",
    "groupBy",
    "partition",
    "associate",
    "distinct",
)
CACHING_CALLS = ("remember", "derivedStateOf", "rememberSaveable")
LAZY_CONTAINERS = ("LazyColumn",)

_KEY_ARGUMENT = re.compile(r"\bkey\s*=")
_EXPENSIVE = re.compile(
    r"\.(?:%s)\w*\s*[({]" % "|".join(EXPENSIVE_OPERATIONS)
)


def is_expensive(expression: str) -> bool:
    return bool(_EXPENSIVE.search(expression))


class ComposeAnalyzer(BaseAnalyzer):
    """Checks @Composable functions in presentation code."""

    id = "compose"
    name = "Compose Analyzer"
    category = Category.FRAMEWORK_IDIOM

    def applies_to(self, file: FileInfo) -> bool:
        return not file.is_test and (
            file.layer == Layer.PRESENTATION or file.name.endswith("Screen.kt")
        )

    def analyze(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        findings: list[Finding] = []
        for fn in tree.functions():
            if not is_composable(fn):
                continue
            findings.extend(self._check_modifier(file, fn))
            findings.extend(self._check_lazy_lists(file, fn))
            findings.extend(self._check_remember(file, fn))
        return findings

    def _check_modifier(self, file: FileInfo, fn: SyntaxNode) -> list[Finding]:
        if fn.visibility == "private" or fn.has_annotation("Preview"):
            return []
        param = next((p for p in fn.parameters if "Modifier" in p.type_text), None)
        if param is None:
            return [
                self.finding(
                    file,
                    fn,
                    title="Composable Missing Modifier Parameter",
                    description=(
                        f"Composable function '{fn.name}' does not have a Modifier parameter. "
                        "Public composables should accept a Modifier with a default value so "
                        "callers can adjust layout, padding and size."
                    ),
                    priority=Priority.MEDIUM,
                    effort=Effort.TRIVIAL,
                    snippet_lines=5,
                    recommendation=(
                        "Add 'modifier: Modifier = Modifier' as the last optional parameter "
                        "and apply it to the root element."
                    ),
                    before=(
                        "@Composable\n"
                        "fun MealCard(meal: Meal, onClick: () -> Unit) {\n"
                        "    Card(onClick = onClick) { Text(meal.name) }\n"
                        "}"
                    ),
                    after=(
                        "@Composable\n"
                        "fun MealCard(meal: Meal, onClick: () -> Unit, modifier: Modifier = Modifier) {\n"
                        "    Card(modifier = modifier, onClick = onClick) { Text(meal.name) }\n"
                        "}"
                    ),
                    references=("https://developer.android.com/jetpack/compose/modifiers",),
                )
            ]
        if not param.has_default:
            return [
                self.finding(
                    file,
                    fn,
                    title="Modifier Parameter Missing Default Value",
                    description=(
                        f"Composable function '{fn.name}' takes '{param.name}: "
                        f"{param.type_text}' without a default, forcing every caller to pass one."
                    ),
                    priority=Priority.LOW,
                    effort=Effort.TRIVIAL,
                    auto_fixable=True,
                    snippet_lines=5,
                    recommendation="Default the parameter to 'Modifier'.",
                    before="fun MealCard(meal: Meal, modifier: Modifier)",
                    after="fun MealCard(meal: Meal, modifier: Modifier = Modifier)",
                    references=("https://developer.android.com/jetpack/compose/modifiers",),
                )
            ]
        return []

    def _check_lazy_lists(self, file: FileInfo, fn: SyntaxNode) -> list[Finding]:
        findings = []
        for node, ancestors in walk_with_ancestors(fn):
            if node.kind != NodeKind.CALL or not inside_call(ancestors, *LAZY_CONTAINERS):
                continue
            if node.name in LAZY_CONTAINERS:
                findings.append(
                    self.finding(
                        file,
                        node,
                        title="Nested LazyColumn Detected",
                        description=(
                            f"'{fn.name}' places a LazyColumn inside another LazyColumn. "
                            "Nested scrollable containers of the same orientation break "
                            "measurement and scrolling."
                        ),
                        priority=Priority.HIGH,
                        effort=Effort.MEDIUM,
                        recommendation=(
                            "Flatten into a single LazyColumn with one items() block per section."
                        ),
                        before=(
                            "LazyColumn {\n    item {\n        LazyColumn { items(meals) { MealCard(it) } }\n    }\n}"
                        ),
                        after=(
                            "LazyColumn {\n    stickyHeader { Text(\"Meals\") }\n"
                            "    items(meals, key = { it.id }) { MealCard(it) }\n}"
                        ),
                        references=(
                            "https://developer.android.com/jetpack/compose/lists#avoid-nesting",
                        ),
                    )
                )
            elif node.name == "items" and not _KEY_ARGUMENT.search(call_arguments(node)):
                findings.append(
                    self.finding(
                        file,
                        node,
                        title="LazyColumn items() Missing key Parameter",
                        description=(
                            f"items() in '{fn.name}' has no key. Without stable keys Compose "
                            "cannot keep item state when the list changes."
                        ),
                        priority=Priority.MEDIUM,
                        effort=Effort.TRIVIAL,
                        recommendation="Pass key = { it.id } with a stable unique identifier.",
                        before="items(meals) { meal -> MealCard(meal) }",
                        after="items(items = meals, key = { it.id }) { meal -> MealCard(meal) }",
                        references=(
                            "https://developer.android.com/jetpack/compose/lists#item-keys",
                        ),
                    )
                )
        return findings

    def _check_remember(self, file: FileInfo, fn: SyntaxNode) -> list[Finding]:
        findings = []
        for node, ancestors in walk_with_ancestors(fn):
            if node.kind != NodeKind.PROPERTY or not node.initializer:
                continue
            initializer = node.initializer
            if initializer.startswith("by "):
                initializer = initializer[3:].lstrip()
            if initializer.startswith(CACHING_CALLS) or inside_call(ancestors, *CACHING_CALLS):
                continue
            if not is_expensive(initializer):
                continue
            findings.append(
                self.finding(
                    file,
                    node,
                    title="Expensive Computation Not Wrapped in remember",
                    description=(
                        f"'{node.name}' in '{fn.name}' is recomputed on every recomposition."
                    ),
                    priority=Priority.MEDIUM,
                    effort=Effort.TRIVIAL,
                    recommendation=(
                        "Wrap the computation in remember(keys) { } so it only reruns when "
                        "its inputs change."
                    ),
                    before="val sorted = meals.sortedBy { it.name }",
                    after="val sorted = remember(meals) { meals.sortedBy { it.name } }",
                    references=("https://developer.android.com/jetpack/compose/state#remember",),
                )
            )
        return findings
