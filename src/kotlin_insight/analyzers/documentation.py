"""KDoc coverage of public API, data classes and sealed hierarchies."""

from __future__ import annotations

import re

from ..models import Category, Effort, FileInfo, Finding, Priority
from ..scanning.tree import TYPE_KINDS, NodeKind, SyntaxNode, SyntaxTree
from ..scanning.visitor import SyntaxVisitor
from .base import BaseAnalyzer, code_matches
from .complexity import cyclomatic_complexity

# Data classes with more constructor properties than this need them documented.
DATA_CLASS_PROPERTY_LIMIT = 2

_COMMENT = re.compile(r"//|/\*(?!\*)")


def has_inline_comment(fn: SyntaxNode) -> bool:
    return any(True for _ in code_matches(fn, _COMMENT))


def constructor_properties(node: SyntaxNode) -> list[str]:
    return [p.name for p in node.parameters if "val" in p.modifiers or "var" in p.modifiers]


class DocumentationAnalyzer(BaseAnalyzer):
    """Flags public declarations and sealed hierarchies without KDoc."""

    id = "documentation"
    name = "Documentation Analyzer"
    category = Category.DOCUMENTATION

    def analyze(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        visitor = _DocVisitor(self, file)
        visitor.visit(tree.root)
        return visitor.findings

    def missing_kdoc(self, file: FileInfo, node: SyntaxNode, kind: str) -> Finding:
        return self.finding(
            file,
            node,
            snippet_lines=5,
            title=f"Missing KDoc Documentation for Public {kind}",
            description=(
                f"Public {kind.lower()} '{node.name}' has no KDoc comment describing its "
                "purpose and usage."
            ),
            priority=Priority.LOW,
            effort=Effort.SMALL,
            recommendation="Add a /** ... */ comment with a summary and @param/@return tags.",
            before="fun calculateTotal(items: List<Item>): Double",
            after=(
                "/**\n"
                " * Sums the price of all items.\n"
                " *\n"
                " * @param items items to total\n"
                " * @return the total price\n"
                " */\n"
                "fun calculateTotal(items: List<Item>): Double"
            ),
            references=("https://kotlinlang.org/docs/kotlin-doc.html",),
        )

    def check_complex_function(self, file: FileInfo, fn: SyntaxNode) -> list[Finding]:
        complexity = cyclomatic_complexity(fn)
        limit = self.thresholds.doc_complexity_threshold
        if complexity <= limit or has_inline_comment(fn):
            return []
        return [
            self.finding(
                file,
                fn,
                snippet_lines=5,
                title="Complex Function Missing Inline Comments",
                description=(
                    f"Function '{fn.name}' has complexity {complexity} (above {limit}) "
                    "and no comments explaining its branches."
                ),
                priority=Priority.MEDIUM,
                effort=Effort.SMALL,
                recommendation=(
                    "Comment the non-obvious branches, or split the function so each part "
                    "is self-explanatory."
                ),
                references=("https://kotlinlang.org/docs/coding-conventions.html#documentation-comments",),
            )
        ]

    def check_data_class(self, file: FileInfo, node: SyntaxNode) -> list[Finding]:
        properties = constructor_properties(node)
        if len(properties) <= DATA_CLASS_PROPERTY_LIMIT:
            return []
        doc = node.doc or ""
        if any(p in doc for p in properties):
            return []
        return [
            self.finding(
                file,
                node,
                snippet_lines=5,
                title="Data Class Properties Not Documented",
                description=(
                    f"Data class '{node.name}' has {len(properties)} properties "
                    f"({', '.join(properties)}) and none is documented."
                ),
                priority=Priority.LOW,
                effort=Effort.SMALL,
                recommendation="Describe each property with an @property tag in the class KDoc.",
                after=(
                    "/**\n"
                    " * A planned meal.\n"
                    " *\n"
                    " * @property id database identifier\n"
                    " * @property name display name\n"
                    " */\n"
                    "data class Meal(val id: Long, val name: String)"
                ),
                references=("https://kotlinlang.org/docs/kotlin-doc.html#block-tags",),
            )
        ]

    def check_sealed_subtypes(self, file: FileInfo, node: SyntaxNode) -> list[Finding]:
        findings = []
        for child in node.iter_children(*TYPE_KINDS):
            if child.doc or child.keyword == "companion":
                continue
            findings.append(
                self.finding(
                    file,
                    child,
                    snippet_lines=3,
                    title="Sealed Class Subclass Not Documented",
                    description=(
                        f"Subtype '{child.name}' of sealed '{node.name}' has no KDoc stating "
                        "when this case occurs."
                    ),
                    priority=Priority.LOW,
                    effort=Effort.TRIVIAL,
                    recommendation="Document the state or event each subtype represents.",
                    after=(
                        "sealed interface MealUiState {\n"
                        "    /** Meals are being loaded. */\n"
                        "    data object Loading : MealUiState\n"
                        "}"
                    ),
                    references=("https://kotlinlang.org/docs/sealed-classes.html",),
                )
            )
        return findings


class _DocVisitor(SyntaxVisitor):
    def __init__(self, analyzer: DocumentationAnalyzer, file: FileInfo):
        self.analyzer = analyzer
        self.file = file
        self.findings: list[Finding] = []
        self.parents: list[SyntaxNode] = []

    def _in_function(self) -> bool:
        return any(p.kind == NodeKind.FUNCTION for p in self.parents)

    def _public_api(self, node: SyntaxNode) -> bool:
        return (
            bool(node.name)
            and node.is_public
            and not self._in_function()
            and all(p.is_public for p in self.parents)
        )

    def _visit_type(self, node: SyntaxNode) -> None:
        parent = self.parents[-1] if self.parents else None
        sealed_child = parent is not None and parent.has_modifier("sealed")
        if (
            self._public_api(node)
            and node.keyword != "companion"
            and not node.doc
            and not sealed_child
        ):
            self.findings.append(
                self.analyzer.missing_kdoc(self.file, node, node.kind.value.title())
            )
        if node.kind == NodeKind.CLASS and node.has_modifier("data"):
            self.findings.extend(self.analyzer.check_data_class(self.file, node))
        if node.has_modifier("sealed"):
            self.findings.extend(self.analyzer.check_sealed_subtypes(self.file, node))
        self._descend(node)

    visit_class = _visit_type
    visit_interface = _visit_type
    visit_object = _visit_type

    def visit_function(self, node: SyntaxNode) -> None:
        if node.name:
            if (
                self._public_api(node)
                and not node.doc
                and not node.has_modifier("override")
                and not node.name.startswith("test")
            ):
                self.findings.append(self.analyzer.missing_kdoc(self.file, node, "Function"))
            self.findings.extend(self.analyzer.check_complex_function(self.file, node))
        self._descend(node)

    def _descend(self, node: SyntaxNode) -> None:
        self.parents.append(node)
        self.generic_visit(node)
        self.parents.pop()
