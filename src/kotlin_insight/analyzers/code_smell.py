"""Structural smells: long functions, large classes, complexity, nesting, parameters."""

from __future__ import annotations

from ..models import Category, Effort, FileInfo, Finding, Priority
from ..scanning.tree import SyntaxNode, SyntaxTree
from ..scanning.visitor import SyntaxVisitor
from .base import BaseAnalyzer
from .complexity import cyclomatic_complexity, max_nesting_depth


class CodeSmellAnalyzer(BaseAnalyzer):
    """Flags declarations whose size or shape exceeds the configured thresholds."""

    id = "code-smell"
    name = "Code Smell Analyzer"
    category = Category.STRUCTURAL_SMELL

    def analyze(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        visitor = _SmellVisitor(self, file)
        visitor.visit(tree.root)
        return visitor.findings

    def check_function(self, file: FileInfo, fn: SyntaxNode) -> list[Finding]:
        t = self.thresholds
        name = fn.name or "anonymous"
        findings = []

        lines = fn.line_count
        if lines > t.max_function_lines:
            findings.append(
                self.finding(
                    file,
                    fn,
                    title=f"Long Function: {name}",
                    description=(
                        f"Function '{name}' has {lines} lines, exceeding the recommended "
                        f"maximum of {t.max_function_lines} lines. Long functions are harder "
                        "to understand, test, and maintain."
                    ),
                    priority=Priority.MEDIUM,
                    effort=Effort.MEDIUM,
                    recommendation=(
                        "Break this function into smaller, focused functions. Extract logical "
                        "blocks into private functions with descriptive names."
                    ),
                    before=(
                        "fun processOrder(order: Order) {\n"
                        "    // 60+ lines of validation, totals, payment, inventory\n"
                        "}"
                    ),
                    after=(
                        "fun processOrder(order: Order) {\n"
                        "    validateOrder(order)\n"
                        "    val totals = calculateOrderTotals(order)\n"
                        "    processPayment(order, totals)\n"
                        "}"
                    ),
                    references=(
                        "https://refactoring.guru/smells/long-method",
                        "https://kotlinlang.org/docs/coding-conventions.html#functions",
                    ),
                )
            )

        count = len(fn.parameters)
        if count > t.max_parameters:
            findings.append(
                self.finding(
                    file,
                    fn,
                    title=f"Too Many Parameters: {name}",
                    description=(
                        f"Function '{name}' has {count} parameters, exceeding the recommended "
                        f"maximum of {t.max_parameters}."
                    ),
                    priority=Priority.LOW,
                    effort=Effort.SMALL,
                    snippet_lines=5,
                    recommendation=(
                        "Group related parameters into a data class or parameter object."
                    ),
                    before="fun createUser(first: String, last: String, email: String, phone: String, city: String, zip: String)",
                    after=(
                        "data class UserInfo(val first: String, val last: String, val email: String)\n"
                        "fun createUser(info: UserInfo, address: Address)"
                    ),
                    references=("https://refactoring.guru/smells/long-parameter-list",),
                )
            )

        complexity = cyclomatic_complexity(fn)
        if complexity > t.max_complexity:
            findings.append(
                self.finding(
                    file,
                    fn,
                    title=f"High Cyclomatic Complexity: {name}",
                    description=(
                        f"Function '{name}' has a cyclomatic complexity of {complexity}, "
                        f"exceeding the recommended maximum of {t.max_complexity}."
                    ),
                    priority=Priority.MEDIUM,
                    effort=Effort.MEDIUM,
                    recommendation=(
                        "Extract complex conditions into named functions, use early returns "
                        "and replace branching on type with polymorphism."
                    ),
                    before=(
                        "if (order.total > 100) {\n"
                        "    if (order.customer.isPremium) { ... } else { ... }\n"
                        "} else { ... }"
                    ),
                    after=(
                        "if (order.total <= 100) return 0.0\n"
                        "return when {\n"
                        "    order.customer.isPremium -> 0.15\n"
                        "    else -> 0.10\n"
                        "}"
                    ),
                    references=("https://en.wikipedia.org/wiki/Cyclomatic_complexity",),
                )
            )

        depth = max_nesting_depth(fn)
        if depth > t.max_nesting_depth:
            findings.append(
                self.finding(
                    file,
                    fn,
                    title=f"Deep Nesting: {name}",
                    description=(
                        f"Function '{name}' has a maximum nesting depth of {depth}, exceeding "
                        f"the recommended maximum of {t.max_nesting_depth}."
                    ),
                    priority=Priority.MEDIUM,
                    effort=Effort.MEDIUM,
                    recommendation=(
                        "Use guard clauses to handle edge cases first and extract nested "
                        "blocks into separate functions."
                    ),
                    before="if (user != null) {\n    if (user.isActive) {\n        ...\n    }\n}",
                    after="if (user == null) return\nif (!user.isActive) return\n...",
                    references=("https://refactoring.guru/replace-nested-conditional-with-guard-clauses",),
                )
            )
        return findings

    def check_class(self, file: FileInfo, node: SyntaxNode) -> list[Finding]:
        lines = node.line_count
        limit = self.thresholds.max_class_lines
        if lines <= limit:
            return []
        name = node.name or "anonymous"
        return [
            self.finding(
                file,
                node,
                title=f"Large Class: {name}",
                description=(
                    f"Class '{name}' has {lines} lines, exceeding the recommended maximum of "
                    f"{limit} lines. Large classes often violate the Single Responsibility "
                    "Principle."
                ),
                priority=Priority.MEDIUM,
                effort=Effort.LARGE,
                snippet_lines=20,
                recommendation=(
                    "Split the class along groups of related methods and properties so each "
                    "class has one reason to change."
                ),
                references=(
                    "https://refactoring.guru/smells/large-class",
                    "https://en.wikipedia.org/wiki/Single-responsibility_principle",
                ),
            )
        ]


class _SmellVisitor(SyntaxVisitor):
    def __init__(self, analyzer: CodeSmellAnalyzer, file: FileInfo):
        self.analyzer = analyzer
        self.file = file
        self.findings: list[Finding] = []

    def visit_function(self, node: SyntaxNode) -> None:
        if node.name:
            self.findings.extend(self.analyzer.check_function(self.file, node))
        self.generic_visit(node)

    def visit_class(self, node: SyntaxNode) -> None:
        self.findings.extend(self.analyzer.check_class(self.file, node))
        self.generic_visit(node)
