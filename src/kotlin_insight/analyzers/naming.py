"""Kotlin naming conventions for files, types, functions and properties."""

from __future__ import annotations

import re

from ..models import Category, Effort, FileInfo, Finding, Priority
from ..scanning.tree import TYPE_KINDS, NodeKind, SyntaxNode, SyntaxTree
from ..scanning.visitor import SyntaxVisitor
from .base import BaseAnalyzer

OPERATOR_NAMES = frozenset(
    {
        "plus", "minus", "times", "div", "rem", "mod", "rangeTo", "contains",
        "get", "set", "plusAssign", "minusAssign", "timesAssign", "divAssign",
        "remAssign", "inc", "dec", "unaryPlus", "unaryMinus", "not", "equals",
        "compareTo", "iterator", "next", "hasNext", "invoke",
        "component1", "component2", "component3", "component4", "component5",
    }
)
MUTABLE_STATE_TYPES = (
    "MutableStateFlow",
    "MutableSharedFlow",
    "MutableLiveData",
    "mutableStateOf",
    "mutableStateListOf",
    "mutableStateMapOf",
)

_UPPER_SNAKE = re.compile(r"[A-Z0-9_]+")
_IDENTIFIER = re.compile(r"\w+")
_LITERAL = re.compile(r"""^(?:".*"|'.*'|-?[\d_.]+[LFf]?|true|false|0x[\dA-Fa-f_]+)$""")


def is_pascal_case(name: str) -> bool:
    if not name or not name[0].isupper():
        return False
    if "_" in name and not name.endswith("Test"):
        return False
    if len(name) > 2 and all(c.isupper() or c == "_" for c in name):
        return False
    return True


def is_camel_case(name: str) -> bool:
    return bool(name) and name[0].islower() and "_" not in name


def is_upper_snake_case(name: str) -> bool:
    return bool(_UPPER_SNAKE.fullmatch(name))


def to_pascal_case(name: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in re.split(r"[_\-]", name) if part)


def to_camel_case(name: str) -> str:
    pascal = to_pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def to_upper_snake_case(name: str) -> str:
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name).upper()


class NamingAnalyzer(BaseAnalyzer):
    """Flags declarations that break Kotlin naming conventions."""

    id = "naming"
    name = "Naming Analyzer"
    category = Category.NAMING

    def applies_to(self, file: FileInfo) -> bool:
        return file.name.endswith(".kt")

    def analyze(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        findings: list[Finding] = []
        if not is_pascal_case(file.stem):
            findings.append(
                self.finding(
                    file,
                    1,
                    snippet=file.name,
                    title="File Name Does Not Follow PascalCase Convention",
                    description=f"File '{file.name}' should be named in PascalCase.",
                    priority=Priority.LOW,
                    effort=Effort.TRIVIAL,
                    recommendation=f"Rename the file to '{to_pascal_case(file.stem)}.kt'.",
                    references=("https://kotlinlang.org/docs/coding-conventions.html#source-file-names",),
                )
            )
        visitor = _NamingVisitor(self, file)
        visitor.visit(tree.root)
        findings.extend(visitor.findings)
        return findings

    def check_type(self, file: FileInfo, node: SyntaxNode) -> list[Finding]:
        if not node.name or is_pascal_case(node.name):
            return []
        return [
            self.finding(
                file,
                node,
                snippet=node.text.splitlines()[0] if node.text else "",
                title="Class Name Does Not Follow PascalCase Convention",
                description=f"{node.kind.value.title()} '{node.name}' should be named in PascalCase.",
                priority=Priority.LOW,
                effort=Effort.SMALL,
                recommendation=f"Rename it to '{to_pascal_case(node.name)}'.",
                before=f"class {node.name}",
                after=f"class {to_pascal_case(node.name)}",
                references=("https://kotlinlang.org/docs/coding-conventions.html#naming-rules",),
            )
        ]

    def check_function(self, file: FileInfo, fn: SyntaxNode) -> list[Finding]:
        name = fn.name
        if not name or name in OPERATOR_NAMES or name.startswith("test"):
            return []
        if fn.has_annotation("Composable") or fn.has_annotation("Test"):
            return []
        if not _IDENTIFIER.fullmatch(name) or is_camel_case(name):
            return []
        return [
            self.finding(
                file,
                fn,
                snippet=fn.text.splitlines()[0] if fn.text else "",
                title="Function Name Does Not Follow camelCase Convention",
                description=f"Function '{name}' should be named in camelCase.",
                priority=Priority.LOW,
                effort=Effort.SMALL,
                recommendation=f"Rename it to '{to_camel_case(name)}'.",
                before=f"fun {name}()",
                after=f"fun {to_camel_case(name)}()",
                references=("https://kotlinlang.org/docs/coding-conventions.html#function-names",),
            )
        ]

    def check_property(
        self, file: FileInfo, prop: SyntaxNode, owner: SyntaxNode
    ) -> list[Finding]:
        findings = []
        if self._is_constant(prop, owner) and not is_upper_snake_case(prop.name):
            findings.append(
                self.finding(
                    file,
                    prop,
                    title="Constant Does Not Follow UPPER_SNAKE_CASE Convention",
                    description=f"Constant '{prop.name}' should be named in UPPER_SNAKE_CASE.",
                    priority=Priority.LOW,
                    effort=Effort.TRIVIAL,
                    recommendation=f"Rename it to '{to_upper_snake_case(prop.name)}'.",
                    before=f"const val {prop.name} = ...",
                    after=f"const val {to_upper_snake_case(prop.name)} = ...",
                    references=("https://kotlinlang.org/docs/coding-conventions.html#property-names",),
                )
            )
        if (
            owner.kind in TYPE_KINDS
            and prop.visibility == "private"
            and not prop.name.startswith("_")
            and any(t in f"{prop.type_text} {prop.initializer}" for t in MUTABLE_STATE_TYPES)
        ):
            findings.append(
                self.finding(
                    file,
                    prop,
                    title="Private Mutable State Missing Underscore Prefix",
                    description=(
                        f"Private mutable state '{prop.name}' should be prefixed with '_' so the "
                        "public read-only counterpart can use the plain name."
                    ),
                    priority=Priority.LOW,
                    effort=Effort.SMALL,
                    recommendation=f"Rename it to '_{prop.name}'.",
                    before=f"private val {prop.name} = MutableStateFlow(UiState())",
                    after=(
                        f"private val _{prop.name} = MutableStateFlow(UiState())\n"
                        f"val {prop.name}: StateFlow<UiState> = _{prop.name}.asStateFlow()"
                    ),
                    references=("https://kotlinlang.org/docs/coding-conventions.html#names-for-backing-properties",),
                )
            )
        return findings

    @staticmethod
    def _is_constant(prop: SyntaxNode, owner: SyntaxNode) -> bool:
        if prop.has_modifier("const"):
            return True
        in_companion = owner.kind == NodeKind.OBJECT and owner.keyword == "companion"
        if not in_companion or prop.is_mutable or "get()" in prop.text:
            return False
        return bool(_LITERAL.match(prop.initializer.strip()))


class _NamingVisitor(SyntaxVisitor):
    def __init__(self, analyzer: NamingAnalyzer, file: FileInfo):
        self.analyzer = analyzer
        self.file = file
        self.findings: list[Finding] = []
        self.owners: list[SyntaxNode] = []

    def _visit_type(self, node: SyntaxNode) -> None:
        self.findings.extend(self.analyzer.check_type(self.file, node))
        self._descend(node)

    visit_class = _visit_type
    visit_interface = _visit_type
    visit_object = _visit_type

    def visit_function(self, node: SyntaxNode) -> None:
        self.findings.extend(self.analyzer.check_function(self.file, node))
        self._descend(node)

    def visit_property(self, node: SyntaxNode) -> None:
        owner = self.owners[-1] if self.owners else node
        self.findings.extend(self.analyzer.check_property(self.file, node, owner))
        self._descend(node)

    def _descend(self, node: SyntaxNode) -> None:
        self.owners.append(node)
        self.generic_visit(node)
        self.owners.pop()
