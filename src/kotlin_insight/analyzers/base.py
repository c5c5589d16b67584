"""Analyzer contract and shared helpers."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Iterable, Iterator, Optional, Union

from ..config import DEFAULT_THRESHOLDS, ThresholdConfig
from ..models import Category, Effort, FileInfo, Finding, Priority
from ..scanning.tree import NodeKind, SyntaxNode, SyntaxTree


class BaseAnalyzer(ABC):
    """Base class for all analyzers.

    Subclasses set ``id``, ``name`` and ``category`` as class attributes and
    implement ``analyze``. Analyzers only read the tree and FileInfo they are
    given and return new findings.
    """

    id: str = ""
    name: str = ""
    category: Category = Category.STRUCTURAL_SMELL

    def __init__(self, thresholds: Optional[ThresholdConfig] = None):
        self.thresholds = thresholds or DEFAULT_THRESHOLDS

    def applies_to(self, file: FileInfo) -> bool:
        """Whether this analyzer should run on ``file``. Default: non-test files."""
        return not file.is_test

    @abstractmethod
    def analyze(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        """Return the findings for one parsed file."""

    def finding(
        self,
        file: FileInfo,
        at: Union[SyntaxNode, int],
        *,
        title: str,
        description: str,
        priority: Priority,
        recommendation: str = "",
        snippet: Optional[str] = None,
        effort: Effort = Effort.SMALL,
        before: Optional[str] = None,
        after: Optional[str] = None,
        references: Iterable[str] = (),
        auto_fixable: bool = False,
        snippet_lines: Optional[int] = None,
    ) -> Finding:
        """Build a finding located at a node (or a bare line number)."""
        if isinstance(at, SyntaxNode):
            line = at.line
            if snippet is None:
                snippet = at.text
        else:
            line = at
        return Finding.create(
            analyzer_id=self.id,
            category=self.category,
            priority=priority,
            title=title,
            description=description,
            file_path=file.relative_path,
            line=line,
            code_snippet=self.snippet(snippet or "", snippet_lines),
            recommendation=recommendation,
            before_example=before,
            after_example=after,
            effort=effort,
            auto_fixable=auto_fixable,
            references=tuple(references),
        )

    def snippet(self, text: str, max_lines: Optional[int] = None) -> str:
        """Truncate ``text`` to ``max_lines`` with a trailing marker."""
        limit = max_lines or self.thresholds.snippet_max_lines
        lines = text.splitlines()
        if len(lines) <= limit:
            return text
        return "\n".join(lines[:limit]) + f"\n// ... ({len(lines) - limit} more lines)"


def is_composable(node: SyntaxNode) -> bool:
    return node.kind == NodeKind.FUNCTION and node.has_annotation("Composable")


def calls(node: SyntaxNode, *names: str) -> list[SyntaxNode]:
    """Calls below ``node`` whose callee name is one of ``names``."""
    wanted = set(names)
    return [n for n in node.find_all(NodeKind.CALL) if n.name in wanted]


def line_at(node: SyntaxNode, offset: int) -> int:
    """Source line of a character offset inside ``node.text``."""
    return node.start_line + node.text.count("\n", 0, offset)


def class_name_matches(node: SyntaxNode, suffix: str) -> bool:
    return node.kind == NodeKind.CLASS and node.name.endswith(suffix)


def supertypes(node: SyntaxNode) -> list[str]:
    """Simple supertype names of a class: ``ViewModel()`` -> ``ViewModel``."""
    names = []
    depth = 0
    current = []
    for char in node.type_text:
        if char in "(<":
            depth += 1
        elif char in ")>":
            depth -= 1
        elif char == "," and depth == 0:
            names.append("".join(current))
            current = []
            continue
        if depth == 0 and char not in ")>":
            current.append(char)
    names.append("".join(current))
    result = []
    for name in names:
        name = name.split(" by ")[0].strip()
        if name:
            result.append(name.rsplit(".", 1)[-1])
    return result


def call_arguments(call: SyntaxNode) -> str:
    """Text of a call without its trailing lambda: ``items(xs, key = k)``."""
    trailing = [
        child
        for child in call.iter_children(NodeKind.LAMBDA)
        if child.end_offset == call.end_offset
    ]
    if not trailing:
        return call.text
    return call.text[: trailing[0].start_offset - call.start_offset]


def walk_with_ancestors(
    node: SyntaxNode, ancestors: tuple[SyntaxNode, ...] = ()
) -> Iterator[tuple[SyntaxNode, tuple[SyntaxNode, ...]]]:
    """Pre-order (node, ancestors) pairs below ``node``, nearest ancestor last."""
    path = ancestors + (node,)
    for child in node.children:
        yield child, path
        yield from walk_with_ancestors(child, path)


def inside_call(ancestors: Iterable[SyntaxNode], *names: str) -> bool:
    return any(a.kind == NodeKind.CALL and a.name in names for a in ancestors)


def is_view_model(node: SyntaxNode) -> bool:
    if node.kind != NodeKind.CLASS:
        return False
    return (
        node.name.endswith("ViewModel")
        or node.has_annotation("HiltViewModel")
        or any(s.endswith("ViewModel") for s in supertypes(node))
    )


def is_repository(node: SyntaxNode) -> bool:
    return node.kind == NodeKind.CLASS and (
        node.name.endswith("Repository") or node.name.endswith("RepositoryImpl")
    )


def line_text(text: str, offset: int) -> str:
    """The stripped source line of ``text`` containing ``offset``."""
    start = text.rfind("\n", 0, offset) + 1
    end = text.find("\n", offset)
    return (text[start:] if end < 0 else text[start:end]).strip()


def code_matches(node: SyntaxNode, pattern: re.Pattern[str]) -> Iterator[re.Match[str]]:
    """Matches of ``pattern`` in ``node.text`` that do not start inside a string literal."""
    strings = [
        (s.start_offset - node.start_offset, s.end_offset - node.start_offset)
        for s in node.find_all(NodeKind.STRING)
    ]
    for match in pattern.finditer(node.text):
        if not any(start <= match.start() < end for start, end in strings):
            yield match
