"""Structural measurements: cyclomatic complexity, nesting depth, sizes."""

from __future__ import annotations

from typing import Iterator

from ..models import FileStats
from ..scanning.tree import TYPE_KINDS, NodeKind, SyntaxNode, SyntaxTree

# Each occurrence adds one path. A when-branch counts per branch, else included.
DECISION_KINDS = frozenset(
    {
        NodeKind.IF,
        NodeKind.WHEN_BRANCH,
        NodeKind.FOR,
        NodeKind.WHILE,
        NodeKind.DO_WHILE,
        NodeKind.AND,
        NodeKind.OR,
        NodeKind.CATCH,
    }
)

NESTING_KINDS = frozenset(
    {
        NodeKind.IF,
        NodeKind.WHEN,
        NodeKind.FOR,
        NodeKind.WHILE,
        NodeKind.DO_WHILE,
        NodeKind.TRY,
    }
)


def _is_boundary(node: SyntaxNode) -> bool:
    """Nested named functions and type declarations are measured on their own."""
    if node.kind in TYPE_KINDS:
        return True
    return node.kind == NodeKind.FUNCTION and bool(node.name)


def body_nodes(fn: SyntaxNode) -> Iterator[SyntaxNode]:
    """Descendants of ``fn`` that belong to its own body."""
    stack = list(reversed(fn.children))
    while stack:
        node = stack.pop()
        if _is_boundary(node):
            continue
        yield node
        stack.extend(reversed(node.children))


def cyclomatic_complexity(fn: SyntaxNode) -> int:
    """1 + number of decision points in the function body."""
    return 1 + sum(1 for node in body_nodes(fn) if node.kind in DECISION_KINDS)


def max_nesting_depth(fn: SyntaxNode) -> int:
    """Deepest stack of nested control-flow constructs in the body.

    An ``else if`` continues its parent conditional and does not add a level.
    """

    def depth(node: SyntaxNode, current: int) -> int:
        deepest = current
        for child in node.children:
            if _is_boundary(child):
                continue
            level = current
            if child.kind in NESTING_KINDS and child.keyword != "else if":
                level += 1
            deepest = max(deepest, depth(child, level))
        return deepest

    return depth(fn, 0)


def function_length(fn: SyntaxNode) -> int:
    return fn.line_count


def collect_file_stats(tree: SyntaxTree, file_path: str) -> FileStats:
    """Per-file samples for the run metrics."""
    functions = [fn for fn in tree.functions() if fn.name]
    types = [node for node in tree.types() if node.kind == NodeKind.CLASS]
    return FileStats(
        file_path=file_path,
        line_count=tree.line_count,
        function_complexities=tuple(cyclomatic_complexity(fn) for fn in functions),
        function_lengths=tuple(function_length(fn) for fn in functions),
        type_lengths=tuple(node.line_count for node in types),
    )
