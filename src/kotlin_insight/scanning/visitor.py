"""Generic visitor over the normalized syntax tree."""

from __future__ import annotations

from typing import Any

from .tree import SyntaxNode


class SyntaxVisitor:
    """Walks a SyntaxNode tree dispatching on node kind.

    Subclasses define ``visit_<kind>`` methods (``visit_function``,
    ``visit_if``, ...). Kinds without a method fall through to
    ``generic_visit``, which visits the children. A ``visit_<kind>`` method
    that wants to descend must call ``generic_visit`` itself.
    """

    def visit(self, node: SyntaxNode) -> Any:
        method = getattr(self, f"visit_{node.kind.value}", self.generic_visit)
        return method(node)

    def generic_visit(self, node: SyntaxNode) -> None:
        for child in node.children:
            self.visit(child)
