"""Language-level syntax tree shared by both parser backends.

Both the tree-sitter normalizer and the structural parser produce this
tree, so analyzers never see backend-specific node types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional


class NodeKind(str, Enum):
    FILE = "file"
    PACKAGE = "package"
    IMPORT = "import"
    CLASS = "class"
    INTERFACE = "interface"
    OBJECT = "object"
    FUNCTION = "function"
    PROPERTY = "property"
    BLOCK = "block"
    IF = "if"
    WHEN = "when"
    WHEN_BRANCH = "when_branch"
    FOR = "for"
    WHILE = "while"
    DO_WHILE = "do_while"
    TRY = "try"
    CATCH = "catch"
    FINALLY = "finally"
    LAMBDA = "lambda"
    CALL = "call"
    STRING = "string"
    AND = "and"
    OR = "or"


TYPE_KINDS = frozenset({NodeKind.CLASS, NodeKind.INTERFACE, NodeKind.OBJECT})
DECLARATION_KINDS = TYPE_KINDS | {NodeKind.FUNCTION, NodeKind.PROPERTY}
LOOP_KINDS = frozenset({NodeKind.FOR, NodeKind.WHILE, NodeKind.DO_WHILE})

VISIBILITY_MODIFIERS = ("public", "private", "protected", "internal")


@dataclass(frozen=True)
class Parameter:
    """A function or primary-constructor parameter."""

    name: str
    type_text: str = ""
    default: Optional[str] = None
    modifiers: tuple[str, ...] = ()

    @property
    def has_default(self) -> bool:
        return self.default is not None


def annotation_name(modifier: str) -> Optional[str]:
    """``@Query("...")`` -> ``Query``; non-annotations -> None."""
    if not modifier.startswith("@"):
        return None
    name = modifier[1:].split("(", 1)[0].strip()
    if ":" in name:
        # use-site targets: @get:JvmName, @file:Suppress
        name = name.split(":", 1)[1]
    return name.rsplit(".", 1)[-1]


@dataclass
class SyntaxNode:
    """A typed node of the normalized tree.

    Attributes:
        kind: Node kind
        name: Declared name (declarations), callee name (calls),
            condition text (when branches), caught type (catch)
        line: Line of the declaration keyword/name, used for findings
        start_line, end_line: 1-based line span of ``text``
        start_offset, end_offset: Position of the span in the source
        text: Source text of the node, including leading modifiers
        modifiers: Keywords and annotations, e.g. ``private``, ``@Composable``
        parameters: Function or primary-constructor parameters
        type_text: Return type (function), declared type (property),
            supertype list (class), caught type (catch)
        qualifier: Receiver chain of a call (``viewModelScope`` in
            ``viewModelScope.launch``)
        keyword: ``val``/``var`` for properties, ``else if`` for an if in
            else position, ``companion`` for companion objects
        initializer: Property initializer or delegate expression text
        constructor_modifiers: Modifiers of a primary constructor
        doc: KDoc comment directly preceding the declaration
    """

    kind: NodeKind
    name: str = ""
    line: int = 0
    start_line: int = 0
    end_line: int = 0
    start_offset: int = 0
    end_offset: int = 0
    text: str = ""
    modifiers: tuple[str, ...] = ()
    parameters: tuple[Parameter, ...] = ()
    type_text: str = ""
    qualifier: str = ""
    keyword: str = ""
    initializer: str = ""
    constructor_modifiers: tuple[str, ...] = ()
    doc: Optional[str] = None
    children: list[SyntaxNode] = field(default_factory=list)

    def walk(self) -> Iterator[SyntaxNode]:
        """Pre-order traversal including this node."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find_all(self, *kinds: NodeKind) -> list[SyntaxNode]:
        return [n for n in self.walk() if n.kind in kinds and n is not self]

    def iter_children(self, *kinds: NodeKind) -> Iterator[SyntaxNode]:
        for child in self.children:
            if not kinds or child.kind in kinds:
                yield child

    @property
    def annotations(self) -> tuple[str, ...]:
        names = (annotation_name(m) for m in self.modifiers)
        return tuple(n for n in names if n)

    def has_annotation(self, name: str) -> bool:
        return name in self.annotations

    def annotation_text(self, name: str) -> Optional[str]:
        """Raw text of the first annotation called ``name``, with arguments."""
        for modifier in self.modifiers:
            if annotation_name(modifier) == name:
                return modifier
        return None

    def has_modifier(self, modifier: str) -> bool:
        return modifier in self.modifiers

    @property
    def visibility(self) -> str:
        for modifier in self.modifiers:
            if modifier in VISIBILITY_MODIFIERS:
                return modifier
        return "public"

    @property
    def is_public(self) -> bool:
        return self.visibility == "public"

    @property
    def is_mutable(self) -> bool:
        return self.keyword == "var"

    @property
    def line_count(self) -> int:
        """Non-blank lines in the node's source span."""
        return sum(1 for line in self.text.splitlines() if line.strip())

    def __repr__(self) -> str:
        return f"SyntaxNode({self.kind.value}, {self.name!r}, line={self.line})"


@dataclass
class SyntaxTree:
    """A parsed file: the FILE root node plus the source it came from."""

    root: SyntaxNode
    source: str
    path: str
    provider: str

    @property
    def package(self) -> Optional[str]:
        for node in self.root.iter_children(NodeKind.PACKAGE):
            return node.name
        return None

    @property
    def imports(self) -> list[str]:
        return [node.name for node in self.root.iter_children(NodeKind.IMPORT)]

    def functions(self) -> list[SyntaxNode]:
        return self.root.find_all(NodeKind.FUNCTION)

    def types(self) -> list[SyntaxNode]:
        return self.root.find_all(*TYPE_KINDS)

    def walk(self) -> Iterator[SyntaxNode]:
        return self.root.walk()

    @property
    def line_count(self) -> int:
        return self.source.count("\n") + 1 if self.source else 0
