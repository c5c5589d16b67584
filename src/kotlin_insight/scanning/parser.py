"""SyntaxParser: one entry point over both Kotlin parser backends.

Usage:
    parser = SyntaxParser("auto")
    tree = parser.parse(source, "app/src/main/java/com/x/Foo.kt")

Modes:
    auto: tree-sitter first; files it reports syntax errors for are
        re-parsed with the structural parser. ParseError only when both fail.
    tree-sitter: tree-sitter only; syntax errors raise ParseError.
    structural: structural parser only.

Parsers hold no per-file state after ``parse`` returns, but tree-sitter
parser objects are not thread-safe, so each thread gets its own instance.
"""

from __future__ import annotations

import threading

from ..config import PARSER_MODES
from ..exceptions import ParseError
from ..logging_config import get_logger
from .structural import StructuralParser
from .tree import SyntaxTree
from .treesitter_parser import TreeSitterParser

logger = get_logger(__name__)


class SyntaxParser:
    """Parses Kotlin source into the normalized SyntaxTree.

    Attributes:
        mode: One of "auto", "tree-sitter", "structural"
    """

    def __init__(self, mode: str = "auto") -> None:
        if mode not in PARSER_MODES:
            raise ValueError(f"unknown parser mode {mode!r}")
        self.mode = mode
        self._local = threading.local()
        self._structural = StructuralParser()

    def _tree_sitter(self) -> TreeSitterParser:
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = TreeSitterParser()
            self._local.parser = parser
        return parser

    def parse(self, source: str, path: str) -> SyntaxTree:
        """Parse one file.

        Raises:
            ParseError: If the configured backend(s) cannot parse the file
        """
        if self.mode == "structural":
            return self._structural.parse(source, path)
        if self.mode == "tree-sitter":
            return self._tree_sitter().parse(source, path)

        try:
            return self._tree_sitter().parse(source, path)
        except ParseError as e:
            logger.debug(f"Falling back to structural parser for {path}: {e.reason}")
        return self._structural.parse(source, path)
