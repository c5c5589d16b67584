"""Kotlin file discovery and parsing into a normalized syntax tree."""

from .discovery import FileDiscovery, classify_layer, discover, glob_to_regex, is_test_path
from .parser import SyntaxParser
from .structural import StructuralParser
from .tree import NodeKind, Parameter, SyntaxNode, SyntaxTree
from .treesitter_parser import TreeSitterParser
from .visitor import SyntaxVisitor

__all__ = [
    "FileDiscovery",
    "discover",
    "classify_layer",
    "glob_to_regex",
    "is_test_path",
    "SyntaxParser",
    "StructuralParser",
    "TreeSitterParser",
    "NodeKind",
    "Parameter",
    "SyntaxNode",
    "SyntaxTree",
    "SyntaxVisitor",
]
