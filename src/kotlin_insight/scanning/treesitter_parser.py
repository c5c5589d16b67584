"""Tree-sitter backend: parses Kotlin and normalizes the concrete tree.

Usage:
    parser = TreeSitterParser()
    tree = parser.parse(source, "app/src/main/Foo.kt")

The node types of the tree-sitter-kotlin 1.x grammar are mapped onto
SyntaxNode kinds. Node types without a mapping are transparent: their
children are spliced into the parent, so grammar wrappers (block,
function_body, value_arguments, ...) never show up in the normalized tree.

Names are ``identifier`` nodes (the ``name`` field where the grammar sets
one); ``&&`` and ``||`` are operator tokens of a ``binary_expression``.
"""

from __future__ import annotations

import re
from typing import Any, Optional

import tree_sitter
import tree_sitter_kotlin

from ..exceptions import ParseError
from ..logging_config import get_logger
from .tree import NodeKind, Parameter, SyntaxNode, SyntaxTree

logger = get_logger(__name__)

PROVIDER_NAME = "tree-sitter"

KOTLIN_LANGUAGE = tree_sitter.Language(tree_sitter_kotlin.language())

_TYPE_DECLARATIONS = {
    "class_declaration",
    "object_declaration",
    "companion_object",
    "object_literal",
}
_TYPE_KEYWORDS = {"enum", "fun", "companion"}
_LOGICAL_OPERATORS = {"&&": NodeKind.AND, "||": NodeKind.OR}
_DOC_CONTAINERS = {"source_file", "class_body", "enum_class_body"}
_SIMPLE_CHAIN = re.compile(r"^[\w.]+$")


class TreeSitterParser:
    """Wrapper around tree-sitter for Kotlin parsing."""

    name = PROVIDER_NAME

    def __init__(self) -> None:
        self._parser = tree_sitter.Parser(KOTLIN_LANGUAGE)

    def parse_raw(self, code: bytes) -> Any:
        return self._parser.parse(code)

    def parse(self, source: str, path: str) -> SyntaxTree:
        """Parse and normalize ``source``.

        Raises:
            ParseError: If tree-sitter reports syntax errors
        """
        code = source.encode("utf-8")
        raw = self.parse_raw(code)
        if raw.root_node.has_error:
            line = _first_error_line(raw.root_node)
            logger.debug(f"tree-sitter syntax error in {path} near line {line}")
            raise ParseError(path, "tree-sitter reported syntax errors", line=line)
        root = _Normalizer(source, code).normalize(raw.root_node)
        return SyntaxTree(root=root, source=source, path=path, provider=PROVIDER_NAME)


def _first_error_line(node: Any) -> int:
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return current.start_point[0] + 1
        stack.extend(reversed(current.children))
    return 0


class _Normalizer:
    def __init__(self, source: str, code: bytes):
        self.source = source
        self.code = code
        if len(code) == len(source):
            self._char_index: Optional[list[int]] = None
        else:
            index: list[int] = []
            for pos, char in enumerate(source):
                index.extend([pos] * len(char.encode("utf-8")))
            index.append(len(source))
            self._char_index = index

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _offset(self, byte_offset: int) -> int:
        if self._char_index is None:
            return byte_offset
        return self._char_index[min(byte_offset, len(self._char_index) - 1)]

    def text(self, node: Any) -> str:
        return self.code[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def _make(self, kind: NodeKind, node: Any, **fields) -> SyntaxNode:
        fields.setdefault("line", node.start_point[0] + 1)
        return SyntaxNode(
            kind=kind,
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            start_offset=self._offset(node.start_byte),
            end_offset=self._offset(node.end_byte),
            text=self.text(node),
            **fields,
        )

    @staticmethod
    def _child(node: Any, *types: str) -> Any:
        for child in node.children:
            if child.type in types:
                return child
        return None

    @staticmethod
    def _children(node: Any, *types: str) -> list:
        return [child for child in node.children if child.type in types]

    def _name_node(self, node: Any, before: Optional[str] = None) -> Any:
        """The declaration's ``name`` field, else its last identifier before ``before``."""
        named = node.child_by_field_name("name")
        if named is not None:
            return named
        found = None
        for child in node.children:
            if before is not None and child.type == before:
                break
            if child.type == "identifier":
                found = child
                if before is None:
                    break
        return found

    def _modifiers(self, node: Any, keywords: bool = False) -> list[str]:
        mods: list[str] = []
        for child in node.children:
            if child.type == "modifiers" or child.type == "parameter_modifiers":
                for mod in child.children:
                    if mod.type == "annotation":
                        mods.append(self.text(mod).strip())
                    elif mod.is_named:
                        mods.extend(self.text(mod).split())
            elif child.type == "annotation":
                mods.append(self.text(child).strip())
            elif keywords and not child.is_named and child.type in _TYPE_KEYWORDS:
                mods.append(child.type)
        return mods

    def _doc_before(self, node: Any) -> Optional[str]:
        anchor = node
        while (
            anchor.prev_sibling is None
            and anchor.parent is not None
            and anchor.parent.type not in _DOC_CONTAINERS
        ):
            anchor = anchor.parent
        prev = anchor.prev_sibling
        if prev is not None and prev.type in ("multiline_comment", "block_comment"):
            text = self.text(prev)
            if text.startswith("/**") and text != "/**/":
                return text
        first = node.children[0] if node.children else None
        if first is not None and first.type in ("multiline_comment", "block_comment"):
            text = self.text(first)
            if text.startswith("/**"):
                return text
        return None

    # ------------------------------------------------------------------
    # dispatch
    # ------------------------------------------------------------------

    def normalize(self, root: Any) -> SyntaxNode:
        return SyntaxNode(
            kind=NodeKind.FILE,
            line=1,
            start_line=1,
            end_line=self.source.count("\n") + 1 if self.source else 0,
            end_offset=len(self.source),
            text=self.source,
            children=self.convert_children(root),
        )

    def convert_children(self, node: Any) -> list[SyntaxNode]:
        result: list[SyntaxNode] = []
        for child in node.children:
            result.extend(self.convert(child))
        return result

    def convert(self, node: Any) -> list[SyntaxNode]:
        """Convert one concrete node into zero or more normalized nodes."""
        if not node.is_named:
            return []
        handler = getattr(self, f"_convert_{node.type}", None)
        if handler is not None:
            converted = handler(node)
            return converted if isinstance(converted, list) else [converted]
        if node.type in _TYPE_DECLARATIONS:
            return [self._convert_type(node)]
        if node.type in ("line_comment", "multiline_comment", "block_comment", "modifiers"):
            return []
        return self.convert_children(node)

    # ------------------------------------------------------------------
    # headers
    # ------------------------------------------------------------------

    def _convert_package_header(self, node: Any) -> SyntaxNode:
        ident = self._child(node, "identifier", "qualified_identifier")
        name = self.text(ident) if ident is not None else ""
        return self._make(NodeKind.PACKAGE, node, name="".join(name.split()))

    def _convert_import(self, node: Any) -> SyntaxNode:
        ident = self._child(node, "qualified_identifier", "identifier")
        name = "".join(self.text(ident).split()) if ident is not None else ""
        if self.text(node).rstrip().rstrip(";").rstrip().endswith("*"):
            name += ".*"
        return self._make(NodeKind.IMPORT, node, name=name)

    # ------------------------------------------------------------------
    # declarations
    # ------------------------------------------------------------------

    def _convert_type(self, node: Any) -> SyntaxNode:
        keywords = {child.type for child in node.children if not child.is_named}
        if "interface" in keywords:
            kind = NodeKind.INTERFACE
        elif node.type == "class_declaration":
            kind = NodeKind.CLASS
        else:
            kind = NodeKind.OBJECT

        mods = self._modifiers(node, keywords=True)
        if node.type == "companion_object" and "companion" not in mods:
            mods.append("companion")

        name_node = self._name_node(node)
        name = self.text(name_node) if name_node is not None else ""
        if not name and node.type == "companion_object":
            name = "Companion"
        line = name_node.start_point[0] + 1 if name_node is not None else node.start_point[0] + 1

        params: tuple[Parameter, ...] = ()
        ctor_mods: list[str] = []
        ctor = self._child(node, "primary_constructor")
        if ctor is not None:
            params = self._class_parameters(ctor)
            ctor_mods = self._modifiers(ctor)

        supertypes = self._children(node, "delegation_specifier", "delegation_specifiers")
        type_text = ", ".join(self.text(s) for s in supertypes)

        children: list[SyntaxNode] = []
        body = self._child(node, "class_body", "enum_class_body")
        if body is not None:
            children = self._members(body)

        return self._make(
            kind,
            node,
            name=name,
            line=line,
            modifiers=tuple(mods),
            parameters=params,
            constructor_modifiers=tuple(ctor_mods),
            type_text=type_text,
            keyword="companion" if node.type == "companion_object" else "",
            doc=self._doc_before(node),
            children=children,
        )

    def _members(self, body: Any) -> list[SyntaxNode]:
        members: list[SyntaxNode] = []
        for child in body.children:
            if child.type == "enum_entry":
                # entries with bodies may declare members
                entry_body = self._child(child, "class_body")
                if entry_body is not None:
                    members.extend(self._members(entry_body))
                continue
            members.extend(self.convert(child))
        return members

    def _class_parameters(self, ctor: Any) -> tuple[Parameter, ...]:
        holder = self._child(ctor, "class_parameters") or ctor
        params = []
        for param in self._children(holder, "class_parameter"):
            name_node = self._name_node(param)
            if name_node is None:
                continue
            mods = self._modifiers(param)
            mods.extend(child.type for child in param.children if child.type in ("val", "var"))
            params.append(
                Parameter(
                    name=self.text(name_node),
                    type_text=self._type_text(param),
                    default=self._default_after(param.children, "="),
                    modifiers=tuple(mods),
                )
            )
        return tuple(params)

    def _type_text(self, node: Any) -> str:
        for child in node.children:
            if child.type in (
                "user_type", "nullable_type", "function_type", "parenthesized_type",
                "type", "non_nullable_type", "dynamic_type",
            ):
                return self.text(child)
        return ""

    def _default_after(self, nodes: list, marker: str) -> Optional[str]:
        seen = False
        for child in nodes:
            if seen and child.is_named:
                return self.text(child)
            if not child.is_named and child.type == marker:
                seen = True
        return None

    def _convert_function_declaration(self, node: Any) -> SyntaxNode:
        # receiver types are user_type nodes, so Money.plus yields "plus"
        name_node = self._name_node(node, before="function_value_parameters")
        name = self.text(name_node) if name_node is not None else ""
        line = name_node.start_point[0] + 1 if name_node is not None else node.start_point[0] + 1

        params = self._function_parameters(self._child(node, "function_value_parameters"))

        type_text = ""
        seen_params = False
        for child in node.children:
            if child.type == "function_value_parameters":
                seen_params = True
            elif seen_params and child.type not in ("function_body", "type_constraints") and child.is_named:
                type_text = self.text(child)
                break

        children: list[SyntaxNode] = []
        body = self._child(node, "function_body")
        if body is not None:
            children = self.convert_children(body)

        return self._make(
            NodeKind.FUNCTION,
            node,
            name=name,
            line=line,
            modifiers=tuple(self._modifiers(node)),
            parameters=params,
            type_text=type_text,
            doc=self._doc_before(node),
            children=children,
        )

    def _convert_anonymous_function(self, node: Any) -> SyntaxNode:
        return self._convert_function_declaration(node)

    def _function_parameters(self, node: Any) -> tuple[Parameter, ...]:
        if node is None:
            return ()
        params: list[Parameter] = []
        pending_mods: list[str] = []
        children = node.children
        for index, child in enumerate(children):
            if child.type == "parameter_modifiers":
                pending_mods = [self.text(m).strip() for m in child.children if m.is_named]
            elif child.type == "parameter":
                name_node = self._name_node(child)
                default = None
                if index + 2 < len(children) and children[index + 1].type == "=":
                    default = self.text(children[index + 2])
                params.append(
                    Parameter(
                        name=self.text(name_node) if name_node is not None else "",
                        type_text=self._type_text(child),
                        default=default,
                        modifiers=tuple(pending_mods),
                    )
                )
                pending_mods = []
        return tuple(params)

    def _convert_property_declaration(self, node: Any) -> SyntaxNode:
        keyword = next((c.type for c in node.children if c.type in ("val", "var")), "")

        name = ""
        type_text = ""
        line = node.start_point[0] + 1
        variable = self._child(node, "variable_declaration", "multi_variable_declaration")
        if variable is not None:
            if variable.type == "multi_variable_declaration":
                name = self.text(variable)
            else:
                name_node = self._name_node(variable)
                if name_node is not None:
                    name = self.text(name_node)
                    line = name_node.start_point[0] + 1
                type_text = self._type_text(variable)

        initializer = ""
        children: list[SyntaxNode] = []
        delegate = self._child(node, "property_delegate")
        if delegate is not None:
            initializer = self.text(delegate)
            children.extend(self.convert_children(delegate))
        else:
            seen_eq = False
            for child in node.children:
                if not child.is_named and child.type == "=":
                    seen_eq = True
                elif seen_eq and child.is_named:
                    initializer = self.text(child)
                    children.extend(self.convert(child))
                    break

        for accessor in self._children(node, "getter", "setter"):
            body = self._child(accessor, "function_body")
            if body is not None:
                children.extend(self.convert_children(body))

        return self._make(
            NodeKind.PROPERTY,
            node,
            name=name,
            line=line,
            modifiers=tuple(self._modifiers(node)),
            type_text=type_text,
            keyword=keyword,
            initializer=initializer,
            doc=self._doc_before(node),
            children=children,
        )

    def _convert_anonymous_initializer(self, node: Any) -> SyntaxNode:
        return self._make(NodeKind.BLOCK, node, name="init", children=self.convert_children(node))

    def _convert_secondary_constructor(self, node: Any) -> SyntaxNode:
        params = self._function_parameters(self._child(node, "function_value_parameters"))
        body: list[SyntaxNode] = []
        for child in node.children:
            if child.type not in ("function_value_parameters", "modifiers", "constructor_delegation_call"):
                body.extend(self.convert(child))
        return self._make(
            NodeKind.BLOCK,
            node,
            name="constructor",
            modifiers=tuple(self._modifiers(node)),
            parameters=params,
            children=body,
        )

    # ------------------------------------------------------------------
    # control flow
    # ------------------------------------------------------------------

    def _convert_if_expression(self, node: Any) -> SyntaxNode:
        children: list[SyntaxNode] = []
        after_else = False
        for child in node.children:
            if not child.is_named:
                after_else = after_else or child.type == "else"
                continue
            converted = self.convert(child)
            if after_else and len(converted) == 1 and converted[0].kind == NodeKind.IF:
                if _is_bare_if(child):
                    converted[0].keyword = "else if"
            children.extend(converted)
        return self._make(NodeKind.IF, node, name="if", children=children)

    def _convert_when_expression(self, node: Any) -> SyntaxNode:
        return self._make(NodeKind.WHEN, node, name="when", children=self.convert_children(node))

    def _convert_when_entry(self, node: Any) -> SyntaxNode:
        condition_parts = []
        for child in node.children:
            if child.type == "->":
                break
            if child.type != ",":
                condition_parts.append(self.text(child))
        return self._make(
            NodeKind.WHEN_BRANCH,
            node,
            name=", ".join(condition_parts),
            children=self.convert_children(node),
        )

    def _convert_for_statement(self, node: Any) -> SyntaxNode:
        return self._make(NodeKind.FOR, node, name="for", children=self.convert_children(node))

    def _convert_while_statement(self, node: Any) -> SyntaxNode:
        return self._make(NodeKind.WHILE, node, name="while", children=self.convert_children(node))

    def _convert_do_while_statement(self, node: Any) -> SyntaxNode:
        return self._make(NodeKind.DO_WHILE, node, name="do", children=self.convert_children(node))

    def _convert_try_expression(self, node: Any) -> SyntaxNode:
        return self._make(NodeKind.TRY, node, name="try", children=self.convert_children(node))

    def _convert_catch_block(self, node: Any) -> SyntaxNode:
        caught = self._type_text(node)
        name_node = self._child(node, "identifier")
        params: tuple[Parameter, ...] = ()
        if name_node is not None:
            params = (Parameter(name=self.text(name_node), type_text=caught),)
        body = []
        for child in node.children:
            if child.type not in ("identifier", "annotation") and child.is_named:
                if child.type in ("user_type", "nullable_type", "type"):
                    continue
                body.extend(self.convert(child))
        return self._make(
            NodeKind.CATCH, node, name=caught, type_text=caught, parameters=params, children=body
        )

    def _convert_finally_block(self, node: Any) -> SyntaxNode:
        return self._make(NodeKind.FINALLY, node, children=self.convert_children(node))

    def _convert_binary_expression(self, node: Any) -> list[SyntaxNode]:
        """Operands are spliced; a ``&&``/``||`` operator becomes an AND/OR node."""
        result: list[SyntaxNode] = []
        for child in node.children:
            kind = None if child.is_named else _LOGICAL_OPERATORS.get(child.type)
            if kind is not None:
                result.append(self._make(kind, child, name=child.type))
            else:
                result.extend(self.convert(child))
        return result

    # ------------------------------------------------------------------
    # expressions
    # ------------------------------------------------------------------

    def _convert_call_expression(self, node: Any) -> SyntaxNode:
        callee = node.children[0]
        children: list[SyntaxNode] = []
        name = ""
        qualifier = ""
        line = node.start_point[0] + 1
        if callee.type == "identifier":
            name = self.text(callee)
        elif callee.type == "navigation_expression":
            receiver = callee.children[0]
            member = callee.children[-1]
            if member.type == "identifier":
                name = self.text(member)
                line = member.start_point[0] + 1
            chain = "".join(self.text(receiver).split()).replace("?.", ".")
            if _SIMPLE_CHAIN.match(chain):
                qualifier = chain
            children.extend(self.convert(receiver))
        else:
            children.extend(self.convert(callee))
        for child in node.children[1:]:
            children.extend(self.convert(child))
        return self._make(
            NodeKind.CALL, node, name=name, qualifier=qualifier, line=line, children=children
        )

    def _convert_lambda_literal(self, node: Any) -> SyntaxNode:
        children: list[SyntaxNode] = []
        for child in node.children:
            if child.type != "lambda_parameters":
                children.extend(self.convert(child))
        return self._make(NodeKind.LAMBDA, node, children=children)

    def _convert_string_literal(self, node: Any) -> SyntaxNode:
        return self._make(NodeKind.STRING, node, children=self.convert_children(node))

    def _convert_multi_line_string_literal(self, node: Any) -> SyntaxNode:
        return self._convert_string_literal(node)


def _is_bare_if(node: Any) -> bool:
    """True when ``node`` is an if expression, possibly wrapped in a body node."""
    while node is not None:
        if node.type == "if_expression":
            return True
        named = [c for c in node.children if c.is_named]
        if len(named) != 1:
            return False
        node = named[0]
    return False
