"""Structural Kotlin parser.

A brace-aware tokenizer plus a small recursive-descent parser that
recognizes declarations and control flow without a full grammar. It is
used when tree-sitter reports syntax errors, or directly when configured
with ``parser = "structural"``.

Unlike a line-based regex scanner it understands string templates, raw
strings, nested block comments and bracket nesting, so braces inside
literals or comments never skew nesting. Malformed input (unbalanced
brackets, unterminated strings or comments) raises ParseError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ..exceptions import ParseError
from .tree import NodeKind, Parameter, SyntaxNode, SyntaxTree

PROVIDER_NAME = "structural"

MODIFIER_KEYWORDS = frozenset(
    {
        "public", "private", "protected", "internal",
        "abstract", "open", "final", "override",
        "data", "sealed", "enum", "inner", "value", "annotation", "companion",
        "inline", "suspend", "operator", "infix", "tailrec", "external",
        "const", "lateinit", "expect", "actual",
        "noinline", "crossinline", "vararg", "reified",
    }
)

_OPERATORS = (
    "===", "!==", "..<",
    "?.", "?:", "::", "->", "&&", "||", "==", "!=", "<=", ">=",
    "+=", "-=", "*=", "/=", "%=", "++", "--", "..", "!!",
)
_SINGLE_CHAR_OPS = frozenset("{}()[]<>,.;:=+-*/%!?&|^~#$")

# A statement continues onto the next line after these tokens...
_CONTINUE_AFTER = frozenset(
    {
        "=", ",", "(", "[", ".", "?.", "->", "&&", "||", "+", "-", "*", "/", "%",
        "?:", ":", "==", "!=", "===", "!==", "<=", ">=", "..", "..<",
        "+=", "-=", "*=", "/=", "%=", "::",
    }
)
# ...or when the next line starts with one of these.
_CONTINUE_BEFORE = frozenset({".", "?.", "?:", "&&", "||"})
_STOP_KEYWORDS = frozenset({"else", "catch", "finally"})
_NOT_CALLABLE = frozenset({"return", "throw", "in", "is", "as", "else", "by", "out"})
_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}

_IDENT_RE = re.compile(r"[^\W\d]\w*")
_NUMBER_RE = re.compile(
    r"0[xXbB][0-9a-fA-F_]+[uUL]*|\d[\d_]*(?:\.\d[\d_]*)?(?:[eE][+-]?\d+)?[fFdDuUL]*"
)
_ANNOTATION_RE = re.compile(
    r"@(?:(?:field|file|property|get|set|receiver|param|setparam|delegate):)?[^\W\d][\w.]*"
)


@dataclass(frozen=True)
class Token:
    kind: str  # ident, string, number, char, op, annotation, doc
    value: str
    start: int
    end: int
    line: int
    end_line: int


class _Lexer:
    """Turns Kotlin source into tokens, dropping whitespace and non-KDoc comments."""

    def __init__(self, source: str, path: str):
        self.src = source
        self.path = path
        self.tokens: list[Token] = []
        self.line = 1

    def run(self) -> list[Token]:
        src = self.src
        n = len(src)
        i = 0
        while i < n:
            c = src[i]
            if c == "\n":
                self.line += 1
                i += 1
            elif c in " \t\r\f\ufeff":
                i += 1
            elif src.startswith("//", i):
                j = src.find("\n", i)
                i = n if j == -1 else j
            elif src.startswith("/*", i):
                j = self._skip_block_comment(i)
                text = src[i:j]
                if text.startswith("/**") and text != "/**/":
                    self._emit("doc", i, j)
                else:
                    self.line += text.count("\n")
                i = j
            elif src.startswith('"""', i):
                self._emit("string", i, self._scan_raw_string(i))
                i = self.tokens[-1].end
            elif c == '"':
                self._emit("string", i, self._scan_string(i))
                i = self.tokens[-1].end
            elif c == "'":
                self._emit("char", i, self._scan_char(i))
                i = self.tokens[-1].end
            elif c == "`":
                j = src.find("`", i + 1)
                if j == -1 or "\n" in src[i:j]:
                    self._fail("unterminated backtick identifier")
                self.tokens.append(Token("ident", src[i + 1 : j], i, j + 1, self.line, self.line))
                i = j + 1
            elif c == "@":
                i = self._scan_at(i)
            elif "0" <= c <= "9":
                m = _NUMBER_RE.match(src, i)
                self._emit("number", i, m.end())
                i = m.end()
            else:
                m = _IDENT_RE.match(src, i)
                if m:
                    self._emit("ident", i, m.end())
                    i = m.end()
                    continue
                for op in _OPERATORS:
                    if src.startswith(op, i):
                        self._emit("op", i, i + len(op))
                        i += len(op)
                        break
                else:
                    if c in _SINGLE_CHAR_OPS:
                        self._emit("op", i, i + 1)
                    i += 1
        return self.tokens

    def _emit(self, kind: str, start: int, end: int) -> None:
        value = self.src[start:end]
        end_line = self.line + value.count("\n")
        self.tokens.append(Token(kind, value, start, end, self.line, end_line))
        self.line = end_line

    def _fail(self, reason: str) -> None:
        raise ParseError(self.path, reason, line=self.line)

    def _scan_at(self, i: int) -> int:
        src = self.src
        if i > 0 and (src[i - 1].isalnum() or src[i - 1] == "_"):
            # label: loop@ for, return@forEach
            m = _IDENT_RE.match(src, i + 1)
            return m.end() if m else i + 1
        m = _ANNOTATION_RE.match(src, i)
        if m:
            self._emit("annotation", i, m.end())
            return m.end()
        return i + 1

    def _skip_block_comment(self, i: int) -> int:
        depth = 0
        j = i
        n = len(self.src)
        while j < n:
            if self.src.startswith("/*", j):
                depth += 1
                j += 2
            elif self.src.startswith("*/", j):
                depth -= 1
                j += 2
                if depth == 0:
                    return j
            else:
                j += 1
        self._fail("unterminated block comment")
        return n

    def _scan_string(self, i: int) -> int:
        src = self.src
        j = i + 1
        n = len(src)
        while j < n:
            ch = src[j]
            if ch == "\\":
                j += 2
            elif ch == '"':
                return j + 1
            elif ch == "\n":
                break
            elif src.startswith("${", j):
                j = self._scan_template(j + 2)
            else:
                j += 1
        self._fail("unterminated string literal")
        return n

    def _scan_raw_string(self, i: int) -> int:
        src = self.src
        j = i + 3
        n = len(src)
        while j < n:
            if src.startswith('"""', j):
                j += 3
                while j < n and src[j] == '"':
                    j += 1
                return j
            if src.startswith("${", j):
                j = self._scan_template(j + 2)
            else:
                j += 1
        self._fail("unterminated raw string literal")
        return n

    def _scan_template(self, j: int) -> int:
        """Skip a ``${...}`` template body; ``j`` points just past ``${``."""
        src = self.src
        depth = 1
        n = len(src)
        while j < n:
            if src.startswith('"""', j):
                j = self._scan_raw_string(j)
            elif src[j] == '"':
                j = self._scan_string(j)
            elif src[j] == "'":
                j = self._scan_char(j)
            elif src[j] == "{":
                depth += 1
                j += 1
            elif src[j] == "}":
                depth -= 1
                j += 1
                if depth == 0:
                    return j
            else:
                j += 1
        self._fail("unterminated string template")
        return n

    def _scan_char(self, i: int) -> int:
        src = self.src
        j = i + 1
        if j < len(src) and src[j] == "\\":
            j += 2
        else:
            j += 1
        close = src.find("'", j)
        if close == -1 or close - i > 10 or "\n" in src[i:close]:
            self._fail("unterminated character literal")
        return close + 1


def tokenize(source: str, path: str = "<string>") -> list[Token]:
    return _Lexer(source, path).run()


def _match_brackets(tokens: list[Token], path: str) -> dict[int, int]:
    """Map each opening bracket index to its closing index (and back)."""
    pairs: dict[int, int] = {}
    stack: list[int] = []
    for idx, tok in enumerate(tokens):
        if tok.kind != "op":
            continue
        if tok.value in _OPENERS:
            stack.append(idx)
        elif tok.value in _CLOSERS:
            if not stack or tokens[stack[-1]].value != _CLOSERS[tok.value]:
                raise ParseError(path, f"unbalanced '{tok.value}'", line=tok.line)
            open_idx = stack.pop()
            pairs[open_idx] = idx
            pairs[idx] = open_idx
    if stack:
        tok = tokens[stack[-1]]
        raise ParseError(path, f"unclosed '{tok.value}'", line=tok.line)
    return pairs


class StructuralParser:
    """Parses Kotlin source into a SyntaxTree without tree-sitter.

    Usage:
        tree = StructuralParser().parse(source, "app/src/Foo.kt")
    """

    name = PROVIDER_NAME

    def parse(self, source: str, path: str) -> SyntaxTree:
        tokens = tokenize(source, path)
        pairs = _match_brackets(tokens, path)
        root = _Parser(source, tokens, pairs).parse_file()
        return SyntaxTree(root=root, source=source, path=path, provider=PROVIDER_NAME)


class _Parser:
    def __init__(self, source: str, tokens: list[Token], pairs: dict[int, int]):
        self.src = source
        self.toks = tokens
        self.pairs = pairs

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _value(self, i: int, end: int) -> str:
        return self.toks[i].value if i < end else ""

    def _node(self, kind: NodeKind, first: int, last: int, **fields) -> SyntaxNode:
        first_tok = self.toks[first]
        last_tok = self.toks[max(first, last)]
        fields.setdefault("line", first_tok.line)
        return SyntaxNode(
            kind=kind,
            start_line=first_tok.line,
            end_line=last_tok.end_line,
            start_offset=first_tok.start,
            end_offset=last_tok.end,
            text=self.src[first_tok.start : last_tok.end],
            **fields,
        )

    def _slice(self, first: int, stop: int) -> str:
        """Source text of tokens ``first`` up to (excluding) ``stop``."""
        if stop <= first:
            return ""
        return self.src[self.toks[first].start : self.toks[stop - 1].end]

    def _skip_group(self, i: int) -> int:
        return self.pairs[i] + 1

    def _is_open(self, i: int) -> bool:
        tok = self.toks[i]
        return tok.kind == "op" and tok.value in _OPENERS

    def _skip_type_params(self, i: int, end: int) -> int:
        if self._value(i, end) != "<":
            return i
        depth = 0
        j = i
        while j < end:
            v = self.toks[j].value
            if self._is_open(j) and v != "{":
                j = self._skip_group(j)
                continue
            if v == "<":
                depth += 1
            elif v == ">":
                depth -= 1
                if depth == 0:
                    return j + 1
            elif v in ("{", "}", ";", "=") or self.toks[j].kind == "string":
                return i
            j += 1
        return i

    def _breaks(self, i: int) -> bool:
        """True when a statement boundary lies between tokens i-1 and i."""
        prev = self.toks[i - 1]
        tok = self.toks[i]
        if tok.line <= prev.end_line:
            return False
        if prev.kind == "op" and prev.value in _CONTINUE_AFTER:
            return False
        if prev.kind == "ident" and prev.value in ("as", "is", "in", "by"):
            return False
        if tok.kind == "op" and tok.value in _CONTINUE_BEFORE:
            return False
        return True

    # ------------------------------------------------------------------
    # declarations
    # ------------------------------------------------------------------

    def parse_file(self) -> SyntaxNode:
        children = self._parse_body(0, len(self.toks), member=True)
        end_line = self.src.count("\n") + 1 if self.src else 0
        return SyntaxNode(
            kind=NodeKind.FILE,
            line=1,
            start_line=1,
            end_line=end_line,
            end_offset=len(self.src),
            text=self.src,
            children=children,
        )

    def _parse_body(
        self, i: int, end: int, member: bool, enum_body: bool = False
    ) -> list[SyntaxNode]:
        nodes: list[SyntaxNode] = []
        if enum_body:
            i = self._skip_enum_entries(i, end)
        while i < end:
            if self.toks[i].value == ";":
                i += 1
                continue
            decl = self._parse_declaration(i, end, member)
            if decl is not None:
                node, j = decl
                if node is not None:
                    nodes.append(node)
            else:
                parsed, j = self._parse_expression(i, end)
                nodes.extend(parsed)
            i = max(j, i + 1)
        return nodes

    def _skip_enum_entries(self, i: int, end: int) -> int:
        j = i
        while j < end:
            if self._is_open(j):
                j = self._skip_group(j)
                continue
            if self.toks[j].value == ";":
                return j + 1
            j += 1
        return j if self._looks_like_entries_only(i, end) else i

    def _looks_like_entries_only(self, i: int, end: int) -> bool:
        for j in range(i, end):
            if self.toks[j].value in ("fun", "val", "var", "class", "object"):
                return False
        return True

    def _collect_modifiers(self, i: int, end: int) -> tuple[list[str], int]:
        mods: list[str] = []
        while i < end:
            tok = self.toks[i]
            if tok.kind == "doc":
                i += 1
                continue
            if tok.kind == "annotation":
                j = i + 1
                text_end = tok.end
                if j < end and self.toks[j].value == "(" and self.toks[j].start == tok.end:
                    close = self.pairs[j]
                    text_end = self.toks[close].end
                    j = close + 1
                mods.append(self.src[tok.start : text_end])
                i = j
                continue
            if tok.kind == "ident" and tok.value in MODIFIER_KEYWORDS and i + 1 < end:
                nxt = self.toks[i + 1]
                if nxt.kind in ("ident", "annotation") and nxt.line == tok.line:
                    mods.append(tok.value)
                    i += 1
                    continue
            break
        return mods, i

    def _parse_declaration(
        self, i: int, end: int, member: bool
    ) -> Optional[tuple[Optional[SyntaxNode], int]]:
        doc = None
        while i < end and self.toks[i].kind == "doc":
            doc = self.toks[i].value
            i += 1
        if i >= end:
            return None, i
        mods, j = self._collect_modifiers(i, end)
        if j >= end or self.toks[j].kind != "ident":
            return None
        v = self.toks[j].value
        nxt = self._value(j + 1, end)

        if v in ("class", "interface", "object"):
            return self._parse_class(i, j, end, mods, doc)
        if v == "fun":
            if nxt == "interface":
                return self._parse_class(i, j + 1, end, mods + ["fun"], doc)
            return self._parse_function(i, j, end, mods, doc)
        if v in ("val", "var"):
            return self._parse_property(i, j, end, mods, doc, member)
        if v in ("package", "import") and not mods:
            return self._parse_header(j, end)
        if v == "typealias":
            k = j + 1
            while k < end and self.toks[k].line == self.toks[j].line:
                k = self._skip_group(k) if self._is_open(k) else k + 1
            return None, k
        if v == "init" and nxt == "{":
            close = self.pairs[j + 1]
            body = self._parse_body(j + 2, close, member=False)
            return self._node(NodeKind.BLOCK, i, close, name="init", children=body), close + 1
        if v == "constructor" and nxt == "(" and member:
            params = self._parse_parameters(j + 1)
            k = self.pairs[j + 1] + 1
            if self._value(k, end) == ":":
                k += 1
                while k < end and self.toks[k].value != "{" and not self._breaks(k):
                    k = self._skip_group(k) if self._is_open(k) else k + 1
            body: list[SyntaxNode] = []
            if self._value(k, end) == "{":
                close = self.pairs[k]
                body = self._parse_body(k + 1, close, member=False)
                k = close + 1
            node = self._node(
                NodeKind.BLOCK, i, k - 1, name="constructor", modifiers=tuple(mods),
                parameters=params, children=body,
            )
            return node, k
        return None

    def _parse_header(self, j: int, end: int) -> tuple[SyntaxNode, int]:
        kind = NodeKind.PACKAGE if self.toks[j].value == "package" else NodeKind.IMPORT
        line = self.toks[j].line
        k = j + 1
        parts: list[str] = []
        while k < end and self.toks[k].line == line and self.toks[k].value != ";":
            if self.toks[k].value == "as":
                k += 2
                break
            parts.append(self.toks[k].value)
            k += 1
        return self._node(kind, j, k - 1, name="".join(parts)), k

    def _parse_class(
        self, first: int, kw: int, end: int, mods: list[str], doc: Optional[str]
    ) -> tuple[SyntaxNode, int]:
        keyword = self.toks[kw].value
        kind = {
            "class": NodeKind.CLASS,
            "interface": NodeKind.INTERFACE,
            "object": NodeKind.OBJECT,
        }[keyword]
        j = kw + 1
        name = ""
        line = self.toks[kw].line
        if j < end and self.toks[j].kind == "ident" and self.toks[j].value != "constructor":
            name = self.toks[j].value
            line = self.toks[j].line
            j += 1
        if not name and "companion" in mods:
            name = "Companion"
        j = self._skip_type_params(j, end)

        params: tuple[Parameter, ...] = ()
        ctor_mods: list[str] = []
        k_mods, k = self._collect_modifiers(j, end)
        explicit_ctor = self._value(k, end) == "constructor"
        if explicit_ctor:
            k += 1
        if self._value(k, end) == "(" and (explicit_ctor or k == j):
            params = self._parse_parameters(k)
            ctor_mods = k_mods
            j = self.pairs[k] + 1

        type_text = ""
        if self._value(j, end) == ":":
            start = j + 1
            j = self._scan_supertypes(start, end)
            type_text = self._slice(start, j)

        children: list[SyntaxNode] = []
        last = j - 1
        if self._value(j, end) == "{":
            close = self.pairs[j]
            children = self._parse_body(j + 1, close, member=True, enum_body="enum" in mods)
            last = close
            j = close + 1
        node = self._node(
            kind,
            first,
            last,
            name=name,
            line=line,
            modifiers=tuple(mods),
            parameters=params,
            constructor_modifiers=tuple(ctor_mods),
            type_text=type_text,
            keyword="companion" if "companion" in mods else "",
            doc=doc,
            children=children,
        )
        return node, j

    def _scan_supertypes(self, j: int, end: int) -> int:
        start = j
        while j < end:
            tok = self.toks[j]
            if tok.value in ("{", "}", ";"):
                break
            if j > start and self._breaks(j):
                break
            if self._is_open(j):
                j = self._skip_group(j)
                continue
            j += 1
        return j

    def _scan_type(self, j: int, end: int) -> int:
        start = j
        angle = 0
        while j < end:
            tok = self.toks[j]
            v = tok.value
            if j > start and angle == 0 and self._breaks(j) and v != "->":
                break
            if tok.kind == "string":
                break
            if v == "<":
                angle += 1
            elif v == ">":
                angle -= 1
                if angle < 0:
                    break
            elif v in ("(", "["):
                j = self._skip_group(j)
                continue
            elif angle == 0 and (
                v in ("{", "}", "=", ")", "]", ";", ",") or v in ("by", "where", "get", "set")
            ):
                break
            j += 1
        return j

    def _parse_function(
        self, first: int, kw: int, end: int, mods: list[str], doc: Optional[str]
    ) -> tuple[SyntaxNode, int]:
        j = self._skip_type_params(kw + 1, end)
        name = ""
        line = self.toks[kw].line
        while j < end and self.toks[j].value != "(":
            tok = self.toks[j]
            if tok.value in ("{", "}", "=", ";"):
                break
            if tok.value == "<":
                nxt = self._skip_type_params(j, end)
                j = nxt if nxt > j else j + 1
                continue
            if tok.kind == "ident":
                name = tok.value
                line = tok.line
            j += 1

        params: tuple[Parameter, ...] = ()
        if self._value(j, end) == "(":
            params = self._parse_parameters(j)
            j = self.pairs[j] + 1

        type_text = ""
        if self._value(j, end) == ":":
            start = j + 1
            j = self._scan_type(start, end)
            type_text = self._slice(start, j)
        if self._value(j, end) == "where":
            j = self._scan_type(j + 1, end)

        children: list[SyntaxNode] = []
        last = j - 1
        if self._value(j, end) == "{":
            close = self.pairs[j]
            children = self._parse_body(j + 1, close, member=False)
            last = close
            j = close + 1
        elif self._value(j, end) == "=":
            children, j = self._parse_expression(j + 1, end)
            last = j - 1
        node = self._node(
            NodeKind.FUNCTION,
            first,
            last,
            name=name,
            line=line,
            modifiers=tuple(mods),
            parameters=params,
            type_text=type_text,
            doc=doc,
            children=children,
        )
        return node, j

    def _parse_property(
        self, first: int, kw: int, end: int, mods: list[str], doc: Optional[str], member: bool
    ) -> tuple[SyntaxNode, int]:
        keyword = self.toks[kw].value
        j = self._skip_type_params(kw + 1, end)
        name = ""
        line = self.toks[kw].line
        if self._value(j, end) == "(":
            close = self.pairs[j]
            name = self._slice(j, close + 1)
            j = close + 1
        elif j < end and self.toks[j].kind == "ident":
            name = self.toks[j].value
            line = self.toks[j].line
            j += 1
            # extension receiver: val String.isBlankish
            while (
                self._value(j, end) in (".", "?.")
                and j + 1 < end
                and self.toks[j + 1].kind == "ident"
            ):
                name = self.toks[j + 1].value
                j += 2

        type_text = ""
        if self._value(j, end) == ":":
            start = j + 1
            j = self._scan_type(start, end)
            type_text = self._slice(start, j)

        children: list[SyntaxNode] = []
        initializer = ""
        last = j - 1
        if self._value(j, end) in ("=", "by"):
            delegated = self.toks[j].value == "by"
            start = j + 1
            children, j = self._parse_expression(start, end)
            initializer = self._slice(start, j)
            if delegated:
                initializer = f"by {initializer}"
            last = j - 1

        if member:
            while True:
                acc_mods, k = self._collect_modifiers(j, end)
                acc = self._value(k, end)
                if acc not in ("get", "set"):
                    break
                follow = self._value(k + 1, end)
                if not acc_mods and follow not in ("(", "=", "{"):
                    break
                k += 1
                if self._value(k, end) == "(":
                    k = self._skip_group(k)
                if self._value(k, end) == ":":
                    k = self._scan_type(k + 1, end)
                if self._value(k, end) == "{":
                    close = self.pairs[k]
                    children.extend(self._parse_body(k + 1, close, member=False))
                    k = close + 1
                elif self._value(k, end) == "=":
                    nodes, k = self._parse_expression(k + 1, end)
                    children.extend(nodes)
                last = k - 1
                j = k

        node = self._node(
            NodeKind.PROPERTY,
            first,
            last,
            name=name,
            line=line,
            modifiers=tuple(mods),
            type_text=type_text,
            keyword=keyword,
            initializer=initializer,
            doc=doc,
            children=children,
        )
        return node, j

    def _parse_parameters(self, open_idx: int) -> tuple[Parameter, ...]:
        close = self.pairs[open_idx]
        params: list[Parameter] = []
        j = open_idx + 1
        while j < close:
            seg_end = self._segment_end(j, close)
            param = self._parse_parameter(j, seg_end)
            if param is not None:
                params.append(param)
            j = seg_end + 1
        return tuple(params)

    def _segment_end(self, j: int, close: int) -> int:
        angle = 0
        seen_default = False
        while j < close:
            v = self.toks[j].value
            if self._is_open(j):
                j = self._skip_group(j)
                continue
            if v == "=":
                seen_default = True
            elif not seen_default and v == "<":
                angle += 1
            elif not seen_default and v == ">":
                angle = max(0, angle - 1)
            elif v == "," and angle == 0:
                return j
            j += 1
        return close

    def _parse_parameter(self, j: int, end: int) -> Optional[Parameter]:
        mods, k = self._collect_modifiers(j, end)
        while self._value(k, end) in ("val", "var"):
            mods.append(self.toks[k].value)
            k += 1
        if k >= end or self.toks[k].kind != "ident":
            return None
        name = self.toks[k].value
        k += 1
        type_text = ""
        default = None
        if self._value(k, end) == ":":
            start = k + 1
            k = start
            while k < end and self.toks[k].value != "=":
                k = self._skip_group(k) if self._is_open(k) else k + 1
            type_text = self._slice(start, k)
        if self._value(k, end) == "=":
            default = self._slice(k + 1, end)
        return Parameter(name=name, type_text=type_text, default=default, modifiers=tuple(mods))

    # ------------------------------------------------------------------
    # expressions and control flow
    # ------------------------------------------------------------------

    def _parse_expression(self, i: int, end: int) -> tuple[list[SyntaxNode], int]:
        """Parse one statement/expression; return its nodes and the next index."""
        nodes: list[SyntaxNode] = []
        start = i
        while i < end:
            tok = self.toks[i]
            if i > start and self._breaks(i):
                break
            if tok.value == ";" and tok.kind == "op":
                break
            if i > start and tok.kind == "ident" and tok.value in _STOP_KEYWORDS:
                break
            parsed, i = self._parse_primary(i, end)
            nodes.extend(parsed)
        return nodes, i

    def _parse_group(self, i: int, end: int) -> list[SyntaxNode]:
        nodes: list[SyntaxNode] = []
        while i < end:
            parsed, j = self._parse_expression(i, end)
            nodes.extend(parsed)
            i = max(j, i + 1)
        return nodes

    def _parse_primary(self, i: int, end: int) -> tuple[list[SyntaxNode], int]:
        tok = self.toks[i]
        v = tok.value
        if tok.kind == "ident":
            if v == "if":
                node, j = self._parse_if(i, end)
                return [node], j
            if v == "when":
                return self._parse_when(i, end)
            if v == "try":
                return self._parse_try(i, end)
            if v in ("for", "while") and self._value(i + 1, end) == "(":
                return self._parse_loop(i, end)
            if v == "do" and self._value(i + 1, end) == "{":
                return self._parse_do_while(i, end)
            if v in ("object", "fun", "val", "var"):
                decl = self._parse_declaration(i, end, member=False)
                if decl is not None and decl[0] is not None:
                    return [decl[0]], decl[1]
            return self._maybe_call(i, end)
        if tok.kind == "string":
            return [self._node(NodeKind.STRING, i, i, name="")], i + 1
        if tok.kind == "op":
            if v == "&&":
                return [self._node(NodeKind.AND, i, i, name=v)], i + 1
            if v == "||":
                return [self._node(NodeKind.OR, i, i, name=v)], i + 1
            if v == "{":
                node, j = self._parse_lambda(i)
                return [node], j
            if v in ("(", "["):
                close = self.pairs[i]
                return self._parse_group(i + 1, close), close + 1
        return [], i + 1

    def _maybe_call(self, i: int, end: int) -> tuple[list[SyntaxNode], int]:
        tok = self.toks[i]
        if tok.value in _NOT_CALLABLE:
            return [], i + 1
        j = i + 1
        if self._value(j, end) == "<":
            after = self._skip_type_params(j, end)
            if after > j and self._value(after, end) == "(":
                j = after
        nxt = self._value(j, end)
        same_line = j < end and self.toks[j].line == self.toks[j - 1].end_line
        if not (same_line and nxt in ("(", "{")):
            return [], i + 1

        first = i
        parts: list[str] = []
        k = i - 1
        while k >= 1 and self.toks[k].value in (".", "?.") and self.toks[k - 1].kind == "ident":
            parts.insert(0, self.toks[k - 1].value)
            first = k - 1
            k -= 2

        children: list[SyntaxNode] = []
        if nxt == "(":
            close = self.pairs[j]
            children.extend(self._parse_group(j + 1, close))
            j = close + 1
        while (
            j < end
            and self.toks[j].value == "{"
            and self.toks[j].line == self.toks[j - 1].end_line
        ):
            lam, j = self._parse_lambda(j)
            children.append(lam)
        node = self._node(
            NodeKind.CALL, first, j - 1, name=tok.value, line=tok.line,
            qualifier=".".join(parts), children=children,
        )
        return [node], j

    def _parse_lambda(self, open_idx: int) -> tuple[SyntaxNode, int]:
        close = self.pairs[open_idx]
        body_start = open_idx + 1
        k = body_start
        while k < close:
            tok = self.toks[k]
            if tok.value == "->":
                body_start = k + 1
                break
            if tok.value == "(":
                k = self._skip_group(k)
                continue
            if tok.kind != "ident" and tok.value not in (",", ":", "<", ">", ".", "?"):
                break
            k += 1
        children = self._parse_body(body_start, close, member=False)
        return self._node(NodeKind.LAMBDA, open_idx, close, children=children), close + 1

    def _parse_branch(self, j: int, end: int) -> tuple[list[SyntaxNode], int]:
        if self._value(j, end) == "{":
            close = self.pairs[j]
            return self._parse_body(j + 1, close, member=False), close + 1
        if j >= end or self.toks[j].value == ";":
            return [], j
        return self._parse_expression(j, end)

    def _parse_if(self, i: int, end: int) -> tuple[SyntaxNode, int]:
        j = i + 1
        children: list[SyntaxNode] = []
        if self._value(j, end) == "(":
            close = self.pairs[j]
            children.extend(self._parse_group(j + 1, close))
            j = close + 1
        branch, j = self._parse_branch(j, end)
        children.extend(branch)
        k = j
        while self._value(k, end) == ";":
            k += 1
        if self._value(k, end) == "else":
            j = k + 1
            if self._value(j, end) == "if":
                nested, j = self._parse_if(j, end)
                nested.keyword = "else if"
                children.append(nested)
            else:
                branch, j = self._parse_branch(j, end)
                children.extend(branch)
        return self._node(NodeKind.IF, i, j - 1, name="if", children=children), j

    def _parse_when(self, i: int, end: int) -> tuple[list[SyntaxNode], int]:
        j = i + 1
        children: list[SyntaxNode] = []
        if self._value(j, end) == "(":
            close = self.pairs[j]
            children.extend(self._parse_group(j + 1, close))
            j = close + 1
        if self._value(j, end) != "{":
            return [], i + 1
        close = self.pairs[j]
        children.extend(self._parse_when_branches(j + 1, close))
        j = close + 1
        return [self._node(NodeKind.WHEN, i, close, name="when", children=children)], j

    def _parse_when_branches(self, i: int, end: int) -> list[SyntaxNode]:
        branches: list[SyntaxNode] = []
        while i < end:
            if self.toks[i].value == ";":
                i += 1
                continue
            arrow = i
            while arrow < end and self.toks[arrow].value != "->":
                arrow = self._skip_group(arrow) if self._is_open(arrow) else arrow + 1
            if arrow >= end:
                break
            condition = self._slice(i, arrow)
            nodes = self._parse_group(i, arrow)
            body, j = self._parse_branch(arrow + 1, end)
            nodes.extend(body)
            j = max(j, arrow + 1)
            branches.append(
                self._node(NodeKind.WHEN_BRANCH, i, j - 1, name=condition, children=nodes)
            )
            i = j
        return branches

    def _parse_try(self, i: int, end: int) -> tuple[list[SyntaxNode], int]:
        j = i + 1
        children: list[SyntaxNode] = []
        if self._value(j, end) != "{":
            return [], i + 1
        close = self.pairs[j]
        children.extend(self._parse_body(j + 1, close, member=False))
        j = close + 1
        while True:
            v = self._value(j, end)
            if v == "catch":
                start = j
                k = j + 1
                params: tuple[Parameter, ...] = ()
                if self._value(k, end) == "(":
                    params = self._parse_parameters(k)
                    k = self.pairs[k] + 1
                body, k = self._parse_branch(k, end)
                caught = params[0].type_text if params else ""
                children.append(
                    self._node(
                        NodeKind.CATCH, start, k - 1, name=caught, type_text=caught,
                        parameters=params, children=body,
                    )
                )
                j = k
            elif v == "finally":
                start = j
                body, k = self._parse_branch(j + 1, end)
                children.append(self._node(NodeKind.FINALLY, start, k - 1, children=body))
                j = k
            else:
                break
        return [self._node(NodeKind.TRY, i, j - 1, name="try", children=children)], j

    def _parse_loop(self, i: int, end: int) -> tuple[list[SyntaxNode], int]:
        kind = NodeKind.FOR if self.toks[i].value == "for" else NodeKind.WHILE
        close = self.pairs[i + 1]
        children = self._parse_group(i + 2, close)
        body, j = self._parse_branch(close + 1, end)
        children.extend(body)
        j = max(j, close + 1)
        return [self._node(kind, i, j - 1, name=self.toks[i].value, children=children)], j

    def _parse_do_while(self, i: int, end: int) -> tuple[list[SyntaxNode], int]:
        close = self.pairs[i + 1]
        children = self._parse_body(i + 2, close, member=False)
        j = close + 1
        if self._value(j, end) == "while" and self._value(j + 1, end) == "(":
            cond_close = self.pairs[j + 1]
            children.extend(self._parse_group(j + 2, cond_close))
            j = cond_close + 1
        return [self._node(NodeKind.DO_WHILE, i, j - 1, name="do", children=children)], j
