"""Tests for the structural Kotlin parser."""

import pytest

from kotlin_insight.exceptions import ParseError
from kotlin_insight.scanning.structural import StructuralParser, tokenize
from kotlin_insight.scanning.tree import NodeKind


def parse(source):
    return StructuralParser().parse(source, "Sample.kt")


class TestTokenizer:
    def test_comments_dropped_kdoc_kept(self):
        tokens = tokenize("// line\n/* block /* nested */ */\n/** Doc. */\nval x = 1\n")
        kinds = [t.kind for t in tokens]
        assert kinds[0] == "doc"
        assert tokens[0].value == "/** Doc. */"
        assert tokens[1].value == "val"
        assert tokens[1].line == 4

    def test_braces_inside_strings_are_literal(self):
        tokens = tokenize('val s = "{ ${user.name} }"\n')
        assert [t.kind for t in tokens] == ["ident", "ident", "op", "string"]

    def test_raw_string_spans_lines(self):
        tokens = tokenize('val q = """\nSELECT *\nFROM meals\n"""\nval y = 2\n')
        raw = [t for t in tokens if t.kind == "string"][0]
        assert raw.line == 1
        assert raw.end_line == 4
        assert tokens[-3].line == 5

    def test_label_is_not_annotation(self):
        tokens = tokenize("return@forEach\n")
        assert all(t.kind != "annotation" for t in tokens)


class TestMalformedInput:
    def test_unclosed_brace(self):
        with pytest.raises(ParseError) as exc:
            parse("fun a() {\n    b()\n")
        assert exc.value.line == 1

    def test_unbalanced_closer(self):
        with pytest.raises(ParseError, match="Sample.kt"):
            parse("fun a() }\n")

    def test_unterminated_string(self):
        with pytest.raises(ParseError) as exc:
            parse('val s = "abc\nval t = 1\n')
        assert "unterminated string" in exc.value.reason

    def test_unterminated_block_comment(self):
        with pytest.raises(ParseError):
            parse("/* never closed\nfun a() {}\n")


class TestHeaders:
    def test_package_and_imports(self):
        tree = parse(
            "package com.example.data\n"
            "\n"
            "import android.content.Context\n"
            "import kotlinx.coroutines.flow.Flow as KFlow\n"
        )
        assert tree.package == "com.example.data"
        assert tree.imports == ["android.content.Context", "kotlinx.coroutines.flow.Flow"]
        assert tree.provider == "structural"


class TestDeclarations:
    def test_class_with_inject_constructor(self):
        tree = parse(
            "@HiltViewModel\n"
            "class MealViewModel @Inject constructor(\n"
            "    private val repo: MealRepository,\n"
            "    id: Long = 0L,\n"
            ") : ViewModel() {\n"
            "    val state = MutableStateFlow(0)\n"
            "}\n"
        )
        cls = tree.types()[0]
        assert cls.kind == NodeKind.CLASS
        assert cls.name == "MealViewModel"
        assert cls.line == 2
        assert cls.has_annotation("HiltViewModel")
        assert cls.constructor_modifiers == ("@Inject",)
        assert [p.name for p in cls.parameters] == ["repo", "id"]
        assert cls.parameters[0].modifiers == ("private", "val")
        assert cls.parameters[0].type_text == "MealRepository"
        assert cls.parameters[1].default == "0L"
        assert cls.type_text == "ViewModel()"

        prop = next(cls.iter_children(NodeKind.PROPERTY))
        assert prop.name == "state"
        assert prop.keyword == "val"
        assert prop.initializer == "MutableStateFlow(0)"

    def test_function_signature(self):
        tree = parse(
            "/** Loads one meal. */\n"
            "suspend fun load(id: Long, name: String = \"x\"): Result<Meal> {\n"
            "    return repo.find(id)\n"
            "}\n"
        )
        fn = tree.functions()[0]
        assert fn.name == "load"
        assert fn.has_modifier("suspend")
        assert fn.doc == "/** Loads one meal. */"
        assert fn.type_text == "Result<Meal>"
        assert [p.name for p in fn.parameters] == ["id", "name"]
        assert not fn.parameters[0].has_default
        assert fn.parameters[1].default == '"x"'
        assert fn.start_line == 2
        assert fn.end_line == 4

    def test_annotation_arguments_are_kept(self):
        tree = parse(
            "@Dao\n"
            "interface MealDao {\n"
            "    @Query(\"SELECT * FROM meals WHERE id = :id\")\n"
            "    fun find(id: Long): Flow<MealEntity>\n"
            "}\n"
        )
        dao = tree.types()[0]
        assert dao.kind == NodeKind.INTERFACE
        fn = tree.functions()[0]
        assert fn.annotation_text("Query") == '@Query("SELECT * FROM meals WHERE id = :id")'
        assert fn.type_text == "Flow<MealEntity>"

    def test_visibility_and_modifiers(self):
        tree = parse("private const val KEY = \"k\"\ninternal fun helper() = Unit\n")
        prop, fn = tree.root.children
        assert prop.visibility == "private"
        assert prop.has_modifier("const")
        assert not prop.is_public
        assert fn.visibility == "internal"

    def test_companion_object(self):
        tree = parse(
            "class Repo {\n"
            "    companion object {\n"
            "        const val TAG = \"Repo\"\n"
            "    }\n"
            "}\n"
        )
        companion = [t for t in tree.types() if t.kind == NodeKind.OBJECT][0]
        assert companion.name == "Companion"
        assert companion.keyword == "companion"

    def test_delegated_property(self):
        tree = parse(
            "@Composable\n"
            "fun Counter() {\n"
            "    var count by remember { mutableStateOf(0) }\n"
            "}\n"
        )
        prop = tree.root.find_all(NodeKind.PROPERTY)[0]
        assert prop.is_mutable
        assert prop.initializer.startswith("by remember")

    def test_enum_entries_are_skipped(self):
        tree = parse(
            "enum class MealType {\n"
            "    BREAKFAST, LUNCH, DINNER;\n"
            "\n"
            "    fun label() = name.lowercase()\n"
            "}\n"
        )
        assert [fn.name for fn in tree.functions()] == ["label"]


class TestControlFlow:
    def test_else_if_is_nested(self):
        tree = parse(
            "fun sign(x: Int): Int {\n"
            "    if (x > 0) {\n"
            "        return 1\n"
            "    } else if (x < 0) {\n"
            "        return -1\n"
            "    } else {\n"
            "        return 0\n"
            "    }\n"
            "}\n"
        )
        fn = tree.functions()[0]
        outer = fn.children[0]
        assert outer.kind == NodeKind.IF
        inner = outer.children[-1]
        assert inner.kind == NodeKind.IF
        assert inner.keyword == "else if"
        assert inner.line == 4

    def test_when_branches(self):
        tree = parse(
            "fun describe(x: Int) = when (x) {\n"
            "    1 -> \"one\"\n"
            "    2, 3 -> \"few\"\n"
            "    else -> \"many\"\n"
            "}\n"
        )
        branches = tree.root.find_all(NodeKind.WHEN_BRANCH)
        assert [b.name for b in branches] == ["1", "2, 3", "else"]

    def test_try_catch_finally(self):
        tree = parse(
            "fun read() {\n"
            "    try {\n"
            "        file.read()\n"
            "    } catch (e: IOException) {\n"
            "        Log.e(TAG, \"failed\", e)\n"
            "    } finally {\n"
            "        file.close()\n"
            "    }\n"
            "}\n"
        )
        catch = tree.root.find_all(NodeKind.CATCH)[0]
        assert catch.name == "IOException"
        assert catch.type_text == "IOException"
        assert catch.line == 4
        assert tree.root.find_all(NodeKind.FINALLY)

    def test_loops(self):
        tree = parse(
            "fun loops(items: List<Int>) {\n"
            "    for (item in items) { use(item) }\n"
            "    while (ready()) { step() }\n"
            "    do { step() } while (busy())\n"
            "}\n"
        )
        kinds = [n.kind for n in tree.functions()[0].children]
        assert kinds == [NodeKind.FOR, NodeKind.WHILE, NodeKind.DO_WHILE]

    def test_boolean_operators(self):
        tree = parse("fun ok(a: Boolean, b: Boolean, c: Boolean) = a && b || c\n")
        assert len(tree.root.find_all(NodeKind.AND)) == 1
        assert len(tree.root.find_all(NodeKind.OR)) == 1


class TestCalls:
    def test_qualified_call_with_trailing_lambda(self):
        tree = parse(
            "fun refresh() {\n"
            "    viewModelScope.launch {\n"
            "        repo.refresh()\n"
            "    }\n"
            "}\n"
        )
        launch = tree.root.find_all(NodeKind.CALL)[0]
        assert launch.name == "launch"
        assert launch.qualifier == "viewModelScope"
        lam = launch.children[0]
        assert lam.kind == NodeKind.LAMBDA
        inner = lam.children[0]
        assert (inner.qualifier, inner.name) == ("repo", "refresh")

    def test_call_arguments_are_children(self):
        tree = parse('fun log() {\n    Log.d(TAG, "user ${format(user)}")\n}\n')
        call = tree.root.find_all(NodeKind.CALL)[0]
        assert (call.qualifier, call.name) == ("Log", "d")
        assert any(c.kind == NodeKind.STRING for c in call.children)

    def test_keywords_are_not_calls(self):
        tree = parse("fun f(x: Any) {\n    return (x as String)\n}\n")
        assert tree.root.find_all(NodeKind.CALL) == []
