"""Tests for the tree-sitter backend and the backend-selecting SyntaxParser."""

import pytest

from kotlin_insight.exceptions import ParseError
from kotlin_insight.scanning import SyntaxParser
from kotlin_insight.scanning.tree import NodeKind
from kotlin_insight.scanning.treesitter_parser import TreeSitterParser

VALID = """package com.example.data

class MealRepository {
    fun load(id: Long, name: String = "x"): Int {
        if (id > 0) {
            return 1
        }
        return 0
    }
}
"""

# Missing initializer: tree-sitter reports an error, the structural parser does not.
TREE_SITTER_ERROR = """fun broken() {
    val x =
}
"""

VIEW_MODEL = """package com.example.ui

import androidx.compose.runtime.*
import android.util.Log

/** Holds the meal list. */
@HiltViewModel
class MealViewModel(private val repo: MealRepository) : ViewModel() {
    fun refresh(force: Boolean, limit: Int) {
        if (force && limit > 0 || limit > 10) {
            Log.d("Meals", "refresh")
            viewModelScope.launch { repo.load(limit) }
        }
        try {
            repo.sync()
        } catch (e: IOException) {
            println(e)
        }
    }
}

fun Money.plus(other: Money): Money = this
"""


@pytest.mark.parametrize("mode", ["tree-sitter", "structural"])
class TestBackendsAgree:
    """Both backends yield the same names, calls and logical operators."""

    def test_declarations(self, mode):
        tree = SyntaxParser(mode).parse(VIEW_MODEL, "MealViewModel.kt")
        assert tree.package == "com.example.ui"
        assert tree.imports == ["androidx.compose.runtime.*", "android.util.Log"]
        (view_model,) = tree.types()
        assert view_model.name == "MealViewModel"
        assert view_model.line == 8
        assert "@HiltViewModel" in view_model.modifiers
        assert view_model.doc == "/** Holds the meal list. */"
        assert [fn.name for fn in tree.functions()] == ["refresh", "plus"]
        assert [p.name for p in tree.functions()[0].parameters] == ["force", "limit"]
        assert [p.name for p in tree.functions()[1].parameters] == ["other"]

    def test_logical_operators(self, mode):
        fn = SyntaxParser(mode).parse(VIEW_MODEL, "MealViewModel.kt").functions()[0]
        assert [node.name for node in fn.find_all(NodeKind.AND)] == ["&&"]
        assert [node.name for node in fn.find_all(NodeKind.OR)] == ["||"]

    def test_calls_and_catch(self, mode):
        fn = SyntaxParser(mode).parse(VIEW_MODEL, "MealViewModel.kt").functions()[0]
        calls = {(call.qualifier, call.name) for call in fn.find_all(NodeKind.CALL)}
        assert {
            ("Log", "d"),
            ("viewModelScope", "launch"),
            ("repo", "load"),
            ("repo", "sync"),
            ("", "println"),
        } <= calls
        (catch,) = fn.find_all(NodeKind.CATCH)
        assert [p.name for p in catch.parameters] == ["e"]


class TestTreeSitterParser:
    def test_normalized_declarations(self):
        tree = TreeSitterParser().parse(VALID, "MealRepository.kt")
        assert tree.provider == "tree-sitter"
        assert tree.package == "com.example.data"
        assert [t.name for t in tree.types()] == ["MealRepository"]
        fn = tree.functions()[0]
        assert fn.name == "load"
        assert [p.name for p in fn.parameters] == ["id", "name"]
        assert len(fn.find_all(NodeKind.IF)) == 1

    def test_syntax_error_raises(self):
        with pytest.raises(ParseError):
            TreeSitterParser().parse(TREE_SITTER_ERROR, "Broken.kt")


class TestSyntaxParser:
    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            SyntaxParser("regex")

    def test_structural_mode(self):
        tree = SyntaxParser("structural").parse(VALID, "MealRepository.kt")
        assert tree.provider == "structural"

    def test_auto_prefers_tree_sitter(self):
        tree = SyntaxParser("auto").parse(VALID, "MealRepository.kt")
        assert tree.provider == "tree-sitter"

    def test_auto_falls_back(self):
        tree = SyntaxParser("auto").parse(TREE_SITTER_ERROR, "Broken.kt")
        assert tree.provider == "structural"
        assert [fn.name for fn in tree.functions()] == ["broken"]

    def test_tree_sitter_mode_does_not_fall_back(self):
        with pytest.raises(ParseError):
            SyntaxParser("tree-sitter").parse(TREE_SITTER_ERROR, "Broken.kt")

    def test_auto_raises_when_both_fail(self):
        with pytest.raises(ParseError):
            SyntaxParser("auto").parse("fun a() {\n", "Broken.kt")
