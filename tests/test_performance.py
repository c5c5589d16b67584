"""Tests for the performance analyzer."""

from conftest import parse_kotlin, run_analyzer, titles

from kotlin_insight.analyzers.performance import PerformanceAnalyzer, chained_operations, loop_nodes
from kotlin_insight.models import Category, Priority
from kotlin_insight.scanning.tree import NodeKind


class TestListOperations:
    def test_chain_inside_for_loop(self):
        source = (
            "fun tags(meals: List<Meal>): List<String> {\n"
            "    val out = mutableListOf<String>()\n"
            "    for (meal in meals) {\n"
            "        out += meal.tags.filter { it.isNotBlank() }.map { it.trim() }\n"
            "    }\n"
            "    return out\n"
            "}\n"
        )
        findings = run_analyzer(PerformanceAnalyzer(), source)
        assert titles(findings) == ["Inefficient List Operations in Loop"]
        finding = findings[0]
        assert finding.category == Category.PERFORMANCE
        assert finding.priority == Priority.MEDIUM
        assert finding.line == 4
        assert finding.code_snippet == "out += meal.tags.filter { it.isNotBlank() }.map { it.trim() }"
        assert "line 3" in finding.description

    def test_loop_header_is_not_flagged(self):
        source = (
            "fun show(meals: List<Meal>) {\n"
            "    for (name in meals.filter { it.fresh }.map { it.name }) {\n"
            "        println(name)\n"
            "    }\n"
            "}\n"
        )
        assert run_analyzer(PerformanceAnalyzer(), source) == []

    def test_materializing_call_in_for_each(self):
        source = (
            "fun collect(meals: List<Meal>) {\n"
            "    meals.forEach { meal ->\n"
            "        val fresh = meal.items.filter { it.fresh }.toList()\n"
            "        val names = meal.items.map { it.name }\n"
            "        store(fresh, names)\n"
            "    }\n"
            "}\n"
        )
        findings = run_analyzer(PerformanceAnalyzer(), source)
        assert [f.line for f in findings] == [3]

    def test_nested_loops_report_each_line_once(self):
        source = (
            "fun walk(groups: List<List<Meal>>) {\n"
            "    for (group in groups) {\n"
            "        for (meal in group) {\n"
            "            val names = meal.tags.filter { it.visible }.map { it.label }\n"
            "        }\n"
            "    }\n"
            "}\n"
        )
        findings = run_analyzer(PerformanceAnalyzer(), source)
        assert [f.line for f in findings] == [4]

    def test_chained_operations(self):
        assert chained_operations("xs.filter { a }.map { b }.sorted()") == 3
        assert chained_operations("xs.size") == 0

    def test_loop_nodes(self):
        tree = parse_kotlin(
            "fun f() {\n"
            "    while (running) { step() }\n"
            "    items.forEachIndexed { i, item -> use(i, item) }\n"
            "    items.map { it }\n"
            "}\n"
        )
        found = loop_nodes(tree.root)
        assert [n.kind for n in found] == [NodeKind.WHILE, NodeKind.CALL]
        assert found[1].name == "forEachIndexed"


class TestStringConcatenation:
    def test_plus_assign_in_loop(self):
        source = (
            "fun render(items: List<Item>): String {\n"
            "    var result = \"\"\n"
            "    for (item in items) {\n"
            "        result += item.name\n"
            "    }\n"
            "    return result\n"
            "}\n"
        )
        findings = run_analyzer(PerformanceAnalyzer(), source)
        assert titles(findings) == ["String Concatenation in Loop"]
        assert findings[0].line == 4
        assert findings[0].code_snippet == "result += item.name"
        assert "'render'" in findings[0].description

    def test_reassignment_in_for_each(self):
        source = (
            "fun render(items: List<Item>): String {\n"
            "    var text: String = \"\"\n"
            "    items.forEach { item ->\n"
            "        text = text + item.name\n"
            "    }\n"
            "    return text\n"
            "}\n"
        )
        findings = run_analyzer(PerformanceAnalyzer(), source)
        assert titles(findings) == ["String Concatenation in Loop"]
        assert findings[0].line == 4

    def test_numeric_accumulator_is_clean(self):
        source = (
            "fun total(items: List<Item>): Int {\n"
            "    var count = 0\n"
            "    for (item in items) {\n"
            "        count += item.quantity\n"
            "    }\n"
            "    return count\n"
            "}\n"
        )
        assert run_analyzer(PerformanceAnalyzer(), source) == []


class TestUnstableParameters:
    def test_mutable_collection_parameter(self):
        source = (
            "@Composable\n"
            "fun MealList(meals: MutableList<Meal>, modifier: Modifier = Modifier) {\n"
            "    Column(modifier) { }\n"
            "}\n"
        )
        findings = run_analyzer(PerformanceAnalyzer(), source)
        assert titles(findings) == ["Unstable Compose Parameters Cause Excessive Recomposition"]
        assert findings[0].line == 2
        assert "meals: MutableList<Meal>" in findings[0].description

    def test_read_only_and_non_composable(self):
        source = (
            "@Composable\n"
            "fun MealList(meals: List<Meal>, modifier: Modifier = Modifier) {\n"
            "    Column(modifier) { }\n"
            "}\n"
            "\n"
            "fun sortInPlace(meals: MutableList<Meal>) = meals.sortBy { it.name }\n"
        )
        assert run_analyzer(PerformanceAnalyzer(), source) == []
