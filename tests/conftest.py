"""Shared test fixtures for Kotlin Insight tests."""

from pathlib import Path

import pytest

from kotlin_insight.models import Category, FileInfo, Finding, Priority
from kotlin_insight.scanning.discovery import classify_layer, is_test_path
from kotlin_insight.scanning.structural import StructuralParser


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def parse_kotlin(source, path="app/src/main/java/com/example/Sample.kt"):
    """Parse with the structural backend, which needs no native grammar."""
    return StructuralParser().parse(source, path)


def make_file(relative_path="app/src/main/java/com/example/Sample.kt", root=None, layer=None):
    """FileInfo for ``relative_path`` with layer and test flag derived from the path."""
    base = Path(root) if root is not None else Path("/project")
    return FileInfo(
        path=base / relative_path,
        relative_path=relative_path,
        layer=layer if layer is not None else classify_layer(relative_path),
        is_test=is_test_path(relative_path),
    )


def run_analyzer(analyzer, source, relative_path="app/src/main/java/com/example/Sample.kt", root=None):
    """Parse ``source`` and run one analyzer over it."""
    file = make_file(relative_path, root=root)
    return analyzer.analyze(file, parse_kotlin(source, relative_path))


def titles(findings):
    return [f.title for f in findings]


@pytest.fixture
def kotlin_project(tmp_path):
    """Small Android-style project on disk."""
    base = tmp_path / "app" / "src" / "main" / "java" / "com" / "example"
    (base / "ui").mkdir(parents=True)
    (base / "data").mkdir(parents=True)
    (base / "ui" / "MealScreen.kt").write_text(
        "package com.example.ui\n"
        "\n"
        "/** Meal list screen. */\n"
        "@Composable\n"
        "fun MealScreen(modifier: Modifier = Modifier) {\n"
        "    Text(\"Meals\")\n"
        "}\n",
        encoding="utf-8",
    )
    (base / "data" / "MealDao.kt").write_text(
        "package com.example.data\n"
        "\n"
        "/** Meal table access. */\n"
        "@Dao\n"
        "interface MealDao {\n"
        "    /** All meals. */\n"
        "    @Query(\"SELECT * FROM meals\")\n"
        "    fun getAll(): List<MealEntity>\n"
        "}\n",
        encoding="utf-8",
    )
    return tmp_path


def make_finding(
    title="Long Function: load",
    category=Category.STRUCTURAL_SMELL,
    priority=Priority.MEDIUM,
    file_path="app/Meal.kt",
    line=1,
    analyzer_id="code-smell",
    description="A long function.",
):
    return Finding.create(
        analyzer_id=analyzer_id,
        category=category,
        priority=priority,
        title=title,
        description=description,
        file_path=file_path,
        line=line,
    )


def nested_function(padding=47, params=6, depth=5, loops=1):
    """A function nesting ``depth`` blocks, the innermost ``loops`` of them
    ``for`` loops and the rest ifs, followed by ``padding`` call lines."""
    args = ", ".join(f"p{i}: Int" for i in range(params))
    lines = [f"fun process({args}) {{"]
    for level in range(depth):
        indent = "    " * (level + 1)
        if level >= depth - loops:
            lines.append(indent + f"for (i{level} in 0 until p{level % params}) {{")
        else:
            lines.append(indent + f"if (p{level % params} > {level}) {{")
    lines.append("    " * (depth + 1) + "step(0)")
    for level in reversed(range(depth)):
        lines.append("    " * (level + 1) + "}")
    lines.extend(f"    step({i + 1})" for i in range(padding))
    lines.append("}")
    return "\n".join(lines) + "\n"
