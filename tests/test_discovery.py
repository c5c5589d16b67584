"""Tests for file discovery, layer classification and test detection."""

import pytest

from kotlin_insight.config import AnalysisConfig
from kotlin_insight.exceptions import InvalidPathError
from kotlin_insight.models import DiagnosticKind, Layer
from kotlin_insight.scanning import FileDiscovery, classify_layer, glob_to_regex, is_test_path


def _write(root, relative, content="package com.example\n"):
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


class TestGlobToRegex:
    def test_double_star_spans_directories(self):
        pattern = glob_to_regex("**/build/**")
        assert pattern.match("build")
        assert pattern.match("app/build/generated/R.kt")
        assert not pattern.match("app/builder/Foo.kt")

    def test_single_star_stays_in_segment(self):
        pattern = glob_to_regex("*.kt")
        assert pattern.match("Foo.kt")
        assert not pattern.match("src/Foo.kt")


class TestClassification:
    @pytest.mark.parametrize(
        "path,layer",
        [
            ("app/src/main/java/com/x/data/MealDao.kt", Layer.DATA),
            ("app/src/main/java/com/x/domain/GetMeals.kt", Layer.DOMAIN),
            ("app/src/main/java/com/x/ui/MealScreen.kt", Layer.PRESENTATION),
            ("app/src/main/java/com/x/presentation/MealViewModel.kt", Layer.PRESENTATION),
            ("app/src/main/java/com/x/di/AppModule.kt", Layer.DI),
            ("app/src/test/java/com/x/FooTest.kt", Layer.TEST),
            ("app/src/main/java/com/x/App.kt", Layer.UNKNOWN),
        ],
    )
    def test_default_rules(self, path, layer):
        assert classify_layer(path) == layer

    def test_first_rule_wins(self):
        rules = [("/ui/", "presentation"), ("/data/", "data")]
        assert classify_layer("a/ui/data/Foo.kt", rules) == Layer.PRESENTATION

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("app/src/test/java/Foo.kt", True),
            ("app/src/androidTest/java/Foo.kt", True),
            ("app/src/main/java/MealRepositoryTest.kt", True),
            ("app/src/main/java/MealSpec.kt", True),
            ("app/src/main/java/UserRepositoryIT.kt", True),
            ("app/src/main/java/EDIT.kt", False),
            ("app/src/main/java/Test.kt", False),
            ("app/src/main/java/Contest.kt", False),
        ],
    )
    def test_is_test_path(self, path, expected):
        assert is_test_path(path) is expected


class TestFileDiscovery:
    def test_discover_filters_and_sorts(self, tmp_path):
        _write(tmp_path, "app/src/main/java/com/x/data/MealDao.kt", "package com.x.data\n")
        _write(tmp_path, "app/src/main/java/com/x/ui/MealScreen.kt", "package com.x.ui\n")
        _write(tmp_path, "app/build/generated/R.kt")
        _write(tmp_path, ".idea/Scratch.kt")
        _write(tmp_path, "app/build.gradle.kts", "plugins {}\n")
        _write(tmp_path, "README.md", "# readme\n")

        files = FileDiscovery().discover(tmp_path)

        assert [f.relative_path for f in files] == [
            "app/build.gradle.kts",
            "app/src/main/java/com/x/data/MealDao.kt",
            "app/src/main/java/com/x/ui/MealScreen.kt",
        ]
        dao = files[1]
        assert dao.layer == Layer.DATA
        assert dao.package == "com.x.data"
        assert not dao.is_test

    def test_custom_exclude_patterns(self, tmp_path):
        _write(tmp_path, "a/Keep.kt")
        _write(tmp_path, "legacy/Old.kt")
        files = FileDiscovery().discover(tmp_path, exclude_patterns=["legacy/**"])
        assert [f.relative_path for f in files] == ["a/Keep.kt"]

    def test_hidden_directories_allowed(self, tmp_path):
        _write(tmp_path, ".hidden/Foo.kt")
        config = AnalysisConfig(allow_hidden_files=True, exclude_patterns=[])
        files = FileDiscovery(config).discover(tmp_path)
        assert [f.relative_path for f in files] == [".hidden/Foo.kt"]

    def test_invalid_utf8_is_recorded(self, tmp_path):
        _write(tmp_path, "Good.kt")
        _write(tmp_path, "Bad.kt", b"package x\n\xff\xfe\xfa\n")
        discovery = FileDiscovery()
        files = discovery.discover(tmp_path)

        assert [f.relative_path for f in files] == ["Good.kt"]
        assert len(discovery.diagnostics) == 1
        diagnostic = discovery.diagnostics[0]
        assert diagnostic.kind == DiagnosticKind.DISCOVERY
        assert diagnostic.file_path == "Bad.kt"
        assert "UTF-8" in diagnostic.message

    def test_oversized_file_is_recorded(self, tmp_path):
        _write(tmp_path, "Big.kt", "val x = 1\n" * 50)
        discovery = FileDiscovery(AnalysisConfig(max_file_size_mb=0.0001))
        assert discovery.discover(tmp_path) == []
        assert "exceeds" in discovery.diagnostics[0].message

    def test_root_must_be_directory(self, tmp_path):
        path = _write(tmp_path, "Foo.kt")
        with pytest.raises(InvalidPathError):
            FileDiscovery().discover(path)


class TestDiscoverPaths:
    def test_subset(self, tmp_path):
        _write(tmp_path, "a/One.kt")
        _write(tmp_path, "a/Two.kt")
        _write(tmp_path, "b/Three.kt")
        files = FileDiscovery().discover_paths(tmp_path, [tmp_path / "b", tmp_path / "a" / "Two.kt"])
        assert [f.relative_path for f in files] == ["a/Two.kt", "b/Three.kt"]

    def test_duplicates_collapse(self, tmp_path):
        _write(tmp_path, "a/One.kt")
        files = FileDiscovery().discover_paths(tmp_path, [tmp_path / "a", tmp_path / "a" / "One.kt"])
        assert len(files) == 1

    def test_missing_path(self, tmp_path):
        with pytest.raises(InvalidPathError):
            FileDiscovery().discover_paths(tmp_path, [tmp_path / "Nope.kt"])

    def test_path_outside_root(self, tmp_path):
        root = tmp_path / "root"
        root.mkdir()
        other = _write(tmp_path, "other/Foo.kt")
        with pytest.raises(InvalidPathError):
            FileDiscovery().discover_paths(root, [other])
