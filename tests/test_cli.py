"""Tests for the command-line interface."""

import json

import pytest
from typer.testing import CliRunner

from kotlin_insight import __version__
from kotlin_insight.cli import app

runner = CliRunner()

DAO = "app/src/main/java/com/example/data/MealDao.kt"


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep project config discovery away from the working tree."""
    monkeypatch.chdir(tmp_path)
    for name in ("KOTLIN_INSIGHT_ANALYZERS", "KOTLIN_INSIGHT_WORKERS", "KOTLIN_INSIGHT_OUTPUT_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(params=["auto", "structural"])
def parser(request):
    return request.param


def analyze(target, out, *extra, parser="structural"):
    return runner.invoke(
        app,
        ["analyze", str(target), "--parser", parser, "--quiet", "-o", str(out), *extra],
    )


class TestTopLevel:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_list_analyzers(self):
        result = runner.invoke(app, ["analyzers"])
        assert result.exit_code == 0
        assert "code-smell" in result.output
        assert "security" in result.output


class TestAnalyze:
    def test_writes_markdown_report(self, kotlin_project, tmp_path, parser):
        out = tmp_path / "reports"
        result = analyze(kotlin_project, out, parser=parser)
        assert result.exit_code == 0, result.output
        report = (out / "analysis-report.md").read_text(encoding="utf-8")
        assert report.startswith("# Code Quality Analysis Report")
        assert "DAO Query Function Should Return Flow" in report

    def test_json_report(self, kotlin_project, tmp_path, parser):
        out = tmp_path / "reports"
        result = analyze(kotlin_project, out, "--format", "json", "-a", "database", parser=parser)
        assert result.exit_code == 0, result.output
        data = json.loads((out / "analysis-report.json").read_text(encoding="utf-8"))
        assert data["summary"]["analyzers"] == ["database"]
        assert {f["category"] for f in data["findings"]} == {"persistence"}

    def test_missing_path_is_a_configuration_error(self, tmp_path):
        result = analyze(tmp_path / "missing", tmp_path / "reports")
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_unknown_analyzer(self, kotlin_project, tmp_path):
        result = analyze(kotlin_project, tmp_path / "reports", "-a", "lint")
        assert result.exit_code == 1

    def test_findings_do_not_fail_the_run(self, kotlin_project, tmp_path, parser):
        result = analyze(kotlin_project, tmp_path / "reports", "--format", "rich", parser=parser)
        assert result.exit_code == 0
        assert not (tmp_path / "reports" / "analysis-report.md").exists()

    def test_log_file_receives_records(self, tmp_path):
        log_file = tmp_path / "kotlin-insight.log"
        result = analyze(tmp_path / "missing", tmp_path / "reports", "--log-file", str(log_file))
        assert result.exit_code == 1
        text = log_file.read_text(encoding="utf-8")
        assert "ERROR" in text
        assert "InvalidPathError" in text


class TestIncremental:
    def test_single_file_run_leaves_baseline_alone(self, kotlin_project, tmp_path, parser):
        out = tmp_path / "reports"
        assert analyze(kotlin_project, out, "--update-baseline", parser=parser).exit_code == 0
        baseline = (out / "baseline.json").read_bytes()
        full_report = (out / "analysis-report.md").read_text(encoding="utf-8")

        result = analyze(kotlin_project / DAO, out, "--update-baseline", "--history", parser=parser)

        assert result.exit_code == 0, result.output
        assert (out / "baseline.json").read_bytes() == baseline
        assert (out / "analysis-report.md").read_text(encoding="utf-8") == full_report
        assert not (out / "history").exists()
        report = (out / "analysis-report-incremental.md").read_text(encoding="utf-8")
        assert "DAO Query Function Should Return Flow" in report
        assert "New findings" not in report

    def test_several_paths_are_incremental(self, kotlin_project, tmp_path):
        out = tmp_path / "reports"
        base = kotlin_project / "app/src/main/java/com/example"
        result = analyze(base / "ui", base / "data", out)
        assert result.exit_code == 0, result.output
        assert (out / "analysis-report-incremental.md").exists()
        assert not (out / "analysis-report.md").exists()


class TestBaselineCommands:
    def test_show_without_baseline(self, tmp_path):
        result = runner.invoke(app, ["baseline", "show", "-o", str(tmp_path / "reports")])
        assert result.exit_code == 0
        assert "No baseline found." in result.output

    def test_update_then_show(self, kotlin_project, tmp_path, parser):
        out = tmp_path / "reports"
        assert analyze(kotlin_project, out, "--update-baseline", parser=parser).exit_code == 0
        assert (out / "baseline.json").exists()

        result = runner.invoke(app, ["baseline", "show", "-o", str(out)])
        assert result.exit_code == 0
        assert "Findings:" in result.output

        second = analyze(kotlin_project, out, parser=parser)
        assert second.exit_code == 0
        report = (out / "analysis-report.md").read_text(encoding="utf-8")
        assert "- New findings: 0" in report
        assert "- Resolved findings: 0" in report
        assert "n/a" not in report

    def test_history_snapshots(self, kotlin_project, tmp_path):
        out = tmp_path / "reports"
        assert analyze(kotlin_project, out, "--history").exit_code == 0
        result = runner.invoke(app, ["baseline", "history", "-o", str(out)])
        assert result.exit_code == 0
        assert "analysis_" in result.output
