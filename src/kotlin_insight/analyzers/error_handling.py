"""Exception mapping, Result types and catch block hygiene."""

from __future__ import annotations

import re

from ..models import Category, Effort, FileInfo, Finding, Layer, Priority
from ..scanning.tree import NodeKind, SyntaxNode, SyntaxTree
from .base import BaseAnalyzer, code_matches, is_repository, line_at, line_text

GENERIC_EXCEPTIONS = ("Exception", "Throwable", "java.lang.Exception", "kotlin.Exception")
LOGGING_PREFIXES = ("Log.", "Timber.", "println(", "print(")

_RISKY = re.compile(
    r"(?:[Dd]ao|[Aa]pi|database)\.|retrofit|okhttp|\bFile\(|FileInputStream|FileOutputStream"
)
_FAILABLE = re.compile(r"\bthrow\s|\brequire\(|\bcheck\(|\berror\(")
_MAPPING = re.compile(r"AppError|mapException|Result\.failure|runCatching")
_THROW = re.compile(r"\bthrow\s+\w")


def catch_body(node: SyntaxNode) -> str:
    """Statements between the braces of a catch clause."""
    open_brace = node.text.find("{", node.text.find(")") + 1)
    if open_brace < 0:
        return ""
    return node.text[open_brace + 1 : node.text.rfind("}")]


def only_logs(body: str) -> bool:
    """True for an empty body or one whose statements only log."""
    lines = [line.strip() for line in body.splitlines()]
    return all(
        line.startswith(LOGGING_PREFIXES) or "logger." in line or "log." in line
        for line in lines
        if line
    )


class ErrorHandlingAnalyzer(BaseAnalyzer):
    """Checks that failures are mapped, typed and never silently swallowed."""

    id = "error-handling"
    name = "Error Handling Analyzer"
    category = Category.ERROR_HANDLING

    def analyze(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        findings: list[Finding] = []
        for node in tree.types():
            if node.kind != NodeKind.CLASS:
                continue
            if file.layer == Layer.DATA and is_repository(node):
                findings.extend(self._check_exception_mapping(file, node))
                findings.extend(self._check_result_types(file, node))
            elif file.layer == Layer.DOMAIN and node.name.endswith("UseCase"):
                findings.extend(self._check_result_types(file, node))

        if file.layer == Layer.PRESENTATION:
            findings.extend(self._check_ui_throws(file, tree))

        for catch in tree.root.find_all(NodeKind.CATCH):
            findings.extend(self._check_catch(file, catch))
        return findings

    def _check_exception_mapping(self, file: FileInfo, owner: SyntaxNode) -> list[Finding]:
        findings = []
        for fn in owner.iter_children(NodeKind.FUNCTION):
            if fn.visibility == "private" or not _RISKY.search(fn.text):
                continue
            if fn.find_all(NodeKind.TRY) and _MAPPING.search(fn.text):
                continue
            findings.append(
                self.finding(
                    file,
                    fn,
                    title="Missing Exception Mapping in Repository",
                    description=(
                        f"Repository function '{fn.name}' performs database, network or file "
                        "access without mapping exceptions to domain errors, so raw "
                        "data-layer exceptions leak into callers."
                    ),
                    priority=Priority.HIGH,
                    effort=Effort.SMALL,
                    recommendation=(
                        "Wrap the operation in try/catch and return Result.failure with a "
                        "domain error type."
                    ),
                    before=(
                        "override suspend fun getMeal(id: Long): Meal =\n"
                        "    mealDao.getMealById(id).toDomain()"
                    ),
                    after=(
                        "override suspend fun getMeal(id: Long): Result<Meal> = try {\n"
                        "    Result.success(mealDao.getMealById(id).toDomain())\n"
                        "} catch (e: SQLiteException) {\n"
                        "    Result.failure(AppError.DatabaseError(e))\n"
                        "}"
                    ),
                    references=(
                        "https://developer.android.com/topic/architecture/data-layer#expose-errors",
                    ),
                )
            )
        return findings

    def _check_result_types(self, file: FileInfo, owner: SyntaxNode) -> list[Finding]:
        findings = []
        for fn in owner.iter_children(NodeKind.FUNCTION):
            if fn.visibility == "private" or "Result<" in fn.type_text:
                continue
            if "Flow<" in fn.type_text:
                continue
            if not (_RISKY.search(fn.text) or _FAILABLE.search(fn.text)):
                continue
            findings.append(
                self.finding(
                    file,
                    fn,
                    snippet_lines=5,
                    title="Missing Result Type for Failable Operation",
                    description=(
                        f"Function '{fn.name}' can fail but returns "
                        f"'{fn.type_text or 'Unit'}', hiding the failure from the type system."
                    ),
                    priority=Priority.MEDIUM,
                    effort=Effort.SMALL,
                    recommendation="Return Result<T> so callers must handle the failure case.",
                    before="suspend fun addMeal(meal: Meal): Long",
                    after="suspend fun addMeal(meal: Meal): Result<Long>",
                    references=(
                        "https://kotlinlang.org/api/latest/jvm/stdlib/kotlin/-result/",
                    ),
                )
            )
        return findings

    def _check_ui_throws(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        findings = []
        for decl in tree.root.children:
            if decl.kind in (NodeKind.PACKAGE, NodeKind.IMPORT):
                continue
            for match in code_matches(decl, _THROW):
                findings.append(
                    self.finding(
                        file,
                        line_at(decl, match.start()),
                        snippet=line_text(decl.text, match.start()),
                        title="Exception Thrown in UI Layer",
                        description=(
                            "UI code throws an exception. An uncaught exception in a "
                            "composable or ViewModel crashes the app."
                        ),
                        priority=Priority.HIGH,
                        effort=Effort.MEDIUM,
                        recommendation=(
                            "Model the failure as UI state (for example an Error state) "
                            "instead of throwing."
                        ),
                        before="if (meal == null) throw IllegalStateException(\"Meal not found\")",
                        after="if (meal == null) _uiState.update { MealUiState.Error(\"Meal not found\") }",
                        references=(
                            "https://developer.android.com/topic/architecture/ui-layer/events",
                        ),
                    )
                )
        return findings

    def _check_catch(self, file: FileInfo, catch: SyntaxNode) -> list[Finding]:
        findings = []
        caught = catch.type_text or "Exception"
        if only_logs(catch_body(catch)):
            findings.append(
                self.finding(
                    file,
                    catch,
                    title="Empty or Logging-Only Catch Block",
                    description=(
                        f"The catch block for '{caught}' is empty or only logs. The error is "
                        "swallowed and the caller never learns the operation failed."
                    ),
                    priority=Priority.MEDIUM,
                    effort=Effort.SMALL,
                    recommendation=(
                        "Propagate the error as a Result, update error state or rethrow a "
                        "domain exception."
                    ),
                    before="catch (e: IOException) {\n    Log.e(TAG, \"failed\", e)\n}",
                    after=(
                        "catch (e: IOException) {\n"
                        "    Log.e(TAG, \"failed\", e)\n"
                        "    return Result.failure(AppError.NetworkError(e))\n"
                        "}"
                    ),
                )
            )
        if caught in GENERIC_EXCEPTIONS:
            findings.append(
                self.finding(
                    file,
                    catch,
                    snippet=catch.text.splitlines()[0],
                    title="Generic Exception Catch",
                    description=(
                        f"Catching '{caught}' also catches programming errors and "
                        "CancellationException, which breaks coroutine cancellation."
                    ),
                    priority=Priority.LOW,
                    effort=Effort.TRIVIAL,
                    recommendation="Catch the specific exception types the operation can raise.",
                    before="catch (e: Exception) { ... }",
                    after="catch (e: SQLiteException) { ... }\ncatch (e: IOException) { ... }",
                )
            )
        return findings
