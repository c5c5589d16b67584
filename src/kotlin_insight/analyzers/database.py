"""Room persistence: DAO signatures, query construction and foreign keys."""

from __future__ import annotations

import re

from ..models import Category, Effort, FileInfo, Finding, Layer, Priority
from ..scanning.tree import NodeKind, SyntaxNode, SyntaxTree
from .base import BaseAnalyzer, line_at

MUTATION_ANNOTATIONS = ("Insert", "Update", "Delete", "Upsert")
OBSERVABLE_TYPES = ("Flow<", "LiveData<", "PagingSource<", "Observable<", "Flowable<")

_CONCATENATION = re.compile(r"[\"']\s*\+|\+\s*[\"']|\$\{|\$[A-Za-z_]")
_CASCADE = re.compile(r"onDelete\s*=\s*(?:ForeignKey\.)?CASCADE")


def enclosed(text: str, open_paren: int) -> str:
    """Text of the balanced parenthesized group starting at ``open_paren``."""
    depth = 0
    for i in range(open_paren, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return text[open_paren : i + 1]
    return text[open_paren:]


class DatabaseAnalyzer(BaseAnalyzer):
    """Checks Room DAOs and entities."""

    id = "database"
    name = "Database Analyzer"
    category = Category.PERSISTENCE

    def applies_to(self, file: FileInfo) -> bool:
        if file.is_test:
            return False
        return file.layer == Layer.DATA or file.name.endswith(("Dao.kt", "Entity.kt"))

    def analyze(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        findings: list[Finding] = []
        for node in tree.types():
            if node.has_annotation("Dao"):
                for fn in node.iter_children(NodeKind.FUNCTION):
                    findings.extend(self._check_dao_function(file, fn))
            if node.has_annotation("Entity"):
                findings.extend(self._check_foreign_keys(file, node))
        return findings

    def _check_dao_function(self, file: FileInfo, fn: SyntaxNode) -> list[Finding]:
        findings = []
        suspend = fn.has_modifier("suspend")
        query = fn.annotation_text("Query")

        if query is not None:
            observable = fn.type_text.startswith(OBSERVABLE_TYPES)
            if not suspend and not observable:
                findings.append(self._query_should_return_flow(file, fn))
            if _CONCATENATION.search(query):
                findings.append(self._sql_injection(file, fn, query))
            elif fn.parameters and ":" not in query and "?" not in query:
                findings.append(self._unbound_parameters(file, fn, query))

        mutation = next((a for a in MUTATION_ANNOTATIONS if fn.has_annotation(a)), None)
        if mutation and not suspend:
            findings.append(
                self.finding(
                    file,
                    fn,
                    title="DAO Mutation Function Should Be Suspend",
                    description=(
                        f"@{mutation} function '{fn.name}' is not suspend, so the write runs "
                        "on the calling thread and blocks the UI when called from it."
                    ),
                    priority=Priority.HIGH,
                    effort=Effort.TRIVIAL,
                    auto_fixable=True,
                    recommendation="Mark the function 'suspend'.",
                    before=f"@{mutation}\nfun {fn.name}(meal: MealEntity)",
                    after=f"@{mutation}\nsuspend fun {fn.name}(meal: MealEntity)",
                    references=("https://developer.android.com/training/data-storage/room/async-queries",),
                )
            )
        return findings

    def _query_should_return_flow(self, file: FileInfo, fn: SyntaxNode) -> Finding:
        return self.finding(
            file,
            fn,
            title="DAO Query Function Should Return Flow",
            description=(
                f"Query function '{fn.name}' returns '{fn.type_text or 'Unit'}' synchronously. "
                "It blocks its caller and does not emit when the table changes."
            ),
            priority=Priority.HIGH,
            effort=Effort.SMALL,
            recommendation="Return Flow<T> for observed data or mark one-shot reads 'suspend'.",
            before='@Query("SELECT * FROM meals")\nfun getAllMeals(): List<MealEntity>',
            after='@Query("SELECT * FROM meals")\nfun getAllMeals(): Flow<List<MealEntity>>',
            references=("https://developer.android.com/training/data-storage/room/async-queries#observable",),
        )

    def _sql_injection(self, file: FileInfo, fn: SyntaxNode, query: str) -> Finding:
        return self.finding(
            file,
            fn,
            snippet=query,
            title="SQL Injection Risk: String Concatenation in Query",
            description=(
                f"The query on '{fn.name}' is built by string concatenation or templates. "
                "Values spliced into SQL text can change the statement."
            ),
            priority=Priority.CRITICAL,
            effort=Effort.SMALL,
            recommendation="Bind values with :parameter placeholders instead of building SQL text.",
            before='@Query("SELECT * FROM meals WHERE name = \'" + NAME + "\'")',
            after='@Query("SELECT * FROM meals WHERE name = :name")\nfun findByName(name: String): Flow<List<MealEntity>>',
            references=("https://owasp.org/www-community/attacks/SQL_Injection",),
        )

    def _unbound_parameters(self, file: FileInfo, fn: SyntaxNode, query: str) -> Finding:
        names = ", ".join(p.name for p in fn.parameters)
        return self.finding(
            file,
            fn,
            snippet=query,
            title="Query Should Use Parameterized Queries",
            description=(
                f"'{fn.name}' takes parameters ({names}) but its query binds none of them."
            ),
            priority=Priority.HIGH,
            effort=Effort.SMALL,
            recommendation="Reference each parameter in the query as :name.",
            before='@Query("SELECT * FROM meals")\nfun getMealsByType(type: String): Flow<List<MealEntity>>',
            after='@Query("SELECT * FROM meals WHERE type = :type")\nfun getMealsByType(type: String): Flow<List<MealEntity>>',
            references=("https://developer.android.com/training/data-storage/room/accessing-data#query-params",),
        )

    def _check_foreign_keys(self, file: FileInfo, entity: SyntaxNode) -> list[Finding]:
        findings = []
        for match in re.finditer(r"\bForeignKey\s*\(", entity.text):
            definition = enclosed(entity.text, match.end() - 1)
            if _CASCADE.search(definition):
                continue
            findings.append(
                self.finding(
                    file,
                    line_at(entity, match.start()),
                    snippet=self.snippet("ForeignKey" + definition, 5),
                    title="Foreign Key Should Use CASCADE for onDelete",
                    description=(
                        f"A foreign key on entity '{entity.name}' does not cascade deletes, "
                        "so deleting the parent row fails or leaves orphaned rows."
                    ),
                    priority=Priority.MEDIUM,
                    effort=Effort.SMALL,
                    recommendation="Set onDelete = ForeignKey.CASCADE unless orphans are intended.",
                    before="ForeignKey(entity = MealEntity::class, parentColumns = [\"id\"], childColumns = [\"meal_id\"])",
                    after=(
                        "ForeignKey(\n"
                        "    entity = MealEntity::class,\n"
                        "    parentColumns = [\"id\"],\n"
                        "    childColumns = [\"meal_id\"],\n"
                        "    onDelete = ForeignKey.CASCADE\n"
                        ")"
                    ),
                    references=("https://developer.android.com/reference/androidx/room/ForeignKey",),
                )
            )
        return findings
