"""StateFlow encapsulation, update patterns, dispatchers and coroutine scopes."""

from __future__ import annotations

import re

from ..models import Category, Effort, FileInfo, Finding, Priority
from ..scanning.tree import NodeKind, SyntaxNode, SyntaxTree
from .base import (
    BaseAnalyzer,
    inside_call,
    is_repository,
    is_view_model,
    line_at,
    line_text,
    walk_with_ancestors,
)

COROUTINE_BUILDERS = ("launch", "async")
SCOPED_BUILDERS = COROUTINE_BUILDERS + ("coroutineScope", "supervisorScope", "withContext")

_DIRECT_ASSIGNMENT = re.compile(r"\b(_[A-Za-z]\w*)\.value\s*[-+*/]?=(?!=)")
_FLOW_TYPE = re.compile(r"\bFlow<")
_DATABASE_ACCESS = re.compile(
    r"(?:[Dd]ao|database|Room)\.|\.(?:query|insert|update|delete)\("
)


class StateManagementAnalyzer(BaseAnalyzer):
    """Checks how ViewModels and repositories hold and publish state."""

    id = "state-management"
    name = "State Management Analyzer"
    category = Category.STATE_MANAGEMENT

    def analyze(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        findings: list[Finding] = []
        for node in tree.types():
            view_model = is_view_model(node)
            if not (view_model or is_repository(node)):
                continue
            findings.extend(self._check_exposure(file, node))
            findings.extend(self._check_flow_dispatcher(file, node))
            if view_model:
                findings.extend(self._check_direct_mutation(file, node))
                findings.extend(self._check_scope(file, node))
        return findings

    def _check_exposure(self, file: FileInfo, owner: SyntaxNode) -> list[Finding]:
        findings = []
        for prop in owner.iter_children(NodeKind.PROPERTY):
            declared = f"{prop.type_text} {prop.initializer}"
            if "MutableStateFlow" not in declared or not prop.is_public:
                continue
            findings.append(
                self.finding(
                    file,
                    prop,
                    title="Public MutableStateFlow Exposed",
                    description=(
                        f"Property '{prop.name}' exposes MutableStateFlow publicly, letting "
                        "external code mutate state and bypass validation."
                    ),
                    priority=Priority.HIGH,
                    effort=Effort.SMALL,
                    recommendation=(
                        "Make the MutableStateFlow private and expose an immutable StateFlow "
                        "with asStateFlow()."
                    ),
                    before="val uiState = MutableStateFlow<MealUiState>(MealUiState.Loading)",
                    after=(
                        "private val _uiState = MutableStateFlow<MealUiState>(MealUiState.Loading)\n"
                        "val uiState: StateFlow<MealUiState> = _uiState.asStateFlow()"
                    ),
                    references=(
                        "https://developer.android.com/kotlin/flow/stateflow-and-sharedflow",
                    ),
                )
            )
        return findings

    def _check_direct_mutation(self, file: FileInfo, owner: SyntaxNode) -> list[Finding]:
        findings = []
        for match in _DIRECT_ASSIGNMENT.finditer(owner.text):
            name = match.group(1)
            findings.append(
                self.finding(
                    file,
                    line_at(owner, match.start()),
                    snippet=line_text(owner.text, match.start()),
                    title="Direct State Mutation Instead of update { }",
                    description=(
                        f"State '{name}' is assigned through '.value ='. Read-modify-write "
                        "assignments can lose concurrent updates."
                    ),
                    priority=Priority.MEDIUM,
                    effort=Effort.TRIVIAL,
                    recommendation=f"Use {name}.update {{ current -> ... }} for atomic updates.",
                    before="_uiState.value = MealUiState.Success(meals)",
                    after="_uiState.update { MealUiState.Success(meals) }",
                    references=(
                        "https://kotlinlang.org/api/kotlinx.coroutines/kotlinx-coroutines-core/"
                        "kotlinx.coroutines.flow/update.html",
                    ),
                )
            )
        return findings

    def _check_flow_dispatcher(self, file: FileInfo, owner: SyntaxNode) -> list[Finding]:
        findings = []
        for fn in owner.iter_children(NodeKind.FUNCTION):
            if not _FLOW_TYPE.search(fn.type_text):
                continue
            if not _DATABASE_ACCESS.search(fn.text):
                continue
            if any(call.name == "flowOn" for call in fn.find_all(NodeKind.CALL)):
                continue
            findings.append(
                self.finding(
                    file,
                    fn,
                    title="Missing flowOn(Dispatchers.IO) for Database Operation",
                    description=(
                        f"Function '{fn.name}' returns a Flow backed by database access but "
                        "never switches to Dispatchers.IO."
                    ),
                    priority=Priority.HIGH,
                    effort=Effort.TRIVIAL,
                    recommendation=(
                        "Apply .flowOn(Dispatchers.IO) after the transformations, before "
                        "returning the Flow."
                    ),
                    before="fun getMeals(): Flow<List<Meal>> = mealDao.getAllMeals().map { it.toDomain() }",
                    after=(
                        "fun getMeals(): Flow<List<Meal>> = mealDao.getAllMeals()\n"
                        "    .map { it.toDomain() }\n"
                        "    .flowOn(Dispatchers.IO)"
                    ),
                    references=("https://developer.android.com/kotlin/flow#modify",),
                )
            )
        return findings

    def _check_scope(self, file: FileInfo, owner: SyntaxNode) -> list[Finding]:
        findings = []
        for node, ancestors in walk_with_ancestors(owner):
            if node.kind != NodeKind.CALL or node.name not in COROUTINE_BUILDERS:
                continue
            if node.qualifier.endswith("viewModelScope"):
                continue
            if not node.qualifier and inside_call(ancestors, *SCOPED_BUILDERS):
                continue
            findings.append(
                self.finding(
                    file,
                    node,
                    snippet=node.text.splitlines()[0] if node.text else "",
                    title="Coroutine Launch Not Using viewModelScope",
                    description=(
                        f"'{node.qualifier or node.name}' starts a coroutine outside "
                        "viewModelScope, so it is not cancelled when the ViewModel is cleared."
                    ),
                    priority=Priority.MEDIUM,
                    effort=Effort.TRIVIAL,
                    recommendation="Launch the coroutine with viewModelScope.launch.",
                    before="GlobalScope.launch { repository.refresh() }",
                    after="viewModelScope.launch { repository.refresh() }",
                    references=(
                        "https://developer.android.com/topic/libraries/architecture/coroutines",
                    ),
                )
            )
        return findings
