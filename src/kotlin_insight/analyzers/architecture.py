"""Layering rules for clean-architecture Android projects."""

from __future__ import annotations

from ..models import Category, Effort, FileInfo, Finding, Layer, Priority
from ..scanning.tree import NodeKind, SyntaxNode, SyntaxTree
from .base import BaseAnalyzer, is_view_model


def exposes_mutable_state(prop: SyntaxNode) -> bool:
    declared = f"{prop.type_text} {prop.initializer}"
    return "MutableStateFlow" in declared and prop.is_public


class ArchitectureAnalyzer(BaseAnalyzer):
    """Checks layer boundaries, ViewModel state exposure and use case shape."""

    id = "architecture"
    name = "Architecture Analyzer"
    category = Category.ARCHITECTURE

    def applies_to(self, file: FileInfo) -> bool:
        return not file.is_test and file.layer not in (Layer.UNKNOWN, Layer.TEST)

    def analyze(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        findings: list[Finding] = []
        if file.layer == Layer.DOMAIN:
            findings.extend(self._android_imports(file, tree))
            for node in tree.types():
                if self._is_use_case(file, node):
                    findings.extend(self._check_use_case(file, node))
        for node in tree.types():
            if is_view_model(node):
                findings.extend(self._check_view_model(file, node))
        return findings

    def _android_imports(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        findings = []
        for node in tree.root.iter_children(NodeKind.IMPORT):
            if not node.name.startswith("android."):
                continue
            findings.append(
                self.finding(
                    file,
                    node,
                    title="Android Framework Import in Domain Layer",
                    description=(
                        f"The domain layer imports '{node.name}'. Domain code must stay "
                        "platform-independent so it can be unit tested without Android."
                    ),
                    priority=Priority.HIGH,
                    effort=Effort.MEDIUM,
                    recommendation=(
                        "Define an interface in the domain layer and implement it in the "
                        "data or presentation layer."
                    ),
                    before="import android.content.Context\n\nclass GetLabelUseCase(private val context: Context)",
                    after=(
                        "interface StringProvider {\n    fun getString(id: Int): String\n}\n\n"
                        "class GetLabelUseCase(private val strings: StringProvider)"
                    ),
                    references=(
                        "https://developer.android.com/topic/architecture/domain-layer",
                    ),
                )
            )
        return findings

    @staticmethod
    def _is_use_case(file: FileInfo, node: SyntaxNode) -> bool:
        if node.kind != NodeKind.CLASS:
            return False
        return node.name.endswith("UseCase") or "/usecase/" in file.relative_path.lower()

    def _check_use_case(self, file: FileInfo, node: SyntaxNode) -> list[Finding]:
        public = [
            fn
            for fn in node.iter_children(NodeKind.FUNCTION)
            if fn.is_public and fn.name
        ]
        if len(public) > 1:
            names = ", ".join(fn.name for fn in public)
            return [
                self.finding(
                    file,
                    node,
                    title="Use Case Has Multiple Public Functions",
                    description=(
                        f"Use case '{node.name}' exposes {len(public)} public functions "
                        f"({names}). A use case should perform a single business operation."
                    ),
                    priority=Priority.HIGH,
                    effort=Effort.MEDIUM,
                    recommendation="Split the class into one use case per operation.",
                    after="class GetMealsUseCase(private val repo: MealRepository) {\n    operator fun invoke() = repo.getMeals()\n}",
                )
            ]
        if len(public) == 1 and not (
            public[0].name == "invoke" and public[0].has_modifier("operator")
        ):
            fn = public[0]
            return [
                self.finding(
                    file,
                    fn,
                    title="Use Case Missing Operator Function",
                    description=(
                        f"Use case '{node.name}' exposes '{fn.name}' instead of "
                        "'operator fun invoke', so callers cannot invoke it like a function."
                    ),
                    priority=Priority.MEDIUM,
                    effort=Effort.TRIVIAL,
                    auto_fixable=True,
                    recommendation=f"Rename '{fn.name}' to 'operator fun invoke'.",
                    before=f"fun {fn.name}(id: Long): Meal",
                    after="operator fun invoke(id: Long): Meal",
                )
            ]
        return []

    def _check_view_model(self, file: FileInfo, node: SyntaxNode) -> list[Finding]:
        findings = []
        for prop in node.iter_children(NodeKind.PROPERTY):
            if not exposes_mutable_state(prop):
                continue
            findings.append(
                self.finding(
                    file,
                    prop,
                    title="Exposed MutableStateFlow in ViewModel",
                    description=(
                        f"ViewModel '{node.name}' exposes mutable state '{prop.name}'. "
                        "The UI could modify state directly and bypass the ViewModel."
                    ),
                    priority=Priority.HIGH,
                    effort=Effort.SMALL,
                    recommendation=(
                        "Keep the MutableStateFlow private and expose it as StateFlow "
                        "through asStateFlow()."
                    ),
                    before="val uiState = MutableStateFlow(UiState())",
                    after=(
                        "private val _uiState = MutableStateFlow(UiState())\n"
                        "val uiState: StateFlow<UiState> = _uiState.asStateFlow()"
                    ),
                    references=(
                        "https://developer.android.com/topic/architecture/ui-layer/stateholders",
                    ),
                )
            )
        return findings
