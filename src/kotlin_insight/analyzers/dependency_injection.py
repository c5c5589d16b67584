"""Hilt wiring: annotated ViewModels, injectable constructors and modules."""

from __future__ import annotations

import re

from ..models import Category, Effort, FileInfo, Finding, Layer, Priority
from ..scanning.tree import NodeKind, SyntaxNode, SyntaxTree, annotation_name
from .base import BaseAnalyzer, supertypes

# Class name suffixes of types that are expected to be constructed by Hilt.
INJECTABLE_SUFFIXES = ("ViewModel", "Repository", "RepositoryImpl", "UseCase", "DataSource")
NON_INJECTABLE_MODIFIERS = ("data", "sealed", "enum", "annotation", "abstract", "value", "inline")


def extends_view_model(node: SyntaxNode) -> bool:
    if node.has_modifier("abstract"):
        return False
    return any(name.endswith("ViewModel") for name in supertypes(node))


def has_inject_constructor(node: SyntaxNode) -> bool:
    return any(annotation_name(m) == "Inject" for m in node.constructor_modifiers)


def returns_parameter(fn: SyntaxNode) -> bool:
    """``fun provide(impl: Impl): Api = impl`` or a block that only returns it."""
    if len(fn.parameters) != 1:
        return False
    name = re.escape(fn.parameters[0].name)
    return bool(
        re.search(rf"=\s*{name}\s*$", fn.text)
        or re.search(rf"\{{\s*return\s+{name}\s*\}}\s*$", fn.text)
    )


class DependencyInjectionAnalyzer(BaseAnalyzer):
    """Checks Hilt annotations on ViewModels, constructors and modules."""

    id = "dependency-injection"
    name = "Dependency Injection Analyzer"
    category = Category.DEPENDENCY_WIRING

    def analyze(self, file: FileInfo, tree: SyntaxTree) -> list[Finding]:
        findings: list[Finding] = []
        for node in tree.types():
            if node.kind == NodeKind.CLASS:
                if extends_view_model(node) and not node.has_annotation("HiltViewModel"):
                    findings.append(self._missing_hilt_view_model(file, node))
                if self._needs_inject(node):
                    findings.append(self._missing_inject(file, node))
            if self._is_module(file, node):
                findings.extend(self._check_module(file, node))
        return findings

    @staticmethod
    def _needs_inject(node: SyntaxNode) -> bool:
        if not node.parameters or has_inject_constructor(node):
            return False
        if any(node.has_modifier(m) for m in NON_INJECTABLE_MODIFIERS):
            return False
        return node.name.endswith(INJECTABLE_SUFFIXES)

    @staticmethod
    def _is_module(file: FileInfo, node: SyntaxNode) -> bool:
        if node.kind not in (NodeKind.OBJECT, NodeKind.CLASS, NodeKind.INTERFACE):
            return False
        if node.has_annotation("Module"):
            return True
        if not node.name.endswith("Module"):
            return False
        binding = any(
            fn.has_annotation("Provides") or fn.has_annotation("Binds")
            for fn in node.iter_children(NodeKind.FUNCTION)
        )
        return binding or file.layer == Layer.DI

    def _missing_hilt_view_model(self, file: FileInfo, node: SyntaxNode) -> Finding:
        return self.finding(
            file,
            node,
            snippet_lines=5,
            title="ViewModel Missing @HiltViewModel Annotation",
            description=(
                f"ViewModel '{node.name}' is not annotated with @HiltViewModel, so "
                "hiltViewModel() cannot create it with its dependencies."
            ),
            priority=Priority.HIGH,
            effort=Effort.TRIVIAL,
            auto_fixable=True,
            recommendation="Annotate the class with @HiltViewModel and its constructor with @Inject.",
            before="class MealViewModel(private val getMeals: GetMealsUseCase) : ViewModel()",
            after=(
                "@HiltViewModel\n"
                "class MealViewModel @Inject constructor(\n"
                "    private val getMeals: GetMealsUseCase\n"
                ") : ViewModel()"
            ),
            references=("https://developer.android.com/training/dependency-injection/hilt-jetpack",),
        )

    def _missing_inject(self, file: FileInfo, node: SyntaxNode) -> Finding:
        params = ", ".join(p.name for p in node.parameters)
        return self.finding(
            file,
            node,
            snippet_lines=5,
            title="Constructor Missing @Inject Annotation",
            description=(
                f"'{node.name}' takes dependencies ({params}) through a constructor that is "
                "not annotated with @Inject, so Hilt cannot provide it."
            ),
            priority=Priority.HIGH,
            effort=Effort.TRIVIAL,
            auto_fixable=True,
            recommendation="Add '@Inject constructor' to the primary constructor.",
            before="class MealRepositoryImpl(private val mealDao: MealDao) : MealRepository",
            after="class MealRepositoryImpl @Inject constructor(\n    private val mealDao: MealDao\n) : MealRepository",
            references=("https://dagger.dev/hilt/",),
        )

    def _check_module(self, file: FileInfo, node: SyntaxNode) -> list[Finding]:
        findings = []
        if not node.has_annotation("Module"):
            findings.append(
                self.finding(
                    file,
                    node,
                    snippet_lines=5,
                    title="Hilt Module Missing @Module Annotation",
                    description=(
                        f"'{node.name}' declares bindings but is not annotated with @Module, "
                        "so Hilt ignores it."
                    ),
                    priority=Priority.HIGH,
                    effort=Effort.TRIVIAL,
                    auto_fixable=True,
                    recommendation="Annotate the module with @Module and @InstallIn.",
                    after="@Module\n@InstallIn(SingletonComponent::class)\nobject DatabaseModule",
                    references=("https://developer.android.com/training/dependency-injection/hilt-android#hilt-modules",),
                )
            )
        elif not node.has_annotation("InstallIn"):
            findings.append(
                self.finding(
                    file,
                    node,
                    snippet_lines=5,
                    title="Hilt Module Missing @InstallIn Annotation",
                    description=(
                        f"Module '{node.name}' has no @InstallIn, so Hilt does not know which "
                        "component its bindings belong to."
                    ),
                    priority=Priority.HIGH,
                    effort=Effort.TRIVIAL,
                    recommendation="Add @InstallIn with the component that owns the bindings.",
                    before="@Module\nobject DatabaseModule",
                    after="@Module\n@InstallIn(SingletonComponent::class)\nobject DatabaseModule",
                    references=("https://developer.android.com/training/dependency-injection/hilt-android#hilt-modules",),
                )
            )

        for fn in node.iter_children(NodeKind.FUNCTION):
            if fn.has_annotation("Provides") and returns_parameter(fn):
                findings.append(
                    self.finding(
                        file,
                        fn,
                        title="Consider Using @Binds Instead of @Provides",
                        description=(
                            f"'{fn.name}' only returns its '{fn.parameters[0].name}' parameter. "
                            "@Binds expresses the same binding without generating a factory method."
                        ),
                        priority=Priority.MEDIUM,
                        effort=Effort.SMALL,
                        recommendation=(
                            "Move the binding to an abstract module and declare it as an "
                            "abstract @Binds function."
                        ),
                        before=(
                            "@Provides\n"
                            "fun provideMealRepository(impl: MealRepositoryImpl): MealRepository = impl"
                        ),
                        after=(
                            "@Binds\n"
                            "abstract fun bindMealRepository(impl: MealRepositoryImpl): MealRepository"
                        ),
                        references=("https://developer.android.com/training/dependency-injection/hilt-android#inject-interfaces",),
                    )
                )
        return findings
