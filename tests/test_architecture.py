"""Tests for the architecture (layering) analyzer."""

from conftest import make_file, run_analyzer, titles

from kotlin_insight.analyzers.architecture import ArchitectureAnalyzer
from kotlin_insight.models import Category, Priority

DOMAIN = "app/src/main/java/com/example/domain/GetMealsUseCase.kt"
PRESENTATION = "app/src/main/java/com/example/ui/MealViewModel.kt"


class TestAppliesTo:
    def test_skips_unknown_and_test_files(self):
        analyzer = ArchitectureAnalyzer()
        assert analyzer.applies_to(make_file(DOMAIN))
        assert not analyzer.applies_to(make_file("app/src/main/java/com/example/App.kt"))
        assert not analyzer.applies_to(make_file("app/src/test/java/com/example/domain/FooTest.kt"))


class TestDomainLayer:
    def test_android_import(self):
        source = (
            "package com.example.domain\n"
            "\n"
            "import android.content.Context\n"
            "import javax.inject.Inject\n"
            "\n"
            "class GetMealsUseCase @Inject constructor(private val repo: MealRepository) {\n"
            "    operator fun invoke() = repo.getMeals()\n"
            "}\n"
        )
        findings = run_analyzer(ArchitectureAnalyzer(), source, DOMAIN)
        assert titles(findings) == ["Android Framework Import in Domain Layer"]
        assert findings[0].line == 3
        assert findings[0].priority == Priority.HIGH
        assert findings[0].category == Category.ARCHITECTURE
        assert "android.content.Context" in findings[0].description

    def test_use_case_with_multiple_public_functions(self):
        source = (
            "class GetMealsUseCase(private val repo: MealRepository) {\n"
            "    fun all() = repo.getMeals()\n"
            "    fun one(id: Long) = repo.getMeal(id)\n"
            "    private fun helper() = Unit\n"
            "}\n"
        )
        findings = run_analyzer(ArchitectureAnalyzer(), source, DOMAIN)
        assert titles(findings) == ["Use Case Has Multiple Public Functions"]
        assert "all, one" in findings[0].description

    def test_use_case_without_operator_invoke(self):
        source = (
            "class GetMealsUseCase(private val repo: MealRepository) {\n"
            "    fun execute() = repo.getMeals()\n"
            "}\n"
        )
        findings = run_analyzer(ArchitectureAnalyzer(), source, DOMAIN)
        assert titles(findings) == ["Use Case Missing Operator Function"]
        assert findings[0].line == 2
        assert findings[0].priority == Priority.MEDIUM
        assert findings[0].auto_fixable

    def test_operator_invoke_is_clean(self):
        source = (
            "class GetMealsUseCase(private val repo: MealRepository) {\n"
            "    operator fun invoke() = repo.getMeals()\n"
            "}\n"
        )
        assert run_analyzer(ArchitectureAnalyzer(), source, DOMAIN) == []

    def test_use_case_rules_only_in_domain(self):
        source = (
            "class GetMealsUseCase(private val repo: MealRepository) {\n"
            "    fun execute() = repo.getMeals()\n"
            "}\n"
        )
        path = "app/src/main/java/com/example/ui/GetMealsUseCase.kt"
        assert run_analyzer(ArchitectureAnalyzer(), source, path) == []


class TestViewModelState:
    def test_public_mutable_state_flow(self):
        source = (
            "class MealViewModel : ViewModel() {\n"
            "    val uiState = MutableStateFlow(MealUiState())\n"
            "    private val _events = MutableStateFlow(0)\n"
            "    val events: StateFlow<Int> = _events.asStateFlow()\n"
            "}\n"
        )
        findings = run_analyzer(ArchitectureAnalyzer(), source, PRESENTATION)
        assert titles(findings) == ["Exposed MutableStateFlow in ViewModel"]
        assert findings[0].line == 2
        assert "uiState" in findings[0].description

    def test_declared_type_is_checked(self):
        source = (
            "class MealViewModel : ViewModel() {\n"
            "    val uiState: MutableStateFlow<MealUiState> = createState()\n"
            "}\n"
        )
        findings = run_analyzer(ArchitectureAnalyzer(), source, PRESENTATION)
        assert titles(findings) == ["Exposed MutableStateFlow in ViewModel"]
