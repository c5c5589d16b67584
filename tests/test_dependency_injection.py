"""Tests for the Hilt dependency injection analyzer."""

from conftest import parse_kotlin, run_analyzer, titles

from kotlin_insight.analyzers.dependency_injection import (
    DependencyInjectionAnalyzer,
    extends_view_model,
    returns_parameter,
)
from kotlin_insight.models import Category, Priority
from kotlin_insight.scanning.tree import NodeKind

VIEW_MODEL = "app/src/main/java/com/example/ui/MealViewModel.kt"
REPOSITORY = "app/src/main/java/com/example/data/MealRepositoryImpl.kt"
MODULE = "app/src/main/java/com/example/di/DatabaseModule.kt"


class TestViewModels:
    def test_unannotated_view_model(self):
        source = (
            "class MealViewModel(private val getMeals: GetMealsUseCase) : ViewModel() {\n"
            "}\n"
        )
        findings = run_analyzer(DependencyInjectionAnalyzer(), source, VIEW_MODEL)
        assert titles(findings) == [
            "ViewModel Missing @HiltViewModel Annotation",
            "Constructor Missing @Inject Annotation",
        ]
        assert all(f.category == Category.DEPENDENCY_WIRING for f in findings)
        assert all(f.priority == Priority.HIGH for f in findings)
        assert "(getMeals)" in findings[1].description

    def test_hilt_view_model_is_clean(self):
        source = (
            "@HiltViewModel\n"
            "class MealViewModel @Inject constructor(\n"
            "    private val getMeals: GetMealsUseCase\n"
            ") : ViewModel() {\n"
            "}\n"
        )
        assert run_analyzer(DependencyInjectionAnalyzer(), source, VIEW_MODEL) == []

    def test_abstract_base_is_exempt(self):
        source = "abstract class BaseViewModel : ViewModel()\n"
        assert run_analyzer(DependencyInjectionAnalyzer(), source, VIEW_MODEL) == []

    def test_extends_view_model(self):
        tree = parse_kotlin("class A : AndroidViewModel(app)\nclass B : Base()\n")
        a, b = tree.root.find_all(NodeKind.CLASS)
        assert extends_view_model(a)
        assert not extends_view_model(b)


class TestInjectConstructor:
    def test_repository_without_inject(self):
        source = "class MealRepositoryImpl(private val dao: MealDao) : MealRepository\n"
        findings = run_analyzer(DependencyInjectionAnalyzer(), source, REPOSITORY)
        assert titles(findings) == ["Constructor Missing @Inject Annotation"]
        assert findings[0].line == 1
        assert findings[0].auto_fixable

    def test_other_classes_are_not_required(self):
        source = (
            "class MealMapper(private val clock: Clock)\n"
            "data class MealUiStateRepository(val loading: Boolean)\n"
            "class MealRepositoryImpl @Inject constructor(private val dao: MealDao)\n"
            "class EmptyUseCase\n"
        )
        assert run_analyzer(DependencyInjectionAnalyzer(), source, REPOSITORY) == []


class TestModules:
    def test_module_missing_annotation(self):
        source = (
            "object DatabaseModule {\n"
            "    @Provides\n"
            "    fun provideMealDao(db: AppDatabase): MealDao = db.mealDao()\n"
            "}\n"
        )
        findings = run_analyzer(DependencyInjectionAnalyzer(), source, MODULE)
        assert titles(findings) == ["Hilt Module Missing @Module Annotation"]

    def test_module_missing_install_in(self):
        source = (
            "@Module\n"
            "object DatabaseModule {\n"
            "    @Provides\n"
            "    fun provideMealDao(db: AppDatabase): MealDao = db.mealDao()\n"
            "}\n"
        )
        findings = run_analyzer(DependencyInjectionAnalyzer(), source, MODULE)
        assert titles(findings) == ["Hilt Module Missing @InstallIn Annotation"]
        assert findings[0].line == 2

    def test_provides_that_returns_its_parameter(self):
        source = (
            "@Module\n"
            "@InstallIn(SingletonComponent::class)\n"
            "object RepositoryModule {\n"
            "    @Provides\n"
            "    fun provideMealRepository(impl: MealRepositoryImpl): MealRepository = impl\n"
            "}\n"
        )
        findings = run_analyzer(DependencyInjectionAnalyzer(), source, MODULE)
        assert titles(findings) == ["Consider Using @Binds Instead of @Provides"]
        assert findings[0].priority == Priority.MEDIUM
        assert findings[0].line == 5

    def test_module_name_outside_di_without_bindings(self):
        source = "object AnalyticsModule {\n    fun start() = Unit\n}\n"
        assert run_analyzer(DependencyInjectionAnalyzer(), source) == []
        findings = run_analyzer(DependencyInjectionAnalyzer(), source, MODULE)
        assert titles(findings) == ["Hilt Module Missing @Module Annotation"]

    def test_returns_parameter(self):
        tree = parse_kotlin(
            "fun a(impl: Impl): Api = impl\n"
            "fun b(impl: Impl): Api {\n    return impl\n}\n"
            "fun c(impl: Impl): Api = Wrapper(impl)\n"
            "fun d(x: Impl, y: Impl): Api = x\n"
        )
        fns = {fn.name: fn for fn in tree.root.find_all(NodeKind.FUNCTION)}
        assert returns_parameter(fns["a"])
        assert returns_parameter(fns["b"])
        assert not returns_parameter(fns["c"])
        assert not returns_parameter(fns["d"])
