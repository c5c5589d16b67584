"""Tests for the state management analyzer."""

from conftest import run_analyzer, titles

from kotlin_insight.analyzers.state_management import StateManagementAnalyzer
from kotlin_insight.models import Category, Priority

VIEW_MODEL = "app/src/main/java/com/example/ui/MealViewModel.kt"
REPOSITORY = "app/src/main/java/com/example/data/MealRepositoryImpl.kt"


class TestExposure:
    def test_public_mutable_state_flow(self):
        source = (
            "class MealViewModel : ViewModel() {\n"
            "    val uiState = MutableStateFlow(MealUiState())\n"
            "}\n"
        )
        findings = run_analyzer(StateManagementAnalyzer(), source, VIEW_MODEL)
        assert titles(findings) == ["Public MutableStateFlow Exposed"]
        assert findings[0].category == Category.STATE_MANAGEMENT
        assert findings[0].priority == Priority.HIGH

    def test_encapsulated_state_is_clean(self):
        source = (
            "class MealViewModel : ViewModel() {\n"
            "    private val _uiState = MutableStateFlow(MealUiState())\n"
            "    val uiState: StateFlow<MealUiState> = _uiState.asStateFlow()\n"
            "\n"
            "    fun refresh() {\n"
            "        viewModelScope.launch {\n"
            "            _uiState.update { it.copy(loading = true) }\n"
            "        }\n"
            "    }\n"
            "}\n"
        )
        assert run_analyzer(StateManagementAnalyzer(), source, VIEW_MODEL) == []

    def test_other_classes_are_ignored(self):
        source = "class Cache {\n    val state = MutableStateFlow(0)\n}\n"
        assert run_analyzer(StateManagementAnalyzer(), source) == []


class TestDirectMutation:
    def test_value_assignment(self):
        source = (
            "class MealViewModel : ViewModel() {\n"
            "    private val _uiState = MutableStateFlow(MealUiState())\n"
            "\n"
            "    fun select(id: Long) {\n"
            "        if (_uiState.value == MealUiState()) return\n"
            "        _uiState.value = MealUiState(selected = id)\n"
            "    }\n"
            "}\n"
        )
        findings = run_analyzer(StateManagementAnalyzer(), source, VIEW_MODEL)
        assert titles(findings) == ["Direct State Mutation Instead of update { }"]
        assert findings[0].line == 6
        assert findings[0].code_snippet == "_uiState.value = MealUiState(selected = id)"

    def test_compound_assignment(self):
        source = (
            "class CounterViewModel : ViewModel() {\n"
            "    private val _count = MutableStateFlow(0)\n"
            "    fun increment() {\n"
            "        _count.value += 1\n"
            "    }\n"
            "}\n"
        )
        findings = run_analyzer(StateManagementAnalyzer(), source, VIEW_MODEL)
        assert titles(findings) == ["Direct State Mutation Instead of update { }"]


class TestFlowDispatcher:
    def test_database_flow_without_flow_on(self):
        source = (
            "class MealRepositoryImpl(private val mealDao: MealDao) : MealRepository {\n"
            "    override fun getMeals(): Flow<List<Meal>> =\n"
            "        mealDao.getAllMeals().map { list -> list.map { it.toDomain() } }\n"
            "}\n"
        )
        findings = run_analyzer(StateManagementAnalyzer(), source, REPOSITORY)
        assert titles(findings) == ["Missing flowOn(Dispatchers.IO) for Database Operation"]
        assert findings[0].line == 2

    def test_flow_on_present(self):
        source = (
            "class MealRepositoryImpl(private val mealDao: MealDao) : MealRepository {\n"
            "    override fun getMeals(): Flow<List<Meal>> = mealDao.getAllMeals()\n"
            "        .map { list -> list.map { it.toDomain() } }\n"
            "        .flowOn(Dispatchers.IO)\n"
            "}\n"
        )
        assert run_analyzer(StateManagementAnalyzer(), source, REPOSITORY) == []

    def test_non_database_flow(self):
        source = (
            "class SettingsRepository(private val store: DataStore) {\n"
            "    fun theme(): Flow<String> = store.data.map { it.theme }\n"
            "}\n"
        )
        assert run_analyzer(StateManagementAnalyzer(), source, REPOSITORY) == []


class TestCoroutineScope:
    def test_global_scope(self):
        source = (
            "class MealViewModel : ViewModel() {\n"
            "    fun refresh() {\n"
            "        GlobalScope.launch {\n"
            "            repository.refresh()\n"
            "        }\n"
            "    }\n"
            "}\n"
        )
        findings = run_analyzer(StateManagementAnalyzer(), source, VIEW_MODEL)
        assert titles(findings) == ["Coroutine Launch Not Using viewModelScope"]
        assert findings[0].line == 3
        assert findings[0].code_snippet == "GlobalScope.launch {"
        assert "GlobalScope" in findings[0].description

    def test_nested_builders_inside_view_model_scope(self):
        source = (
            "class MealViewModel : ViewModel() {\n"
            "    fun refresh() {\n"
            "        viewModelScope.launch {\n"
            "            coroutineScope {\n"
            "                launch { repository.refreshMeals() }\n"
            "                async { repository.refreshTags() }\n"
            "            }\n"
            "        }\n"
            "    }\n"
            "}\n"
        )
        assert run_analyzer(StateManagementAnalyzer(), source, VIEW_MODEL) == []

    def test_scope_rule_only_in_view_models(self):
        source = (
            "class MealRepositoryImpl {\n"
            "    fun sync() {\n"
            "        GlobalScope.launch { work() }\n"
            "    }\n"
            "}\n"
        )
        assert run_analyzer(StateManagementAnalyzer(), source, REPOSITORY) == []
