"""Tests for the Room database analyzer."""

from conftest import make_file, run_analyzer, titles

from kotlin_insight.analyzers.database import DatabaseAnalyzer, enclosed
from kotlin_insight.models import Category, Priority

DAO = "app/src/main/java/com/example/data/MealDao.kt"
ENTITY = "app/src/main/java/com/example/data/IngredientEntity.kt"


class TestAppliesTo:
    def test_data_layer_and_room_file_names(self):
        analyzer = DatabaseAnalyzer()
        assert analyzer.applies_to(make_file(DAO))
        assert analyzer.applies_to(make_file("core/src/main/java/com/example/MealDao.kt"))
        assert not analyzer.applies_to(make_file("app/src/main/java/com/example/ui/MealScreen.kt"))
        assert not analyzer.applies_to(make_file("app/src/test/java/com/example/data/MealDaoTest.kt"))


class TestQueries:
    def test_blocking_query(self):
        source = (
            "@Dao\n"
            "interface MealDao {\n"
            "    @Query(\"SELECT * FROM meals\")\n"
            "    fun getAllMeals(): List<MealEntity>\n"
            "}\n"
        )
        findings = run_analyzer(DatabaseAnalyzer(), source, DAO)
        assert titles(findings) == ["DAO Query Function Should Return Flow"]
        assert findings[0].category == Category.PERSISTENCE
        assert findings[0].priority == Priority.HIGH
        assert findings[0].line == 4
        assert "List<MealEntity>" in findings[0].description

    def test_observable_and_suspend_queries(self):
        source = (
            "@Dao\n"
            "interface MealDao {\n"
            "    @Query(\"SELECT * FROM meals\")\n"
            "    fun observeMeals(): Flow<List<MealEntity>>\n"
            "\n"
            "    @Query(\"SELECT * FROM meals WHERE id = :id\")\n"
            "    suspend fun getMeal(id: Long): MealEntity?\n"
            "}\n"
        )
        assert run_analyzer(DatabaseAnalyzer(), source, DAO) == []

    def test_template_in_query(self):
        source = (
            "@Dao\n"
            "interface MealDao {\n"
            "    @Query(\"SELECT * FROM meals WHERE type = '$DEFAULT_TYPE'\")\n"
            "    fun defaultMeals(): Flow<List<MealEntity>>\n"
            "}\n"
        )
        findings = run_analyzer(DatabaseAnalyzer(), source, DAO)
        assert titles(findings) == ["SQL Injection Risk: String Concatenation in Query"]
        assert findings[0].priority == Priority.CRITICAL
        assert findings[0].code_snippet.startswith("@Query(")

    def test_concatenated_query(self):
        source = (
            "@Dao\n"
            "interface MealDao {\n"
            "    @Query(\"SELECT * FROM meals WHERE name = '\" + NAME + \"'\")\n"
            "    suspend fun byName(): List<MealEntity>\n"
            "}\n"
        )
        findings = run_analyzer(DatabaseAnalyzer(), source, DAO)
        assert titles(findings) == ["SQL Injection Risk: String Concatenation in Query"]

    def test_parameters_not_bound(self):
        source = (
            "@Dao\n"
            "interface MealDao {\n"
            "    @Query(\"SELECT * FROM meals\")\n"
            "    fun mealsByType(type: String): Flow<List<MealEntity>>\n"
            "}\n"
        )
        findings = run_analyzer(DatabaseAnalyzer(), source, DAO)
        assert titles(findings) == ["Query Should Use Parameterized Queries"]
        assert "(type)" in findings[0].description

    def test_non_dao_types_are_ignored(self):
        source = (
            "interface MealApi {\n"
            "    @Query(\"q\")\n"
            "    fun search(q: String): List<Meal>\n"
            "}\n"
        )
        assert run_analyzer(DatabaseAnalyzer(), source, DAO) == []


class TestMutations:
    def test_blocking_insert(self):
        source = (
            "@Dao\n"
            "interface MealDao {\n"
            "    @Insert(onConflict = OnConflictStrategy.REPLACE)\n"
            "    fun insertMeal(meal: MealEntity)\n"
            "\n"
            "    @Delete\n"
            "    suspend fun deleteMeal(meal: MealEntity)\n"
            "}\n"
        )
        findings = run_analyzer(DatabaseAnalyzer(), source, DAO)
        assert titles(findings) == ["DAO Mutation Function Should Be Suspend"]
        assert findings[0].auto_fixable
        assert "@Insert" in findings[0].description
        assert findings[0].line == 4


class TestForeignKeys:
    def test_foreign_key_without_cascade(self):
        source = (
            "@Entity(\n"
            "    tableName = \"ingredients\",\n"
            "    foreignKeys = [\n"
            "        ForeignKey(\n"
            "            entity = MealEntity::class,\n"
            "            parentColumns = [\"id\"],\n"
            "            childColumns = [\"meal_id\"]\n"
            "        )\n"
            "    ]\n"
            ")\n"
            "data class IngredientEntity(\n"
            "    @PrimaryKey val id: Long,\n"
            "    @ColumnInfo(name = \"meal_id\") val mealId: Long\n"
            ")\n"
        )
        findings = run_analyzer(DatabaseAnalyzer(), source, ENTITY)
        assert titles(findings) == ["Foreign Key Should Use CASCADE for onDelete"]
        assert findings[0].line == 4
        assert findings[0].priority == Priority.MEDIUM
        assert "IngredientEntity" in findings[0].description

    def test_cascading_foreign_key(self):
        source = (
            "@Entity(\n"
            "    foreignKeys = [ForeignKey(entity = MealEntity::class, parentColumns = [\"id\"],\n"
            "        childColumns = [\"meal_id\"], onDelete = ForeignKey.CASCADE)]\n"
            ")\n"
            "data class IngredientEntity(val id: Long, val mealId: Long)\n"
        )
        assert run_analyzer(DatabaseAnalyzer(), source, ENTITY) == []

    def test_enclosed(self):
        text = "ForeignKey(a = f(1), b = [2]) trailing"
        assert enclosed(text, text.index("(")) == "(a = f(1), b = [2])"
