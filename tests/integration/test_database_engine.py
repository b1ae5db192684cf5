"""Integration tests for DatabaseEngine.

Tests using the ``engine`` fixture run once per store backend.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from kvsql.adapters.outbound import InMemoryKeyValueStore, SqliteKeyValueStore
from kvsql.application import DatabaseEngine
from kvsql.domain.entities import Column, Table
from kvsql.domain.errors import (
    ColumnCountMismatchError,
    ConstraintError,
    ParseError,
    SchemaError,
    StorageError,
    TableNotFoundError,
    UnsupportedStatementError,
)
from kvsql.infrastructure.config import Config
from kvsql.infrastructure.metrics import MetricsRegistry


@pytest.mark.integration
class TestEngineLifecycle:
    """Tests for opening, seeding and closing."""

    def test_initialize_creates_and_seeds(self) -> None:
        db = DatabaseEngine(InMemoryKeyValueStore())

        assert db.initialize() is True
        assert db.is_initialized
        assert [t.name for t in db.get_schema()] == [
            "departments",
            "employees",
            "project_assignments",
            "projects",
        ]
        db.close()

    def test_demo_rows(self) -> None:
        with DatabaseEngine(InMemoryKeyValueStore()) as db:
            result = db.execute_statement("SELECT first_name, salary FROM employees")

            assert result.rows == [["John", 75000], ["Jane", 82000], ["Peter", 68000]]
            assert db.execute_statement("SELECT * FROM departments").rows == [
                [1, "Engineering"],
                [2, "Marketing"],
            ]

    def test_demo_columns(self) -> None:
        with DatabaseEngine(InMemoryKeyValueStore()) as db:
            employees = next(t for t in db.get_schema() if t.name == "employees")

            assert employees.column_names == [
                "employee_id",
                "first_name",
                "last_name",
                "email",
                "hire_date",
                "department_id",
                "salary",
            ]
            assert employees.columns[4] == Column("hire_date", "DATE")

    def test_seeding_disabled(self, engine: DatabaseEngine) -> None:
        assert engine.get_schema() == []

    def test_reopen_does_not_reseed(self, temp_dir: Path) -> None:
        path = temp_dir / "studio.db"
        with DatabaseEngine(SqliteKeyValueStore(path)) as db:
            db.execute_statement("DROP TABLE projects")

        db = DatabaseEngine(SqliteKeyValueStore(path))
        assert db.initialize() is False
        assert "projects" not in [t.name for t in db.get_schema()]
        db.close()

    def test_lazy_initialize_on_first_statement(self) -> None:
        db = DatabaseEngine(InMemoryKeyValueStore(), seed_demo_data=False)

        db.execute_statement("CREATE TABLE t (id INTEGER)")

        assert db.is_initialized
        db.close()

    def test_from_config(self, test_config: Config) -> None:
        db = DatabaseEngine.from_config(test_config)

        assert isinstance(db.store, SqliteKeyValueStore)
        assert db.store.name == "TestDB"
        db.initialize()
        assert (test_config.storage.data_dir / "TestDB.db").exists()
        db.close()

    def test_from_config_memory_backend(self, test_config: Config) -> None:
        config = test_config.model_copy(
            update={
                "storage": test_config.storage.model_copy(update={"backend": "memory"}),
                "engine": test_config.engine.model_copy(update={"where_semantics": "primary_key"}),
            }
        )

        db = DatabaseEngine.from_config(config)

        assert isinstance(db.store, InMemoryKeyValueStore)
        assert db.where_semantics == "primary_key"

    def test_close_and_reuse(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE t (id INTEGER)")
        engine.close()

        assert not engine.is_initialized
        assert [t.name for t in engine.get_schema()] == ["t"]


@pytest.mark.integration
class TestStatements:
    """End-to-end statement tests on both backends."""

    def test_round_trip(self, engine: DatabaseEngine) -> None:
        result = engine.execute_statement("CREATE TABLE users (id INTEGER, name TEXT)")
        assert result.schema_changed
        assert result.rows == [['Table "users" created successfully.']]

        result = engine.execute_statement("INSERT INTO users (name) VALUES ('Alice')")
        assert not result.schema_changed
        assert result.rows == [['1 row inserted into "users".']]

        result = engine.execute_statement("SELECT * FROM users")
        assert result.columns == ["id", "name"]
        assert result.rows == [[1, "Alice"]]

    def test_schema_reflects_create(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE users (id INTEGER, name VARCHAR(40))")

        assert engine.get_schema() == [
            Table("users", (Column("id", "INTEGER"), Column("name", "VARCHAR(40)")))
        ]

    def test_get_schema_is_idempotent(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE a (id INTEGER)")
        engine.execute_statement("CREATE TABLE b (id INTEGER)")

        assert engine.get_schema() == engine.get_schema()

    def test_drop_removes_table(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE users (id INTEGER)")

        result = engine.execute_statement("DROP TABLE users")

        assert result.schema_changed
        assert result.rows == [['Table "users" dropped successfully.']]
        assert engine.get_schema() == []
        with pytest.raises(TableNotFoundError):
            engine.execute_statement("SELECT * FROM users")

    def test_create_existing_table(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE users (id INTEGER)")

        with pytest.raises(SchemaError, match="already exists"):
            engine.execute_statement("CREATE TABLE users (id INTEGER)")

    def test_create_without_columns(self, engine: DatabaseEngine) -> None:
        with pytest.raises(ConstraintError):
            engine.execute_statement("CREATE TABLE empty ()")

        assert engine.get_schema() == []

    def test_ctas_union_all(self, engine: DatabaseEngine) -> None:
        result = engine.execute_statement(
            "CREATE TABLE t AS SELECT 1 AS id, 'x' AS name UNION ALL SELECT 2, 'y'"
        )

        assert result.schema_changed
        assert result.rows == [['Table "t" created with 2 rows.']]
        assert engine.get_schema() == [
            Table("t", (Column("id", "INTEGER"), Column("name", "TEXT")))
        ]
        assert engine.execute_statement("SELECT * FROM t").rows == [[1, "x"], [2, "y"]]

    def test_ctas_count_mismatch(self, engine: DatabaseEngine) -> None:
        with pytest.raises(ColumnCountMismatchError, match="expects 2 columns, but found 1"):
            engine.execute_statement(
                "CREATE TABLE t AS SELECT 1 AS id, 'x' AS name UNION ALL SELECT 2"
            )

        assert engine.get_schema() == []

    def test_ctas_duplicate_key_rolls_back(self, engine: DatabaseEngine) -> None:
        version = engine.version

        with pytest.raises(StorageError):
            engine.execute_statement(
                "CREATE TABLE t AS SELECT 1 AS id, 'x' AS name UNION ALL SELECT 1, 'y'"
            )

        assert engine.version == version
        assert engine.get_schema() == []
        with pytest.raises(TableNotFoundError):
            engine.execute_statement("SELECT * FROM t")

    def test_ctas_table_is_not_auto_increment(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE t AS SELECT 1 AS id, 'x' AS name")

        with pytest.raises(StorageError):
            engine.execute_statement("INSERT INTO t (name) VALUES ('no key')")

        engine.execute_statement("INSERT INTO t (id, name) VALUES (5, 'keyed')")
        assert engine.execute_statement("SELECT name FROM t WHERE id = 5").rows == [["keyed"]]

    def test_unqualified_delete_rejected(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE users (id INTEGER, name TEXT)")
        engine.execute_statement("INSERT INTO users (name) VALUES ('a')")

        with pytest.raises(ConstraintError):
            engine.execute_statement("DELETE FROM users")

        assert len(engine.execute_statement("SELECT * FROM users")) == 1

    def test_delete_by_key(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE users (id INTEGER, name TEXT)")
        engine.execute_statement("INSERT INTO users (name) VALUES ('a')")
        engine.execute_statement("INSERT INTO users (name) VALUES ('b')")

        result = engine.execute_statement("DELETE FROM users WHERE id = 1")

        assert result.rows == [['1 row deleted from "users".']]
        assert engine.execute_statement("SELECT name FROM users").rows == [["b"]]

    def test_string_keys(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE codes (code TEXT, label TEXT)")
        engine.execute_statement("INSERT INTO codes (code, label) VALUES ('b', 'Bee')")
        engine.execute_statement("INSERT INTO codes (code, label) VALUES ('a', 'Ay')")

        assert engine.execute_statement("SELECT code FROM codes").rows == [["a"], ["b"]]
        assert engine.execute_statement(
            "SELECT label FROM codes WHERE code = 'b'"
        ).rows == [["Bee"]]

    def test_quoted_names_and_escaped_values(self, engine: DatabaseEngine) -> None:
        engine.execute_statement('CREATE TABLE "Name List" (id INTEGER, "full name" TEXT)')
        engine.execute_statement(
            """INSERT INTO "Name List" (id, "full name") VALUES (1, 'O''Brien')"""
        )

        result = engine.execute_statement('SELECT "full name" FROM `Name List`')

        assert result.rows == [["O'Brien"]]

    def test_parse_errors(self, engine: DatabaseEngine) -> None:
        with pytest.raises(UnsupportedStatementError):
            engine.execute_statement("UPDATE t SET a = 1")
        with pytest.raises(ParseError):
            engine.execute_statement("SELECT FROM")


@pytest.mark.integration
class TestRename:
    """Tests for rename_table."""

    def test_rename_keeps_data(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE a (id INTEGER, v TEXT)")
        engine.execute_statement("INSERT INTO a (v) VALUES ('one')")
        engine.execute_statement("INSERT INTO a (v) VALUES ('two')")
        before = engine.execute_statement("SELECT * FROM a").rows

        engine.rename_table("a", "b")

        assert engine.execute_statement("SELECT * FROM b").rows == before
        assert [t.name for t in engine.get_schema()] == ["b"]
        with pytest.raises(TableNotFoundError):
            engine.execute_statement("SELECT * FROM a")

    def test_rename_keeps_auto_increment(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE a (id INTEGER, v TEXT)")
        engine.execute_statement("INSERT INTO a (v) VALUES ('one')")

        engine.rename_table("a", "b")
        engine.execute_statement("INSERT INTO b (v) VALUES ('two')")

        assert engine.execute_statement("SELECT id FROM b").rows == [[1], [2]]

    def test_rename_errors(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE a (id INTEGER)")
        engine.execute_statement("CREATE TABLE b (id INTEGER)")

        with pytest.raises(SchemaError):
            engine.rename_table("missing", "c")
        with pytest.raises(SchemaError):
            engine.rename_table("a", "b")


@pytest.mark.integration
class TestWhereSemantics:
    """The WHERE mode is chosen per engine."""

    def _seed(self, db: DatabaseEngine) -> None:
        db.execute_statement("CREATE TABLE p (id INTEGER, name TEXT)")
        db.execute_statement("INSERT INTO p (name) VALUES ('Ann')")
        db.execute_statement("INSERT INTO p (name) VALUES ('Bob')")

    def test_column_mode(self) -> None:
        with DatabaseEngine(seed_demo_data=False, where_semantics="column") as db:
            self._seed(db)

            assert db.execute_statement("SELECT id FROM p WHERE name = 'Bob'").rows == [[2]]

    def test_primary_key_mode(self) -> None:
        with DatabaseEngine(seed_demo_data=False, where_semantics="primary_key") as db:
            self._seed(db)

            assert db.execute_statement("SELECT id FROM p WHERE name = 'Bob'").rows == []
            assert db.execute_statement("SELECT name FROM p WHERE name = 2").rows == [["Bob"]]


@pytest.mark.integration
class TestScriptsAndImport:
    """Tests for execute_script and import_data."""

    def test_execute_script(self, engine: DatabaseEngine) -> None:
        results = engine.execute_script(
            "CREATE TABLE t (id INTEGER, v TEXT);\n"
            "INSERT INTO t (v) VALUES ('a;b');\n"
            "SELECT v FROM t;"
        )

        assert len(results) == 3
        assert results[0].schema_changed
        assert results[2].rows == [["a;b"]]

    def test_script_stops_at_first_error(self, engine: DatabaseEngine) -> None:
        with pytest.raises(TableNotFoundError):
            engine.execute_script(
                "CREATE TABLE t (id INTEGER);"
                "INSERT INTO missing (id) VALUES (1);"
                "CREATE TABLE after (id INTEGER)"
            )

        assert [t.name for t in engine.get_schema()] == ["t"]

    def test_import_data(self, engine: DatabaseEngine) -> None:
        results = engine.import_data("Team Members", "ID,Name,Rate\n7,Ann,1.5\n9,Bob,\n")

        assert results[0].schema_changed
        assert engine.get_schema() == [
            Table(
                "team_members",
                (Column("id", "INTEGER"), Column("name", "TEXT"), Column("rate", "REAL")),
            )
        ]
        assert engine.execute_statement("SELECT * FROM team_members").rows == [
            [7, "Ann", 1.5],
            [9, "Bob", None],
        ]


@pytest.mark.integration
class TestPersistence:
    """Tests for data surviving an engine restart."""

    def test_reopen_sqlite_store(self, temp_dir: Path) -> None:
        path = temp_dir / "persist.db"
        with DatabaseEngine(SqliteKeyValueStore(path), seed_demo_data=False) as db:
            db.execute_statement("CREATE TABLE notes (id INTEGER, body TEXT)")
            db.execute_statement("INSERT INTO notes (body) VALUES ('first')")
            db.rename_table("notes", "memos")
            version = db.version

        with DatabaseEngine(SqliteKeyValueStore(path), seed_demo_data=False) as db:
            assert db.version == version
            assert [t.name for t in db.get_schema()] == ["memos"]
            db.execute_statement("INSERT INTO memos (body) VALUES ('second')")
            assert db.execute_statement("SELECT * FROM memos").rows == [
                [1, "first"],
                [2, "second"],
            ]


@pytest.mark.integration
class TestEngineMetrics:
    """Tests for metrics recorded by the engine."""

    def test_statement_metrics(self, metrics_registry: MetricsRegistry) -> None:
        with DatabaseEngine(seed_demo_data=False, metrics=metrics_registry) as db:
            db.execute_statement("CREATE TABLE t (id INTEGER)")
            db.execute_statement("SELECT * FROM t")
            with pytest.raises(TableNotFoundError):
                db.execute_statement("SELECT * FROM missing")

        registry = metrics_registry.registry
        assert registry.get_sample_value(
            "kvsql_statements_total", {"statement_type": "create_table", "status": "success"}
        ) == 1.0
        assert registry.get_sample_value(
            "kvsql_statements_total", {"statement_type": "select", "status": "success"}
        ) == 1.0
        assert registry.get_sample_value(
            "kvsql_statements_total", {"statement_type": "select", "status": "error"}
        ) == 1.0
        assert registry.get_sample_value("kvsql_tables") == 1.0
        assert registry.get_sample_value(
            "kvsql_migrations_total", {"kind": "initialize"}
        ) == 1.0
        assert registry.get_sample_value(
            "kvsql_statement_latency_seconds_count", {"statement_type": "select"}
        ) == 2.0


@pytest.mark.integration
class TestBackendKeyOrder:
    """Key ordering as seen through SELECT on each backend."""

    def test_memory_numbers_before_strings(self, memory_engine: DatabaseEngine) -> None:
        memory_engine.execute_statement("CREATE TABLE k (id TEXT)")
        memory_engine.execute_statement("INSERT INTO k (id) VALUES ('a')")
        memory_engine.execute_statement("INSERT INTO k (id) VALUES (2)")

        assert memory_engine.execute_statement("SELECT id FROM k").rows == [[2], ["a"]]

    def test_sqlite_numbers_before_strings(self, sqlite_engine: DatabaseEngine) -> None:
        sqlite_engine.execute_statement("CREATE TABLE k (id TEXT)")
        sqlite_engine.execute_statement("INSERT INTO k (id) VALUES ('a')")
        sqlite_engine.execute_statement("INSERT INTO k (id) VALUES (2)")

        assert sqlite_engine.execute_statement("SELECT id FROM k").rows == [[2], ["a"]]


@pytest.mark.integration
class TestCatalogContainer:
    """The schema catalog container is not reachable as a table."""

    def test_drop_catalog_rejected(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE t (id INTEGER)")

        with pytest.raises(SchemaError, match="reserved"):
            engine.execute_statement("DROP TABLE _schema")

        assert [t.name for t in engine.get_schema()] == ["t"]
        engine.execute_statement("CREATE TABLE u (id INTEGER)")
        assert [t.name for t in engine.get_schema()] == ["t", "u"]

    def test_rename_catalog_rejected(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE t (id INTEGER)")

        with pytest.raises(SchemaError, match="reserved"):
            engine.rename_table("_schema", "x")
        with pytest.raises(SchemaError, match="reserved"):
            engine.rename_table("t", "_schema")

        assert [t.name for t in engine.get_schema()] == ["t"]

    def test_select_catalog_not_found(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE t (id INTEGER)")

        with pytest.raises(TableNotFoundError):
            engine.execute_statement("SELECT * FROM _schema")
        with pytest.raises(TableNotFoundError):
            engine.execute_statement("INSERT INTO _schema (name) VALUES ('x')")
        with pytest.raises(TableNotFoundError):
            engine.execute_statement("DELETE FROM _schema WHERE name = 't'")

    def test_create_catalog_rejected(self, engine: DatabaseEngine) -> None:
        with pytest.raises(SchemaError, match="reserved"):
            engine.execute_statement("CREATE TABLE _schema (name TEXT)")
        with pytest.raises(SchemaError, match="reserved"):
            engine.execute_statement("CREATE TABLE _schema AS SELECT 'x' AS name")


@pytest.mark.integration
class TestCreateTableAsSelectIntoExisting:
    """CTAS against a table that already exists loads into it."""

    def test_rows_added_to_existing_table(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE u (id INTEGER, name TEXT)")
        engine.execute_statement("INSERT INTO u (name) VALUES ('a')")

        result = engine.execute_statement("CREATE TABLE u AS SELECT 5 AS id, 'z' AS name")

        assert result.schema_changed
        assert result.rows == [['Table "u" created with 1 rows.']]
        assert engine.execute_statement("SELECT * FROM u").rows == [[1, "a"], [5, "z"]]
        assert [t.name for t in engine.get_schema()] == ["u"]

    def test_duplicate_key_leaves_table_unchanged(self, engine: DatabaseEngine) -> None:
        engine.execute_statement("CREATE TABLE u (id INTEGER, name TEXT)")
        engine.execute_statement("INSERT INTO u (name) VALUES ('a')")
        version = engine.version

        with pytest.raises(StorageError):
            engine.execute_statement(
                "CREATE TABLE u AS SELECT 2 AS id, 'b' AS name UNION ALL SELECT 1, 'c'"
            )

        assert engine.version == version
        assert engine.execute_statement("SELECT * FROM u").rows == [[1, "a"]]
