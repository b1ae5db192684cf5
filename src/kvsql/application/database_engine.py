"""Database Engine - unified entry point for the query engine.

This module provides the DatabaseEngine class, which owns one connection
manager over a key-value store and routes each parsed statement either to
the Migration Manager (structural statements) or to the Query Executor
(data statements).

Usage:
    from kvsql.application import DatabaseEngine

    with DatabaseEngine.from_config(config) as db:
        db.execute_statement("CREATE TABLE users (id INTEGER, name TEXT)")
        db.execute_statement("INSERT INTO users (name) VALUES ('Alice')")
        result = db.execute_statement("SELECT * FROM users")
        result.rows  # [[1, 'Alice']]

Every statement returns a StatementResult. Structural statements set
``schema_changed`` so callers know to reload the schema with get_schema().
"""

from __future__ import annotations

import time

from kvsql.adapters.inbound.sql_parser import (
    CreateTable,
    CreateTableAsSelect,
    DropTable,
    SQLParser,
    Statement,
    split_statements,
)
from kvsql.adapters.outbound import InMemoryKeyValueStore, SqliteKeyValueStore
from kvsql.application.connection import ConnectionManager
from kvsql.application.demo_data import bootstrap_migration
from kvsql.application.executor import QueryExecutor, WhereSemantics
from kvsql.application.importer import build_import_statements, parse_pasted_data
from kvsql.application.migration_manager import MigrationManager
from kvsql.domain.entities import QueryResult, Schema, StatementResult
from kvsql.domain.errors import EngineError
from kvsql.domain.services import SchemaCatalog
from kvsql.infrastructure.config import Config, StorageConfig
from kvsql.infrastructure.logging import get_logger
from kvsql.infrastructure.metrics import MetricsRegistry
from kvsql.infrastructure.tracing import trace_span
from kvsql.ports.outbound import KeyValueStore

logger = get_logger("engine")


def create_store(storage: StorageConfig) -> KeyValueStore:
    """Build the key-value store selected by the storage configuration."""
    if storage.backend == "memory":
        return InMemoryKeyValueStore(name=storage.store_name)
    return SqliteKeyValueStore(storage.store_path, name=storage.store_name)


class DatabaseEngine:
    """Runs SQL statements against a versioned key-value store.

    The store is opened by initialize(), or on the first statement if
    initialize() was not called. On first creation the store is seeded
    with the demo schema unless ``seed_demo_data`` is off.

    Thread Safety:
        Statements are serialized by the connection manager's lock, so an
        engine may be shared between threads (e.g. HTTP worker threads).
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        where_semantics: WhereSemantics = "column",
        seed_demo_data: bool = True,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Backing key-value store. An in-memory store if None.
            where_semantics: "column" or "primary_key"; see QueryExecutor.
            seed_demo_data: Seed demo tables when the store is first created.
            metrics: Metrics registry to record into. No metrics if None.
        """
        self._store = store if store is not None else InMemoryKeyValueStore()
        self._seed_demo_data = seed_demo_data
        self._metrics = metrics

        self._connections = ConnectionManager(self._store)
        self._parser = SQLParser()
        self._executor = QueryExecutor(self._connections, where_semantics=where_semantics)
        self._migrations = MigrationManager(self._connections, metrics=metrics)
        self._initialized = False

    @classmethod
    def from_config(
        cls, config: Config, metrics: MetricsRegistry | None = None
    ) -> DatabaseEngine:
        """Create an engine with the store and settings from ``config``."""
        return cls(
            store=create_store(config.storage),
            where_semantics=config.engine.where_semantics,
            seed_demo_data=config.engine.seed_demo_data,
            metrics=metrics,
        )

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def version(self) -> int:
        """Current store version."""
        return self._connections.version

    @property
    def where_semantics(self) -> WhereSemantics:
        return self._executor.where_semantics

    def initialize(self) -> bool:
        """Open the store, creating and seeding it if it does not exist.

        Returns:
            True if the store was created by this call.
        """
        if self._initialized:
            return False
        created = self._connections.initialize(bootstrap_migration(self._seed_demo_data))
        self._initialized = True
        if self._metrics is not None:
            if created:
                self._metrics.migrations_total.labels(kind="initialize").inc()
            self._metrics.store_version.set(self._connections.version)
            self._refresh_table_count()
        return created

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self.initialize()

    def get_schema(self) -> Schema:
        """All tables in the catalog, ordered by name."""
        self._ensure_initialized()
        with self._connections.session() as conn:
            return SchemaCatalog(conn).list_tables()

    def execute_statement(self, sql: str) -> StatementResult:
        """Parse and execute one SQL statement.

        Args:
            sql: Statement text; a trailing ``;`` is ignored.

        Returns:
            StatementResult with columns, rows and the schema_changed flag.

        Raises:
            EngineError: Any parse, schema, constraint or storage failure.
                The statement has no effect in that case.
        """
        self._ensure_initialized()
        start = time.perf_counter()
        statement_type = "unknown"
        try:
            statement = self._parser.parse(sql)
            statement_type = statement.statement_type.value
            with trace_span("kvsql.statement", {"statement.type": statement_type}):
                result = self._dispatch(statement)
        except EngineError as e:
            self._record(statement_type, "error", start)
            logger.warning(
                "statement_failed",
                statement_type=statement_type,
                error=type(e).__name__,
                message=str(e),
            )
            raise

        self._record(statement_type, "success", start)
        logger.debug(
            "statement_executed",
            statement_type=statement_type,
            rows=len(result),
            schema_changed=result.schema_changed,
        )
        return result

    def _dispatch(self, statement: Statement) -> StatementResult:
        if not statement.is_ddl:
            return StatementResult.from_query(self._executor.execute(statement))

        if isinstance(statement, CreateTableAsSelect):
            rows = statement.rows
            self._migrations.materialize_rows(statement.table, rows)
            message = f'Table "{statement.table_name}" created with {len(rows)} rows.'
        elif isinstance(statement, CreateTable):
            self._migrations.create_table(statement.table)
            message = f'Table "{statement.table_name}" created successfully.'
        elif isinstance(statement, DropTable):
            self._migrations.drop_table(statement.table_name)
            message = f'Table "{statement.table_name}" dropped successfully.'
        else:
            raise EngineError(f"Unhandled structural statement: {type(statement).__name__}")

        self._refresh_table_count()
        return StatementResult.from_query(QueryResult.status(message), schema_changed=True)

    def _record(self, statement_type: str, status: str, start: float) -> None:
        if self._metrics is None:
            return
        self._metrics.statements_total.labels(
            statement_type=statement_type, status=status
        ).inc()
        self._metrics.statement_latency_seconds.labels(
            statement_type=statement_type
        ).observe(time.perf_counter() - start)

    def _refresh_table_count(self) -> None:
        if self._metrics is None:
            return
        with self._connections.session() as conn:
            self._metrics.tables.set(len(SchemaCatalog(conn).list_tables()))

    def execute_script(self, script: str) -> list[StatementResult]:
        """Execute ``;``-separated statements in order.

        Execution stops at the first failing statement and its error is
        raised; statements before it stay applied.

        Returns:
            One result per statement.
        """
        results = []
        for sql in split_statements(script):
            results.append(self.execute_statement(sql))
        return results

    def rename_table(self, old_name: str, new_name: str) -> None:
        """Rename a table, keeping its records and column definitions.

        Raises:
            SchemaError: If ``old_name`` is missing or ``new_name`` exists.
        """
        self._ensure_initialized()
        self._migrations.rename_table(old_name, new_name)
        self._refresh_table_count()

    def import_data(self, table_name: str, text: str) -> list[StatementResult]:
        """Create a table from pasted tabular data and load its rows.

        Returns:
            The results of the generated CREATE TABLE and INSERT statements.
        """
        headers, rows = parse_pasted_data(text)
        statements = build_import_statements(table_name, headers, rows)
        return [self.execute_statement(sql) for sql in statements]

    def close(self) -> None:
        """Close the live connection. The engine reopens it on next use."""
        self._connections.close()
        self._initialized = False

    def __enter__(self) -> DatabaseEngine:
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
