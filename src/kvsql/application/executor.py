"""Query Executor for SELECT, INSERT and DELETE.

The executor runs data statements on the live connection and never changes
structure. Column order and types come from the schema catalog; storage
containers are only checked for presence.

WHERE clauses:
    Only a single ``column = literal`` predicate is recognized (see
    parse_where_clause). How it selects records depends on the
    ``where_semantics`` setting:

    - "column": a direct key lookup when the column is the table's primary
      key, otherwise a scan keeping records whose field equals the literal.
    - "primary_key": the literal is used as a primary-key value whatever
      column is named.
"""

from __future__ import annotations

from typing import Literal

from kvsql.adapters.inbound.sql_parser import Delete, Insert, Select, Statement, WherePredicate
from kvsql.application.connection import ConnectionManager
from kvsql.domain.entities import QueryResult
from kvsql.domain.errors import (
    ColumnCountMismatchError,
    ConstraintError,
    EngineError,
    TableNotFoundError,
)
from kvsql.domain.services import SCHEMA_CONTAINER, SchemaCatalog
from kvsql.infrastructure.logging import get_logger
from kvsql.ports.outbound import Record, StoreConnection

logger = get_logger("executor")

WhereSemantics = Literal["column", "primary_key"]


class QueryExecutor:
    """Executes data statements against the store."""

    def __init__(
        self,
        connections: ConnectionManager,
        where_semantics: WhereSemantics = "column",
    ) -> None:
        if where_semantics not in ("column", "primary_key"):
            raise ValueError(f"Unknown WHERE semantics: {where_semantics!r}")
        self._connections = connections
        self._where_semantics = where_semantics

    @property
    def where_semantics(self) -> WhereSemantics:
        return self._where_semantics

    def execute(self, statement: Statement) -> QueryResult:
        """Execute a SELECT, INSERT or DELETE statement."""
        if isinstance(statement, Select):
            return self.select(statement)
        elif isinstance(statement, Insert):
            return self.insert(statement)
        elif isinstance(statement, Delete):
            return self.delete(statement)
        raise EngineError(f"Not a data statement: {type(statement).__name__}")

    def select(self, statement: Select) -> QueryResult:
        with self._connections.session() as conn:
            self._require_table(conn, statement.table_name)
            catalog = SchemaCatalog(conn)
            table = catalog.get(statement.table_name)

            if statement.where is not None:
                records = self._matching(conn, statement.table_name, statement.where)
            else:
                if statement.where_text is not None:
                    logger.info(
                        "where_clause_ignored",
                        table=statement.table_name,
                        where=statement.where_text,
                    )
                records = conn.get_all(statement.table_name)

        if statement.is_star:
            if table is not None:
                columns = table.column_names
            else:
                columns = list(records[0]) if records else []
        else:
            columns = list(statement.columns)

        rows = [[record.get(c) for c in columns] for record in records]
        return QueryResult(columns=columns, rows=rows)

    def insert(self, statement: Insert) -> QueryResult:
        if len(statement.columns) != len(statement.values):
            raise ColumnCountMismatchError(
                expected=len(statement.columns),
                actual=len(statement.values),
                context="the INSERT statement",
            )
        record = dict(zip(statement.columns, statement.values))

        with self._connections.session() as conn:
            self._require_table(conn, statement.table_name)
            conn.add(statement.table_name, record)

        return QueryResult.status(f'1 row inserted into "{statement.table_name}".')

    def delete(self, statement: Delete) -> QueryResult:
        if statement.where is None:
            if statement.where_text is not None:
                raise ConstraintError(
                    f'Unsupported WHERE clause in DELETE: "{statement.where_text}". '
                    "Only a single column = value condition is supported."
                )
            raise ConstraintError(
                "DELETE without a WHERE clause is not supported in this version."
            )

        with self._connections.session() as conn:
            self._require_table(conn, statement.table_name)
            if self._is_key_lookup(conn, statement.table_name, statement.where):
                deleted = int(conn.delete(statement.table_name, statement.where.value))
            else:
                key_path = conn.container_spec(statement.table_name).key_path
                deleted = 0
                for record in self._scan(conn, statement.table_name, statement.where):
                    if conn.delete(statement.table_name, record[key_path]):
                        deleted += 1

        noun = "row" if deleted == 1 else "rows"
        return QueryResult.status(f'{deleted} {noun} deleted from "{statement.table_name}".')

    @staticmethod
    def _require_table(conn: StoreConnection, table_name: str) -> None:
        if table_name == SCHEMA_CONTAINER or not conn.has_container(table_name):
            raise TableNotFoundError(table_name)

    def _is_key_lookup(
        self, conn: StoreConnection, table_name: str, where: WherePredicate
    ) -> bool:
        if self._where_semantics == "primary_key":
            return True
        table = SchemaCatalog(conn).get(table_name)
        if table is not None:
            key_column = table.primary_key
        else:
            key_column = conn.container_spec(table_name).key_path
        return where.column == key_column

    def _matching(
        self, conn: StoreConnection, table_name: str, where: WherePredicate
    ) -> list[Record]:
        if self._is_key_lookup(conn, table_name, where):
            record = conn.get(table_name, where.value)
            return [record] if record is not None else []
        return self._scan(conn, table_name, where)

    @staticmethod
    def _scan(conn: StoreConnection, table_name: str, where: WherePredicate) -> list[Record]:
        return [r for r in conn.get_all(table_name) if r.get(where.column) == where.value]
