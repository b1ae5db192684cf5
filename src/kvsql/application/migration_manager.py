"""Migration Manager - applies structural changes as store version upgrades.

Each operation validates against the live store, then hands a Migration to
the ConnectionManager, which closes the connection, opens the store at the
next version with the migration as its upgrade callback, and keeps the new
connection. Validation and upgrade run under the connection lock, so no
statement can slip in between them.
"""

from __future__ import annotations

from typing import Sequence

from kvsql.application.connection import ConnectionManager
from kvsql.domain.entities import Table
from kvsql.domain.errors import ConstraintError, SchemaError, TableNotFoundError
from kvsql.domain.services import (
    SCHEMA_CONTAINER,
    CreateTableMigration,
    DropTableMigration,
    MaterializeRowsMigration,
    Migration,
    RenameTableMigration,
)
from kvsql.infrastructure.logging import get_logger
from kvsql.infrastructure.metrics import MetricsRegistry
from kvsql.infrastructure.tracing import trace_span
from kvsql.ports.outbound import Record

logger = get_logger("migrations")


class MigrationManager:
    """Creates, drops, renames and bulk-loads tables."""

    def __init__(
        self,
        connections: ConnectionManager,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._connections = connections
        self._metrics = metrics

    def apply(self, migration: Migration) -> int:
        """Run one migration in its own version upgrade.

        Returns:
            The store version after the upgrade.
        """
        with trace_span(
            "kvsql.migration",
            {"migration.kind": migration.kind, "table.name": migration.table_name},
        ):
            version = self._connections.upgrade(migration)

        if self._metrics is not None:
            self._metrics.migrations_total.labels(kind=migration.kind).inc()
            self._metrics.store_version.set(version)
        logger.info(
            "migration_applied",
            kind=migration.kind,
            table=migration.table_name,
            from_version=version - 1,
            to_version=version,
        )
        return version

    def create_table(self, table: Table) -> int:
        """Create an empty, auto-incrementing table.

        Raises:
            ConstraintError: If the table has no columns.
            SchemaError: If a table with that name exists or the name is reserved.
        """
        _check_name(table.name)
        if not table.columns:
            raise ConstraintError(f'Table "{table.name}" must have at least one column.')
        with self._connections.session() as conn:
            if conn.has_container(table.name):
                raise SchemaError(f'Table "{table.name}" already exists.')
            return self.apply(CreateTableMigration(table))

    def drop_table(self, name: str) -> int:
        """Drop a table. Dropping a missing table still bumps the version."""
        _check_name(name)
        return self.apply(DropTableMigration(name))

    def rename_table(self, old_name: str, new_name: str) -> int:
        """Rename a table, keeping its records and column definitions.

        Raises:
            TableNotFoundError: If ``old_name`` does not exist.
            SchemaError: If ``new_name`` already exists, or either name is reserved.
        """
        _check_name(old_name)
        _check_name(new_name)
        with self._connections.session() as conn:
            if not conn.has_container(old_name):
                raise TableNotFoundError(old_name)
            if conn.has_container(new_name):
                raise SchemaError(f'Table "{new_name}" already exists.')
            return self.apply(RenameTableMigration(old_name, new_name))

    def materialize_rows(self, table: Table, rows: Sequence[Record]) -> int:
        """Load ``rows`` into a table, creating it first if absent.

        The catalog entry is written with ``table``'s columns. If any row
        fails to store, for example on a duplicate key, the whole upgrade is
        rolled back and the store is left as it was.

        Raises:
            ConstraintError: If the table has no columns.
            SchemaError: If the name is reserved.
            StorageError: If a row cannot be stored.
        """
        _check_name(table.name)
        if not table.columns:
            raise ConstraintError(f'Table "{table.name}" must have at least one column.')
        return self.apply(MaterializeRowsMigration(table, tuple(rows)))


def _check_name(name: str) -> None:
    if name == SCHEMA_CONTAINER:
        raise SchemaError(f'"{name}" is reserved for the schema catalog.')
