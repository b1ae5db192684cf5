"""Structural changes applied inside a store version upgrade.

Each migration is a small value object whose ``apply`` runs against an
UpgradeTransaction. Container changes and the matching catalog update are
made through the same transaction, so they commit together or not at all.

Migrations assume their preconditions were checked by the caller (see
MigrationManager) and only re-check what is cheap and keeps them safe to
replay, such as creating a container only when it is missing.

Usage:
    migration = CreateTableMigration(Table("users", [Column("id", "INTEGER")]))
    store.open(store.current_version() + 1, migration.apply)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Mapping, Sequence

from kvsql.domain.entities import Table
from kvsql.domain.errors import ConstraintError, SchemaError
from kvsql.domain.services.catalog import SchemaCatalog
from kvsql.ports.outbound import Record, UpgradeTransaction


class Migration(ABC):
    """A structural change to the store."""

    kind: ClassVar[str]

    @abstractmethod
    def apply(self, txn: UpgradeTransaction) -> None:
        """Apply the change inside an open upgrade."""
        ...

    def __call__(self, txn: UpgradeTransaction) -> None:
        self.apply(txn)

    @property
    def table_name(self) -> str | None:
        return None


def _key_path(table: Table) -> str:
    key_path = table.primary_key
    if key_path is None:
        raise ConstraintError(f'Table "{table.name}" must have at least one column.')
    return key_path


@dataclass(frozen=True)
class InitializeStoreMigration(Migration):
    """Create the catalog container and, optionally, seed tables and rows."""

    kind: ClassVar[str] = "initialize"

    tables: Sequence[Table] = field(default_factory=tuple)
    rows: Mapping[str, Sequence[Record]] = field(default_factory=dict)

    def apply(self, txn: UpgradeTransaction) -> None:
        SchemaCatalog.ensure_container(txn)
        catalog = SchemaCatalog(txn)
        for table in self.tables:
            if not txn.has_container(table.name):
                txn.create_container(table.name, _key_path(table), auto_increment=True)
            catalog.put(table)
            for row in self.rows.get(table.name, ()):
                txn.add(table.name, dict(row))


@dataclass(frozen=True)
class CreateTableMigration(Migration):
    """Create an empty container keyed by the first column."""

    kind: ClassVar[str] = "create_table"

    table: Table
    auto_increment: bool = True

    @property
    def table_name(self) -> str:
        return self.table.name

    def apply(self, txn: UpgradeTransaction) -> None:
        key_path = _key_path(self.table)
        if not txn.has_container(self.table.name):
            txn.create_container(self.table.name, key_path, auto_increment=self.auto_increment)
        SchemaCatalog(txn).put(self.table)


@dataclass(frozen=True)
class DropTableMigration(Migration):
    """Delete a container and its catalog entry. Missing pieces are skipped."""

    kind: ClassVar[str] = "drop_table"

    name: str

    @property
    def table_name(self) -> str:
        return self.name

    def apply(self, txn: UpgradeTransaction) -> None:
        if txn.has_container(self.name):
            txn.delete_container(self.name)
        SchemaCatalog(txn).delete(self.name)


@dataclass(frozen=True)
class RenameTableMigration(Migration):
    """Move a table's records to a container under a new name.

    The new container keeps the old key path and auto-increment flag.
    Records are copied in storage key order before the old container is
    deleted.
    """

    kind: ClassVar[str] = "rename_table"

    old_name: str
    new_name: str

    @property
    def table_name(self) -> str:
        return self.old_name

    def apply(self, txn: UpgradeTransaction) -> None:
        if not txn.has_container(self.old_name):
            raise SchemaError(f'Table "{self.old_name}" not found.')
        if txn.has_container(self.new_name):
            raise SchemaError(f'Table "{self.new_name}" already exists.')

        spec = txn.container_spec(self.old_name)
        txn.create_container(self.new_name, spec.key_path, auto_increment=spec.auto_increment)
        for record in txn.get_all(self.old_name):
            txn.add(self.new_name, record)
        txn.delete_container(self.old_name)

        catalog = SchemaCatalog(txn)
        table = catalog.get(self.old_name)
        catalog.delete(self.old_name)
        if table is not None:
            catalog.put(table.renamed(self.new_name))


@dataclass(frozen=True)
class MaterializeRowsMigration(Migration):
    """Bulk-load rows into a table in one upgrade, creating it if absent.

    A new container is keyed by the first column and does not generate
    keys, so every row must carry its key. An existing container keeps its
    settings. A duplicate key fails the upgrade.
    """

    kind: ClassVar[str] = "materialize_rows"

    table: Table
    rows: Sequence[Record] = field(default_factory=tuple)

    @property
    def table_name(self) -> str:
        return self.table.name

    def apply(self, txn: UpgradeTransaction) -> None:
        key_path = _key_path(self.table)
        if not txn.has_container(self.table.name):
            txn.create_container(self.table.name, key_path, auto_increment=False)
        for row in self.rows:
            txn.add(self.table.name, dict(row))
        SchemaCatalog(txn).put(self.table)
