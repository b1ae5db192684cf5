"""Schema catalog backed by the ``_schema`` container.

The catalog is the only record of a table's column order and declared
types. Each entry is a serialized Table keyed by its name.
"""

from __future__ import annotations

from kvsql.domain.entities import Schema, Table
from kvsql.ports.outbound import StoreConnection, UpgradeTransaction

SCHEMA_CONTAINER = "_schema"
SCHEMA_KEY_PATH = "name"


class SchemaCatalog:
    """Table definitions stored alongside the table containers.

    Works over any handle with record operations: a live connection for
    reads, or an upgrade transaction when the catalog changes together with
    the containers.
    """

    def __init__(self, handle: StoreConnection) -> None:
        self._handle = handle

    @staticmethod
    def ensure_container(txn: UpgradeTransaction) -> bool:
        """Create the catalog container if missing. Returns True if created."""
        if txn.has_container(SCHEMA_CONTAINER):
            return False
        txn.create_container(SCHEMA_CONTAINER, SCHEMA_KEY_PATH, auto_increment=False)
        return True

    def _available(self) -> bool:
        return self._handle.has_container(SCHEMA_CONTAINER)

    def get(self, name: str) -> Table | None:
        if not self._available():
            return None
        record = self._handle.get(SCHEMA_CONTAINER, name)
        return Table.from_record(record) if record is not None else None

    def list_tables(self) -> Schema:
        """All tables, ordered by name."""
        if not self._available():
            return []
        return [Table.from_record(r) for r in self._handle.get_all(SCHEMA_CONTAINER)]

    def put(self, table: Table) -> None:
        """Insert or overwrite the entry for ``table.name``."""
        self._handle.put(SCHEMA_CONTAINER, table.to_record())

    def delete(self, name: str) -> bool:
        if not self._available():
            return False
        return self._handle.delete(SCHEMA_CONTAINER, name)
