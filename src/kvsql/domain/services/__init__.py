"""Domain services for the query engine.

Exports:
    Catalog:
        - SchemaCatalog: Table definitions in the ``_schema`` container
        - SCHEMA_CONTAINER: Name of the catalog container

    Migrations:
        - Migration: Base class for structural changes
        - InitializeStoreMigration, CreateTableMigration, DropTableMigration,
          RenameTableMigration, MaterializeRowsMigration
"""

from kvsql.domain.services.catalog import SCHEMA_CONTAINER, SchemaCatalog
from kvsql.domain.services.migrations import (
    CreateTableMigration,
    DropTableMigration,
    InitializeStoreMigration,
    MaterializeRowsMigration,
    Migration,
    RenameTableMigration,
)

__all__ = [
    "SCHEMA_CONTAINER",
    "SchemaCatalog",
    "Migration",
    "InitializeStoreMigration",
    "CreateTableMigration",
    "DropTableMigration",
    "RenameTableMigration",
    "MaterializeRowsMigration",
]
