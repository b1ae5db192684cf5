"""Application layer - engine facade and statement execution.

Exports:
    - DatabaseEngine: Unified entry point (initialize, get_schema, execute_statement, ...)
    - create_store: Store factory from StorageConfig
    - ConnectionManager: Owner of the live store connection
    - MigrationManager: Structural changes as version upgrades
    - QueryExecutor: SELECT / INSERT / DELETE
    - build_import_statements / parse_pasted_data: Pasted data to SQL
"""

from kvsql.application.connection import ConnectionManager
from kvsql.application.database_engine import DatabaseEngine, create_store
from kvsql.application.executor import QueryExecutor
from kvsql.application.importer import build_import_statements, parse_pasted_data
from kvsql.application.migration_manager import MigrationManager

__all__ = [
    "ConnectionManager",
    "DatabaseEngine",
    "MigrationManager",
    "QueryExecutor",
    "build_import_statements",
    "create_store",
    "parse_pasted_data",
]
