"""Domain entities for the query engine.

Exports:
    Table:
        - Column: Column name and declarative type
        - Table: Named, ordered column list; first column is the storage key
        - Schema: List of tables

    Result:
        - QueryResult: Columns plus positionally aligned rows
        - StatementResult: QueryResult with the schema_changed flag
"""

from kvsql.domain.entities.result import QueryResult, StatementResult
from kvsql.domain.entities.table import Column, Schema, Table

__all__ = [
    "Column",
    "Schema",
    "Table",
    "QueryResult",
    "StatementResult",
]
