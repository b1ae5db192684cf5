"""Domain layer - tables, values, catalog and migrations.

Exports:
    Errors:
        - EngineError and its subclasses
"""

from kvsql.domain.errors import (
    ColumnCountMismatchError,
    ConstraintError,
    EngineError,
    ParseError,
    SchemaError,
    StorageError,
    TableNotFoundError,
    UnsupportedStatementError,
)

__all__ = [
    "ColumnCountMismatchError",
    "ConstraintError",
    "EngineError",
    "ParseError",
    "SchemaError",
    "StorageError",
    "TableNotFoundError",
    "UnsupportedStatementError",
]
