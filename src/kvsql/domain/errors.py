"""Error taxonomy for the query engine.

Every error aborts the statement being executed and is raised to the caller
unchanged. The engine never retries.

Hierarchy:
    EngineError
        ParseError                  - text does not match any supported grammar
            UnsupportedStatementError - unknown leading keyword
        SchemaError                 - unknown table, column-count mismatch, missing alias
        ConstraintError             - DELETE without WHERE, table with no columns
        StorageError                - failure reported by the key-value store
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all engine errors."""

    pass


class ParseError(EngineError):
    """Statement text does not match the supported grammar."""

    def __init__(self, message: str, fragment: str | None = None) -> None:
        super().__init__(message)
        self.fragment = fragment


class UnsupportedStatementError(ParseError):
    """The statement starts with a keyword the engine does not handle."""

    def __init__(self, leading_token: str) -> None:
        super().__init__(f'Unsupported SQL command: "{leading_token}".', leading_token)
        self.leading_token = leading_token


class SchemaError(EngineError):
    """A referenced table or column does not exist or the shape is wrong."""

    pass


class TableNotFoundError(SchemaError):
    """The table has no storage container."""

    def __init__(self, table_name: str) -> None:
        super().__init__(f'Table "{table_name}" not found.')
        self.table_name = table_name


class ColumnCountMismatchError(SchemaError):
    """A row supplies a different number of values than there are columns."""

    def __init__(self, expected: int, actual: int, context: str = "a UNION ALL part") -> None:
        super().__init__(
            f"Column count mismatch in {context}. "
            f"The query expects {expected} columns, but found {actual}."
        )
        self.expected = expected
        self.actual = actual


class ConstraintError(EngineError):
    """The statement is well-formed but violates an engine rule."""

    pass


class StorageError(EngineError):
    """The underlying key-value store reported a failure."""

    pass
