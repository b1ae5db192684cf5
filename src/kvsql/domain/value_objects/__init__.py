"""Value objects for the query engine domain.

Value objects are immutable types that represent domain concepts.
They have no identity - two value objects with the same attributes are equal.

Exports:
    Coercion:
        - Value: Union of the scalar types a record can hold
        - ColumnType: Column type names the engine produces
        - parse_literal / format_literal: SQL literal text <-> Value
        - infer_column_type: Type name for a coerced literal
"""

from kvsql.domain.value_objects.coercion import (
    ColumnType,
    Value,
    format_literal,
    infer_column_type,
    parse_literal,
    parse_number,
    unquote,
)

__all__ = [
    "ColumnType",
    "Value",
    "format_literal",
    "infer_column_type",
    "parse_literal",
    "parse_number",
    "unquote",
]
