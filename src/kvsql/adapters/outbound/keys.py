"""Key handling shared by the store adapters."""

from __future__ import annotations

import math
from typing import Any

from kvsql.domain.errors import StorageError
from kvsql.ports.outbound import ContainerSpec, Key, Record


def validate_key(key: Any) -> Key:
    """Check that ``key`` can be stored as a key.

    Raises:
        StorageError: For None, booleans, non-finite floats and other types.
    """
    if isinstance(key, bool) or key is None:
        raise StorageError(f"Invalid key {key!r}: keys must be numbers or strings.")
    if isinstance(key, float) and not math.isfinite(key):
        raise StorageError(f"Invalid key {key!r}: keys must be finite.")
    if not isinstance(key, (int, float, str)):
        raise StorageError(
            f"Invalid key {key!r}: keys must be numbers or strings, "
            f"not {type(key).__name__}."
        )
    return key


def key_order(key: Key) -> tuple[int, Any]:
    """Sort key placing numbers before strings."""
    if isinstance(key, str):
        return (1, key)
    return (0, key)


def next_generator_value(current: int, key: Key) -> int:
    """Advance a key generator past an explicitly supplied numeric key."""
    if isinstance(key, str):
        return current
    return max(current, math.floor(key) + 1)


def resolve_key(spec: ContainerSpec, record: Record, generator: int) -> tuple[Key, int]:
    """Work out the key for a record being written.

    Returns:
        The key and the key generator's new value. The record is updated in
        place when a key is generated.
    """
    key = record.get(spec.key_path)
    if key is None:
        if not spec.auto_increment:
            raise StorageError(
                f'Record for "{spec.name}" has no value for key path "{spec.key_path}".'
            )
        record[spec.key_path] = generator
        return generator, generator + 1

    key = validate_key(key)
    if spec.auto_increment:
        generator = next_generator_value(generator, key)
    return key, generator
