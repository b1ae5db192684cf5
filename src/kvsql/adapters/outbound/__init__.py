"""Outbound adapters - key-value store implementations.

Exports:
    - InMemoryKeyValueStore: Non-persistent store for tests and development
    - SqliteKeyValueStore: Single-file persistent store
"""

from kvsql.adapters.outbound.memory_store import InMemoryKeyValueStore
from kvsql.adapters.outbound.sqlite_store import SqliteKeyValueStore

__all__ = [
    "InMemoryKeyValueStore",
    "SqliteKeyValueStore",
]
