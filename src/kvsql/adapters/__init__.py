"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Inbound adapters: Handle incoming requests (SQL text, REST)
- Outbound adapters: Implement the key-value store (in-memory, SQLite)
"""

from kvsql.adapters.outbound import (
    InMemoryKeyValueStore,
    SqliteKeyValueStore,
)

__all__ = [
    "InMemoryKeyValueStore",
    "SqliteKeyValueStore",
]
