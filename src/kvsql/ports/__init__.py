"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Outbound ports: Dependencies on external systems (the key-value store)

Adapters implement these ports with concrete functionality.
"""

from kvsql.ports.outbound import (
    ContainerSpec,
    Key,
    KeyValueStore,
    Record,
    StoreConnection,
    UpgradeCallback,
    UpgradeTransaction,
)

__all__ = [
    "ContainerSpec",
    "Key",
    "KeyValueStore",
    "Record",
    "StoreConnection",
    "UpgradeCallback",
    "UpgradeTransaction",
]
