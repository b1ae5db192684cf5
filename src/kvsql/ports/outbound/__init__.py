"""Outbound ports - interfaces for external dependencies.

Outbound ports define contracts for the systems the query engine depends
on. The only one is the versioned key-value store that holds the catalog
and table containers.
"""

from kvsql.ports.outbound.key_value_store import (
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
