"""Outbound ports - interfaces for external dependencies.

Outbound ports define contracts for systems the table store depends on,
currently durable snapshot storage.
"""

from tabular_store.ports.outbound.snapshot_store import (
    PersistenceFailure,
    SnapshotStore,
    SyncMode,
)

__all__ = [
    "SnapshotStore",
    "SyncMode",
    "PersistenceFailure",
]
