"""Outbound adapters - implementations of outbound ports.

These adapters implement snapshot persistence on the local filesystem and
in memory.
"""

from tabular_store.adapters.outbound.file_snapshot_store import FileSnapshotStore
from tabular_store.adapters.outbound.memory_snapshot_store import InMemorySnapshotStore

__all__ = [
    "FileSnapshotStore",
    "InMemorySnapshotStore",
]
