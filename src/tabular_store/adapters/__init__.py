"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Inbound adapters: Handle incoming requests (REST)
- Outbound adapters: Implement snapshot storage (filesystem, memory)
"""

from tabular_store.adapters.outbound import (
    FileSnapshotStore,
    InMemorySnapshotStore,
)

__all__ = [
    # Outbound adapters
    "FileSnapshotStore",
    "InMemorySnapshotStore",
]
