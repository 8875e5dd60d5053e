"""In-memory snapshot store adapter.

A simple implementation of the SnapshotStore protocol for tests and
ephemeral databases. Documents are deep-copied on the way in and out, so
stored snapshots never alias live data. Nothing survives the process.

Usage:
    store = InMemorySnapshotStore()
    db = Database("scratch", store=store)
"""

from __future__ import annotations

import copy
import threading
from typing import Any

from tabular_store.domain.entities import MalformedSnapshotError


class InMemorySnapshotStore:
    """In-memory implementation of the SnapshotStore protocol."""

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._documents: dict[str, Any] = {}
        self._lock = threading.Lock()
        self.writes = 0

    def write(self, destination: str, payload: dict[str, Any]) -> None:
        """Store a copy of payload under destination."""
        document = copy.deepcopy(payload)
        with self._lock:
            self._documents[destination] = document
            self.writes += 1

    def read(self, destination: str) -> dict[str, Any] | None:
        """Return a copy of the stored document, or None.

        Raises:
            MalformedSnapshotError: If something other than an object was
                stored with ``put_raw``.
        """
        with self._lock:
            if destination not in self._documents:
                return None
            document = copy.deepcopy(self._documents[destination])
        if not isinstance(document, dict):
            raise MalformedSnapshotError(f"Snapshot '{destination}' is not an object")
        return document

    def put_raw(self, destination: str, document: Any) -> None:
        """Store an arbitrary document as-is (for seeding corrupt data)."""
        with self._lock:
            self._documents[destination] = document

    def exists(self, destination: str) -> bool:
        with self._lock:
            return destination in self._documents

    def describe(self, destination: str) -> dict[str, Any]:
        with self._lock:
            if destination not in self._documents:
                return {"exists": False, "path": self.location(destination)}
            size = len(repr(self._documents[destination]))
        return {"exists": True, "path": self.location(destination), "size": size}

    def location(self, destination: str) -> str:
        return f"memory://{destination}"

    def delete(self, destination: str) -> bool:
        with self._lock:
            return self._documents.pop(destination, None) is not None

    def list_destinations(self) -> list[str]:
        with self._lock:
            return list(self._documents)
