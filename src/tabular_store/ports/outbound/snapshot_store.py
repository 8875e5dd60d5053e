"""Snapshot store port for durable snapshot persistence.

The store writes and reads whole snapshot documents keyed by a destination
identifier (the database name). Writes must be atomic: a reader sees either
the previous document or the new one, never a torn mix.

Single-writer assumed. The persistence queue serializes all writes.
"""

from __future__ import annotations

from abc import abstractmethod
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class SyncMode(Enum):
    """Snapshot sync modes with different durability/performance tradeoffs.

    FSYNC: Sync the file before it replaces the previous snapshot (safest)
    NONE: Rely on OS buffering (fast, for tests and scratch data)
    """

    FSYNC = "fsync"
    NONE = "none"


class PersistenceFailure(IOError):
    """A snapshot write attempt failed.

    Raised by stores and recovered by the persistence queue through retries;
    never surfaced to the caller whose mutation triggered the write.
    """

    def __init__(self, destination: str, reason: str) -> None:
        self.destination = destination
        self.reason = reason
        super().__init__(f"Failed to write snapshot '{destination}': {reason}")


@runtime_checkable
class SnapshotStore(Protocol):
    """Protocol for snapshot persistence."""

    @abstractmethod
    def write(self, destination: str, payload: dict[str, Any]) -> None:
        """Durably replace the snapshot stored under destination.

        Creates the destination's container (directory) if needed.

        Raises:
            PersistenceFailure: If the write fails.
        """
        ...

    @abstractmethod
    def read(self, destination: str) -> dict[str, Any] | None:
        """Return the stored document, or None if nothing is stored.

        Raises:
            MalformedSnapshotError: If stored data cannot be decoded.
        """
        ...

    @abstractmethod
    def exists(self, destination: str) -> bool:
        """Whether a snapshot is stored under destination."""
        ...

    @abstractmethod
    def describe(self, destination: str) -> dict[str, Any]:
        """Storage details: ``{exists, path, size?, modified?}``."""
        ...

    @abstractmethod
    def location(self, destination: str) -> str:
        """Human-readable location of destination (e.g. a file path)."""
        ...
