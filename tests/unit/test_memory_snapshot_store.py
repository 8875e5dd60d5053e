"""Unit tests for InMemorySnapshotStore."""

from __future__ import annotations

import pytest

from tabular_store.adapters.outbound import InMemorySnapshotStore
from tabular_store.domain.entities import MalformedSnapshotError
from tabular_store.ports.outbound import SnapshotStore


@pytest.mark.unit
class TestInMemorySnapshotStore:
    """Tests for InMemorySnapshotStore."""

    def test_implements_protocol(self) -> None:
        assert isinstance(InMemorySnapshotStore(), SnapshotStore)

    def test_write_and_read_are_copies(self) -> None:
        store = InMemorySnapshotStore()
        payload = {"tables": [{"rows": [{"id": 1}]}]}
        store.write("db", payload)
        payload["tables"].clear()

        document = store.read("db")
        assert document == {"tables": [{"rows": [{"id": 1}]}]}
        document["tables"].clear()
        assert store.read("db")["tables"]
        assert store.writes == 1

    def test_missing(self) -> None:
        store = InMemorySnapshotStore()
        assert store.read("db") is None
        assert store.describe("db") == {"exists": False, "path": "memory://db"}

    def test_put_raw_non_object(self) -> None:
        store = InMemorySnapshotStore()
        store.put_raw("db", ["not", "a", "snapshot"])
        assert store.exists("db")
        with pytest.raises(MalformedSnapshotError):
            store.read("db")

    def test_list_and_delete(self) -> None:
        store = InMemorySnapshotStore()
        store.write("a", {})
        store.write("b", {})
        assert store.list_destinations() == ["a", "b"]
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.location("b") == "memory://b"
