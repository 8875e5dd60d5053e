"""Unit tests for snapshot entities."""

from __future__ import annotations

import re

import pytest

from tabular_store.domain.entities import (
    SNAPSHOT_VERSION,
    MalformedSnapshotError,
    Snapshot,
    TableSnapshot,
)


def table_entry(name: str = "users", rows: list | None = None) -> dict:
    return {
        "name": name,
        "schema": {
            "name": name,
            "columns": [{"name": "id", "type": "INTEGER", "primaryKey": True}],
            "rowCount": len(rows or []),
        },
        "rows": rows or [],
    }


@pytest.mark.unit
class TestSnapshot:
    """Tests for Snapshot serialization and parsing."""

    def test_to_dict_layout(self) -> None:
        snapshot = Snapshot(name="db", tables=[TableSnapshot.from_dict(table_entry())])
        document = snapshot.to_dict()

        assert set(document) == {"name", "version", "timestamp", "tables"}
        assert document["name"] == "db"
        assert document["version"] == SNAPSHOT_VERSION == "1.0"
        assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", document["timestamp"])
        assert document["tables"][0]["schema"]["columns"][0]["name"] == "id"

    def test_from_dict(self) -> None:
        document = {
            "name": "db",
            "version": "1.0",
            "timestamp": "2024-01-01T00:00:00.000Z",
            "tables": [table_entry("a", [{"id": 1}]), table_entry("b")],
        }
        snapshot, skipped = Snapshot.from_dict(document)

        assert skipped == []
        assert snapshot.table_names == ["a", "b"]
        assert snapshot.tables[0].rows == [{"id": 1}]
        assert snapshot.tables[0].columns[0]["primaryKey"] is True
        assert snapshot.timestamp == "2024-01-01T00:00:00.000Z"

    def test_malformed_tables_are_skipped(self) -> None:
        document = {
            "name": "db",
            "tables": [
                table_entry("good"),
                {"name": "no_schema"},
                "not an object",
                {"name": "bad_rows", "schema": {"columns": []}, "rows": {"0": {}}},
            ],
        }
        snapshot, skipped = Snapshot.from_dict(document)

        assert snapshot.table_names == ["good"]
        assert len(skipped) == 3
        assert all(isinstance(error, MalformedSnapshotError) for _, error in skipped)

    def test_missing_rows_means_empty(self) -> None:
        entry = table_entry()
        del entry["rows"]
        assert TableSnapshot.from_dict(entry).rows == []

    @pytest.mark.parametrize("document", [[], "text", {"name": "db"}, {"tables": {}}])
    def test_invalid_envelope(self, document) -> None:
        with pytest.raises(MalformedSnapshotError):
            Snapshot.from_dict(document)
