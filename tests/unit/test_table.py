"""Unit tests for Table."""

from __future__ import annotations

import threading

import pytest

from tabular_store.domain.entities import Column, SchemaError, Table
from tabular_store.domain.value_objects import DataType, ValidationError


class RecordingListener:
    """Collects change notifications."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, int]] = []

    def on_table_changed(self, table_name: str, operation: str, rows_affected: int) -> None:
        self.events.append((table_name, operation, rows_affected))


def make_users(listener: RecordingListener | None = None) -> Table:
    return Table(
        "users",
        [
            Column("id", DataType.INTEGER, primary_key=True),
            Column("email", DataType.STRING, unique=True),
            Column("age", DataType.INTEGER),
            Column("active", DataType.BOOLEAN, default=True),
        ],
        listener=listener,
    )


def assert_indexes_consistent(table: Table) -> None:
    """Every index maps exactly the current non-null values to their positions."""
    rows = table.select()
    for column_name in table.indexed_columns:
        expected: dict = {}
        for position, row in enumerate(rows):
            if row[column_name] is not None:
                expected.setdefault(row[column_name], []).append(position)
        assert table.index_entries(column_name) == expected


@pytest.mark.unit
class TestTableSchema:
    """Tests for table construction and schema."""

    def test_primary_key_defaults_to_flagged_column(self) -> None:
        table = make_users()
        assert table.primary_key == "id"
        assert table.indexed_columns == ["id", "email"]
        assert table.row_count == 0

    def test_duplicate_column_rejected(self) -> None:
        with pytest.raises(SchemaError, match="Duplicate column"):
            Table("t", [Column("a", DataType.STRING), Column("a", DataType.INTEGER)])

    def test_unknown_primary_key_rejected(self) -> None:
        with pytest.raises(SchemaError):
            Table("t", [Column("a", DataType.STRING)], primary_key="b")

    def test_get_schema(self) -> None:
        table = make_users()
        table.insert({"id": 1, "email": "a@x.com"})
        schema = table.get_schema()
        assert schema["name"] == "users"
        assert schema["rowCount"] == 1
        assert [c["name"] for c in schema["columns"]] == ["id", "email", "age", "active"]
        assert schema["columns"][0]["primaryKey"] is True

    def test_schema_is_a_copy(self) -> None:
        table = make_users()
        table.get_schema()["columns"].clear()
        assert len(table.get_schema()["columns"]) == 4


@pytest.mark.unit
class TestTableInsert:
    """Tests for Table.insert."""

    def test_insert_coerces_and_applies_defaults(self) -> None:
        table = make_users()
        result = table.insert({"id": "1", "email": "a@x.com", "ignored": "x"})

        assert result.success
        assert result.row == {"id": 1, "email": "a@x.com", "age": None, "active": True}
        assert table.select() == [result.row]

    def test_missing_primary_key(self) -> None:
        table = make_users()
        result = table.insert({"email": "a@x.com"})
        assert not result.success
        assert "Column 'id' is required" in result.errors
        assert table.row_count == 0

    def test_invalid_type(self) -> None:
        table = make_users()
        result = table.insert({"id": 1, "age": "old"})
        assert not result.success
        assert result.errors == [
            "Invalid value for column 'age'. Expected INTEGER, got str"
        ]

    def test_unrepresentable_values_are_rejected(self) -> None:
        table = Table("t", [Column("f", DataType.FLOAT), Column("d", DataType.DATE)])
        result = table.insert({"f": 10**400, "d": "9999-12-31T23:59:59-01:00"})
        assert not result.success
        assert result.errors == [
            "Invalid value for column 'f'. Expected FLOAT, got int",
            "Invalid value for column 'd'. Expected DATE, got str",
        ]
        assert table.row_count == 0

    def test_duplicate_primary_key(self) -> None:
        table = make_users()
        assert table.insert({"id": 1}).success
        result = table.insert({"id": 1})
        assert not result.success
        assert result.errors == ["Duplicate value for unique column 'id': 1"]
        assert table.row_count == 1

    def test_duplicate_detected_after_coercion(self) -> None:
        table = make_users()
        assert table.insert({"id": 7}).success
        assert not table.insert({"id": "7"}).success

    def test_unique_allows_many_nulls(self) -> None:
        table = make_users()
        assert table.insert({"id": 1, "email": None}).success
        assert table.insert({"id": 2}).success
        assert table.index_entries("email") == {}

    def test_all_violations_reported(self) -> None:
        table = make_users()
        table.insert({"id": 1, "email": "a@x.com"})
        result = table.insert({"email": "a@x.com", "age": 1.5})
        assert len(result.errors) == 3

    def test_defaulted_unique_column_cannot_duplicate(self) -> None:
        table = Table(
            "t",
            [
                Column("id", DataType.INTEGER, primary_key=True),
                Column("slug", DataType.STRING, unique=True, default="same"),
            ],
        )
        assert table.insert({"id": 1}).success
        result = table.insert({"id": 2})
        assert not result.success
        assert "Duplicate value for unique column 'slug': same" in result.errors

    def test_raise_for_errors(self) -> None:
        table = make_users()
        with pytest.raises(ValidationError) as exc_info:
            table.insert({"email": "x"}).raise_for_errors()
        assert exc_info.value.errors == ["Column 'id' is required"]

    def test_insert_notifies(self) -> None:
        listener = RecordingListener()
        table = make_users(listener)
        table.insert({"id": 1})
        table.insert({"id": 1})  # Rejected, no notification
        assert listener.events == [("users", "insert", 1)]

    def test_restore_row_does_not_notify(self) -> None:
        listener = RecordingListener()
        table = make_users(listener)
        assert table.restore_row({"id": 1}).success
        assert listener.events == []
        assert table.row_count == 1


@pytest.mark.unit
class TestTableUpdate:
    """Tests for Table.update."""

    @pytest.fixture
    def table(self) -> Table:
        table = make_users()
        for i in range(1, 4):
            table.insert({"id": i, "email": f"u{i}@x.com", "age": 20 + i})
        return table

    def test_update_matching_rows(self, table: Table) -> None:
        result = table.update({"age": "30"}, lambda row: row["id"] >= 2)
        assert result.success
        assert result.rows_affected == 2
        assert [row["age"] for row in table.select()] == [21, 30, 30]

    def test_update_all_rows(self, table: Table) -> None:
        result = table.update({"active": "false"})
        assert result.rows_affected == 3
        assert all(row["active"] is False for row in table.select())

    def test_unrepresentable_value_fails_row(self) -> None:
        table = Table("t", [Column("f", DataType.FLOAT)])
        table.insert({"f": 1.5})
        result = table.update({"f": 10**400})
        assert not result.success
        assert result.rows_affected == 0
        assert table.select() == [{"f": 1.5}]

    def test_unknown_columns_ignored(self, table: Table) -> None:
        result = table.update({"nope": 1}, lambda row: row["id"] == 1)
        assert result.success
        assert result.rows_affected == 1
        assert "nope" not in table.select()[0]

    def test_keeping_own_unique_value_is_not_a_conflict(self, table: Table) -> None:
        result = table.update({"email": "u1@x.com", "age": 99}, lambda row: row["id"] == 1)
        assert result.success
        assert table.find_by_index("email", "u1@x.com")[0]["age"] == 99

    def test_unique_conflict_reported_per_row(self, table: Table) -> None:
        result = table.update({"email": "u1@x.com"}, lambda row: row["id"] == 3)
        assert not result.success
        assert result.rows_affected == 0
        assert result.errors == [
            "Row at index 2: Duplicate value for unique column 'email': u1@x.com"
        ]
        assert table.select()[2]["email"] == "u3@x.com"

    def test_partial_success(self, table: Table) -> None:
        # Only the first matching row may take the value
        result = table.update({"email": "new@x.com"})
        assert not result.success
        assert result.rows_affected == 1
        assert len(result.errors) == 2
        assert [row["email"] for row in table.select()] == ["new@x.com", "u2@x.com", "u3@x.com"]
        assert_indexes_consistent(table)

    def test_index_follows_changed_value(self, table: Table) -> None:
        table.update({"email": "changed@x.com"}, lambda row: row["id"] == 2)
        assert table.find_by_index("email", "u2@x.com") == []
        assert table.find_by_index("email", "changed@x.com")[0]["id"] == 2
        assert_indexes_consistent(table)

    def test_required_column_cannot_be_nulled(self, table: Table) -> None:
        result = table.update({"id": None}, lambda row: row["id"] == 1)
        assert not result.success
        assert result.errors == ["Row at index 0: Column 'id' is required"]

    def test_no_match_no_notification(self) -> None:
        listener = RecordingListener()
        table = make_users(listener)
        table.insert({"id": 1})
        result = table.update({"age": 5}, lambda row: row["id"] == 99)
        assert result.success
        assert result.rows_affected == 0
        assert listener.events == [("users", "insert", 1)]

    def test_update_notifies_once(self) -> None:
        listener = RecordingListener()
        table = make_users(listener)
        table.insert({"id": 1})
        table.insert({"id": 2})
        table.update({"age": 5})
        assert listener.events[-1] == ("users", "update", 2)

    def test_predicate_sees_read_only_row(self, table: Table) -> None:
        def predicate(row) -> bool:
            with pytest.raises(TypeError):
                row["age"] = 0
            return True

        table.update({"age": 1}, predicate)
        assert [row["age"] for row in table.select()] == [1, 1, 1]


@pytest.mark.unit
class TestTableDelete:
    """Tests for Table.delete."""

    @pytest.fixture
    def table(self) -> Table:
        table = make_users()
        for i in range(1, 6):
            table.insert({"id": i, "email": f"u{i}@x.com"})
        return table

    def test_delete_matching(self, table: Table) -> None:
        result = table.delete(lambda row: row["id"] % 2 == 0)
        assert result.success
        assert result.rows_affected == 2
        assert [row["id"] for row in table.select()] == [1, 3, 5]
        assert_indexes_consistent(table)

    def test_positions_renumbered(self, table: Table) -> None:
        table.delete(lambda row: row["id"] in (1, 3))
        assert table.index_entries("id") == {2: [0], 4: [1], 5: [2]}
        assert table.find_by_index("id", 5)[0]["email"] == "u5@x.com"

    def test_delete_all(self, table: Table) -> None:
        result = table.delete()
        assert result.rows_affected == 5
        assert table.row_count == 0
        assert table.index_entries("id") == {}

    def test_deleted_key_can_be_reused(self, table: Table) -> None:
        table.delete(lambda row: row["id"] == 3)
        assert table.insert({"id": 3, "email": "u3@x.com"}).success
        assert_indexes_consistent(table)

    def test_delete_notifies_only_when_rows_removed(self) -> None:
        listener = RecordingListener()
        table = make_users(listener)
        table.insert({"id": 1})
        table.delete(lambda row: row["id"] == 42)
        table.delete()
        assert listener.events == [("users", "insert", 1), ("users", "delete", 1)]


@pytest.mark.unit
class TestTableQueries:
    """Tests for select and index lookups."""

    def test_select_returns_copies(self) -> None:
        table = make_users()
        table.insert({"id": 1, "email": "a@x.com"})
        rows = table.select()
        rows[0]["email"] = "mutated"
        assert table.select()[0]["email"] == "a@x.com"
        assert table.all_rows() == table.select()

    def test_find_by_index_coerces_probe(self) -> None:
        table = make_users()
        table.insert({"id": 7, "email": "a@x.com"})
        assert table.find_by_index("id", "7")[0]["email"] == "a@x.com"
        assert table.find_by_index("id", 8) == []

    def test_find_by_unindexed_column(self) -> None:
        table = make_users()
        table.insert({"id": 1, "age": 30})
        assert table.find_by_index("age", 30) == []

    def test_rebuild_indexes(self) -> None:
        table = make_users()
        for i in range(3):
            table.insert({"id": i, "email": f"{i}@x.com"})
        table.rebuild_indexes()
        assert_indexes_consistent(table)

    def test_to_snapshot(self) -> None:
        table = make_users()
        table.insert({"id": 1})
        snapshot = table.to_snapshot()
        assert snapshot.name == "users"
        assert snapshot.schema["rowCount"] == 1
        assert snapshot.rows == [{"id": 1, "email": None, "age": None, "active": True}]


@pytest.mark.unit
class TestTableConcurrency:
    """Tests for concurrent mutations."""

    def test_concurrent_inserts_keep_keys_unique(self) -> None:
        table = make_users()
        barrier = threading.Barrier(8)

        def worker(offset: int) -> None:
            barrier.wait()
            for i in range(50):
                # Half of the keys collide with another worker's keys
                table.insert({"id": (offset // 2) * 1000 + i})

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10.0)

        ids = [row["id"] for row in table.select()]
        assert len(ids) == len(set(ids)) == 200
        assert_indexes_consistent(table)

    def test_listener_called_outside_lock(self) -> None:
        class ReadingListener:
            def __init__(self, table: Table) -> None:
                self.table = table
                self.counts: list[int] = []

            def on_table_changed(self, table_name: str, operation: str, rows_affected: int) -> None:
                # Would deadlock if the write lock were still held
                self.counts.append(self.table.row_count)

        table = make_users()
        listener = ReadingListener(table)
        table.listener = listener
        table.insert({"id": 1})
        assert listener.counts == [1]
