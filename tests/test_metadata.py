"""Tests for the type metadata store."""

import sqlite3

import pytest

from logical_tables.metadata import MetadataEntry, TypeMetadataStore
from logical_tables.types import METADATA_TABLE, LogicalType, PhysicalType


@pytest.fixture
def store():
    conn = sqlite3.connect(":memory:", isolation_level=None)
    store = TypeMetadataStore(conn)
    store.ensure_schema()
    yield store
    conn.close()


class TestTypeMetadataStore:
    """Tests for TypeMetadataStore."""

    def test_schema_columns(self, store):
        columns = [row[1] for row in store.conn.execute(f"PRAGMA table_info({METADATA_TABLE})")]
        assert columns == [
            "id",
            "table_name",
            "field_name",
            "actual_type",
            "logical_type",
            "is_nullable",
            "default_value",
            "temporary",
        ]

    def test_ensure_schema_is_idempotent(self, store):
        store.ensure_schema()
        assert store.count() == 0

    def test_put_and_get(self, store):
        store.put("tasks", "Due", PhysicalType.TEXT, LogicalType.DATE)
        entry = store.get("tasks", "Due")
        assert entry == MetadataEntry(
            table_name="tasks",
            field_name="Due",
            physical_type=PhysicalType.TEXT,
            logical_type=LogicalType.DATE,
        )

    def test_get_missing(self, store):
        assert store.get("tasks", "Nope") is None

    def test_put_replaces(self, store):
        store.put("tasks", "Flag", PhysicalType.INTEGER, LogicalType.BOOLEAN)
        store.put("tasks", "Flag", PhysicalType.TEXT, LogicalType.DATE, default="x")
        assert store.count("tasks") == 1
        entry = store.get("tasks", "Flag")
        assert entry.logical_type is LogicalType.DATE
        assert entry.default == "x"

    def test_remove_returns_count(self, store):
        store.put("tasks", "Due", PhysicalType.TEXT, LogicalType.DATE)
        assert store.remove("tasks", "Due") == 1
        assert store.remove("tasks", "Due") == 0

    def test_entries(self, store):
        store.put("tasks", "Due", PhysicalType.TEXT, LogicalType.DATE)
        store.put("tasks", "Done", PhysicalType.INTEGER, LogicalType.BOOLEAN)
        store.put("other", "At", PhysicalType.TEXT, LogicalType.TIME)
        entries = store.entries("tasks")
        assert list(entries) == ["Due", "Done"]
        assert entries["Done"].logical_type is LogicalType.BOOLEAN

    def test_remove_table(self, store):
        store.put("tasks", "Due", PhysicalType.TEXT, LogicalType.DATE)
        store.put("tasks", "Done", PhysicalType.INTEGER, LogicalType.BOOLEAN)
        store.put("other", "At", PhysicalType.TEXT, LogicalType.TIME)
        assert store.remove_table("tasks") == 2
        assert store.count() == 1

    def test_purge_scratch(self, store):
        store.put("tmp", "Due", PhysicalType.TEXT, LogicalType.DATE, scratch=True)
        store.put("tmp", "At", PhysicalType.TEXT, LogicalType.TIME, scratch=True)
        store.put("tasks", "Due", PhysicalType.TEXT, LogicalType.DATE)
        assert store.get("tmp", "Due").scratch is True
        assert store.purge_scratch() == 2
        assert store.count() == 1
        assert store.purge_scratch() == 0

    def test_put_entry(self, store):
        entry = MetadataEntry("t", "f", PhysicalType.INTEGER, LogicalType.BOOLEAN, nullable=True, default="0")
        store.put_entry(entry)
        assert store.get("t", "f") == entry
