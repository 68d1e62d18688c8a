"""Persisted side-table of per-field logical type overrides."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from logical_tables.types import METADATA_TABLE, LogicalType, PhysicalType

logger = logging.getLogger(__name__)

_CREATE_SQL = f"""
    CREATE TABLE IF NOT EXISTS {METADATA_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        table_name TEXT NOT NULL,
        field_name TEXT NOT NULL,
        actual_type TEXT NOT NULL,
        logical_type TEXT NOT NULL,
        is_nullable INTEGER NOT NULL DEFAULT 1,
        default_value TEXT,
        temporary INTEGER NOT NULL DEFAULT 0
    )
"""

_INDEX_SQL = (
    f"CREATE INDEX IF NOT EXISTS idx_table_field ON {METADATA_TABLE} (table_name, field_name)"
)

_COLUMNS = "table_name, field_name, actual_type, logical_type, is_nullable, default_value, temporary"


@dataclass(frozen=True)
class MetadataEntry:
    """One (table, field) override."""

    table_name: str
    field_name: str
    physical_type: PhysicalType
    logical_type: LogicalType
    nullable: bool = False
    default: str = ""
    scratch: bool = False

    @classmethod
    def from_row(cls, row: sqlite3.Row | tuple) -> MetadataEntry:
        table_name, field_name, actual, logical, nullable, default, temporary = tuple(row)
        return cls(
            table_name=table_name,
            field_name=field_name,
            physical_type=PhysicalType(actual),
            logical_type=LogicalType(logical),
            nullable=bool(nullable),
            default=default or "",
            scratch=bool(temporary),
        )


class TypeMetadataStore:
    """Reads and writes the ``table_metadata`` table.

    The store never commits: callers decide the transaction boundaries, so a
    schema change and its metadata rows succeed or fail together.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def ensure_schema(self) -> None:
        """Create the metadata table and its index if they are missing."""
        self.conn.execute(_CREATE_SQL)
        self.conn.execute(_INDEX_SQL)

    def put(
        self,
        table_name: str,
        field_name: str,
        physical_type: PhysicalType,
        logical_type: LogicalType,
        nullable: bool = False,
        default: str = "",
        scratch: bool = False,
    ) -> None:
        """Record a logical type override, replacing any previous one for the field."""
        self.remove(table_name, field_name)
        self.conn.execute(
            f"INSERT INTO {METADATA_TABLE} ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                table_name,
                field_name,
                physical_type.value,
                logical_type.value,
                int(nullable),
                default,
                int(scratch),
            ),
        )
        logger.debug("metadata put %s.%s -> %s", table_name, field_name, logical_type.value)

    def put_entry(self, entry: MetadataEntry) -> None:
        self.put(
            entry.table_name,
            entry.field_name,
            entry.physical_type,
            entry.logical_type,
            entry.nullable,
            entry.default,
            entry.scratch,
        )

    def remove(self, table_name: str, field_name: str) -> int:
        """Delete the override for a field. Returns the number of rows removed."""
        cur = self.conn.execute(
            f"DELETE FROM {METADATA_TABLE} WHERE table_name = ? AND field_name = ?",
            (table_name, field_name),
        )
        return cur.rowcount

    def remove_table(self, table_name: str) -> int:
        """Delete every override recorded for a table."""
        cur = self.conn.execute(
            f"DELETE FROM {METADATA_TABLE} WHERE table_name = ?", (table_name,)
        )
        return cur.rowcount

    def get(self, table_name: str, field_name: str) -> MetadataEntry | None:
        row = self.conn.execute(
            f"SELECT {_COLUMNS} FROM {METADATA_TABLE} WHERE table_name = ? AND field_name = ?",
            (table_name, field_name),
        ).fetchone()
        return MetadataEntry.from_row(row) if row is not None else None

    def entries(self, table_name: str) -> dict[str, MetadataEntry]:
        """Return all overrides of a table keyed by field name."""
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM {METADATA_TABLE} WHERE table_name = ? ORDER BY id",
            (table_name,),
        ).fetchall()
        return {entry.field_name: entry for entry in map(MetadataEntry.from_row, rows)}

    def count(self, table_name: str | None = None) -> int:
        if table_name is None:
            row = self.conn.execute(f"SELECT COUNT(*) FROM {METADATA_TABLE}").fetchone()
        else:
            row = self.conn.execute(
                f"SELECT COUNT(*) FROM {METADATA_TABLE} WHERE table_name = ?", (table_name,)
            ).fetchone()
        return int(row[0])

    def purge_scratch(self) -> int:
        """Delete every row flagged scratch. Run once at engine start."""
        cur = self.conn.execute(f"DELETE FROM {METADATA_TABLE} WHERE temporary = 1")
        if cur.rowcount:
            logger.info("purged %d scratch metadata row(s)", cur.rowcount)
        return cur.rowcount
