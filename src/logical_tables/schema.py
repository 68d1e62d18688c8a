"""Table creation, alteration and removal from field-specification strings."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from logical_tables.errors import (
    ReservedTableError,
    SchemaError,
    SpecSyntaxError,
    TableExistsError,
    TableNotFoundError,
    UnknownFieldTypeError,
)
from logical_tables.metadata import TypeMetadataStore
from logical_tables.parsing import SpecEntry, SpecParser
from logical_tables.types import (
    COLUMN_TYPES,
    METADATA_TABLE,
    PRIMARY_KEY,
    ColumnType,
    quote_identifier,
)

logger = logging.getLogger(__name__)

# Keys understood in a field entry: name, type, length
FIELD_KEYS = ("n", "t", "l")

_TYPES_BY_LOWER_NAME = {name.lower(): ct for name, ct in COLUMN_TYPES.items()}


@dataclass(frozen=True)
class FieldSpec:
    """A parsed field definition."""

    name: str
    column_type: ColumnType
    length: str | None = None

    def column_sql(self) -> str:
        return self.column_type.column_sql(self.name, self.length)


@dataclass(frozen=True)
class ColumnInfo:
    """One row of ``PRAGMA table_info``."""

    name: str
    declared_type: str
    default_sql: str | None
    primary_key: bool


def lookup_type(type_name: str) -> ColumnType:
    """Return the catalogue entry for a DSL type name (case-insensitive).

    Raises:
        UnknownFieldTypeError: If the name is not in the catalogue.
    """
    column_type = _TYPES_BY_LOWER_NAME.get(type_name.strip().lower())
    if column_type is None:
        raise UnknownFieldTypeError(
            f"Unknown field type '{type_name}'; expected one of {', '.join(COLUMN_TYPES)}"
        )
    return column_type


def field_from_entry(entry: SpecEntry, name_key: str = "n") -> FieldSpec | None:
    """Build a :class:`FieldSpec` from a parsed entry.

    Returns None when the entry has no name.
    """
    allowed = set(FIELD_KEYS) | {name_key}
    for key in entry.keys():
        if key not in allowed:
            logger.warning("ignoring unknown key '%s' in field specification", key)

    name = entry.get(name_key)
    if not name:
        logger.warning("skipping field specification without a name: %r", entry.pairs)
        return None
    if name.lower() == PRIMARY_KEY:
        raise SpecSyntaxError(f"'{name}' is the primary key and cannot be declared")

    type_name = entry.get("t")
    if not type_name:
        raise UnknownFieldTypeError(f"Field '{name}' has no type")
    column_type = lookup_type(type_name)

    length = entry.get("l") or None
    if length is not None:
        if not length.isdigit():
            raise SpecSyntaxError(f"Length of field '{name}' must be a number, got '{length}'")
        if not column_type.accepts_length:
            logger.warning("ignoring length of %s field '%s'", column_type.name, name)
            length = None
    return FieldSpec(name=name, column_type=column_type, length=length)


class SchemaManager:
    """Creates, alters and drops tables and keeps the type metadata in step.

    Every call runs its DDL and metadata writes in one transaction. The
    connection must be in autocommit mode (``isolation_level=None``) so that
    the explicit ``BEGIN`` here opens the transaction.
    """

    def __init__(self, conn: sqlite3.Connection, metadata: TypeMetadataStore) -> None:
        self.conn = conn
        self.metadata = metadata
        self.parser = SpecParser()

    # --- Inspection -----------------------------------------------------------

    def table_exists(self, name: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ? "
            "UNION ALL "
            "SELECT 1 FROM sqlite_temp_master WHERE type = 'table' AND name = ?",
            (name, name),
        ).fetchone()
        return row is not None

    def is_scratch(self, name: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM sqlite_temp_master WHERE type = 'table' AND name = ?", (name,)
        ).fetchone()
        return row is not None

    def list_tables(self) -> list[str]:
        """Return the names of all caller tables, scratch tables included."""
        rows = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "UNION "
            "SELECT name FROM sqlite_temp_master WHERE type = 'table' "
            "ORDER BY name"
        ).fetchall()
        return [
            row[0]
            for row in rows
            if row[0] != METADATA_TABLE and not row[0].startswith("sqlite_")
        ]

    def columns(self, name: str) -> list[ColumnInfo]:
        rows = self.conn.execute(f"PRAGMA table_info({quote_identifier(name)})").fetchall()
        return [
            ColumnInfo(
                name=row[1],
                declared_type=row[2] or "",
                default_sql=row[4],
                primary_key=bool(row[5]),
            )
            for row in rows
        ]

    def parse_fields(self, spec: str) -> list[FieldSpec]:
        """Parse a ``n::Name;t::Type;l::Len|...`` specification.

        Raises:
            SpecSyntaxError: If the specification is malformed or repeats a name.
            UnknownFieldTypeError: If a field names an unknown type.
        """
        fields: list[FieldSpec] = []
        seen: set[str] = set()
        for entry in self.parser.parse(spec):
            field_spec = field_from_entry(entry)
            if field_spec is None:
                continue
            if field_spec.name.lower() in seen:
                raise SpecSyntaxError(f"Field '{field_spec.name}' is declared twice")
            seen.add(field_spec.name.lower())
            fields.append(field_spec)
        return fields

    # --- Changes --------------------------------------------------------------

    def create_table(
        self, name: str, spec: str, open_if_exists: bool = False, scratch: bool = False
    ) -> bool:
        """Create a table from a field specification.

        Args:
            name: Table name.
            spec: Field specification, e.g. ``"n::Title;t::Text;l::80|n::Due;t::Date"``.
            open_if_exists: Return quietly if the table already exists.
            scratch: Create a temporary table that disappears with the connection.

        Returns:
            True if the table was created, False if it already existed.

        Raises:
            ReservedTableError: If *name* is the metadata table.
            TableExistsError: If the table exists and *open_if_exists* is False.
            SchemaError: If the statement fails.
        """
        self._check_reserved(name)
        if self.table_exists(name):
            if open_if_exists:
                return False
            raise TableExistsError(f"Table '{name}' already exists")

        fields = self.parse_fields(spec)
        if not fields:
            raise SpecSyntaxError(f"No fields given for table '{name}'")

        columns = [f"{quote_identifier(PRIMARY_KEY)} INTEGER PRIMARY KEY AUTOINCREMENT"]
        columns.extend(f.column_sql() for f in fields)
        temp = "TEMP " if scratch else ""
        ddl = f"CREATE {temp}TABLE {quote_identifier(name)} ({', '.join(columns)})"

        with self._transaction(f"create table '{name}'"):
            logger.debug("%s", ddl)
            self.conn.execute(ddl)
            for f in fields:
                self._record_type(name, f, scratch)
        logger.info("created %stable %s with %d field(s)", "scratch " if scratch else "", name, len(fields))
        return True

    def alter_table(self, name: str, spec: str) -> None:
        """Apply ``drop::field`` and ``add::name;t::Type;l::Len`` entries.

        All entries succeed together or none is applied.

        Raises:
            ReservedTableError: If *name* is the metadata table.
            TableNotFoundError: If the table does not exist.
            SchemaError: If any statement fails; nothing is changed.
        """
        self._check_reserved(name)
        if not self.table_exists(name):
            raise TableNotFoundError(f"Table '{name}' does not exist")

        changes: list[tuple[str, str | FieldSpec]] = []
        for entry in self.parser.parse(spec):
            keys = entry.keys()
            if "drop" in keys and "add" in keys:
                raise SpecSyntaxError(f"Entry {entry.pairs!r} both adds and drops a field")
            if "drop" in keys:
                field_name = entry.get("drop")
                if not field_name:
                    raise SpecSyntaxError("'drop' needs a field name")
                changes.append(("drop", field_name))
            elif "add" in keys:
                field_spec = field_from_entry(entry, name_key="add")
                if field_spec is None:
                    raise SpecSyntaxError("'add' needs a field name")
                changes.append(("add", field_spec))
            else:
                raise SpecSyntaxError(f"Entry {entry.pairs!r} neither adds nor drops a field")

        scratch = self.is_scratch(name)
        table = quote_identifier(name)
        with self._transaction(f"alter table '{name}'"):
            for action, target in changes:
                if isinstance(target, FieldSpec):
                    ddl = f"ALTER TABLE {table} ADD COLUMN {target.column_sql()}"
                    logger.debug("%s", ddl)
                    self.conn.execute(ddl)
                    self._record_type(name, target, scratch)
                else:
                    column = self._column_name(name, target)
                    ddl = f"ALTER TABLE {table} DROP COLUMN {quote_identifier(column)}"
                    logger.debug("%s", ddl)
                    self.conn.execute(ddl)
                    self.metadata.remove(name, column)
        logger.info("altered table %s (%d change(s))", name, len(changes))

    def drop_table(self, name: str) -> None:
        """Drop a table together with its type metadata."""
        self._check_reserved(name)
        if not self.table_exists(name):
            raise TableNotFoundError(f"Table '{name}' does not exist")
        with self._transaction(f"drop table '{name}'"):
            self.conn.execute(f"DROP TABLE {quote_identifier(name)}")
            self.metadata.remove_table(name)
        logger.info("dropped table %s", name)

    # --- Helpers --------------------------------------------------------------

    def _column_name(self, table: str, field_name: str) -> str:
        # SQLite column names are case-insensitive
        for info in self.columns(table):
            if info.name.lower() == field_name.lower():
                return info.name
        return field_name

    def _record_type(self, table: str, field_spec: FieldSpec, scratch: bool) -> None:
        column_type = field_spec.column_type
        if column_type.logical is None:
            return
        self.metadata.put(
            table,
            field_spec.name,
            column_type.physical,
            column_type.logical,
            nullable=False,
            default=str(column_type.default_value),
            scratch=scratch,
        )

    @staticmethod
    def _check_reserved(name: str) -> None:
        if name.lower() == METADATA_TABLE:
            raise ReservedTableError(f"'{METADATA_TABLE}' is reserved for type metadata")

    @contextmanager
    def _transaction(self, action: str) -> Iterator[None]:
        self.conn.execute("BEGIN")
        try:
            yield
        except sqlite3.Error as e:
            self.conn.execute("ROLLBACK")
            raise SchemaError(f"Could not {action}: {e}") from e
        except BaseException:
            self.conn.execute("ROLLBACK")
            raise
        self.conn.execute("COMMIT")
