"""Type definitions for the logical_tables library."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from logical_tables.errors import ScriptError

# A single stored value. The set is closed: every conversion site accepts
# exactly these Python types and rejects anything else.
Scalar = Union[str, int, float, bool, None]

# One row, keyed by column name in column order
Record = dict[str, Scalar]

# Name of the primary key column created for every table
PRIMARY_KEY = "id"

# Primary key value of a row that has not been persisted yet
NEW_ROW_ID = 0

# Name of the persisted metadata table; callers may not create, alter or drop it
METADATA_TABLE = "table_metadata"


class PhysicalType(Enum):
    """Column storage classes of the underlying SQLite database."""

    INTEGER = "INTEGER"
    REAL = "REAL"
    TEXT = "TEXT"
    BLOB = "BLOB"
    NULL = "NULL"

    @property
    def zero_value(self) -> Scalar | bytes:
        """Return the value a column of this type holds when nothing was written."""
        zeros: dict[PhysicalType, Scalar | bytes] = {
            PhysicalType.INTEGER: 0,
            PhysicalType.REAL: 0.0,
            PhysicalType.TEXT: "",
            PhysicalType.BLOB: b"",
            PhysicalType.NULL: None,
        }
        return zeros[self]

    @classmethod
    def from_declared(cls, declared: str) -> PhysicalType:
        """Map a declared SQLite column type (``TEXT(10)``, ``VARCHAR``...) to a storage class."""
        upper = declared.strip().upper()
        if upper.startswith("INT"):
            return cls.INTEGER
        if upper.startswith(("REAL", "FLOAT", "DOUBLE")):
            return cls.REAL
        if upper.startswith(("TEXT", "CHAR", "VARCHAR")):
            return cls.TEXT
        if upper.startswith("BLOB"):
            return cls.BLOB
        return cls.NULL


class LogicalType(Enum):
    """Semantic type of a column as seen by callers.

    The first five members mirror a physical type and never need a metadata
    row. The remaining members are tags layered over a plain physical column.
    """

    INTEGER = "INTEGER"
    REAL = "REAL"
    TEXT = "TEXT"
    BLOB = "BLOB"
    NULL = "NULL"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    TIME = "TIME"
    DATETIME = "DATETIME"

    @property
    def is_special(self) -> bool:
        """Return whether values of this type are converted between canonical and display form."""
        return self in SPECIAL_TYPES

    @property
    def is_temporal(self) -> bool:
        """Return whether this is one of the date/time types."""
        return self in TEMPORAL_TYPES

    @property
    def is_numeric(self) -> bool:
        return self in (LogicalType.INTEGER, LogicalType.REAL)

    @classmethod
    def from_physical(cls, physical: PhysicalType) -> LogicalType:
        """Return the logical type a physical type stands for when no tag is recorded."""
        return cls(physical.value)


TEMPORAL_TYPES = frozenset({LogicalType.DATE, LogicalType.TIME, LogicalType.DATETIME})
SPECIAL_TYPES = TEMPORAL_TYPES | {LogicalType.BOOLEAN}


@dataclass(frozen=True)
class ColumnType:
    """How a type name of the field-specification DSL is laid out in storage."""

    name: str
    physical: PhysicalType
    sql_type: str
    default_sql: str
    default_value: Scalar
    logical: LogicalType | None = None
    accepts_length: bool = False

    def column_sql(self, field_name: str, length: str | None = None) -> str:
        """Return the column definition used in CREATE TABLE / ALTER TABLE ADD COLUMN."""
        sql_type = self.sql_type
        if self.accepts_length and length:
            sql_type = f"{sql_type}({length})"
        return f"{quote_identifier(field_name)} {sql_type} DEFAULT {self.default_sql}"


# Declared type names of the DSL, in the order they are documented
COLUMN_TYPES: dict[str, ColumnType] = {
    ct.name: ct
    for ct in (
        ColumnType("Text", PhysicalType.TEXT, "TEXT", "''", "", accepts_length=True),
        ColumnType("Integer", PhysicalType.INTEGER, "INTEGER", "0", 0),
        ColumnType("Float", PhysicalType.REAL, "REAL", "0.0", 0.0),
        ColumnType("Boolean", PhysicalType.INTEGER, "INTEGER", "0", 0, LogicalType.BOOLEAN),
        ColumnType("Date", PhysicalType.TEXT, "TEXT(10)", "''", "", LogicalType.DATE),
        ColumnType("Time", PhysicalType.TEXT, "TEXT(8)", "''", "", LogicalType.TIME),
        ColumnType("DateTime", PhysicalType.TEXT, "TEXT(19)", "''", "", LogicalType.DATETIME),
    )
}


def default_for(logical: LogicalType) -> Scalar | bytes:
    """Return the value a field of the given logical type reads as when empty."""
    if logical is LogicalType.BOOLEAN:
        return 0
    if logical.is_temporal:
        return ""
    return PhysicalType(logical.value).zero_value


def check_scalar(field_name: str, value: object) -> Scalar:
    """Return *value* if it belongs to the closed scalar set, raise otherwise."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value  # type: ignore[return-value]
    raise ScriptError(
        f"Field '{field_name}' got a value of type {type(value).__name__}; "
        "expected str, int, float, bool or None"
    )


def quote_identifier(name: str) -> str:
    """Quote a table or column name for use in SQL."""
    return '"' + name.replace('"', '""') + '"'
