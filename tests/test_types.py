"""Tests for the type catalogue."""

import pytest

from logical_tables.errors import ScriptError
from logical_tables.types import (
    COLUMN_TYPES,
    LogicalType,
    PhysicalType,
    check_scalar,
    default_for,
    quote_identifier,
)


class TestPhysicalType:
    """Tests for PhysicalType."""

    @pytest.mark.parametrize(
        "declared,expected",
        [
            ("INTEGER", PhysicalType.INTEGER),
            ("int", PhysicalType.INTEGER),
            ("REAL", PhysicalType.REAL),
            ("TEXT(10)", PhysicalType.TEXT),
            ("varchar(40)", PhysicalType.TEXT),
            ("BLOB", PhysicalType.BLOB),
            ("", PhysicalType.NULL),
        ],
    )
    def test_from_declared(self, declared, expected):
        assert PhysicalType.from_declared(declared) is expected

    def test_zero_values(self):
        assert PhysicalType.INTEGER.zero_value == 0
        assert PhysicalType.REAL.zero_value == 0.0
        assert PhysicalType.TEXT.zero_value == ""
        assert PhysicalType.NULL.zero_value is None


class TestLogicalType:
    """Tests for LogicalType."""

    def test_special_types(self):
        special = {lt for lt in LogicalType if lt.is_special}
        assert special == {LogicalType.BOOLEAN, LogicalType.DATE, LogicalType.TIME, LogicalType.DATETIME}

    def test_from_physical(self):
        assert LogicalType.from_physical(PhysicalType.REAL) is LogicalType.REAL

    def test_defaults(self):
        assert default_for(LogicalType.BOOLEAN) == 0
        assert default_for(LogicalType.DATE) == ""
        assert default_for(LogicalType.INTEGER) == 0
        assert default_for(LogicalType.TEXT) == ""


class TestColumnTypes:
    """Tests for the DSL type catalogue."""

    @pytest.mark.parametrize(
        "name,length,expected",
        [
            ("Text", "80", "\"Title\" TEXT(80) DEFAULT ''"),
            ("Text", None, "\"Title\" TEXT DEFAULT ''"),
            ("Integer", None, '"Title" INTEGER DEFAULT 0'),
            ("Float", None, '"Title" REAL DEFAULT 0.0'),
            ("Boolean", None, '"Title" INTEGER DEFAULT 0'),
            ("Date", "99", "\"Title\" TEXT(10) DEFAULT ''"),
            ("Time", None, "\"Title\" TEXT(8) DEFAULT ''"),
            ("DateTime", None, "\"Title\" TEXT(19) DEFAULT ''"),
        ],
    )
    def test_column_sql(self, name, length, expected):
        assert COLUMN_TYPES[name].column_sql("Title", length) == expected

    def test_tags(self):
        assert COLUMN_TYPES["Boolean"].physical is PhysicalType.INTEGER
        assert COLUMN_TYPES["Boolean"].logical is LogicalType.BOOLEAN
        assert COLUMN_TYPES["Date"].physical is PhysicalType.TEXT
        assert COLUMN_TYPES["Text"].logical is None


class TestScalars:
    """Tests for the closed scalar set."""

    @pytest.mark.parametrize("value", ["x", 1, 1.5, True, None])
    def test_accepted(self, value):
        assert check_scalar("f", value) == value

    @pytest.mark.parametrize("value", [[1], {"a": 1}, object()])
    def test_rejected(self, value):
        with pytest.raises(ScriptError):
            check_scalar("f", value)

    def test_quote_identifier(self):
        assert quote_identifier("a") == '"a"'
        assert quote_identifier('a"b') == '"a""b"'
