"""Tests for compiling filter expressions to SQL predicates."""

import pytest

from logical_tables.errors import FilterSyntaxError
from logical_tables.filters import FilterCompiler, Predicate, strip_quotes
from logical_tables.formats import FormatEngine
from logical_tables.types import LogicalType


@pytest.fixture
def compiler():
    return FilterCompiler(FormatEngine())


class TestNumericFilters:
    """Tests for Integer and Float fields."""

    def test_quoted_and_bare_are_equal(self, compiler):
        quoted = compiler.compile("Amount", LogicalType.INTEGER, "=='5'")
        bare = compiler.compile("Amount", LogicalType.INTEGER, "5")
        assert quoted == bare == Predicate('"Amount" = ?', (5,))

    def test_comparison(self, compiler):
        predicate = compiler.compile("Price", LogicalType.REAL, ">2.5&<=10")
        assert predicate.sql == '"Price" > ? AND "Price" <= ?'
        assert predicate.params == (2.5, 10)

    def test_not_equal(self, compiler):
        predicate = compiler.compile("Amount", LogicalType.INTEGER, "~=3")
        assert predicate == Predicate('"Amount" <> ?', (3,))


class TestTextFilters:
    """Tests for Text fields."""

    def test_wildcards_use_like(self, compiler):
        predicate = compiler.compile("Name", LogicalType.TEXT, "a%|b_")
        assert predicate.sql == '"Name" LIKE ? OR "Name" LIKE ?'
        assert predicate.params == ("a%", "b_")

    def test_exact_match_strips_quotes(self, compiler):
        assert compiler.compile("Name", LogicalType.TEXT, "'Smith'") == Predicate('"Name" = ?', ("Smith",))
        assert compiler.compile("Name", LogicalType.TEXT, '~="Smith"') == Predicate('"Name" <> ?', ("Smith",))

    def test_ordering_comparison(self, compiler):
        assert compiler.compile("Name", LogicalType.TEXT, ">M") == Predicate('"Name" > ?', ("M",))

    def test_explicit_equality_does_not_use_like(self, compiler):
        assert compiler.compile("Code", LogicalType.TEXT, "==A_1") == Predicate('"Code" = ?', ("A_1",))


class TestEmptyValue:
    """'' means "field is empty" for every type."""

    @pytest.mark.parametrize(
        "logical_type",
        [LogicalType.TEXT, LogicalType.INTEGER, LogicalType.DATE, LogicalType.BOOLEAN],
    )
    def test_is_empty(self, compiler, logical_type):
        predicate = compiler.compile("F", logical_type, "''")
        assert predicate == Predicate("COALESCE(\"F\", '') = ''")

    def test_is_not_empty(self, compiler):
        predicate = compiler.compile("F", LogicalType.DATE, "~=''")
        assert predicate.sql == "COALESCE(\"F\", '') <> ''"
        assert predicate.params == ()


class TestSpecialTypeFilters:
    """Tests for date/time and boolean operands."""

    def test_date_range(self, compiler):
        predicate = compiler.compile("Due", LogicalType.DATE, ">=01.01.2024&<=31.12.2024")
        assert predicate.sql == '"Due" >= ? AND "Due" <= ?'
        assert predicate.params == ("20240101", "20241231")

    def test_canonical_date_passes(self, compiler):
        predicate = compiler.compile("Due", LogicalType.DATE, "20240615")
        assert predicate.params == ("20240615",)

    def test_unparseable_date_passes_raw(self, compiler):
        predicate = compiler.compile("Due", LogicalType.DATE, ">2024")
        assert predicate.params == ("2024",)

    def test_time(self, compiler):
        predicate = compiler.compile("At", LogicalType.TIME, "<12:00:00")
        assert predicate == Predicate('"At" < ?', ("120000",))

    def test_boolean(self, compiler):
        assert compiler.compile("Done", LogicalType.BOOLEAN, "true") == Predicate('"Done" = ?', (1,))
        assert compiler.compile("Done", LogicalType.BOOLEAN, "~=1") == Predicate('"Done" <> ?', (1,))
        assert compiler.compile("Done", LogicalType.BOOLEAN, "false") == Predicate('"Done" = ?', (0,))


class TestCompile:
    """General behaviour of FilterCompiler.compile."""

    @pytest.mark.parametrize("expression", ["", "   ", None])
    def test_empty_expression(self, compiler, expression):
        assert compiler.compile("Name", LogicalType.TEXT, expression) is None

    def test_syntax_error(self, compiler):
        with pytest.raises(FilterSyntaxError):
            compiler.compile("Name", LogicalType.TEXT, "a&&b")

    def test_field_name_is_quoted(self, compiler):
        predicate = compiler.compile('odd"name', LogicalType.TEXT, "x")
        assert predicate.sql == '"odd""name" = ?'


class TestPredicate:
    """Tests for Predicate helpers."""

    def test_join_and_groups_each_part(self):
        joined = Predicate.join_and([
            Predicate("a = ?", (1,)),
            None,
            Predicate("b = ? OR c = ?", (2, 3)),
        ])
        assert joined.sql == "(a = ?) AND (b = ? OR c = ?)"
        assert joined.params == (1, 2, 3)

    def test_join_and_nothing(self):
        assert Predicate.join_and([None, None]) is None

    def test_strip_quotes(self):
        assert strip_quotes("'x'") == "x"
        assert strip_quotes('"x"') == "x"
        assert strip_quotes("'x\"") == "'x\""
        assert strip_quotes("'") == "'"
