"""Tests for date, time and boolean format conversion."""

from datetime import datetime

import pytest

from logical_tables.errors import FormatError, ScriptError, TemplateError
from logical_tables.formats import (
    Classification,
    Direction,
    FormatEngine,
    FormatSettings,
    format_bool,
    template_to_validation_pattern,
)
from logical_tables.types import LogicalType


@pytest.fixture
def engine():
    return FormatEngine(clock=lambda: datetime(2024, 6, 15, 13, 45, 1))


class TestFormatValue:
    """Tests for converting between canonical and display form."""

    def test_date_to_display(self, engine):
        assert engine.format_value("20240615", LogicalType.DATE, Direction.TO_DISPLAY) == "15.06.2024"

    def test_date_to_canonical(self, engine):
        assert engine.format_value("15.06.2024", LogicalType.DATE, Direction.TO_CANONICAL) == "20240615"

    def test_time(self, engine):
        assert engine.format_value("134501", LogicalType.TIME, Direction.TO_DISPLAY) == "13:45:01"
        assert engine.format_value("13:45:01", LogicalType.TIME, Direction.TO_CANONICAL) == "134501"

    def test_datetime(self, engine):
        assert (
            engine.format_value("20240615134501", LogicalType.DATETIME, Direction.TO_DISPLAY)
            == "15.06.2024 13:45:01"
        )
        assert (
            engine.format_value("15.06.2024 13:45:01", LogicalType.DATETIME, Direction.TO_CANONICAL)
            == "20240615134501"
        )

    @pytest.mark.parametrize(
        "logical_type,display",
        [
            (LogicalType.DATE, "29.02.2024"),
            (LogicalType.TIME, "00:00:00"),
            (LogicalType.DATETIME, "31.12.1999 23:59:59"),
        ],
    )
    def test_display_round_trip(self, engine, logical_type, display):
        canonical = engine.format_value(display, logical_type, Direction.TO_CANONICAL)
        assert engine.format_value(canonical, logical_type, Direction.TO_DISPLAY) == display

    def test_empty_stays_empty(self, engine):
        assert engine.format_value("", LogicalType.DATE, Direction.TO_CANONICAL) == ""
        assert engine.format_value("", LogicalType.TIME, Direction.TO_DISPLAY) == ""

    def test_wrong_shape_raises(self, engine):
        with pytest.raises(FormatError):
            engine.format_value("2024-06-15", LogicalType.DATE, Direction.TO_CANONICAL)

    def test_impossible_date_raises(self, engine):
        with pytest.raises(FormatError):
            engine.format_value("31.02.2024", LogicalType.DATE, Direction.TO_CANONICAL)

    def test_impossible_time_raises(self, engine):
        with pytest.raises(FormatError):
            engine.format_value("25:00:00", LogicalType.TIME, Direction.TO_CANONICAL)

    def test_plain_type_is_script_error(self, engine):
        with pytest.raises(ScriptError):
            engine.format_value("x", LogicalType.TEXT, Direction.TO_DISPLAY)

    def test_month_alias(self):
        engine = FormatEngine(FormatSettings(date_format="yyyy-MM-dd"))
        assert engine.format_value("20240615", LogicalType.DATE, Direction.TO_DISPLAY) == "2024-06-15"

    def test_two_digit_year_pivot(self):
        engine = FormatEngine(FormatSettings(date_format="dd.mm.yy"))
        assert engine.format_value("01.01.69", LogicalType.DATE, Direction.TO_CANONICAL) == "19690101"
        assert engine.format_value("01.01.68", LogicalType.DATE, Direction.TO_CANONICAL) == "20680101"
        assert engine.format_value("20050301", LogicalType.DATE, Direction.TO_DISPLAY) == "01.03.05"


class TestBoolean:
    """Tests for boolean conversion."""

    def test_to_display(self, engine):
        assert engine.format_value("1", LogicalType.BOOLEAN, Direction.TO_DISPLAY) == "true"
        assert engine.format_value("0", LogicalType.BOOLEAN, Direction.TO_DISPLAY) == "false"

    @pytest.mark.parametrize("value", ["1", "true", "TRUE", "True"])
    def test_lenient_true(self, value):
        assert format_bool(value, Direction.TO_CANONICAL) == "1"

    @pytest.mark.parametrize("value", ["0", "false", "yes", "", "2"])
    def test_everything_else_is_false(self, value):
        assert format_bool(value, Direction.TO_CANONICAL) == "0"


class TestTemplates:
    """Tests for template validation."""

    def test_validation_pattern(self):
        assert template_to_validation_pattern("dd.mm.yyyy") == r"^\d{2}\.\d{2}\.\d{4}$"
        assert template_to_validation_pattern("hh:ii") == r"^\d{2}:\d{2}$"

    def test_slash_separator_accepted(self, engine):
        engine.set_date_format("dd/mm/yyyy")
        assert engine.to_display("20240615", LogicalType.DATE) == "15/06/2024"

    @pytest.mark.parametrize(
        "template",
        [
            "",
            "dd.mm",  # year missing
            "dd.mm.yyyy.mm",  # month twice
            "dd.mm.MM.yyyy",  # both spellings of month
            "dd_mm_yyyy",  # '_' is not a separator
            "dd.mm.yyyy hh",  # hour in a date
            "yy.yyyy.mm.dd",  # year twice
        ],
    )
    def test_invalid_date_templates(self, engine, template):
        with pytest.raises(TemplateError):
            engine.set_date_format(template)

    def test_invalid_time_template(self, engine):
        with pytest.raises(TemplateError):
            engine.set_time_format("hh:ii")

    def test_datetime_needs_all_units(self, engine):
        with pytest.raises(TemplateError):
            engine.set_datetime_format("dd.mm.yyyy")

    def test_failed_set_keeps_previous(self, engine):
        with pytest.raises(TemplateError):
            engine.set_date_format("nonsense")
        assert engine.settings.date_format == "dd.mm.yyyy"

    def test_engines_are_independent(self):
        iso = FormatEngine(FormatSettings(date_format="yyyy-mm-dd"))
        default = FormatEngine()
        assert iso.to_display("20240615", LogicalType.DATE) == "2024-06-15"
        assert default.to_display("20240615", LogicalType.DATE) == "15.06.2024"

    def test_invalid_settings_raise_on_construction(self):
        with pytest.raises(TemplateError):
            FormatEngine(FormatSettings(time_format="hh"))


class TestClassification:
    """Tests for classify, check_consistency and to_canonical."""

    def test_classify_date(self, engine):
        assert engine.classify("20240615", LogicalType.DATE) is Classification.CANONICAL
        assert engine.classify("15.06.2024", LogicalType.DATE) is Classification.DISPLAY
        assert engine.classify("hello", LogicalType.DATE) is Classification.INVALID

    def test_classify_boolean(self, engine):
        assert engine.classify("1", LogicalType.BOOLEAN) is Classification.CANONICAL
        assert engine.classify("TRUE", LogicalType.BOOLEAN) is Classification.DISPLAY
        assert engine.classify("yes", LogicalType.BOOLEAN) is Classification.INVALID

    def test_check_consistency(self, engine):
        engine.check_consistency("15.06.2024", LogicalType.DATE, Direction.TO_DISPLAY)
        engine.check_consistency("20240615", LogicalType.DATE, Direction.TO_CANONICAL)
        with pytest.raises(FormatError):
            engine.check_consistency("20240615", LogicalType.DATE, Direction.TO_DISPLAY)
        with pytest.raises(FormatError):
            engine.check_consistency("true", LogicalType.BOOLEAN, Direction.TO_CANONICAL)

    def test_to_canonical_accepts_both_forms(self, engine):
        assert engine.to_canonical("20240615", LogicalType.DATE) == "20240615"
        assert engine.to_canonical("15.06.2024", LogicalType.DATE) == "20240615"
        assert engine.to_canonical("true", LogicalType.BOOLEAN) == "1"
        assert engine.to_canonical("maybe", LogicalType.BOOLEAN) == "0"

    def test_to_canonical_rejects_garbage(self, engine):
        with pytest.raises(FormatError):
            engine.to_canonical("15-06-2024", LogicalType.DATE)


class TestCalendarHelpers:
    """Tests for today/now and date arithmetic."""

    def test_now(self, engine):
        assert engine.today() == "15.06.2024"
        assert engine.now_time() == "13:45:01"
        assert engine.now() == "15.06.2024 13:45:01"

    @pytest.mark.parametrize(
        "start,end,unit,expected",
        [
            ("01.01.2024", "15.01.2024", "d", 14),
            ("01.01.2024", "15.01.2024", "w", 2),
            ("01.01.2024", "01.03.2024", "m", 2),
            ("01.01.2023", "01.01.2024", "y", 1),
            ("15.01.2024", "01.01.2024", "d", -14),
        ],
    )
    def test_date_diff(self, engine, start, end, unit, expected):
        assert engine.date_diff(start, end, unit) == expected

    def test_date_diff_bad_input(self, engine):
        assert engine.date_diff("", "01.01.2024", "d") == -1
        assert engine.date_diff("x", "01.01.2024", "d") == -1
        assert engine.date_diff("01.01.2024", "02.01.2024", "q") == -1

    def test_time_diff(self, engine):
        assert engine.time_diff("10:00:00", "11:30:00", "m") == 90
        assert engine.time_diff("10:00:00", "11:30:00", "h") == 1
        assert engine.time_diff("10:00:00", "11:30:00", "s") == 5400
        assert engine.time_diff("10:00", "11:30:00", "s") == -1

    def test_date_add(self, engine):
        assert engine.date_add("15.06.2024", days=20) == "05.07.2024"
        assert engine.date_add("15.06.2024", years=-1) == "15.06.2023"
        assert engine.date_add("15.11.2024", months=3) == "15.02.2025"

    def test_date_add_overflow_rolls_forward(self, engine):
        assert engine.date_add("31.01.2024", months=1) == "02.03.2024"
        assert engine.date_add("29.02.2024", years=1) == "01.03.2025"

    def test_date_add_bad_input(self, engine):
        assert engine.date_add("", days=1) == ""
        assert engine.date_add("2024", days=1) == ""

    def test_time_add_wraps(self, engine):
        assert engine.time_add("23:30:00", hours=1) == "00:30:00"
        assert engine.time_add("10:00:00", minutes=-15) == "09:45:00"
        assert engine.time_add("bad") == ""

    def test_time_add_large_shift(self, engine):
        assert engine.time_add("10:00:00", hours=10**9) == "02:00:00"
        assert engine.time_add("10:00:00", hours=-48) == "10:00:00"
