"""Conversion between canonical and display forms of date, time and boolean values.

Canonical forms are what the database stores: fixed-width, lexically sortable
strings (``yyyymmdd``, ``hhiiss``, ``yyyymmddhhiiss``) and ``"1"``/``"0"`` for
booleans. Display forms are what callers read and type: strings rendered from a
configurable template such as ``dd.mm.yyyy`` and ``"true"``/``"false"``.

A template is a sequence of unit tokens (``yyyy`` or ``yy``, ``mm`` or ``MM``,
``dd``, ``hh``, ``ii``, ``ss``) and literal separators. Templates are validated
once, when they are set; a bad template raises :class:`TemplateError`. Values
that do not match a template raise :class:`FormatError`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable

from logical_tables.errors import FormatError, ScriptError, TemplateError
from logical_tables.types import TEMPORAL_TYPES, LogicalType

logger = logging.getLogger(__name__)


class Direction(Enum):
    """Which way a value is converted."""

    TO_CANONICAL = "to_canonical"
    TO_DISPLAY = "to_display"


class Classification(Enum):
    """Result of :meth:`FormatEngine.classify`."""

    CANONICAL = "canonical"
    DISPLAY = "display"
    INVALID = "invalid"


CANONICAL_TEMPLATES: dict[LogicalType, str] = {
    LogicalType.DATE: "yyyymmdd",
    LogicalType.TIME: "hhiiss",
    LogicalType.DATETIME: "yyyymmddhhiiss",
}

BOOLEAN_TRUE = "1"
BOOLEAN_FALSE = "0"

# Characters a template may use between tokens
LITERAL_CHARACTERS = frozenset("0123456789./: -")

_TOKEN_RE = re.compile(r"yyyy|yy|mm|MM|dd|hh|ii|ss")

# token -> (unit, digit count)
_TOKENS: dict[str, tuple[str, int]] = {
    "yyyy": ("year", 4),
    "yy": ("year", 2),
    "mm": ("month", 2),
    "MM": ("month", 2),
    "dd": ("day", 2),
    "hh": ("hour", 2),
    "ii": ("minute", 2),
    "ss": ("second", 2),
}

_DATE_UNITS = ("year", "month", "day")
_TIME_UNITS = ("hour", "minute", "second")

_REQUIRED_UNITS: dict[LogicalType, tuple[str, ...]] = {
    LogicalType.DATE: _DATE_UNITS,
    LogicalType.TIME: _TIME_UNITS,
    LogicalType.DATETIME: _DATE_UNITS + _TIME_UNITS,
}

# Two-digit years below this belong to the 2000s, the rest to the 1900s
_YY_PIVOT = 69


def _tokenize(template: str) -> tuple[list[tuple[str, bool]], list[str]]:
    """Split a template into (text, is_token) parts, collecting problems."""
    parts: list[tuple[str, bool]] = []
    problems: list[str] = []
    pos = 0
    while pos < len(template):
        match = _TOKEN_RE.match(template, pos)
        if match:
            parts.append((match.group(0), True))
            pos = match.end()
            continue
        char = template[pos]
        if char not in LITERAL_CHARACTERS:
            problems.append(f"unexpected character '{char}' at position {pos}")
        parts.append((char, False))
        pos += 1
    return parts, problems


def template_to_validation_pattern(template: str) -> str:
    r"""Return an anchored regular expression matching values shaped like *template*.

    Each unit token becomes a run of digits of the token's width; everything
    else is matched literally, so ``dd.mm.yyyy`` gives ``^\d{2}\.\d{2}\.\d{4}$``.
    The template is not validated here.
    """
    parts, _ = _tokenize(template)
    pattern = []
    for text, is_token in parts:
        if is_token:
            pattern.append(r"\d{%d}" % _TOKENS[text][1])
        else:
            pattern.append(re.escape(text))
    return "^" + "".join(pattern) + "$"


@dataclass(frozen=True)
class Template:
    """A validated date/time template."""

    source: str
    logical_type: LogicalType
    parts: tuple[tuple[str, bool], ...]
    regex: re.Pattern[str]

    @classmethod
    def compile(cls, template: str, logical_type: LogicalType) -> Template:
        """Validate *template* for *logical_type* and compile it.

        Raises:
            TemplateError: If the template is empty, uses characters outside
                the allowed set, repeats a unit, uses both ``mm`` and ``MM``,
                lacks a unit the type needs or has a unit the type cannot hold.
        """
        if logical_type not in _REQUIRED_UNITS:
            raise ScriptError(f"No date/time template applies to type {logical_type.value}")
        if not template:
            raise TemplateError(f"{logical_type.value} format must not be empty")

        parts, problems = _tokenize(template)
        tokens = [text for text, is_token in parts if is_token]
        required = _REQUIRED_UNITS[logical_type]

        if "mm" in tokens and "MM" in tokens:
            problems.append("month is given both as 'mm' and 'MM'")
        seen: dict[str, str] = {}
        for token in tokens:
            unit = _TOKENS[token][0]
            if unit not in required:
                problems.append(f"'{token}' ({unit}) is not valid in a {logical_type.value} format")
            elif unit in seen:
                problems.append(f"{unit} appears more than once ('{seen[unit]}' and '{token}')")
            else:
                seen[unit] = token
        for unit in required:
            if unit not in seen:
                problems.append(f"{unit} is missing")

        if problems:
            raise TemplateError(f"Invalid {logical_type.value} format '{template}': " + "; ".join(problems))

        regex_parts = []
        for text, is_token in parts:
            if is_token:
                unit, width = _TOKENS[text]
                regex_parts.append(r"(?P<%s>\d{%d})" % (unit, width))
            else:
                regex_parts.append(re.escape(text))
        regex = re.compile("^" + "".join(regex_parts) + "$")
        return cls(source=template, logical_type=logical_type, parts=tuple(parts), regex=regex)

    def parse(self, value: str) -> datetime:
        """Parse *value* into a datetime.

        Raises:
            FormatError: If the value does not match or names an impossible date/time.
        """
        match = self.regex.match(value)
        if match is None:
            raise FormatError(f"'{value}' does not match the format '{self.source}'")
        groups = match.groupdict()
        year = 1900
        if "year" in groups:
            year = int(groups["year"])
            if len(groups["year"]) == 2:
                year += 2000 if year < _YY_PIVOT else 1900
        try:
            return datetime(
                year,
                int(groups.get("month", 1)),
                int(groups.get("day", 1)),
                int(groups.get("hour", 0)),
                int(groups.get("minute", 0)),
                int(groups.get("second", 0)),
            )
        except ValueError as e:
            raise FormatError(f"'{value}' is not a valid {self.logical_type.value.lower()}: {e}") from e

    def render(self, moment: datetime) -> str:
        """Render a datetime using this template."""
        values = {
            "year": moment.year,
            "month": moment.month,
            "day": moment.day,
            "hour": moment.hour,
            "minute": moment.minute,
            "second": moment.second,
        }
        out = []
        for text, is_token in self.parts:
            if not is_token:
                out.append(text)
                continue
            unit, width = _TOKENS[text]
            number = values[unit]
            if text == "yy":
                number %= 100
            out.append(str(number).zfill(width))
        return "".join(out)


@dataclass(frozen=True)
class FormatSettings:
    """Display templates a :class:`FormatEngine` starts with."""

    date_format: str = "dd.mm.yyyy"
    time_format: str = "hh:ii:ss"
    datetime_format: str = "dd.mm.yyyy hh:ii:ss"


def format_bool(value: str, direction: Direction) -> str:
    """Convert a boolean between canonical (``"1"``/``"0"``) and display (``"true"``/``"false"``).

    Conversion to canonical is lenient: ``"1"`` and any casing of ``"true"``
    give ``"1"``, everything else gives ``"0"``.
    """
    if direction is Direction.TO_CANONICAL:
        if value == BOOLEAN_TRUE or value.lower() == "true":
            return BOOLEAN_TRUE
        return BOOLEAN_FALSE
    return "true" if value == BOOLEAN_TRUE else "false"


class FormatEngine:
    """Converts and validates date, time, datetime and boolean values.

    Each engine carries its own display templates, so tables built on
    different engines can use different formats side by side.
    """

    def __init__(
        self,
        settings: FormatSettings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the engine.

        Args:
            settings: Display templates; defaults to :class:`FormatSettings`.
            clock: Source of the current moment for :meth:`today` and friends.

        Raises:
            TemplateError: If any of the templates is invalid.
        """
        settings = settings or FormatSettings()
        self._clock = clock
        self._canonical: dict[LogicalType, Template] = {
            lt: Template.compile(tpl, lt) for lt, tpl in CANONICAL_TEMPLATES.items()
        }
        self._display: dict[LogicalType, Template] = {}
        self.set_date_format(settings.date_format)
        self.set_time_format(settings.time_format)
        self.set_datetime_format(settings.datetime_format)

    # --- Templates ------------------------------------------------------------

    def set_date_format(self, template: str) -> None:
        self._set_display(LogicalType.DATE, template)

    def set_time_format(self, template: str) -> None:
        self._set_display(LogicalType.TIME, template)

    def set_datetime_format(self, template: str) -> None:
        self._set_display(LogicalType.DATETIME, template)

    def _set_display(self, logical_type: LogicalType, template: str) -> None:
        self._display[logical_type] = Template.compile(template, logical_type)
        logger.debug("%s display format set to %r", logical_type.value, template)

    @property
    def settings(self) -> FormatSettings:
        """Return the display templates currently in effect."""
        return FormatSettings(
            date_format=self._display[LogicalType.DATE].source,
            time_format=self._display[LogicalType.TIME].source,
            datetime_format=self._display[LogicalType.DATETIME].source,
        )

    def display_template(self, logical_type: LogicalType) -> str:
        return self._template(logical_type, canonical=False).source

    def template_to_validation_pattern(self, template: str) -> str:
        return template_to_validation_pattern(template)

    def _template(self, logical_type: LogicalType, canonical: bool) -> Template:
        if logical_type not in TEMPORAL_TYPES:
            raise ScriptError(
                f"Type {logical_type.value} has no date/time format; expected DATE, TIME or DATETIME"
            )
        return (self._canonical if canonical else self._display)[logical_type]

    # --- Conversion -----------------------------------------------------------

    def format_value(self, value: str, logical_type: LogicalType, direction: Direction) -> str:
        """Convert *value* between canonical and display form.

        The value is parsed against the source form of *direction* and
        rendered in the destination form. An empty string stays empty.

        Raises:
            FormatError: If the value does not parse against the source form.
            ScriptError: If *logical_type* is not BOOLEAN, DATE, TIME or DATETIME.
        """
        if logical_type is LogicalType.BOOLEAN:
            return format_bool(value, direction)
        to_canonical = direction is Direction.TO_CANONICAL
        source = self._template(logical_type, canonical=not to_canonical)
        target = self._template(logical_type, canonical=to_canonical)
        if value == "":
            return ""
        return target.render(source.parse(value))

    def check_consistency(self, value: str, logical_type: LogicalType, direction: Direction) -> None:
        """Check that *value* is a valid value in the target form of *direction*.

        Raises:
            FormatError: If it is not.
        """
        if value == "":
            return
        if logical_type is LogicalType.BOOLEAN:
            allowed = (
                (BOOLEAN_TRUE, BOOLEAN_FALSE)
                if direction is Direction.TO_CANONICAL
                else ("true", "false")
            )
            if value not in allowed:
                raise FormatError(f"'{value}' is not one of {', '.join(allowed)}")
            return
        template = self._template(logical_type, canonical=direction is Direction.TO_CANONICAL)
        template.parse(value)

    def classify(self, value: str, logical_type: LogicalType) -> Classification:
        """Tell whether *value* is in canonical form, display form, or neither.

        Canonical form wins when a value could be read both ways.
        """
        if logical_type is LogicalType.BOOLEAN:
            if value in (BOOLEAN_TRUE, BOOLEAN_FALSE):
                return Classification.CANONICAL
            if value.lower() in ("true", "false"):
                return Classification.DISPLAY
            return Classification.INVALID
        for canonical, result in ((True, Classification.CANONICAL), (False, Classification.DISPLAY)):
            try:
                self._template(logical_type, canonical).parse(value)
            except FormatError:
                continue
            return result
        return Classification.INVALID

    def to_canonical(self, value: str, logical_type: LogicalType) -> str:
        """Return the canonical form of a value given in either form.

        Raises:
            FormatError: If the value is in neither form.
        """
        if value == "":
            return ""
        kind = self.classify(value, logical_type)
        if kind is Classification.CANONICAL:
            return value
        if kind is Classification.DISPLAY:
            return self.format_value(value, logical_type, Direction.TO_CANONICAL)
        if logical_type is LogicalType.BOOLEAN:
            return format_bool(value, Direction.TO_CANONICAL)
        raise FormatError(
            f"'{value}' is neither a {logical_type.value} in the format "
            f"'{self.display_template(logical_type)}' nor in '{CANONICAL_TEMPLATES[logical_type]}'"
        )

    def to_display(self, value: str, logical_type: LogicalType) -> str:
        return self.format_value(value, logical_type, Direction.TO_DISPLAY)

    # --- Calendar helpers -----------------------------------------------------

    def today(self) -> str:
        """Return the current date in display form."""
        return self._display[LogicalType.DATE].render(self._clock())

    def now_time(self) -> str:
        """Return the current time in display form."""
        return self._display[LogicalType.TIME].render(self._clock())

    def now(self) -> str:
        """Return the current date and time in display form."""
        return self._display[LogicalType.DATETIME].render(self._clock())

    def date_diff(self, start: str, end: str, unit: str) -> int:
        """Return ``end - start`` in days (d), weeks (w), months (m) or years (y).

        Months count as 30 days and years as 365. Results are truncated toward
        zero. Returns -1 when either date is empty or malformed, or the unit is
        unknown.
        """
        divisors = {"d": 24, "w": 168, "m": 720, "y": 8760}
        divisor = divisors.get(unit.lower())
        if not start or not end or divisor is None:
            return -1
        template = self._display[LogicalType.DATE]
        try:
            delta = template.parse(end) - template.parse(start)
        except FormatError:
            return -1
        return int(delta.total_seconds() / 3600 / divisor)

    def time_diff(self, start: str, end: str, unit: str) -> int:
        """Return ``end - start`` in hours (h), minutes (m) or seconds (s), or -1."""
        divisors = {"h": 3600, "m": 60, "s": 1}
        divisor = divisors.get(unit.lower())
        if not start or not end or divisor is None:
            return -1
        template = self._display[LogicalType.TIME]
        try:
            delta = template.parse(end) - template.parse(start)
        except FormatError:
            return -1
        return int(delta.total_seconds() / divisor)

    def date_add(self, date: str, years: int = 0, months: int = 0, days: int = 0) -> str:
        """Shift a display-form date.

        Day overflow rolls into the next month (31.01 plus one month is 02.03
        or 03.03). Returns ``''`` for empty or malformed input.
        """
        if not date:
            return ""
        template = self._display[LogicalType.DATE]
        try:
            moment = template.parse(date)
            month_index = moment.year * 12 + moment.month - 1 + years * 12 + months
            year, month = divmod(month_index, 12)
            shifted = datetime(year, month + 1, 1) + timedelta(days=moment.day - 1 + days)
        except (FormatError, ValueError, OverflowError):
            return ""
        return template.render(shifted)

    def time_add(self, time: str, hours: int = 0, minutes: int = 0, seconds: int = 0) -> str:
        """Shift a display-form time, wrapping around midnight. Returns ``''`` on bad input."""
        if not time:
            return ""
        template = self._display[LogicalType.TIME]
        try:
            moment = template.parse(time)
            offset = (hours * 3600 + minutes * 60 + seconds) % 86400
            shifted = moment + timedelta(seconds=offset)
        except (FormatError, OverflowError):
            return ""
        return template.render(shifted)
