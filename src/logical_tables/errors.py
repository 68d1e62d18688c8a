"""Exceptions and the non-fatal data-error channel.

Two error classes propagate differently:

* :class:`ScriptError` and its subclasses signal a defect in how the engine is
  driven (unknown field type, reserved table name, bad template, missing
  hook...). They are raised to the caller.
* :class:`DataError` and its subclasses signal a value that could not be
  parsed or stored. Table operations catch them (and ``sqlite3.Error``),
  record the message in an :class:`ErrorChannel` and return a failure value.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class ScriptError(Exception):
    """Configuration or script error, fatal to the calling operation."""


class ReservedTableError(ScriptError):
    """The metadata table's name was used for a caller table."""


class TableExistsError(ScriptError):
    """Attempt to create a table that already exists."""


class TableNotFoundError(ScriptError):
    """Attempt to open or alter a table that does not exist."""


class UnknownFieldTypeError(ScriptError):
    """Unknown type name in a field specification."""


class SpecSyntaxError(ScriptError):
    """Malformed field-specification or alter DSL."""


class SchemaError(ScriptError):
    """A CREATE/ALTER/DROP statement failed and was rolled back."""


class TemplateError(ScriptError):
    """Malformed date/time display template."""


class HookError(ScriptError):
    """Hook name that does not resolve to a callable."""


class FieldNotFoundError(ScriptError, KeyError):
    """Field name not present in the table."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""


class DataError(ValueError):
    """A value that fails to parse or store. Reported, not raised to callers."""


class FormatError(DataError):
    """Value does not match the expected canonical or display format."""


class FilterSyntaxError(DataError):
    """Malformed filter expression."""


class ErrorChannel:
    """Holds the last data error for the caller to inspect."""

    def __init__(self) -> None:
        self._last_error: str | None = None

    @property
    def last_error(self) -> str | None:
        """Message of the last recorded data error, or None."""
        return self._last_error

    @property
    def has_error(self) -> bool:
        return self._last_error is not None

    def record(self, error: Exception | str) -> None:
        """Record a data error message."""
        message = str(error)
        self._last_error = message
        logger.warning("data error: %s", message)

    def clear(self) -> None:
        self._last_error = None
