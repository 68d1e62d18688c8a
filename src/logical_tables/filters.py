"""Compilation of per-field filter expressions into SQL predicate fragments.

A filter such as ``>=01.01.2024&<=31.12.2024`` on a Date field becomes::

    "born" >= ? AND "born" <= ?      params: ('20240101', '20241231')

Operands are always bound as parameters. Date, time and datetime operands are
converted from display to canonical form so that they compare correctly
against the stored values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from logical_tables.errors import FormatError
from logical_tables.formats import Direction, FormatEngine, format_bool
from logical_tables.parsing import FilterClause, FilterParser
from logical_tables.types import LogicalType, Scalar, quote_identifier

logger = logging.getLogger(__name__)

# Clause prefix -> SQL comparison operator
OPERATORS: dict[str | None, str] = {
    None: "=",
    "==": "=",
    "~=": "<>",
    ">=": ">=",
    "<=": "<=",
    ">": ">",
    "<": "<",
}

_WILDCARDS = ("%", "_")


@dataclass(frozen=True)
class Predicate:
    """A SQL boolean expression and the parameters it binds."""

    sql: str
    params: tuple[Scalar, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.sql)

    def grouped(self) -> Predicate:
        """Return the predicate wrapped in parentheses."""
        return Predicate(f"({self.sql})", self.params)

    @classmethod
    def join_and(cls, predicates: Iterable[Predicate | None]) -> Predicate | None:
        """AND-join the non-empty predicates, grouping each one.

        Returns None when there is nothing to join.
        """
        parts = [p.grouped() for p in predicates if p]
        if not parts:
            return None
        params: tuple[Scalar, ...] = ()
        for part in parts:
            params += part.params
        return cls(" AND ".join(p.sql for p in parts), params)


def strip_quotes(value: str) -> str:
    """Remove one pair of matching single or double quotes around *value*."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


def _as_number(value: str) -> Scalar:
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


class FilterCompiler:
    """Turns filter expressions into :class:`Predicate` objects.

    The compiler holds one parser and the :class:`FormatEngine` used to
    convert date/time and boolean operands.
    """

    def __init__(self, formats: FormatEngine) -> None:
        self.formats = formats
        self.parser = FilterParser()

    def compile(self, field: str, logical_type: LogicalType, expression: str) -> Predicate | None:
        """Compile *expression* for the column *field* of type *logical_type*.

        Args:
            field: Column name.
            logical_type: Logical type of the column; decides how operands are bound.
            expression: Filter expression, e.g. ``"a%|b%"`` or ``"~=''"``.

        Returns:
            The predicate, or None for an empty expression.

        Raises:
            FilterSyntaxError: If the expression is malformed.
        """
        if not expression or not expression.strip():
            return None

        column = quote_identifier(field)
        sql_parts: list[str] = []
        params: list[Scalar] = []
        for clause in self.parser.parse(expression):
            fragment, bound = self._clause(column, logical_type, clause)
            if clause.connector:
                sql_parts.append(clause.connector)
            sql_parts.append(fragment)
            params.extend(bound)

        predicate = Predicate(" ".join(sql_parts), tuple(params))
        logger.debug("filter %s %r -> %s %r", field, expression, predicate.sql, predicate.params)
        return predicate

    def _clause(
        self, column: str, logical_type: LogicalType, clause: FilterClause
    ) -> tuple[str, tuple[Scalar, ...]]:
        operator = OPERATORS[clause.operator]
        raw = clause.value

        # '' tests for an empty field whatever the type
        if raw in ("''", '""'):
            op = "<>" if operator == "<>" else "="
            return f"COALESCE({column}, '') {op} ''", ()

        if logical_type.is_temporal:
            return f"{column} {operator} ?", (self._temporal_operand(strip_quotes(raw), logical_type),)

        if logical_type is LogicalType.BOOLEAN:
            value = format_bool(strip_quotes(raw), Direction.TO_CANONICAL)
            return f"{column} {operator} ?", (int(value),)

        if logical_type.is_numeric:
            return f"{column} {operator} ?", (_as_number(strip_quotes(raw)),)

        if clause.operator is None and any(w in raw for w in _WILDCARDS):
            return f"{column} LIKE ?", (strip_quotes(raw),)
        if operator in ("=", "<>"):
            raw = strip_quotes(raw)
        return f"{column} {operator} ?", (raw,)

    def _temporal_operand(self, value: str, logical_type: LogicalType) -> str:
        try:
            return self.formats.to_canonical(value, logical_type)
        except FormatError:
            # Partial values such as '2024' are compared as typed
            return value
