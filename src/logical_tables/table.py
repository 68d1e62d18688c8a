"""Cursor-based access to one database table.

A :class:`Table` holds the result of its last :meth:`Table.find` in memory
(a :class:`~logical_tables.rowset.Rowset`) together with a cursor. Reads and
writes go through the table's :class:`~logical_tables.formats.FormatEngine`:
date, time, datetime and boolean fields are stored in canonical form and
read and written in display form.

Data errors (a value that does not parse, a failing statement) do not raise.
The operation returns False, the message is kept in the table's
:class:`~logical_tables.errors.ErrorChannel` and the rowset is left as it was.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from logical_tables.errors import (
    DataError,
    ErrorChannel,
    FieldNotFoundError,
    FormatError,
    HookError,
    ScriptError,
    TableNotFoundError,
)
from logical_tables.filters import FilterCompiler, Predicate
from logical_tables.formats import FormatEngine
from logical_tables.hooks import Hook, HookDispatcher, HookGuard
from logical_tables.rowset import Rowset
from logical_tables.types import (
    COLUMN_TYPES,
    NEW_ROW_ID,
    PRIMARY_KEY,
    LogicalType,
    PhysicalType,
    Record,
    Scalar,
    check_scalar,
    default_for,
    quote_identifier,
)

if TYPE_CHECKING:
    from logical_tables.metadata import TypeMetadataStore
    from logical_tables.schema import SchemaManager

logger = logging.getLogger(__name__)


def parse_default(default_sql: str | None, logical: LogicalType) -> Any:
    """Turn a column's DEFAULT clause (as reported by SQLite) into a Python value."""
    if default_sql is None:
        return default_for(logical)
    text = default_sql.strip()
    if len(text) >= 2 and text[0] == text[-1] == "'":
        return text[1:-1].replace("''", "'")
    if text.upper() == "NULL":
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return default_for(logical)


def coerce_logical_type(value: LogicalType | str) -> LogicalType:
    """Accept a :class:`LogicalType`, its value (``"DATE"``) or a DSL type name (``"Date"``)."""
    if isinstance(value, LogicalType):
        return value
    column_type = COLUMN_TYPES.get(value)
    if column_type is not None:
        return column_type.logical or LogicalType.from_physical(column_type.physical)
    try:
        return LogicalType(value.upper())
    except ValueError:
        raise ScriptError(f"Unknown logical type '{value}'") from None


class Table:
    """An opened table: filter state, a rowset with a cursor, and CRUD operations."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        name: str,
        formats: FormatEngine,
        columns: Sequence[str],
        types: Mapping[str, LogicalType],
        defaults: Mapping[str, Any],
        errors: ErrorChannel | None = None,
        hooks: HookDispatcher | None = None,
        compiler: FilterCompiler | None = None,
        guard: HookGuard | None = None,
    ) -> None:
        self.conn = conn
        self.name = name
        self.formats = formats
        self.errors = errors if errors is not None else ErrorChannel()
        self.hooks = hooks
        self.guard = guard if guard is not None else HookGuard()
        self._compiler = compiler if compiler is not None else FilterCompiler(formats)

        self._columns = list(columns)
        self._types = dict(types)
        self._defaults = dict(defaults)

        self._plain_filter: Predicate | None = None
        self._range_filter: Predicate | None = None
        self._field_filters: dict[str, str] = {}
        self._order = ""

        self.rowset: Rowset | None = None
        self.x_record: Record | None = None

        self._on_after_insert: Hook | None = None
        self._on_after_update: Hook | None = None
        self._on_after_delete: Hook | None = None

    @classmethod
    def load(
        cls,
        conn: sqlite3.Connection,
        name: str,
        schema: SchemaManager,
        metadata: TypeMetadataStore,
        formats: FormatEngine,
        errors: ErrorChannel | None = None,
        hooks: HookDispatcher | None = None,
        compiler: FilterCompiler | None = None,
    ) -> Table:
        """Open *name*, reading its columns and their logical types.

        Raises:
            TableNotFoundError: If the table does not exist.
        """
        if not schema.table_exists(name):
            raise TableNotFoundError(f"Table '{name}' does not exist")

        tags = metadata.entries(name)
        columns: list[str] = []
        types: dict[str, LogicalType] = {}
        defaults: dict[str, Any] = {}
        for info in schema.columns(name):
            entry = tags.get(info.name)
            if entry is not None:
                logical = entry.logical_type
            else:
                logical = LogicalType.from_physical(PhysicalType.from_declared(info.declared_type))
            columns.append(info.name)
            types[info.name] = logical
            defaults[info.name] = NEW_ROW_ID if info.primary_key else parse_default(info.default_sql, logical)

        logger.debug("opened table %s: %s", name, ", ".join(f"{c}:{types[c].value}" for c in columns))
        return cls(
            conn,
            name,
            formats,
            columns=columns,
            types=types,
            defaults=defaults,
            errors=errors,
            hooks=hooks,
            compiler=compiler,
        )

    def __repr__(self) -> str:
        return f"Table({self.name!r}, rows={self.row_count}, pos={self.position})"

    # --- Schema ---------------------------------------------------------------

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    def field_type(self, name: str) -> LogicalType:
        self._require(name)
        return self._types[name]

    def default_value(self, name: str) -> Any:
        self._require(name)
        return self._defaults[name]

    def _require(self, name: str) -> None:
        if name not in self._types:
            raise FieldNotFoundError(f"Table '{self.name}' has no field '{name}'")

    # --- Filters --------------------------------------------------------------

    def set_filter(self, field: str, expression: str | None) -> Table:
        """Set the filter expression of one field; an empty expression removes it."""
        self._require(field)
        if expression:
            self._field_filters[field] = expression
        else:
            self._field_filters.pop(field, None)
        return self

    def set_plain_filter(self, sql: str | None, *params: Scalar) -> Table:
        """Set a raw SQL condition. Replaces any range filter."""
        self._plain_filter = Predicate(sql, tuple(params)) if sql else None
        self._range_filter = None
        return self

    def set_range_filter(self, field: str, low: Scalar, high: Scalar) -> Table:
        """Restrict *field* to ``low..high`` inclusive. Replaces any plain filter.

        The bounds are given the way the field is read, so a Date range takes
        display-form dates.
        """
        self._require(field)
        column = quote_identifier(field)
        self._range_filter = Predicate(
            f"{column} BETWEEN ? AND ?",
            (self._range_operand(field, low), self._range_operand(field, high)),
        )
        self._plain_filter = None
        return self

    def _range_operand(self, field: str, value: Scalar) -> Scalar:
        value = check_scalar(field, value)
        if value is None:
            return None
        try:
            return self._to_storage(field, value)
        except FormatError:
            return value

    def clear_filters(self) -> Table:
        self._plain_filter = None
        self._range_filter = None
        self._field_filters.clear()
        return self

    def order_by(self, clause: str | None) -> Table:
        """Set the ORDER BY clause, e.g. ``"due DESC, id"``."""
        self._order = clause or ""
        return self

    def _select_sql(self) -> tuple[str, tuple[Scalar, ...]]:
        predicates: list[Predicate | None] = [self._plain_filter or self._range_filter]
        for field, expression in self._field_filters.items():
            predicates.append(self._compiler.compile(field, self._types[field], expression))
        where = Predicate.join_and(predicates)

        sql = f"SELECT * FROM {quote_identifier(self.name)}"
        params: tuple[Scalar, ...] = ()
        if where is not None:
            sql += f" WHERE {where.sql}"
            params = where.params
        if self._order:
            sql += f" ORDER BY {self._order}"
        return sql, params

    # --- Queries --------------------------------------------------------------

    def find(self) -> bool:
        """Run the query built from the filters and load its rows.

        Returns:
            True if at least one row was found. On error the previous rowset
            is kept and False is returned.
        """
        self.errors.clear()
        try:
            sql, params = self._select_sql()
            rows = self._fetch_all(sql, params)
        except (DataError, sqlite3.Error) as e:
            self.errors.record(e)
            return False
        self.rowset = Rowset(rows)
        return bool(rows)

    def find_by_id(self, row_id: int) -> bool:
        """Load the row with primary key *row_id*.

        If the row is part of the current rowset it is refreshed in place and
        the cursor moves to it; otherwise the rowset is replaced by that row.
        """
        self.errors.clear()
        try:
            record = self._fetch_row(row_id)
        except sqlite3.Error as e:
            self.errors.record(e)
            return False
        if record is None:
            return False
        if self.rowset is not None:
            index = self.rowset.index_of(row_id)
            if index is not None:
                self.rowset.replace(index, record)
                self.rowset.move_to(index)
                return True
        self.rowset = Rowset([record])
        return True

    def _fetch_all(self, sql: str, params: Sequence[Scalar] = ()) -> list[Record]:
        logger.debug("%s %r", sql, tuple(params))
        cur = self.conn.execute(sql, tuple(params))
        names = [d[0] for d in cur.description]
        return [dict(zip(names, row)) for row in cur.fetchall()]

    def _fetch_row(self, row_id: int) -> Record | None:
        rows = self._fetch_all(
            f"SELECT * FROM {quote_identifier(self.name)} WHERE {quote_identifier(PRIMARY_KEY)} = ?",
            (row_id,),
        )
        return rows[0] if rows else None

    # --- Navigation -----------------------------------------------------------

    def next(self) -> bool:
        return self.rowset is not None and self.rowset.next()

    def prev(self) -> bool:
        return self.rowset is not None and self.rowset.prev()

    def first(self) -> bool:
        return self.rowset is not None and self.rowset.move_to(0)

    def last(self) -> bool:
        return self.rowset is not None and self.rowset.move_to(len(self.rowset) - 1)

    def move_to(self, index: int) -> bool:
        return self.rowset is not None and self.rowset.move_to(index)

    @property
    def row_count(self) -> int:
        return len(self.rowset) if self.rowset is not None else 0

    @property
    def position(self) -> int:
        return self.rowset.pos if self.rowset is not None else 0

    @property
    def is_new_row(self) -> bool:
        return self.rowset is not None and self.rowset.on_placeholder

    def current_record(self) -> Record | None:
        """Return a copy of the row under the cursor, in stored form."""
        if self.rowset is None or self.rowset.current is None:
            return None
        return dict(self.rowset.current)

    # --- Field access ---------------------------------------------------------

    def get_field(self, name: str, extra_type: LogicalType | str | None = None) -> Any:
        """Read a field of the current row.

        Args:
            name: Field name.
            extra_type: Read the field as this type instead of its own, e.g.
                ``"Date"`` for a plain TEXT column holding canonical dates.

        Returns:
            The display form for date/time/datetime/boolean fields, the stored
            value otherwise. The field's default when there is no current row
            or the stored value is NULL.

        Raises:
            FieldNotFoundError: If the table has no such field.
        """
        self._require(name)
        logical = coerce_logical_type(extra_type) if extra_type is not None else self._types[name]
        record = self.rowset.current if self.rowset is not None else None
        if record is None:
            return self._defaults[name]
        raw = record.get(name)
        if logical.is_special:
            return self._to_display(raw, logical)
        if raw is None:
            return self._defaults[name]
        return raw

    def _to_display(self, raw: Any, logical: LogicalType) -> Any:
        if logical is LogicalType.BOOLEAN and isinstance(raw, (int, float)):
            text = "1" if raw else "0"
        else:
            text = "" if raw is None else str(raw)
        try:
            return self.formats.to_display(text, logical)
        except FormatError as e:
            self.errors.record(e)
            return text

    def _to_storage(self, name: str, value: Any) -> Scalar:
        """Convert a caller value to what is stored in column *name*.

        Raises:
            FormatError: If a date/time value is in neither display nor canonical form.
            ScriptError: If the value is not a scalar.
        """
        value = check_scalar(name, value)
        logical = self._types[name]
        if value is None:
            return None
        if logical is LogicalType.BOOLEAN:
            if isinstance(value, (bool, int, float)):
                return 1 if value else 0
            return int(self.formats.to_canonical(value, logical) or 0)
        if logical.is_temporal:
            return self.formats.to_canonical(str(value), logical)
        return value

    def set_field(self, name: str, value: Scalar) -> bool:
        """Change a field of the current row in memory only.

        With no current row, a new-row placeholder is created first.
        """
        self._require(name)
        self.errors.clear()
        try:
            stored = self._to_storage(name, value)
        except DataError as e:
            self.errors.record(e)
            return False
        if self.rowset is None or self.rowset.current is None:
            self.new_row()
        self.rowset.current[name] = stored  # type: ignore[index,union-attr]
        return True

    def save_field(self, name: str, value: Scalar) -> bool:
        """Persist one field of the current row.

        Inserts a new row when there is no row or the cursor is on the
        new-row placeholder, updates the current row otherwise.
        """
        self._require(name)
        record = self.rowset.current if self.rowset is not None else None
        if record is None or self.rowset.on_placeholder:  # type: ignore[union-attr]
            ok, _ = self.insert({name: value})
            return ok
        return self.update(record[PRIMARY_KEY], {name: value})  # type: ignore[arg-type]

    # --- New-row placeholder --------------------------------------------------

    def new_row(self) -> None:
        """Append an unsaved row filled with defaults and move the cursor to it."""
        if self.rowset is None:
            self.rowset = Rowset()
        if self.rowset.has_placeholder:
            self.rowset.move_to(len(self.rowset) - 1)
            return
        record: Record = {col: self._defaults[col] for col in self._columns}
        record[PRIMARY_KEY] = NEW_ROW_ID
        self.rowset.append(record)

    def cancel_new_row(self) -> bool:
        return self.rowset is not None and self.rowset.drop_placeholder()

    # --- Mutations ------------------------------------------------------------

    def insert(self, fields: Mapping[str, Scalar] | None = None) -> tuple[bool, int]:
        """Insert a row.

        Fields not given take their column default. The new row replaces a
        pending placeholder or is appended to the rowset, and the cursor
        moves to it.

        Returns:
            ``(True, new_id)`` on success, ``(False, 0)`` on a data error.
        """
        fields = dict(fields or {})
        for name in fields:
            self._require(name)
        self.errors.clear()
        try:
            values: dict[str, Scalar] = {}
            for col in self._columns:
                if col == PRIMARY_KEY:
                    continue
                if col in fields:
                    values[col] = self._to_storage(col, fields[col])
                else:
                    values[col] = self._defaults[col]
            table = quote_identifier(self.name)
            if values:
                names = ", ".join(quote_identifier(c) for c in values)
                marks = ", ".join("?" for _ in values)
                sql = f"INSERT INTO {table} ({names}) VALUES ({marks})"
            else:
                sql = f"INSERT INTO {table} DEFAULT VALUES"
            logger.debug("%s %r", sql, tuple(values.values()))
            cur = self.conn.execute(sql, tuple(values.values()))
            new_id = int(cur.lastrowid or 0)
            record = self._fetch_row(new_id)
        except (DataError, sqlite3.Error) as e:
            self.errors.record(e)
            return False, 0
        if record is None:
            self.errors.record(f"Inserted row {new_id} of '{self.name}' could not be read back")
            return False, 0

        if self.rowset is None:
            self.rowset = Rowset()
        self.rowset.store(record)
        if self._on_after_insert is not None:
            self._on_after_insert(self)
        return True, new_id

    def update(self, row_id: int, fields: Mapping[str, Scalar]) -> bool:
        """Update the row with primary key *row_id*.

        With an after-update hook set, the row is first copied into
        :attr:`x_record` and the hook gets two one-row views: the updated
        row and the copy. A hook that updates the table again does not
        trigger itself, and that nested update leaves :attr:`x_record`
        holding the outer copy.
        """
        fields = dict(fields)
        for name in fields:
            self._require(name)
        self.errors.clear()
        if row_id < 1:
            self.errors.record(f"Cannot update row {row_id} of '{self.name}': not a saved row")
            return False

        hook = self._on_after_update
        table = quote_identifier(self.name)
        key = quote_identifier(PRIMARY_KEY)
        try:
            snapshot = None
            if hook is not None:
                snapshot = self._fetch_row(row_id)
                if snapshot is None:
                    raise DataError(f"Row {row_id} of '{self.name}' does not exist")
                if not self.guard.active:
                    self.x_record = dict(snapshot)
            values = {col: self._to_storage(col, v) for col, v in fields.items() if col != PRIMARY_KEY}
            if values:
                assignments = ", ".join(f"{quote_identifier(c)} = ?" for c in values)
                sql = f"UPDATE {table} SET {assignments} WHERE {key} = ?"
                logger.debug("%s %r", sql, (*values.values(), row_id))
                self.conn.execute(sql, (*values.values(), row_id))
            record = self._fetch_row(row_id)
        except (DataError, sqlite3.Error) as e:
            self.errors.record(e)
            return False
        if record is None:
            self.errors.record(f"Row {row_id} of '{self.name}' does not exist")
            return False

        if self.rowset is None:
            self.rowset = Rowset()
        index = self.rowset.index_of(row_id)
        if index is not None:
            self.rowset.replace(index, record)
        elif self.rowset.empty:
            self.rowset.append(record)

        if hook is not None and snapshot is not None:
            with self.guard.dispatching() as allowed:
                if allowed:
                    hook(self._view(record), self._view(snapshot))
        return True

    def delete(self, row_id: int) -> bool:
        """Delete the row with primary key *row_id* from the database.

        The rowset is not changed; see :meth:`delete_row`.
        """
        self.errors.clear()
        hook = self._on_after_delete
        try:
            snapshot = None
            if hook is not None:
                snapshot = self._fetch_row(row_id)
                if snapshot is None:
                    raise DataError(f"Row {row_id} of '{self.name}' does not exist")
            cur = self.conn.execute(
                f"DELETE FROM {quote_identifier(self.name)} WHERE {quote_identifier(PRIMARY_KEY)} = ?",
                (row_id,),
            )
        except (DataError, sqlite3.Error) as e:
            self.errors.record(e)
            return False
        if cur.rowcount == 0:
            self.errors.record(f"Row {row_id} of '{self.name}' does not exist")
            return False
        if hook is not None and snapshot is not None:
            self.x_record = dict(snapshot)
            hook(self._view(snapshot))
        return True

    def delete_row(self) -> bool:
        """Delete the row under the cursor and drop it from the rowset."""
        record = self.rowset.current if self.rowset is not None else None
        if record is None:
            return False
        if record.get(PRIMARY_KEY) == NEW_ROW_ID:
            return self.cancel_new_row()
        if not self.delete(record[PRIMARY_KEY]):  # type: ignore[arg-type]
            return False
        self.rowset.remove_current()  # type: ignore[union-attr]
        return True

    # --- Hooks ----------------------------------------------------------------

    def set_on_after_insert(self, hook: Hook | str | None) -> Table:
        """Call *hook* with this table after each insert."""
        self._on_after_insert = self._resolve_hook(hook)
        return self

    def set_on_after_update(self, hook: Hook | str | None) -> Table:
        """Call *hook* with (updated row, previous row) views after each update."""
        self._on_after_update = self._resolve_hook(hook)
        return self

    def set_on_after_delete(self, hook: Hook | str | None) -> Table:
        """Call *hook* with a view of the deleted row after each delete."""
        self._on_after_delete = self._resolve_hook(hook)
        return self

    def _resolve_hook(self, hook: Hook | str | None) -> Hook | None:
        if hook is None:
            return None
        if isinstance(hook, str):
            if self.hooks is None:
                raise HookError(f"Cannot resolve hook '{hook}': no hook dispatcher configured")
            return self.hooks.resolve(hook)
        if not callable(hook):
            raise HookError(f"Hook {hook!r} is not callable")
        return hook

    def _view(self, record: Record) -> Table:
        """Return a hook-less one-row table over a copy of *record*."""
        view = Table(
            self.conn,
            self.name,
            self.formats,
            columns=self._columns,
            types=self._types,
            defaults=self._defaults,
            errors=self.errors,
            hooks=self.hooks,
            compiler=self._compiler,
            guard=self.guard,
        )
        view.rowset = Rowset([dict(record)])
        return view
