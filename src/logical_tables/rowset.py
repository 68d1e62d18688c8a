"""In-memory result set with a cursor."""

from __future__ import annotations

from dataclasses import dataclass, field

from logical_tables.types import NEW_ROW_ID, PRIMARY_KEY, Record


@dataclass
class Rowset:
    """Materialized rows of one query plus the cursor position.

    ``pos`` stays within ``0 <= pos < len(rows)``; an empty rowset has
    ``pos == 0``. A row whose primary key is ``NEW_ROW_ID`` is the unsaved
    new-row placeholder and is always the last row.
    """

    rows: list[Record] = field(default_factory=list)
    pos: int = 0

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def empty(self) -> bool:
        return not self.rows

    @property
    def current(self) -> Record | None:
        """The row under the cursor, or None."""
        if 0 <= self.pos < len(self.rows):
            return self.rows[self.pos]
        return None

    @property
    def has_placeholder(self) -> bool:
        return bool(self.rows) and self.rows[-1].get(PRIMARY_KEY) == NEW_ROW_ID

    @property
    def on_placeholder(self) -> bool:
        """Whether the cursor sits on the new-row placeholder."""
        return self.has_placeholder and self.pos == len(self.rows) - 1

    def index_of(self, row_id: int) -> int | None:
        for i, row in enumerate(self.rows):
            if row.get(PRIMARY_KEY) == row_id:
                return i
        return None

    def move_to(self, index: int) -> bool:
        if 0 <= index < len(self.rows):
            self.pos = index
            return True
        return False

    def next(self) -> bool:
        return self.move_to(self.pos + 1)

    def prev(self) -> bool:
        return self.move_to(self.pos - 1)

    def replace(self, index: int, record: Record) -> None:
        self.rows[index] = record

    def append(self, record: Record) -> int:
        """Append *record*, move the cursor to it and return its index."""
        self.rows.append(record)
        self.pos = len(self.rows) - 1
        return self.pos

    def store(self, record: Record) -> int:
        """Put a freshly inserted row in place of the placeholder, or append it."""
        if self.has_placeholder:
            self.pos = len(self.rows) - 1
            self.rows[self.pos] = record
            return self.pos
        return self.append(record)

    def remove_current(self) -> Record | None:
        """Remove the row under the cursor and step the cursor back one row."""
        if self.current is None:
            return None
        removed = self.rows.pop(self.pos)
        self.pos = max(self.pos - 1, 0)
        return removed

    def drop_placeholder(self) -> bool:
        if not self.has_placeholder:
            return False
        self.rows.pop()
        self.pos = min(self.pos, max(len(self.rows) - 1, 0))
        return True
