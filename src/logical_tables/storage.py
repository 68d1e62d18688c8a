"""Database connection and table lifecycle."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any

from logical_tables.config import EngineConfig
from logical_tables.errors import ErrorChannel
from logical_tables.filters import FilterCompiler
from logical_tables.formats import FormatEngine
from logical_tables.hooks import HookDispatcher, HookRegistry
from logical_tables.metadata import TypeMetadataStore
from logical_tables.schema import ColumnInfo, SchemaManager
from logical_tables.table import Table

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class Database:
    """Owns the SQLite connection and everything shared by its tables.

    Opening a database creates the metadata table when it is missing and
    removes metadata left behind by scratch tables of earlier sessions.

    Example::

        with Database("notes.db") as db:
            notes = db.create_table("notes", "n::Title;t::Text;l::80|n::Due;t::Date")
            notes.insert({"Title": "Pay rent", "Due": "01.11.2026"})
    """

    def __init__(
        self,
        path: str | Path = MEMORY,
        config: EngineConfig | None = None,
        hooks: HookDispatcher | None = None,
    ) -> None:
        """Open the database.

        Args:
            path: Database file, or ``":memory:"``.
            config: Engine settings; defaults to :class:`EngineConfig`.
            hooks: Resolves hook names; defaults to a new :class:`HookRegistry`.

        Raises:
            TemplateError: If a display template in *config* is invalid.
        """
        self.path = str(path)
        self.config = config or EngineConfig()
        self.formats = FormatEngine(self.config.format_settings)
        self.errors = ErrorChannel()
        self.hooks: HookDispatcher = hooks if hooks is not None else HookRegistry()

        self.conn = self._connect()
        self.metadata = TypeMetadataStore(self.conn)
        self.metadata.ensure_schema()
        if self.config.purge_scratch_on_start:
            self.metadata.purge_scratch()
        self.schema = SchemaManager(self.conn, self.metadata)
        self._compiler = FilterCompiler(self.formats)

    @classmethod
    def create(cls, path: str | Path, config: EngineConfig | None = None) -> Database:
        """Open *path*, creating the file if needed."""
        existed = str(path) != MEMORY and Path(path).exists()
        db = cls(path, config)
        logger.info("%s database %s", "opened" if existed else "created", path)
        return db

    def _connect(self) -> sqlite3.Connection:
        # Autocommit; schema changes open their own transactions
        conn = sqlite3.connect(self.path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute(f"PRAGMA busy_timeout={int(self.config.busy_timeout_ms)}")
        return conn

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # --- Tables ---------------------------------------------------------------

    def create_table(
        self, name: str, spec: str, open_if_exists: bool = False, scratch: bool = False
    ) -> Table:
        """Create a table from a field specification and open it.

        See :meth:`SchemaManager.create_table` for the arguments and errors.
        """
        self.schema.create_table(name, spec, open_if_exists=open_if_exists, scratch=scratch)
        return self.open_table(name)

    def alter_table(self, name: str, spec: str) -> Table:
        """Apply ``drop::``/``add::`` entries and return the reopened table."""
        self.schema.alter_table(name, spec)
        return self.open_table(name)

    def drop_table(self, name: str) -> None:
        self.schema.drop_table(name)

    def open_table(self, name: str) -> Table:
        return Table.load(
            self.conn,
            name,
            self.schema,
            self.metadata,
            self.formats,
            errors=self.errors,
            hooks=self.hooks,
            compiler=self._compiler,
        )

    def table_exists(self, name: str) -> bool:
        return self.schema.table_exists(name)

    def list_tables(self) -> list[str]:
        return self.schema.list_tables()

    def describe(self, name: str) -> list[tuple[ColumnInfo, str]]:
        """Return each column with its logical type name."""
        table = self.open_table(name)
        return [
            (info, table.field_type(info.name).value) for info in self.schema.columns(name)
        ]
