"""Command line access to a logical tables database."""

from __future__ import annotations

import argparse
import logging
import os
import sqlite3
import sys
from pathlib import Path
from typing import Any, Sequence

from logical_tables.config import EngineConfig
from logical_tables.errors import DataError, ScriptError
from logical_tables.storage import Database
from logical_tables.table import Table


def format_value(value: Any, max_width: int = 40) -> str:
    """Format a value for display.

    Args:
        value: The value to format
        max_width: Maximum character width before truncating
    """
    if value is None:
        return "NULL"
    elif isinstance(value, bool):
        return "true" if value else "false"
    elif isinstance(value, float):
        return f"{value:.6g}"
    elif isinstance(value, bytes):
        return f"<{len(value)} bytes>"
    s = str(value)
    if len(s) > max_width:
        return s[: max_width - 3] + "..."
    return s


def print_rows(columns: Sequence[str], rows: Sequence[dict[str, Any]], max_col_width: int = 40) -> None:
    """Print rows as an aligned text table."""
    if not rows:
        print("(no results)")
        return

    col_widths = {col: len(col) for col in columns}
    for row in rows:
        for col in columns:
            col_widths[col] = max(col_widths[col], len(format_value(row.get(col))))
    for col in col_widths:
        col_widths[col] = min(col_widths[col], max_col_width)

    header = " | ".join(col.ljust(col_widths[col])[: col_widths[col]] for col in columns)
    print(header)
    print("-" * len(header))

    for row in rows:
        values = []
        for col in columns:
            val = format_value(row.get(col), max_col_width)
            values.append(val.ljust(col_widths[col]))
        print(" | ".join(values))

    print(f"\n({len(rows)} row{'s' if len(rows) != 1 else ''})")


def table_rows(table: Table) -> list[dict[str, Any]]:
    """Read every loaded row of *table* in display form."""
    rows = []
    if table.row_count == 0:
        return rows
    table.first()
    while True:
        rows.append({col: table.get_field(col) for col in table.columns})
        if not table.next():
            break
    return rows


def _assignments(pairs: Sequence[str], what: str) -> list[tuple[str, str]]:
    result = []
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise ScriptError(f"Expected {what} as FIELD=VALUE, got '{pair}'")
        result.append((name.strip(), value))
    return result


def _cmd_create(db: Database, args: argparse.Namespace) -> int:
    db.create_table(args.name, args.spec, open_if_exists=args.open_if_exists, scratch=args.scratch)
    print(f"Created table {args.name}")
    return 0


def _cmd_alter(db: Database, args: argparse.Namespace) -> int:
    db.alter_table(args.name, args.spec)
    print(f"Altered table {args.name}")
    return 0


def _cmd_drop(db: Database, args: argparse.Namespace) -> int:
    db.drop_table(args.name)
    print(f"Dropped table {args.name}")
    return 0


def _cmd_tables(db: Database, args: argparse.Namespace) -> int:
    for name in db.list_tables():
        print(name)
    return 0


def _cmd_describe(db: Database, args: argparse.Namespace) -> int:
    rows = [
        {
            "field": info.name,
            "declared": info.declared_type,
            "logical": logical,
            "default": info.default_sql,
            "key": "yes" if info.primary_key else "",
        }
        for info, logical in db.describe(args.name)
    ]
    print_rows(["field", "declared", "logical", "default", "key"], rows)
    return 0


def _cmd_find(db: Database, args: argparse.Namespace) -> int:
    table = db.open_table(args.name)
    for field, expression in _assignments(args.where, "a filter"):
        table.set_filter(field, expression)
    table.order_by(args.order)
    if not table.find() and table.errors.has_error:
        print(f"Error: {table.errors.last_error}", file=sys.stderr)
        return 1
    print_rows(table.columns, table_rows(table))
    return 0


def _cmd_insert(db: Database, args: argparse.Namespace) -> int:
    table = db.open_table(args.name)
    ok, new_id = table.insert(dict(_assignments(args.values, "a value")))
    if not ok:
        print(f"Error: {table.errors.last_error}", file=sys.stderr)
        return 1
    print(f"Inserted row {new_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    arg_parser = argparse.ArgumentParser(
        prog="logical-tables",
        description="Create, alter and query tables with logical field types",
    )
    arg_parser.add_argument("database", type=Path, help="Path to the SQLite database file")
    arg_parser.add_argument(
        "-c", "--config",
        type=Path,
        help="YAML configuration file (default: settings from LT_* environment variables)",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log generated SQL",
    )
    commands = arg_parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Create a table from a field specification")
    create.add_argument("name")
    create.add_argument("spec", help="e.g. 'n::Title;t::Text;l::80|n::Due;t::Date'")
    create.add_argument("--scratch", action="store_true", help="Create a temporary table")
    create.add_argument("--open-if-exists", action="store_true", help="Do not fail if the table exists")
    create.set_defaults(handler=_cmd_create)

    alter = commands.add_parser("alter", help="Add or drop fields")
    alter.add_argument("name")
    alter.add_argument("spec", help="e.g. 'drop::Notes|add::Done;t::Boolean'")
    alter.set_defaults(handler=_cmd_alter)

    drop = commands.add_parser("drop", help="Drop a table")
    drop.add_argument("name")
    drop.set_defaults(handler=_cmd_drop)

    tables = commands.add_parser("tables", help="List tables")
    tables.set_defaults(handler=_cmd_tables)

    describe = commands.add_parser("describe", help="Show the fields of a table")
    describe.add_argument("name")
    describe.set_defaults(handler=_cmd_describe)

    find = commands.add_parser("find", help="Show the rows matching the filters")
    find.add_argument("name")
    find.add_argument(
        "-w", "--where",
        action="append",
        default=[],
        metavar="FIELD=EXPR",
        help="Filter expression for one field, e.g. 'Due=>=01.01.2026'",
    )
    find.add_argument("-o", "--order", default="", help="ORDER BY clause")
    find.set_defaults(handler=_cmd_find)

    insert = commands.add_parser("insert", help="Insert one row")
    insert.add_argument("name")
    insert.add_argument("values", nargs="*", metavar="FIELD=VALUE")
    insert.set_defaults(handler=_cmd_insert)

    return arg_parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else os.environ.get("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = EngineConfig.from_file(args.config) if args.config else EngineConfig.from_env()
        with Database.create(args.database, config) as db:
            return args.handler(db, args)
    except (ScriptError, DataError, sqlite3.Error, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
