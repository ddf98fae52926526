"""Framefill CLI entry points.
This module exposes load commands for JSON record files and SQLite queries.
It maps argparse commands onto loader calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sqlite3
from typing import Any, Sequence

from core.config import FramefillConfig
from core.constants import DICTATE_TYPE_NAMES
from core.dialects import parse_dialect
from core.errors import FramefillConfigError
from core.types import JSONLoadOptions, SQLLoadOptions, TypeHint
from ingest.jsonl_loader import load_from_jsonl
from ingest.sql_loader import load_from_sql
from ingest.sql_source import DBAPISource
from store.arrow_export import write_parquet
from store.columnar_table import ColumnarTable

_DICTATE_HINTS = {
    "string": TypeHint.string(),
    "float": TypeHint.float64(),
    "int": TypeHint.int64(),
    "bool": TypeHint.boolean(),
    "time": TypeHint.time(),
}


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="framefill", description="Framefill loader CLI")
    parser.add_argument("--dialect", help="Override FRAMEFILL_DIALECT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_load_jsonl_command(subparsers)
    _add_load_sql_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Framefill CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    config = _build_config(args.dialect)
    if args.command == "load-jsonl":
        return _run_load_jsonl_command(config, args)
    if args.command == "load-sql":
        return _run_load_sql_command(config, args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def parse_dictate_entries(entries: Sequence[str] | None) -> dict[str, TypeHint]:
    """Parse ``NAME=TYPE`` override entries.

    Args:
        entries: Raw entries from the command line.

    Returns:
        Field name to type hint.

    Raises:
        FramefillConfigError: If an entry is malformed or names an unknown type.
    """
    hints: dict[str, TypeHint] = {}
    for entry in entries or ():
        name, separator, type_name = entry.rpartition("=")
        if not separator or not name:
            raise FramefillConfigError(
                f"Invalid --dictate entry '{entry}': expected NAME=TYPE, e.g. id=int."
            )
        hint = _DICTATE_HINTS.get(type_name.strip().lower())
        if hint is None:
            raise FramefillConfigError(
                f"Invalid --dictate type '{type_name}' for field '{name}'. "
                f"Use one of: {', '.join(DICTATE_TYPE_NAMES)}."
            )
        hints[name] = hint
    return hints


def _build_config(dialect: str | None) -> FramefillConfig:
    """Build config with optional dialect override.

    Args:
        dialect: Optional dialect name.

    Returns:
        Runtime configuration.
    """
    config = FramefillConfig.from_env()
    if dialect:
        config = replace(config, dialect=parse_dialect(dialect))
    return config


def _run_load_jsonl_command(config: FramefillConfig, args: argparse.Namespace) -> int:
    """Handle load-jsonl command.

    Args:
        config: Runtime configuration.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    options = JSONLoadOptions(
        large_data_set=args.large,
        dictate_data_type=parse_dictate_entries(args.dictate),
        error_on_unknown_fields=args.strict or config.strict_fields,
        dialect=config.dialect,
    )
    with Path(args.source).expanduser().open("rb") as stream:
        table = load_from_jsonl(stream, options, chunk_size=config.read_chunk_size)
    _report_table(table, args.output)
    return 0


def _run_load_sql_command(config: FramefillConfig, args: argparse.Namespace) -> int:
    """Handle load-sql command.

    Args:
        config: Runtime configuration.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    options = SQLLoadOptions(
        known_row_count=args.known_rows,
        dictate_data_type=parse_dictate_entries(args.dictate),
        dialect=config.dialect,
    )
    connection = sqlite3.connect(str(Path(args.database).expanduser()))
    try:
        table = load_from_sql(DBAPISource(connection, args.query), options)
    finally:
        connection.close()
    _report_table(table, args.output)
    return 0


def _report_table(table: ColumnarTable, output: str | None) -> None:
    if output:
        print(write_parquet(table, Path(output).expanduser()))
        return
    print(f"rows={table.row_count}")
    print(f"columns={','.join(table.column_names())}")


def _add_dictate_argument(parser: Any) -> None:
    parser.add_argument(
        "--dictate",
        action="append",
        metavar="NAME=TYPE",
        help=f"Force a field type; TYPE is one of {', '.join(DICTATE_TYPE_NAMES)}",
    )


def _add_load_jsonl_command(subparsers: Any) -> None:
    """Register load-jsonl subcommand."""
    parser = subparsers.add_parser("load-jsonl", help="Load a JSON records file")
    parser.add_argument("source", help="Path to a file of concatenated JSON objects")
    _add_dictate_argument(parser)
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on fields that are absent from the first record",
    )
    parser.add_argument(
        "--large",
        action="store_true",
        help="Pre-scan the file to preallocate the table",
    )
    parser.add_argument("--output", help="Optional Parquet output path")


def _add_load_sql_command(subparsers: Any) -> None:
    """Register load-sql subcommand."""
    parser = subparsers.add_parser("load-sql", help="Load a SQLite query result")
    parser.add_argument("database", help="Path to a SQLite database file")
    parser.add_argument("--query", required=True, help="SQL query to run")
    _add_dictate_argument(parser)
    parser.add_argument("--known-rows", type=int, help="Expected row count for preallocation")
    parser.add_argument("--output", help="Optional Parquet output path")
