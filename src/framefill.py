"""Public SDK surface for Framefill.

This module provides a stable import path for loader users.
It re-exports the loaders, option models, and table types.
"""

from __future__ import annotations

from core.config import FramefillConfig
from core.dialects import Dialect, parse_dialect
from core.errors import (
    CoercionError,
    FramefillError,
    IngestCancelledError,
    NoColumnsFoundError,
    NoRowsError,
    ScanError,
    UnknownFieldError,
    UnsupportedStatementError,
)
from core.types import ColumnType, JSONLoadOptions, SQLLoadOptions, SourceColumn, TypeHint
from ingest.jsonl_loader import load_from_jsonl
from ingest.sql_loader import load_from_sql
from ingest.sql_source import (
    DBAPISource,
    PreparedStatementSource,
    QueryTextSource,
    sql_source_for,
)
from store.arrow_export import table_to_arrow, write_parquet
from store.columnar_table import ColumnarTable

__all__ = [
    "CoercionError",
    "ColumnType",
    "ColumnarTable",
    "DBAPISource",
    "Dialect",
    "FramefillConfig",
    "FramefillError",
    "IngestCancelledError",
    "JSONLoadOptions",
    "NoColumnsFoundError",
    "NoRowsError",
    "PreparedStatementSource",
    "QueryTextSource",
    "SQLLoadOptions",
    "ScanError",
    "SourceColumn",
    "TypeHint",
    "UnknownFieldError",
    "UnsupportedStatementError",
    "load_from_jsonl",
    "load_from_sql",
    "parse_dialect",
    "sql_source_for",
    "table_to_arrow",
    "write_parquet",
]
