"""Query-result ingestion.

This module loads the rows of a SQL query into a typed columnar table.
Column types come from overrides, then from driver type names, then
default to String.
"""

from __future__ import annotations

from typing import Any, Mapping

from core.dialects import Dialect, parse_dialect
from core.errors import IngestCancelledError, ScanError
from core.logging_config import get_logger
from core.types import CancellationSignal, SQLLoadOptions, TypeHint
from ingest.cancellation import check_cancelled
from ingest.materializer import RowMaterializer, materialize_rows
from ingest.preallocation import PreallocationPlan, plan_preallocation, trim_preallocation
from ingest.schema_resolver import resolve_overrides, resolve_query_schema
from ingest.sql_source import (
    QuerySource,
    RowCursor,
    iter_query_rows,
    read_column_types,
    sql_source_for,
)
from store.columnar_table import ColumnarTable

_LOGGER = get_logger(__name__)


def load_from_sql(
    source: Any,
    options: SQLLoadOptions | None = None,
    *args: Any,
    cancel: CancellationSignal | None = None,
) -> ColumnarTable:
    """Load a query result into a columnar table.

    Args:
        source: A query source adapter, or a statement-like object with an
            ``execute`` method (wrapped with ``sql_source_for`` using
            ``options.query`` and ``args``).
        options: Load options.
        *args: Positional query arguments for statement-like objects.
        cancel: Optional cancellation signal polled before each row.

    Returns:
        Table holding every row of the result, possibly zero rows.

    Raises:
        InvalidDialectError: If ``options.dialect`` is not supported.
        InvalidRowCountError: If ``options.known_row_count`` is invalid.
        UnsupportedStatementError: If ``source`` cannot execute queries.
        NoColumnsFoundError: If the result has no columns.
        ScanError: If executing or reading the query fails.
        CoercionError: If a value cannot be converted to its column type.
        IngestCancelledError: If cancelled before the load finished.
    """
    options = options or SQLLoadOptions()
    dialect = parse_dialect(options.dialect)
    plan = plan_preallocation(known_row_count=options.known_row_count)
    hints = resolve_overrides(options.dictate_data_type)
    query_source = _as_query_source(source, args, options.query)
    _LOGGER.info(
        "sql_load_started",
        dialect=dialect.value,
        known_row_count=options.known_row_count,
        overrides=sorted(hints),
    )
    try:
        check_cancelled(cancel, "executing the query")
        cursor = query_source.open()
        try:
            table = _load_cursor(cursor, hints, dialect, plan, cancel)
        except BaseException:
            _close_cursor_after_failure(cursor)
            raise
        _close_cursor(cursor)
    except IngestCancelledError:
        _LOGGER.warning("ingest_cancelled", source="sql")
        raise
    _LOGGER.info(
        "sql_load_completed",
        row_count=table.row_count,
        column_count=len(table.column_names()),
    )
    return table


def _load_cursor(
    cursor: RowCursor,
    hints: Mapping[str, TypeHint],
    dialect: Dialect,
    plan: PreallocationPlan,
    cancel: CancellationSignal | None,
) -> ColumnarTable:
    columns = read_column_types(cursor)
    descriptors = resolve_query_schema(columns, hints)
    _LOGGER.info(
        "schema_resolved",
        source="sql",
        columns=[f"{d.name}:{d.column_type.value}" for d in descriptors],
    )
    table = ColumnarTable.from_descriptors(descriptors, plan.initial_size)
    with table.locked():
        materializer = RowMaterializer(table, descriptors, dialect)
        materialized = materialize_rows(iter_query_rows(cursor, columns), materializer, cancel)
        trim_preallocation(table, plan, materialized)
    return table


def _as_query_source(source: Any, args: tuple[Any, ...], query: str | None) -> QuerySource:
    if callable(getattr(source, "open", None)) and not callable(getattr(source, "execute", None)):
        if args or query is not None:
            _LOGGER.warning("query_arguments_ignored", reason="source adapter already bound")
        return source
    return sql_source_for(source, args, query)


def _close_cursor(cursor: RowCursor) -> None:
    try:
        cursor.close()
    except Exception as error:
        raise ScanError(f"Failed to close query cursor: {error}.") from error


def _close_cursor_after_failure(cursor: RowCursor) -> None:
    """Close a cursor while another error propagates, logging close failures."""
    try:
        cursor.close()
    except Exception as error:
        _LOGGER.warning("cursor_close_failed", error=str(error))
