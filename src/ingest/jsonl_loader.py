"""Structured-record ingestion.

This module loads a stream of JSON objects into a typed columnar table.
The first record fixes the column set; fields without an override are
stored as String in their literal form.
"""

from __future__ import annotations

from typing import BinaryIO

from core.constants import DEFAULT_READ_CHUNK_SIZE
from core.dialects import parse_dialect
from core.errors import IngestCancelledError, NoRowsError
from core.logging_config import get_logger
from core.types import CancellationSignal, JSONLoadOptions
from ingest.cancellation import check_cancelled
from ingest.coercion import record_lexeme
from ingest.jsonl_source import count_records, iter_records
from ingest.materializer import RowMaterializer, materialize_rows
from ingest.preallocation import plan_preallocation, trim_preallocation
from ingest.schema_resolver import resolve_overrides, resolve_record_schema
from store.columnar_table import ColumnarTable

_LOGGER = get_logger(__name__)


def load_from_jsonl(
    stream: BinaryIO,
    options: JSONLoadOptions | None = None,
    cancel: CancellationSignal | None = None,
    chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
) -> ColumnarTable:
    """Load concatenated JSON records into a columnar table.

    Columns are sorted by name in the returned table.

    Args:
        stream: Seekable binary stream of JSON objects.
        options: Load options.
        cancel: Optional cancellation signal polled before each record and,
            during the sizing pre-pass, before each structural token.
        chunk_size: Bytes read from the stream per call.

    Returns:
        Table with one row per record.

    Raises:
        InvalidDialectError: If ``options.dialect`` is not supported.
        NoRowsError: If the stream holds no records.
        ScanError: If the stream is unreadable or malformed.
        UnknownFieldError: If strict mode rejects a field.
        CoercionError: If a value cannot be converted to its column type.
        IngestCancelledError: If cancelled before the load finished.
    """
    options = options or JSONLoadOptions()
    dialect = parse_dialect(options.dialect)
    hints = resolve_overrides(options.dictate_data_type)
    _LOGGER.info(
        "jsonl_load_started",
        large_data_set=options.large_data_set,
        error_on_unknown_fields=options.error_on_unknown_fields,
        overrides=sorted(hints),
    )
    try:
        scanned = count_records(stream, cancel, chunk_size) if options.large_data_set else None
        plan = plan_preallocation(scanned_row_count=scanned)
        records = iter_records(stream, chunk_size)
        check_cancelled(cancel, "row 0")
        first_record = next(records, None)
        if first_record is None:
            raise NoRowsError("No records found in stream. Provide at least one JSON object.")
        descriptors = resolve_record_schema(first_record, hints)
        _LOGGER.info(
            "schema_resolved",
            source="jsonl",
            columns=[f"{d.name}:{d.column_type.value}" for d in descriptors],
        )
        table = ColumnarTable.from_descriptors(descriptors, plan.initial_size)
        with table.locked():
            materializer = RowMaterializer(
                table,
                descriptors,
                dialect,
                normalize=record_lexeme,
                reject_unknown_fields=options.error_on_unknown_fields,
            )
            materializer.commit(first_record)
            materialized = materialize_rows(records, materializer, cancel)
            trim_preallocation(table, plan, materialized)
            table.reorder_columns(sorted(table.column_names()))
    except IngestCancelledError:
        _LOGGER.warning("ingest_cancelled", source="jsonl")
        raise
    if materializer.dropped_fields:
        _LOGGER.info("unknown_fields_dropped", dropped_fields=materializer.dropped_fields)
    _LOGGER.info(
        "jsonl_load_completed",
        row_count=table.row_count,
        column_count=len(table.column_names()),
    )
    return table
