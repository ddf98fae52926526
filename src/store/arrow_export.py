"""Apache Arrow export for columnar tables.

This module converts a finished ColumnarTable into a pyarrow Table
and optionally persists it as Parquet.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq

from core.errors import FramefillStoreError
from core.types import ColumnType
from store.columnar_table import Column, ColumnarTable

_ARROW_TYPES = {
    ColumnType.STRING: pa.string(),
    ColumnType.FLOAT64: pa.float64(),
    ColumnType.INT64: pa.int64(),
    ColumnType.TIME: pa.timestamp("us", tz="UTC"),
}


def table_to_arrow(table: ColumnarTable) -> pa.Table:
    """Convert a columnar table into a pyarrow Table.

    Native columns map onto fixed Arrow types. Generic and custom columns
    let pyarrow infer a type and fall back to their string form.

    Args:
        table: Source table.

    Returns:
        Arrow table with the same column order and row count.

    Raises:
        FramefillStoreError: If a native column cannot be converted.
    """
    with table.locked():
        arrays = [_column_to_arrow(column) for column in table.columns()]
        names = table.column_names()
    return pa.Table.from_arrays(arrays, names=names)


def write_parquet(table: ColumnarTable, output_path: Path) -> Path:
    """Write a columnar table to a Parquet file.

    Args:
        table: Source table.
        output_path: Destination file path.

    Returns:
        The written path.

    Raises:
        FramefillStoreError: If conversion or the write fails.
    """
    arrow_table = table_to_arrow(table)
    try:
        pq.write_table(arrow_table, str(output_path))
    except OSError as error:
        raise FramefillStoreError(
            f"Failed to write Parquet file at {output_path}: {error}. "
            "Check write permissions and available disk space."
        ) from error
    return output_path


def _column_to_arrow(column: Column) -> pa.Array:
    values = column.values()
    arrow_type = _ARROW_TYPES.get(column.column_type)
    if arrow_type is None:
        return _infer_generic_array(values)
    try:
        return pa.array(values, type=arrow_type)
    except (pa.ArrowInvalid, pa.ArrowTypeError) as error:
        raise FramefillStoreError(
            f"Failed to convert column '{column.name}' to Arrow {arrow_type}: {error}."
        ) from error


def _infer_generic_array(values: list[Any]) -> pa.Array:
    try:
        return pa.array(values)
    except (pa.ArrowInvalid, pa.ArrowTypeError, pa.ArrowNotImplementedError):
        return pa.array([None if value is None else str(value) for value in values], pa.string())
