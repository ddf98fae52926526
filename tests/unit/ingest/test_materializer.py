"""Unit tests for row materialization."""

from __future__ import annotations

import pytest

from core.dialects import Dialect
from core.errors import CoercionError, IngestCancelledError, UnknownFieldError
from core.types import ColumnDescriptor, ColumnType
from ingest.materializer import RowMaterializer, materialize_rows
from store.columnar_table import ColumnarTable
from tests.fake_sql import CancelAfter


def _never_called(_: str) -> object:
    raise AssertionError("converter must not run for null values")


def _descriptors() -> list[ColumnDescriptor]:
    return [
        ColumnDescriptor("id", ColumnType.INT64),
        ColumnDescriptor("note", ColumnType.CUSTOM, converter=_never_called),
    ]


def _materializer(size: int = 0, **kwargs: object) -> tuple[ColumnarTable, RowMaterializer]:
    table = ColumnarTable.from_descriptors(_descriptors(), size)
    return table, RowMaterializer(table, _descriptors(), Dialect.POSTGRESQL, **kwargs)


def test_commit_appends_rows_in_order() -> None:
    """Rows should land at consecutive indices."""
    table, materializer = _materializer()

    indices = [materializer.commit({"id": "1"}), materializer.commit({"id": "2"})]

    assert indices == [0, 1]
    assert table.column("id").values() == [1, 2]


def test_commit_keeps_nulls_without_calling_converters() -> None:
    """Null and absent values should be stored as null untouched."""
    table, materializer = _materializer()

    materializer.commit({"id": None, "note": None})
    materializer.commit({})

    assert table.to_dicts() == [{"id": None, "note": None}, {"id": None, "note": None}]


def test_commit_fills_preallocated_rows_in_place() -> None:
    """Preallocated rows should be updated rather than appended."""
    table, materializer = _materializer(size=3)

    materializer.commit({"id": "9"})

    assert table.row_count == 3
    assert table.column("id").values() == [9, None, None]


def test_commit_reports_coercion_context() -> None:
    """Failures should name the row, field, raw value, and target type."""
    table, materializer = _materializer()
    materializer.commit({"id": "1"})

    with pytest.raises(CoercionError) as excinfo:
        materializer.commit({"id": "one"})

    assert (excinfo.value.row, excinfo.value.field, excinfo.value.raw_value) == (1, "id", "one")
    assert excinfo.value.target_type == "Int64"
    assert table.row_count == 1


def test_commit_custom_failure_reports_generic() -> None:
    """Custom converter failures should report the Generic target type."""
    _, materializer = _materializer()

    with pytest.raises(CoercionError, match="to Generic"):
        materializer.commit({"note": "text"})

    assert materializer.committed_rows == 0


def test_commit_counts_dropped_unknown_fields() -> None:
    """Unknown fields should be dropped and counted in lenient mode."""
    table, materializer = _materializer()

    materializer.commit({"id": "1", "extra": "x", "more": "y"})

    assert materializer.dropped_fields == 2
    assert table.column_names() == ["id", "note"]


def test_commit_rejects_unknown_fields_in_strict_mode() -> None:
    """Strict mode should fail on the first unknown field."""
    _, materializer = _materializer(reject_unknown_fields=True)
    materializer.commit({"id": "1"})

    with pytest.raises(UnknownFieldError) as excinfo:
        materializer.commit({"id": "2", "extra": "x"})

    assert (excinfo.value.row, excinfo.value.field) == (1, "extra")


def test_materialize_rows_stops_at_cancellation() -> None:
    """Rows at or after the cancelled index should not be committed."""
    table, materializer = _materializer()
    rows = iter([{"id": str(index)} for index in range(5)])

    with pytest.raises(IngestCancelledError, match="row 2"):
        materialize_rows(rows, materializer, CancelAfter(2))

    assert table.column("id").values() == [0, 1]
    assert next(rows) == {"id": "2"}
