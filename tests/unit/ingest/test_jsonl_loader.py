"""Unit tests for structured-record ingestion."""

from __future__ import annotations

from datetime import datetime, timezone
import io

import pytest

from core.errors import (
    CoercionError,
    IngestCancelledError,
    NoRowsError,
    ScanError,
    UnknownFieldError,
)
from core.types import ColumnType, JSONLoadOptions, TypeHint
from ingest.jsonl_loader import load_from_jsonl
from tests.fake_sql import CancelAfter
from tests.fixture_paths import fixture_bytes


def _never_called(_: str) -> object:
    raise AssertionError("converter must not run for null values")


def _people_options(**kwargs: object) -> JSONLoadOptions:
    overrides = {"id": int, "active": bool, "score": float, "joined": datetime}
    return JSONLoadOptions(dictate_data_type=overrides, **kwargs)


def test_load_from_jsonl_ignores_fields_absent_from_first_record() -> None:
    """Later fields outside the first record should be dropped."""
    stream = io.BytesIO(b'{"a":1,"b":"x"}\n{"a":2,"b":"y","c":"extra"}\n')

    table = load_from_jsonl(stream)

    assert table.column_names() == ["a", "b"]
    assert table.to_dicts() == [{"a": "1", "b": "x"}, {"a": "2", "b": "y"}]


def test_load_from_jsonl_applies_overrides_and_sorts_columns() -> None:
    """Overrides should type columns and columns should be sorted by name."""
    stream = io.BytesIO(fixture_bytes("records/people.jsonl"))

    table = load_from_jsonl(stream, _people_options())

    assert table.column_names() == ["active", "id", "joined", "name", "score"]
    assert table.column("active").values() == [1, 0, 1]
    assert table.column("id").column_type is ColumnType.INT64
    assert table.column("score").values() == [91.5, 88.25, 70.0]
    assert table.column("name").values() == ["Ada", "Grace", None]


def test_load_from_jsonl_reads_epoch_seconds_for_time_fields() -> None:
    """Time fields should accept RFC 3339 and epoch seconds."""
    table = load_from_jsonl(io.BytesIO(fixture_bytes("records/people.jsonl")), _people_options())

    assert table.column("joined").values()[::2] == [
        datetime(2021, 5, 1, 12, tzinfo=timezone.utc),
        datetime(2021, 5, 3, tzinfo=timezone.utc),
    ]


def test_load_from_jsonl_strict_mode_rejects_unknown_fields() -> None:
    """Strict mode should name the record and field."""
    stream = io.BytesIO(fixture_bytes("records/people.jsonl"))

    with pytest.raises(UnknownFieldError) as excinfo:
        load_from_jsonl(stream, _people_options(error_on_unknown_fields=True))

    assert (excinfo.value.row, excinfo.value.field) == (2, "team")


def test_load_from_jsonl_large_data_set_matches_incremental_load() -> None:
    """The sizing pre-pass should not change the loaded table."""
    data = fixture_bytes("records/people.jsonl")

    incremental = load_from_jsonl(io.BytesIO(data))
    preallocated = load_from_jsonl(io.BytesIO(data), JSONLoadOptions(large_data_set=True))

    assert preallocated.to_dicts() == incremental.to_dicts()


def test_load_from_jsonl_flattens_nested_records() -> None:
    """Nested fields should become columns and keep number literals."""
    table = load_from_jsonl(io.BytesIO(fixture_bytes("records/nested.jsonl")))

    assert table.column_names() == ["count", "user.name", "user.tags[0]", "user.tags[1]"]
    assert table.column("count").values() == ["12345678901234567890.125", "7"]
    assert table.column("user.tags[1]").values() == ["engines", None]


def test_load_from_jsonl_keeps_nulls_for_custom_columns() -> None:
    """Null values should bypass custom converters."""
    stream = io.BytesIO(b'{"a": null}\n{"b": 1}')
    options = JSONLoadOptions(dictate_data_type={"a": TypeHint.custom(_never_called)})

    table = load_from_jsonl(stream, options)

    assert table.column("a").values() == [None, None]


def test_load_from_jsonl_round_trips_floats() -> None:
    """Float literals should keep their numeric value."""
    stream = io.BytesIO(b'{"v": 0.1}\n{"v": -2.5e-3}')

    table = load_from_jsonl(stream, JSONLoadOptions(dictate_data_type={"v": float}))

    assert table.column("v").values() == [0.1, -0.0025]


def test_load_from_jsonl_uses_dialect_time_layout() -> None:
    """Time overrides should parse with the selected dialect."""
    stream = io.BytesIO(b'{"t": "2021-05-01 12:00:00"}')
    options = JSONLoadOptions(dictate_data_type={"t": datetime}, dialect="mysql")

    table = load_from_jsonl(stream, options)

    assert table.column("t")[0] == datetime(2021, 5, 1, 12, tzinfo=timezone.utc)


def test_load_from_jsonl_reports_coercion_failures() -> None:
    """Unconvertible values should fail with row and field context."""
    stream = io.BytesIO(b'{"a": 1}\n{"a": "x"}')

    with pytest.raises(CoercionError, match="row: 1 field: a"):
        load_from_jsonl(stream, JSONLoadOptions(dictate_data_type={"a": int}))

    assert True


def test_load_from_jsonl_rejects_empty_stream() -> None:
    """A stream without records should fail."""
    with pytest.raises(NoRowsError):
        load_from_jsonl(io.BytesIO(b" \n "))

    assert True


def test_load_from_jsonl_rejects_truncated_stream() -> None:
    """A truncated final record should fail the whole load."""
    with pytest.raises(ScanError):
        load_from_jsonl(io.BytesIO(fixture_bytes("records/truncated.jsonl")))

    assert True


def test_load_from_jsonl_honors_cancellation_between_records() -> None:
    """Cancellation before record 2 should abort the load."""
    stream = io.BytesIO(fixture_bytes("records/people.jsonl"))

    with pytest.raises(IngestCancelledError, match="row 2"):
        load_from_jsonl(stream, cancel=CancelAfter(2))

    assert True


def test_load_from_jsonl_wraps_excessive_nesting() -> None:
    """Deeply nested valid JSON should fail with a framefill error."""
    stream = io.BytesIO(('{"a":' * 5000 + "1" + "}" * 5000).encode())

    with pytest.raises(ScanError, match="nested too deeply"):
        load_from_jsonl(stream)

    assert True
