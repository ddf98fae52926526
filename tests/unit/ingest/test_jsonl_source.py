"""Unit tests for the JSON record source adapter."""

from __future__ import annotations

import io

import pytest

from core.errors import IngestCancelledError, ScanError
from ingest.jsonl_source import JSONNumber, count_records, flatten_record, iter_records
from tests.fake_sql import CancelAfter
from tests.fixture_paths import fixture_bytes


class _UnseekableStream(io.BytesIO):
    def seek(self, *args: object) -> int:
        raise io.UnsupportedOperation("seek")


def test_iter_records_decodes_every_object() -> None:
    """Each top-level object should become one record."""
    records = list(iter_records(io.BytesIO(fixture_bytes("records/people.jsonl"))))

    assert [record["id"] for record in records] == ["1", "2", "3"]
    assert records[2]["name"] is None and records[2]["team"] == "extra"


def test_iter_records_keeps_number_literals() -> None:
    """Numbers should keep their exact literal text."""
    record = next(iter_records(io.BytesIO(fixture_bytes("records/nested.jsonl"))))

    assert isinstance(record["count"], JSONNumber)
    assert record["count"] == "12345678901234567890.125"


def test_iter_records_flattens_nested_values() -> None:
    """Nested objects and arrays should flatten to dotted and indexed names."""
    record = next(iter_records(io.BytesIO(fixture_bytes("records/nested.jsonl"))))

    assert list(record) == ["user.name", "user.tags[0]", "user.tags[1]", "count"]


def test_iter_records_handles_records_split_across_chunks() -> None:
    """Tiny read chunks should decode the same records."""
    data = b'{"s": "br{ace} \\" q\xc3\xa9"}  {"s": "two"}'

    records = list(iter_records(io.BytesIO(data), chunk_size=3))

    assert records == [{"s": 'br{ace} " qé'}, {"s": "two"}]


def test_iter_records_accepts_text_streams() -> None:
    """Text streams should decode like binary ones."""
    records = list(iter_records(io.StringIO('{"a": true}\n{"a": false}\n')))

    assert records == [{"a": True}, {"a": False}]


@pytest.mark.parametrize(
    "data",
    [b"[1, 2]", b'{"a": 1} x', b'{"a": NaN}', b'{"a": "\xff"}', b'{"a" 1}'],
)
def test_iter_records_rejects_malformed_input(data: bytes) -> None:
    """Non-objects, bad JSON, and invalid UTF-8 should fail."""
    with pytest.raises(ScanError):
        list(iter_records(io.BytesIO(data)))

    assert True


def test_iter_records_rejects_truncated_final_record() -> None:
    """A record cut off by end of input should fail after earlier records."""
    records = iter_records(io.BytesIO(fixture_bytes("records/truncated.jsonl")))

    assert next(records) == {"a": "1"}
    with pytest.raises(ScanError, match="truncated"):
        next(records)


def test_count_records_counts_and_rewinds() -> None:
    """The pre-pass should count records and rewind to offset 0."""
    stream = io.BytesIO(fixture_bytes("records/people.jsonl"))

    count = count_records(stream, chunk_size=8)

    assert count == 3
    assert stream.tell() == 0


def test_count_records_ignores_braces_in_strings() -> None:
    """Braces inside string literals are not structural."""
    stream = io.BytesIO(b'{"a": "}{}"} {"b": {"c": "{"}}')

    assert count_records(stream) == 2


def test_count_records_requires_seekable_stream() -> None:
    """Rewinding a non-seekable stream should fail."""
    with pytest.raises(ScanError, match="seekable"):
        count_records(_UnseekableStream(b'{"a": 1}'))

    assert True


def test_count_records_checks_cancellation_per_token() -> None:
    """The pre-pass should poll cancellation before structural tokens."""
    stream = io.BytesIO(fixture_bytes("records/people.jsonl"))

    with pytest.raises(IngestCancelledError):
        count_records(stream, CancelAfter(1))

    assert True


def test_flatten_record_last_duplicate_key_wins() -> None:
    """A later key flattening onto an existing name should overwrite it."""
    flat = flatten_record({"a.b": 1, "a": {"b": 2}, "c": []})

    assert flat == {"a.b": 2}


def test_iter_records_rejects_records_nested_beyond_recursion_limit() -> None:
    """Excessively nested records should fail as ScanError with the record index."""
    data = ('{"a": 1}\n' + '{"a":' * 5000 + "1" + "}" * 5000).encode()
    records = iter_records(io.BytesIO(data))

    assert next(records) == {"a": "1"}
    with pytest.raises(ScanError, match="Record 1 is nested too deeply"):
        next(records)
