"""Structured-record source adapter.

This module decodes a stream of concatenated JSON objects one record
at a time, flattening nested values into dotted field names. Numbers
keep their literal text. A separate pre-pass counts records so the
destination table can be preallocated.
"""

from __future__ import annotations

import codecs
import json
import re
from typing import Any, BinaryIO, Iterator, Mapping

from core.constants import DEFAULT_READ_CHUNK_SIZE, FLATTEN_KEY_SEPARATOR
from core.errors import ScanError
from core.types import CancellationSignal, RawRow
from ingest.cancellation import check_cancelled

_OUTSIDE_OBJECT = re.compile(r"[^ \t\r\n]")
_STRUCTURAL = re.compile(r'[{}"]')
_STRING_SPECIAL = re.compile(r'["\\]')


class JSONNumber(str):
    """JSON numeric literal kept as its exact source text."""

    __slots__ = ()


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


_DECODER = json.JSONDecoder(
    parse_float=JSONNumber,
    parse_int=JSONNumber,
    parse_constant=_reject_constant,
)


class _ObjectScanner:
    """Track top-level object boundaries outside string literals.

    State carries over between calls so a record may span read chunks.
    """

    def __init__(self, cancel: CancellationSignal | None = None) -> None:
        self.depth = 0
        self.object_start = 0
        self.in_string = False
        self._escaped = False
        self._cancel = cancel

    def scan(self, text: str, start: int) -> tuple[int, bool]:
        """Advance through ``text`` from ``start``.

        Returns:
            Position reached, and whether a top-level object just closed
            there.

        Raises:
            ScanError: If content outside an object is not whitespace.
            IngestCancelledError: If cancelled before a structural token.
        """
        index = start
        while True:
            if self._escaped:
                if index >= len(text):
                    return len(text), False
                self._escaped = False
                index += 1
                continue
            if self.in_string:
                match = _STRING_SPECIAL.search(text, index)
                if match is None:
                    return len(text), False
                index = match.end()
                if match.group() == "\\":
                    self._escaped = True
                else:
                    self.in_string = False
                continue
            pattern = _OUTSIDE_OBJECT if self.depth == 0 else _STRUCTURAL
            match = pattern.search(text, index)
            if match is None:
                return len(text), False
            token = match.group()
            index = match.end()
            if self.depth == 0 and token != "{":
                raise ScanError(
                    f"Expected a JSON object but found {token!r}. "
                    "Each record must be a JSON object."
                )
            if token == '"':
                self.in_string = True
                continue
            check_cancelled(self._cancel, "reading the next record token")
            if token == "{":
                if self.depth == 0:
                    self.object_start = match.start()
                self.depth += 1
                continue
            self.depth -= 1
            if self.depth == 0:
                return index, True

    @property
    def inside_record(self) -> bool:
        return self.depth > 0 or self.in_string


def iter_records(
    stream: BinaryIO,
    chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
) -> Iterator[RawRow]:
    """Decode flattened records from a stream of JSON objects.

    Args:
        stream: Binary (or text) stream positioned at the first record.
        chunk_size: Bytes read per call.

    Yields:
        One flattened record per JSON object.

    Raises:
        ScanError: If the stream is unreadable, malformed, or truncated.
    """
    scanner = _ObjectScanner()
    buffer = ""
    position = 0
    record_index = 0
    for text in _read_text(stream, chunk_size):
        buffer += text
        while True:
            position, complete = scanner.scan(buffer, position)
            if not complete:
                break
            yield _decode_record(buffer[scanner.object_start:position], record_index)
            record_index += 1
        keep = scanner.object_start if scanner.inside_record else position
        buffer = buffer[keep:]
        position -= keep
        scanner.object_start = 0
    if scanner.inside_record:
        raise ScanError(
            f"Unexpected end of input inside record {record_index}. "
            "The final JSON object is truncated."
        )


def count_records(
    stream: BinaryIO,
    cancel: CancellationSignal | None = None,
    chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
) -> int:
    """Count top-level JSON objects, then rewind the stream to offset 0.

    Args:
        stream: Seekable binary stream.
        cancel: Optional signal polled before each structural token.
        chunk_size: Bytes read per call.

    Returns:
        Number of complete records.

    Raises:
        ScanError: If the stream is unreadable, malformed, or not seekable.
        IngestCancelledError: If cancelled during the scan.
    """
    scanner = _ObjectScanner(cancel)
    count = 0
    for text in _read_text(stream, chunk_size):
        position = 0
        while True:
            position, complete = scanner.scan(text, position)
            if not complete:
                break
            count += 1
    if scanner.inside_record:
        raise ScanError("Unexpected end of input while counting records.")
    try:
        stream.seek(0)
    except (OSError, ValueError) as error:
        raise ScanError(
            f"Failed to rewind record stream after counting: {error}. "
            "Pass a seekable stream or disable large_data_set."
        ) from error
    return count


def flatten_record(record: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested objects to ``parent.child`` and arrays to ``parent[i]``.

    Later keys that flatten to an existing name overwrite it.
    """
    flat: dict[str, Any] = {}
    for key, value in record.items():
        name = f"{prefix}{FLATTEN_KEY_SEPARATOR}{key}" if prefix else key
        _flatten_value(flat, name, value)
    return flat


def _flatten_value(flat: dict[str, Any], name: str, value: Any) -> None:
    if isinstance(value, dict):
        flat.update(flatten_record(value, name))
    elif isinstance(value, list):
        for index, item in enumerate(value):
            _flatten_value(flat, f"{name}[{index}]", item)
    else:
        flat[name] = value


def _decode_record(text: str, record_index: int) -> RawRow:
    try:
        return flatten_record(_DECODER.decode(text))
    except ValueError as error:
        raise ScanError(f"Failed to decode record {record_index}: {error}.") from error
    except RecursionError as error:
        raise ScanError(
            f"Record {record_index} is nested too deeply to decode. "
            "Flatten the record before loading it."
        ) from error


def _read_text(stream: BinaryIO, chunk_size: int) -> Iterator[str]:
    decoder = codecs.getincrementaldecoder("utf-8")()
    while True:
        try:
            chunk = stream.read(chunk_size)
        except OSError as error:
            raise ScanError(f"Failed to read record stream: {error}.") from error
        if isinstance(chunk, str):
            if not chunk:
                return
            yield chunk
            continue
        try:
            text = decoder.decode(chunk, final=not chunk)
        except UnicodeDecodeError as error:
            raise ScanError(f"Record stream is not valid UTF-8: {error}.") from error
        if text:
            yield text
        if not chunk:
            return
