"""Framefill exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each ingestion failure mode raises a specific error type.
"""

from __future__ import annotations

from typing import Any


class FramefillError(Exception):
    """Base exception for all Framefill failures."""


class FramefillConfigError(FramefillError):
    """Raised for invalid runtime or load configuration."""


class InvalidDialectError(FramefillConfigError):
    """Raised when a dialect selector names no supported database."""


class InvalidRowCountError(FramefillConfigError):
    """Raised when a known row count cannot size a table."""


class FramefillIngestError(FramefillError):
    """Raised for source reading and ingestion failures."""


class UnsupportedStatementError(FramefillIngestError):
    """Raised when a statement object exposes no usable execute method."""


class NoColumnsFoundError(FramefillIngestError):
    """Raised when a query result reports an empty schema."""


class DuplicateColumnError(FramefillIngestError):
    """Raised when a query result reports the same column name twice."""


class NoRowsError(FramefillIngestError):
    """Raised when a record source decodes zero records."""


class ScanError(FramefillIngestError):
    """Raised when the underlying driver or decoder fails to produce a row."""


class IngestCancelledError(FramefillIngestError):
    """Raised when the caller cancels an ingestion in progress."""


class CoercionError(FramefillIngestError):
    """Raised when a raw value cannot be coerced to its column type.

    Attributes:
        row: Zero-based row index of the offending value.
        field: Column name.
        raw_value: Lexical form that failed to convert.
        target_type: Name of the declared column type.
        cause: Underlying parse or converter error.
    """

    def __init__(
        self,
        row: int,
        field: str,
        raw_value: str,
        target_type: str,
        cause: BaseException | None = None,
    ) -> None:
        self.row = row
        self.field = field
        self.raw_value = raw_value
        self.target_type = target_type
        self.cause = cause
        message = (
            f"Can't coerce value {raw_value!r} to {target_type}. row: {row} field: {field}"
        )
        if cause is not None:
            message = f"{message} ({cause})"
        super().__init__(message)

    def __reduce__(self) -> tuple[Any, ...]:
        return (
            type(self),
            (self.row, self.field, self.raw_value, self.target_type, self.cause),
        )


class UnknownFieldError(FramefillIngestError):
    """Raised in strict mode when a record carries a field absent from row one.

    Attributes:
        row: Zero-based row index of the record.
        field: Unknown field name.
    """

    def __init__(self, row: int, field: str) -> None:
        self.row = row
        self.field = field
        super().__init__(
            f"Unknown field encountered. row: {row} field: {field}. "
            "Disable strict field mode or add the field to the first record."
        )

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.row, self.field))


class FramefillStoreError(FramefillError):
    """Raised for destination table failures."""


class TableError(FramefillStoreError):
    """Raised for invalid columnar table operations."""
