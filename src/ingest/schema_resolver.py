"""Schema resolution for both ingestion paths.

This module turns query metadata or a first record, together with the
caller's override map, into the ordered column descriptors of a table.
Overrides win over source type names, which win over the String default.
"""

from __future__ import annotations

from dataclasses import replace
import re
from typing import Any, Iterable, Mapping, Sequence

from core.errors import DuplicateColumnError, NoColumnsFoundError
from core.types import ColumnDescriptor, ColumnType, SourceColumn, TypeHint, resolve_type_hint

_TYPE_PARAMETERS = re.compile(r"\(.*\)")

_STRING_TYPE_NAMES = ("VARCHAR", "TEXT", "NVARCHAR", "MEDIUMTEXT", "LONGTEXT", "CHAR", "BPCHAR")
_FLOAT_TYPE_NAMES = ("FLOAT", "FLOAT4", "FLOAT8", "DOUBLE", "DECIMAL", "NUMERIC", "REAL")
_INT_TYPE_NAMES = (
    "INT",
    "TINYINT",
    "INT2",
    "INT4",
    "INT8",
    "MEDIUMINT",
    "SMALLINT",
    "BIGINT",
    "INTEGER",
)
_BOOL_TYPE_NAMES = ("BOOL", "BOOLEAN")
_TIME_TYPE_NAMES = ("DATETIME", "TIMESTAMP", "TIMESTAMPTZ")

_TYPE_NAME_TABLE: dict[str, ColumnType] = {
    **{name: ColumnType.STRING for name in _STRING_TYPE_NAMES},
    **{name: ColumnType.FLOAT64 for name in _FLOAT_TYPE_NAMES},
    **{name: ColumnType.INT64 for name in _INT_TYPE_NAMES + _BOOL_TYPE_NAMES},
    **{name: ColumnType.TIME for name in _TIME_TYPE_NAMES},
}


def normalize_type_name(type_name: str | None) -> str:
    """Upper-case a database type name and drop parameters like ``(20)``."""
    if not type_name:
        return ""
    return _TYPE_PARAMETERS.sub("", type_name).strip().upper()


def column_type_for_type_name(type_name: str | None) -> ColumnType:
    """Map a source-reported type name onto a storage type.

    Unknown or empty names map to String.
    """
    return _TYPE_NAME_TABLE.get(normalize_type_name(type_name), ColumnType.STRING)


def resolve_overrides(overrides: Mapping[str, Any] | None) -> dict[str, TypeHint]:
    """Resolve every override sentinel into a type hint once per call."""
    if not overrides:
        return {}
    return {name: resolve_type_hint(value) for name, value in overrides.items()}


def descriptor_from_hint(name: str, hint: TypeHint) -> ColumnDescriptor:
    """Build the column descriptor selected by an override."""
    return ColumnDescriptor(
        name=name,
        column_type=hint.kind,
        converter=hint.converter,
        accepts_bool_tokens=hint.accepts_bool_tokens,
        label=hint.label,
    )


def resolve_query_schema(
    columns: Sequence[SourceColumn],
    hints: Mapping[str, TypeHint],
) -> tuple[ColumnDescriptor, ...]:
    """Resolve descriptors for a query result.

    Int64 columns of a query result read boolean literals as 1/0.

    Args:
        columns: Cursor metadata in result order.
        hints: Resolved overrides keyed by exact column name.

    Returns:
        Descriptors in result order.

    Raises:
        NoColumnsFoundError: If the result has no columns.
        DuplicateColumnError: If a column name repeats.
    """
    if not columns:
        raise NoColumnsFoundError(
            "No columns found in query result. Check that the statement returns rows."
        )
    _ensure_unique(column.name for column in columns)
    descriptors: list[ColumnDescriptor] = []
    for column in columns:
        hint = hints.get(column.name)
        if hint is None:
            descriptor = ColumnDescriptor(
                name=column.name,
                column_type=column_type_for_type_name(column.type_name),
            )
        else:
            descriptor = descriptor_from_hint(column.name, hint)
        if descriptor.column_type is ColumnType.INT64:
            descriptor = replace(descriptor, accepts_bool_tokens=True)
        descriptors.append(descriptor)
    return tuple(descriptors)


def resolve_record_schema(
    first_record: Mapping[str, Any],
    hints: Mapping[str, TypeHint],
) -> tuple[ColumnDescriptor, ...]:
    """Resolve descriptors from the first decoded record.

    Fields without an override are stored as String whatever their JSON
    kind, preserving the literal text of numbers.

    Args:
        first_record: Flattened first record.
        hints: Resolved overrides keyed by exact field name.

    Returns:
        Descriptors in first-record field order.
    """
    descriptors: list[ColumnDescriptor] = []
    for name in first_record:
        hint = hints.get(name)
        if hint is None:
            descriptors.append(ColumnDescriptor(name=name, column_type=ColumnType.STRING))
        else:
            descriptors.append(descriptor_from_hint(name, hint))
    return tuple(descriptors)


def _ensure_unique(names: Iterable[str]) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise DuplicateColumnError(
                f"Query result reports column '{name}' more than once. "
                "Alias the duplicate columns in the query."
            )
        seen.add(name)
