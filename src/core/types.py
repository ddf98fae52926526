"""Shared typed models.

This module defines immutable data models used by the ingest
and store layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Protocol

from core.dialects import Dialect

Converter = Callable[[str], Any]
RawRow = dict[str, Any]


class ColumnType(Enum):
    """Storage type of a destination column."""

    STRING = "String"
    FLOAT64 = "Float64"
    INT64 = "Int64"
    TIME = "Time"
    GENERIC = "Generic"
    CUSTOM = "Custom"


@dataclass(frozen=True)
class TypeHint:
    """Caller-declared storage type for one field.

    Attributes:
        kind: Storage type selected by the hint.
        converter: Converter applied to every lexical value (custom only).
        label: Descriptive label for generic and custom storage.
        accepts_bool_tokens: Whether Int64 coercion reads boolean literals.
    """

    kind: ColumnType
    converter: Converter | None = None
    label: str | None = None
    accepts_bool_tokens: bool = False

    @classmethod
    def string(cls) -> "TypeHint":
        return cls(ColumnType.STRING)

    @classmethod
    def float64(cls) -> "TypeHint":
        return cls(ColumnType.FLOAT64)

    @classmethod
    def int64(cls) -> "TypeHint":
        return cls(ColumnType.INT64)

    @classmethod
    def boolean(cls) -> "TypeHint":
        """Int64 storage holding 1/0 for boolean literals."""
        return cls(ColumnType.INT64, accepts_bool_tokens=True)

    @classmethod
    def time(cls) -> "TypeHint":
        return cls(ColumnType.TIME)

    @classmethod
    def custom(cls, converter: Converter, label: str = "custom") -> "TypeHint":
        """Generic storage whose values come from ``converter``."""
        return cls(ColumnType.CUSTOM, converter=converter, label=label)

    @classmethod
    def generic(cls, label: str) -> "TypeHint":
        """Generic storage keeping the lexical form under a type label."""
        return cls(ColumnType.GENERIC, label=label)


def resolve_type_hint(value: Any) -> TypeHint:
    """Translate a caller override into a type hint.

    Sentinels may be Python types (``str``, ``float``, ``int``, ``bool``,
    ``datetime``) or example values of those types. Any other value selects
    generic storage labelled with its type name.

    Args:
        value: Override supplied for a field.

    Returns:
        Resolved type hint.
    """
    if isinstance(value, TypeHint):
        return value
    if value is bool or isinstance(value, bool):
        return TypeHint.boolean()
    if value is int or isinstance(value, int):
        return TypeHint.int64()
    if value is float or isinstance(value, float):
        return TypeHint.float64()
    if value is str or isinstance(value, str):
        return TypeHint.string()
    if value is datetime or isinstance(value, datetime):
        return TypeHint.time()
    label = value.__name__ if isinstance(value, type) else type(value).__name__
    return TypeHint.generic(label)


@dataclass(frozen=True)
class ColumnDescriptor:
    """Resolved column schema governing coercion and storage.

    Attributes:
        name: Column name, unique within the table.
        column_type: Declared storage type.
        converter: Custom converter for ``ColumnType.CUSTOM`` columns.
        accepts_bool_tokens: Whether Int64 coercion reads boolean literals.
        label: Type label for generic and custom columns.
    """

    name: str
    column_type: ColumnType
    converter: Converter | None = None
    accepts_bool_tokens: bool = False
    label: str | None = None


@dataclass(frozen=True)
class SourceColumn:
    """Column metadata reported by a query cursor.

    Attributes:
        name: Column name.
        type_name: Database type name, empty when the driver reports none.
    """

    name: str
    type_name: str = ""


@dataclass(frozen=True)
class SQLLoadOptions:
    """Query-result load options.

    Attributes:
        known_row_count: Expected row count used to preallocate the table.
        dictate_data_type: Per-column type overrides keyed by exact name.
        dialect: Source dialect or its name.
        query: Query text for executors that take one.
    """

    known_row_count: int | None = None
    dictate_data_type: Mapping[str, Any] = field(default_factory=dict)
    dialect: Dialect | str = Dialect.POSTGRESQL
    query: str | None = None


@dataclass(frozen=True)
class JSONLoadOptions:
    """Structured-record load options.

    Attributes:
        large_data_set: Pre-scan the stream to preallocate the table.
        dictate_data_type: Per-field type overrides keyed by exact name.
        error_on_unknown_fields: Reject fields absent from the first record.
        dialect: Dialect whose temporal layout applies to Time overrides.
    """

    large_data_set: bool = False
    dictate_data_type: Mapping[str, Any] = field(default_factory=dict)
    error_on_unknown_fields: bool = False
    dialect: Dialect | str = Dialect.POSTGRESQL


class CancellationSignal(Protocol):
    """Cooperative cancellation flag, e.g. ``threading.Event``."""

    def is_set(self) -> bool: ...
