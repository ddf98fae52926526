"""In-memory columnar table.

This module stores homogeneously typed columns with explicit nulls.
It is the destination for both ingestion paths and supports the
lock, append, update, trim, and reorder operations they rely on.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
import threading
from typing import Any, Iterator, Mapping, Sequence

from core.errors import TableError
from core.types import ColumnDescriptor, ColumnType


class Column:
    """Named, typed sequence of values where ``None`` means null."""

    def __init__(self, descriptor: ColumnDescriptor, size: int = 0) -> None:
        self.descriptor = descriptor
        self._values: list[Any] = [None] * size

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def column_type(self) -> ColumnType:
        return self.descriptor.column_type

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int) -> Any:
        return self._values[index]

    def values(self) -> list[Any]:
        """Return a copy of the stored values."""
        return list(self._values)

    def null_count(self) -> int:
        return sum(1 for value in self._values if value is None)

    def validate(self, value: Any) -> None:
        """Check that a value may be stored in this column.

        Raises:
            TableError: If the value does not match the column type.
        """
        if value is None or _matches_type(self.column_type, value):
            return
        raise TableError(
            f"Column '{self.name}' stores {self.column_type.value} values, "
            f"got {type(value).__name__}: {value!r}."
        )

    def _append(self, value: Any) -> None:
        self._values.append(value)

    def _set(self, index: int, value: Any) -> None:
        self._values[index] = value

    def _pop(self) -> None:
        self._values.pop()


def _matches_type(column_type: ColumnType, value: Any) -> bool:
    if column_type is ColumnType.STRING:
        return isinstance(value, str)
    if column_type is ColumnType.FLOAT64:
        return isinstance(value, float)
    if column_type is ColumnType.INT64:
        return isinstance(value, int) and not isinstance(value, bool)
    if column_type is ColumnType.TIME:
        return isinstance(value, datetime)
    return True


class ColumnarTable:
    """Ordered set of equally long typed columns guarded by a re-entrant lock."""

    def __init__(self, columns: Sequence[Column]) -> None:
        names = [column.name for column in columns]
        if len(set(names)) != len(names):
            raise TableError(f"Column names must be unique, got {names}.")
        lengths = {len(column) for column in columns}
        if len(lengths) > 1:
            raise TableError(f"Columns must share one length, got lengths {sorted(lengths)}.")
        self._columns: dict[str, Column] = {column.name: column for column in columns}
        self._row_count = lengths.pop() if lengths else 0
        self._lock = threading.RLock()

    @classmethod
    def from_descriptors(
        cls,
        descriptors: Sequence[ColumnDescriptor],
        size: int = 0,
    ) -> "ColumnarTable":
        """Create a table whose columns each hold ``size`` null rows.

        Args:
            descriptors: Column schema in table order.
            size: Number of preallocated null rows.

        Returns:
            New table.
        """
        return cls([Column(descriptor, size) for descriptor in descriptors])

    def lock(self) -> None:
        self._lock.acquire()

    def unlock(self) -> None:
        self._lock.release()

    @contextmanager
    def locked(self) -> Iterator["ColumnarTable"]:
        """Hold the table lock for the duration of the block."""
        self.lock()
        try:
            yield self
        finally:
            self.unlock()

    @property
    def row_count(self) -> int:
        return self._row_count

    def column_names(self) -> list[str]:
        return list(self._columns)

    def column(self, name: str) -> Column:
        """Return a column by name.

        Raises:
            TableError: If no such column exists.
        """
        try:
            return self._columns[name]
        except KeyError as error:
            raise TableError(
                f"Unknown column '{name}'. Available columns: {self.column_names()}."
            ) from error

    def columns(self) -> list[Column]:
        return list(self._columns.values())

    def append_row(self, values: Sequence[Any] | None = None) -> None:
        """Append one row given in column order, or an all-null placeholder row.

        Raises:
            TableError: If the value count or a value type is wrong.
        """
        with self._lock:
            columns = self.columns()
            row_values = [None] * len(columns) if values is None else list(values)
            if len(row_values) != len(columns):
                raise TableError(
                    f"Row has {len(row_values)} values but the table has {len(columns)} columns."
                )
            for column, value in zip(columns, row_values):
                column.validate(value)
            for column, value in zip(columns, row_values):
                column._append(value)
            self._row_count += 1

    def update_row(self, index: int, values: Mapping[str, Any]) -> None:
        """Overwrite the named cells of one row.

        Every value is validated before any cell is written.

        Args:
            index: Zero-based row index.
            values: Column name to new value.

        Raises:
            TableError: If the index, a column name, or a value type is invalid.
        """
        with self._lock:
            if not 0 <= index < self._row_count:
                raise TableError(
                    f"Row index {index} is out of range for a table of {self._row_count} rows."
                )
            targets = [(self.column(name), value) for name, value in values.items()]
            for column, value in targets:
                column.validate(value)
            for column, value in targets:
                column._set(index, value)

    def remove_last_row(self) -> None:
        """Drop the final row.

        Raises:
            TableError: If the table is empty.
        """
        with self._lock:
            if self._row_count == 0:
                raise TableError("Cannot remove a row from an empty table.")
            for column in self._columns.values():
                column._pop()
            self._row_count -= 1

    def reorder_columns(self, names: Sequence[str]) -> None:
        """Reorder columns to match ``names``.

        Raises:
            TableError: If ``names`` is not a permutation of the column names.
        """
        with self._lock:
            if sorted(names) != sorted(self._columns):
                raise TableError(
                    f"Column order {list(names)} must name every column exactly once: "
                    f"{self.column_names()}."
                )
            self._columns = {name: self._columns[name] for name in names}

    def row(self, index: int) -> dict[str, Any]:
        """Return one row as a column name to value mapping."""
        if not 0 <= index < self._row_count:
            raise TableError(
                f"Row index {index} is out of range for a table of {self._row_count} rows."
            )
        return {name: column[index] for name, column in self._columns.items()}

    def rows(self) -> Iterator[tuple[Any, ...]]:
        """Iterate rows as tuples in column order."""
        columns = self.columns()
        for index in range(self._row_count):
            yield tuple(column[index] for column in columns)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [self.row(index) for index in range(self._row_count)]

    def __repr__(self) -> str:
        schema = ", ".join(
            f"{column.name}:{column.column_type.value}" for column in self._columns.values()
        )
        return f"ColumnarTable(rows={self._row_count}, columns=[{schema}])"
