"""Row materialization into a destination table.

This module coerces each raw row against the resolved descriptors and
commits it to the table all-or-nothing: every field is converted before
any cell of the row is written.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Mapping, Sequence

from core.dialects import Dialect
from core.errors import CoercionError, UnknownFieldError
from core.types import CancellationSignal, ColumnDescriptor, RawRow
from ingest.cancellation import check_cancelled
from ingest.coercion import coerce_value, to_lexical, target_type_name
from store.columnar_table import ColumnarTable

Normalizer = Callable[[Any], Any]


def _identity(value: Any) -> Any:
    return value


class RowMaterializer:
    """Coerce raw rows and write them into a table in arrival order."""

    def __init__(
        self,
        table: ColumnarTable,
        descriptors: Sequence[ColumnDescriptor],
        dialect: Dialect,
        normalize: Normalizer = _identity,
        reject_unknown_fields: bool = False,
    ) -> None:
        """Create a materializer.

        Args:
            table: Destination table, possibly holding preallocated null rows.
            descriptors: Column schema governing coercion.
            dialect: Dialect for temporal layouts and boolean literals.
            normalize: Maps each non-null raw value to its lexical form.
            reject_unknown_fields: Raise on fields missing from the schema
                instead of dropping them.
        """
        self._table = table
        self._descriptors = tuple(descriptors)
        self._known_names = frozenset(descriptor.name for descriptor in descriptors)
        self._dialect = dialect
        self._normalize = normalize
        self._reject_unknown = reject_unknown_fields
        self._committed = 0
        self._dropped_fields = 0

    @property
    def committed_rows(self) -> int:
        return self._committed

    @property
    def dropped_fields(self) -> int:
        """Count of unknown field occurrences dropped so far."""
        return self._dropped_fields

    def commit(self, raw_row: Mapping[str, Any]) -> int:
        """Coerce and store one row.

        Args:
            raw_row: Field name to raw value; absent fields are null.

        Returns:
            Zero-based index of the committed row.

        Raises:
            UnknownFieldError: If strict mode rejects an extra field.
            CoercionError: If any value fails to convert.
        """
        row_index = self._committed
        self._check_unknown_fields(row_index, raw_row)
        values = {
            descriptor.name: self._coerce(row_index, descriptor, raw_row.get(descriptor.name))
            for descriptor in self._descriptors
        }
        if row_index >= self._table.row_count:
            self._table.append_row()
        self._table.update_row(row_index, values)
        self._committed += 1
        return row_index

    def _check_unknown_fields(self, row_index: int, raw_row: Mapping[str, Any]) -> None:
        for name in raw_row:
            if name in self._known_names:
                continue
            if self._reject_unknown:
                raise UnknownFieldError(row_index, name)
            self._dropped_fields += 1

    def _coerce(self, row_index: int, descriptor: ColumnDescriptor, raw_value: Any) -> Any:
        if raw_value is None:
            return None
        value = self._normalize(raw_value)
        try:
            return coerce_value(value, descriptor, self._dialect)
        except ValueError as error:
            raise CoercionError(
                row=row_index,
                field=descriptor.name,
                raw_value=_describe(value),
                target_type=target_type_name(descriptor),
                cause=error,
            ) from error


def materialize_rows(
    rows: Iterator[RawRow],
    materializer: RowMaterializer,
    cancel: CancellationSignal | None = None,
) -> int:
    """Commit rows until the source is exhausted.

    Cancellation is polled before each row is pulled from the source.

    Args:
        rows: Raw row iterator from a source adapter.
        materializer: Materializer bound to the destination table.
        cancel: Optional cancellation signal.

    Returns:
        Total rows committed by the materializer.

    Raises:
        IngestCancelledError: If cancelled between rows.
        CoercionError: If a value fails to convert.
        UnknownFieldError: If strict mode rejects a field.
        ScanError: If the source fails to produce a row.
    """
    while True:
        check_cancelled(cancel, f"row {materializer.committed_rows}")
        raw_row = next(rows, None)
        if raw_row is None:
            return materializer.committed_rows
        materializer.commit(raw_row)


def _describe(value: Any) -> str:
    try:
        return to_lexical(value)
    except ValueError:
        return repr(value)
