"""Query-result source adapters.

This module wraps prepared statements, query executors, and PEP 249
connections behind one cursor interface. Each adapter opens a cursor
whose column metadata is read before any row is pulled.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Mapping, Protocol, Sequence

from core.errors import FramefillError, ScanError, UnsupportedStatementError
from core.types import RawRow, SourceColumn


class RowCursor(Protocol):
    """Open query result yielding one positional row at a time."""

    def column_types(self) -> Sequence[SourceColumn]: ...

    def fetchone(self) -> Sequence[Any] | None: ...

    def close(self) -> None: ...


class PreparedStatement(Protocol):
    """Statement already bound to its query text."""

    def execute(self, *args: Any) -> RowCursor: ...


class QueryExecutor(Protocol):
    """Connection-like object executing query text."""

    def execute(self, query: str, *args: Any) -> RowCursor: ...


class QuerySource(Protocol):
    """Adapter that executes its statement and returns an open cursor."""

    def open(self) -> RowCursor: ...


class PreparedStatementSource:
    """Run a prepared statement with positional arguments."""

    def __init__(self, statement: PreparedStatement, args: Sequence[Any] = ()) -> None:
        _require_execute(statement)
        self._statement = statement
        self._args = tuple(args)

    def open(self) -> RowCursor:
        return _execute(lambda: self._statement.execute(*self._args))


class QueryTextSource:
    """Run explicit query text with positional arguments."""

    def __init__(
        self,
        executor: QueryExecutor,
        query: str,
        args: Sequence[Any] = (),
    ) -> None:
        _require_execute(executor)
        self._executor = executor
        self._query = query
        self._args = tuple(args)

    def open(self) -> RowCursor:
        return _execute(lambda: self._executor.execute(self._query, *self._args))


class DBAPISource:
    """Run a query on a PEP 249 connection or cursor.

    Column type names come from ``cursor.description``. Drivers that report
    numeric type codes can be mapped to names through ``type_names``.
    """

    def __init__(
        self,
        connection: Any,
        query: str,
        params: Sequence[Any] | Mapping[str, Any] = (),
        type_names: Mapping[Any, str] | None = None,
    ) -> None:
        if not callable(getattr(connection, "cursor", None)):
            _require_execute(connection)
        self._connection = connection
        self._query = query
        self._params = params
        self._type_names = dict(type_names or {})

    def open(self) -> RowCursor:
        def run() -> RowCursor:
            owns_cursor = callable(getattr(self._connection, "cursor", None))
            cursor = self._connection.cursor() if owns_cursor else self._connection
            try:
                cursor.execute(self._query, self._params)
            except Exception:
                if owns_cursor:
                    cursor.close()
                raise
            return DBAPIRowCursor(cursor, self._type_names, owns_cursor)

        return _execute(run)


class DBAPIRowCursor:
    """RowCursor view over a PEP 249 cursor."""

    def __init__(
        self,
        cursor: Any,
        type_names: Mapping[Any, str] | None = None,
        owns_cursor: bool = True,
    ) -> None:
        self._cursor = cursor
        self._type_names = dict(type_names or {})
        self._owns_cursor = owns_cursor

    def column_types(self) -> list[SourceColumn]:
        description = self._cursor.description or ()
        return [
            SourceColumn(name=str(entry[0]), type_name=self._type_name(entry[1]))
            for entry in description
        ]

    def fetchone(self) -> Sequence[Any] | None:
        return self._cursor.fetchone()

    def close(self) -> None:
        if self._owns_cursor:
            self._cursor.close()

    def _type_name(self, type_code: Any) -> str:
        if type_code is None:
            return ""
        try:
            mapped = self._type_names.get(type_code)
        except TypeError:
            mapped = None
        if mapped is not None:
            return mapped
        if isinstance(type_code, str):
            return type_code
        return ""


def sql_source_for(
    statement: Any,
    args: Sequence[Any] = (),
    query: str | None = None,
) -> QuerySource:
    """Pick the adapter for a statement-like object.

    The argument-only form is used unless query text is supplied. With
    query text, PEP 249 connections (objects with a callable ``cursor``)
    run through ``DBAPISource``.

    Raises:
        UnsupportedStatementError: If the object has no callable ``execute``
            or ``cursor``.
    """
    if query is None:
        return PreparedStatementSource(statement, args)
    if callable(getattr(statement, "cursor", None)):
        return DBAPISource(statement, query, args)
    return QueryTextSource(statement, query, args)


def read_column_types(cursor: RowCursor) -> list[SourceColumn]:
    """Read cursor metadata once.

    Raises:
        ScanError: If the driver fails to describe the result.
    """
    try:
        return list(cursor.column_types())
    except FramefillError:
        raise
    except Exception as error:
        raise ScanError(f"Failed to read query column metadata: {error}.") from error


def iter_query_rows(cursor: RowCursor, columns: Sequence[SourceColumn]) -> Iterator[RawRow]:
    """Yield raw rows keyed by column name until the cursor is exhausted.

    Byte values are decoded as UTF-8; other driver values pass through.

    Raises:
        ScanError: If fetching or decoding a row fails.
    """
    names = [column.name for column in columns]
    row_index = 0
    while True:
        try:
            values = cursor.fetchone()
        except Exception as error:
            raise ScanError(f"Failed to fetch query row {row_index}: {error}.") from error
        if values is None:
            return
        if len(values) != len(names):
            raise ScanError(
                f"Query row {row_index} has {len(values)} values "
                f"but the result declares {len(names)} columns."
            )
        yield {name: _raw_value(row_index, name, value) for name, value in zip(names, values)}
        row_index += 1


def _raw_value(row_index: int, name: str, value: Any) -> Any:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        return value
    try:
        return bytes(value).decode("utf-8")
    except UnicodeDecodeError as error:
        raise ScanError(
            f"Failed to decode bytes as UTF-8. row: {row_index} field: {name}."
        ) from error


def _require_execute(statement: Any) -> None:
    if not callable(getattr(statement, "execute", None)):
        raise UnsupportedStatementError(
            f"{type(statement).__name__} is not a valid statement: "
            "it exposes no callable execute method. "
            "Pass a prepared statement, a query executor, or a DB-API connection."
        )


def _execute(run: Callable[[], RowCursor]) -> RowCursor:
    try:
        return run()
    except FramefillError:
        raise
    except Exception as error:
        raise ScanError(f"Failed to execute query: {error}.") from error
