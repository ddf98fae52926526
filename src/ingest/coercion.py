"""Value-level type coercion rules.

This module maps one raw scalar onto the native value stored by a
column of a given type. Functions are pure and raise ``ValueError``
for malformed input; callers attach row and field context.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
import math
import re
from typing import Any

from core.constants import (
    INT64_MAX,
    INT64_MIN,
    MYSQL_TIME_LAYOUT,
    RECORD_FALSE_LEXEME,
    RECORD_TRUE_LEXEME,
)
from core.dialects import Dialect
from core.types import ColumnDescriptor, ColumnType

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_RFC3339_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})",
    re.ASCII,
)
_MYSQL_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})(?:\.(\d+))?", re.ASCII)


def to_lexical(value: Any) -> str:
    """Render a driver-native scalar as its lexical form.

    Args:
        value: Non-null scalar returned by a query cursor.

    Returns:
        String form used for coercion and String storage.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, (int, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def record_lexeme(value: Any) -> str:
    """Render a decoded record scalar as its lexical form.

    Booleans become ``"1"``/``"0"``; numbers keep their literal text.
    """
    if isinstance(value, bool):
        return RECORD_TRUE_LEXEME if value else RECORD_FALSE_LEXEME
    return str(value)


def coerce_float64(lexical: str) -> float:
    """Parse a 64-bit float.

    Raises:
        ValueError: If the text is not a float literal or overflows.
    """
    if not lexical or not lexical.isascii() or lexical != lexical.strip() or "_" in lexical:
        raise ValueError(f"invalid float literal {lexical!r}")
    number = float(lexical)
    if math.isinf(number) and "inf" not in lexical.lower():
        raise ValueError(f"float literal {lexical!r} is out of range")
    return number


def coerce_int64(lexical: str, bool_dialect: Dialect | None = None) -> int:
    """Parse a signed 64-bit integer.

    Args:
        lexical: Text to parse.
        bool_dialect: When set, boolean literals of this dialect map to 1/0.

    Returns:
        Parsed integer.

    Raises:
        ValueError: If the text is neither an in-range integer nor an
            accepted boolean literal.
    """
    if _INT_PATTERN.fullmatch(lexical):
        number = int(lexical)
        if INT64_MIN <= number <= INT64_MAX:
            return number
        raise ValueError(f"integer literal {lexical!r} is out of the signed 64-bit range")
    if bool_dialect is not None:
        if lexical in bool_dialect.true_tokens:
            return 1
        if lexical in bool_dialect.false_tokens:
            return 0
    raise ValueError(f"invalid integer literal {lexical!r}")


def coerce_time(value: Any, dialect: Dialect) -> datetime:
    """Parse a timestamp using the dialect layout, then Unix epoch seconds.

    Driver-native datetimes pass through; naive values are read as UTC.

    Args:
        value: Lexical form or driver-native temporal value.
        dialect: Dialect selecting the timestamp layout.

    Returns:
        Timezone-aware datetime.

    Raises:
        ValueError: If neither the layout nor the epoch form matches.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    lexical = to_lexical(value)
    parsed = _parse_layout(lexical, dialect)
    if parsed is not None:
        return parsed
    if not _INT_PATTERN.fullmatch(lexical):
        raise ValueError(f"{lexical!r} matches neither {dialect.time_layout} nor epoch seconds")
    try:
        return datetime.fromtimestamp(int(lexical), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as error:
        raise ValueError(f"epoch seconds {lexical!r} are out of range") from error


def coerce_value(value: Any, descriptor: ColumnDescriptor, dialect: Dialect) -> Any:
    """Coerce one non-null raw value for a column.

    Args:
        value: Raw value; strings are taken as the lexical form.
        descriptor: Column receiving the value.
        dialect: Dialect for temporal layouts and boolean literals.

    Returns:
        Native value to store.

    Raises:
        ValueError: If the value cannot be converted.
    """
    column_type = descriptor.column_type
    if descriptor.converter is not None:
        return _apply_converter(descriptor, to_lexical(value))
    if column_type is ColumnType.TIME:
        return coerce_time(value, dialect)
    lexical = to_lexical(value)
    if column_type is ColumnType.FLOAT64:
        return coerce_float64(lexical)
    if column_type is ColumnType.INT64:
        return coerce_int64(lexical, dialect if descriptor.accepts_bool_tokens else None)
    return lexical


def target_type_name(descriptor: ColumnDescriptor) -> str:
    """Name reported in coercion errors; custom columns report Generic."""
    if descriptor.column_type is ColumnType.CUSTOM:
        return ColumnType.GENERIC.value
    return descriptor.column_type.value


def _apply_converter(descriptor: ColumnDescriptor, lexical: str) -> Any:
    try:
        return descriptor.converter(lexical)  # type: ignore[misc]
    except Exception as error:
        raise ValueError(f"converter {descriptor.label or 'custom'} failed: {error}") from error


def _parse_layout(lexical: str, dialect: Dialect) -> datetime | None:
    if dialect is Dialect.MYSQL:
        return _parse_mysql(lexical)
    return _parse_rfc3339(lexical)


def _parse_rfc3339(lexical: str) -> datetime | None:
    match = _RFC3339_PATTERN.fullmatch(lexical)
    if match is None:
        return None
    year, month, day, hour, minute, second = (int(part) for part in match.groups()[:6])
    try:
        return datetime(
            year,
            month,
            day,
            hour,
            minute,
            second,
            _microseconds(match.group(7)),
            tzinfo=_offset(match.group(8)),
        )
    except ValueError:
        return None


def _parse_mysql(lexical: str) -> datetime | None:
    match = _MYSQL_PATTERN.fullmatch(lexical)
    if match is None:
        return None
    try:
        parsed = datetime.strptime(match.group(1), MYSQL_TIME_LAYOUT)
    except ValueError:
        return None
    return parsed.replace(microsecond=_microseconds(match.group(2)), tzinfo=timezone.utc)


def _microseconds(fraction: str | None) -> int:
    if not fraction:
        return 0
    return int(fraction[:6].ljust(6, "0"))


def _offset(designator: str) -> timezone:
    if designator in ("Z", "z"):
        return timezone.utc
    sign = -1 if designator[0] == "-" else 1
    hours, minutes = int(designator[1:3]), int(designator[4:6])
    return timezone(sign * timedelta(hours=hours, minutes=minutes))
