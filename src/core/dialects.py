"""Database dialect conventions.

This module names the supported relational dialects and the lexical
conventions (temporal layout, boolean literals) each one implies.
"""

from __future__ import annotations

from enum import Enum

from core.constants import (
    COMMON_FALSE_TOKENS,
    COMMON_TRUE_TOKENS,
    POSTGRES_FALSE_TOKENS,
    POSTGRES_TRUE_TOKENS,
)
from core.errors import InvalidDialectError


class Dialect(Enum):
    """Supported source dialects."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"

    @property
    def time_layout(self) -> str:
        """Human-readable name of the dialect's timestamp layout."""
        if self is Dialect.MYSQL:
            return "YYYY-MM-DD HH:MM:SS"
        return "RFC3339"

    @property
    def true_tokens(self) -> frozenset[str]:
        """Lexical forms read as boolean true."""
        if self is Dialect.POSTGRESQL:
            return frozenset(COMMON_TRUE_TOKENS + POSTGRES_TRUE_TOKENS)
        return frozenset(COMMON_TRUE_TOKENS)

    @property
    def false_tokens(self) -> frozenset[str]:
        """Lexical forms read as boolean false."""
        if self is Dialect.POSTGRESQL:
            return frozenset(COMMON_FALSE_TOKENS + POSTGRES_FALSE_TOKENS)
        return frozenset(COMMON_FALSE_TOKENS)


_DIALECT_ALIASES = {
    "postgresql": Dialect.POSTGRESQL,
    "postgres": Dialect.POSTGRESQL,
    "pg": Dialect.POSTGRESQL,
    "mysql": Dialect.MYSQL,
}


def parse_dialect(value: Dialect | str) -> Dialect:
    """Resolve a dialect selector.

    Args:
        value: A ``Dialect`` member or its case-insensitive name.

    Returns:
        The matching dialect.

    Raises:
        InvalidDialectError: If the selector names no supported dialect.
    """
    if isinstance(value, Dialect):
        return value
    if isinstance(value, str):
        dialect = _DIALECT_ALIASES.get(value.strip().lower())
        if dialect is not None:
            return dialect
    raise InvalidDialectError(
        f"Invalid database dialect {value!r}. "
        f"Use one of: {', '.join(sorted(_DIALECT_ALIASES))}."
    )
