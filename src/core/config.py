"""Runtime configuration model for Framefill.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os

from core.constants import DEFAULT_DIALECT_NAME, DEFAULT_READ_CHUNK_SIZE, TRUTHY_ENV_VALUES
from core.dialects import Dialect, parse_dialect
from core.errors import FramefillConfigError, InvalidDialectError


@dataclass(frozen=True)
class FramefillConfig:
    """Validated runtime configuration.

    Attributes:
        dialect: Default dialect for query loads.
        read_chunk_size: Bytes read per call when decoding record streams.
        strict_fields: Default strict-unknown-field mode for record loads.
    """

    dialect: Dialect
    read_chunk_size: int
    strict_fields: bool

    @classmethod
    def from_env(cls) -> "FramefillConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            FramefillConfigError: If environment values are invalid.
        """
        dialect_value = os.getenv("FRAMEFILL_DIALECT", DEFAULT_DIALECT_NAME)
        chunk_value = os.getenv("FRAMEFILL_READ_CHUNK_SIZE", str(DEFAULT_READ_CHUNK_SIZE))
        strict_value = os.getenv("FRAMEFILL_STRICT_FIELDS", "")
        return cls(
            dialect=_parse_dialect_env(dialect_value),
            read_chunk_size=_parse_chunk_size(chunk_value),
            strict_fields=strict_value.strip().lower() in TRUTHY_ENV_VALUES,
        )


def _parse_dialect_env(raw_value: str) -> Dialect:
    """Parse the dialect environment value."""
    try:
        return parse_dialect(raw_value)
    except InvalidDialectError as error:
        raise FramefillConfigError(
            f"Invalid FRAMEFILL_DIALECT value: {error} "
            "Set FRAMEFILL_DIALECT to postgresql or mysql."
        ) from error


def _parse_chunk_size(raw_value: str) -> int:
    """Parse the read chunk size environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Parsed positive chunk size.

    Raises:
        FramefillConfigError: If value is not a positive integer.
    """
    try:
        chunk_size = int(raw_value)
    except ValueError as error:
        raise FramefillConfigError(
            "Invalid FRAMEFILL_READ_CHUNK_SIZE value: "
            f"expected integer, got '{raw_value}'. "
            "Set FRAMEFILL_READ_CHUNK_SIZE to a positive byte count."
        ) from error
    if chunk_size <= 0:
        raise FramefillConfigError(
            "Invalid FRAMEFILL_READ_CHUNK_SIZE value: "
            f"expected a positive integer, got {chunk_size}."
        )
    return chunk_size
