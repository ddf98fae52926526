"""Core constants used across Framefill modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

DEFAULT_DIALECT_NAME = "postgresql"
DEFAULT_READ_CHUNK_SIZE = 64 * 1024
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
MYSQL_TIME_LAYOUT = "%Y-%m-%d %H:%M:%S"
COMMON_TRUE_TOKENS = ("true", "TRUE", "True", "1")
COMMON_FALSE_TOKENS = ("false", "FALSE", "False", "0")
POSTGRES_TRUE_TOKENS = ("t",)
POSTGRES_FALSE_TOKENS = ("f",)
RECORD_TRUE_LEXEME = "1"
RECORD_FALSE_LEXEME = "0"
FLATTEN_KEY_SEPARATOR = "."
TRUTHY_ENV_VALUES = ("1", "true", "yes", "on")
DICTATE_TYPE_NAMES = ("string", "float", "int", "bool", "time")
