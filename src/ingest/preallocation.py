"""Preallocation planning for destination tables.

This module decides how many null rows a table starts with and removes
the unused tail once materialization has finished.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import InvalidRowCountError
from core.logging_config import get_logger
from store.columnar_table import ColumnarTable

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class PreallocationPlan:
    """Planned table capacity.

    Attributes:
        capacity: Rows allocated up front, or ``None`` to append incrementally.
    """

    capacity: int | None = None

    @property
    def preallocated(self) -> bool:
        return self.capacity is not None

    @property
    def initial_size(self) -> int:
        return self.capacity or 0


def plan_preallocation(
    known_row_count: int | None = None,
    scanned_row_count: int | None = None,
) -> PreallocationPlan:
    """Build a plan from a declared or pre-scanned row count.

    A declared count takes precedence over a scanned one.

    Args:
        known_row_count: Caller-declared row count.
        scanned_row_count: Count produced by a record pre-pass.

    Returns:
        Capacity plan.

    Raises:
        InvalidRowCountError: If the count is negative or not an integer.
    """
    row_count = known_row_count if known_row_count is not None else scanned_row_count
    if row_count is None:
        return PreallocationPlan()
    if isinstance(row_count, bool) or not isinstance(row_count, int) or row_count < 0:
        raise InvalidRowCountError(
            f"Invalid known row count {row_count!r}: expected a non-negative integer."
        )
    return PreallocationPlan(capacity=row_count)


def trim_preallocation(
    table: ColumnarTable,
    plan: PreallocationPlan,
    materialized_rows: int,
) -> int:
    """Remove preallocated rows that received no data.

    Args:
        table: Destination table, already locked by the caller.
        plan: Plan the table was created with.
        materialized_rows: Rows committed by the materializer.

    Returns:
        Number of rows removed.
    """
    if not plan.preallocated:
        return 0
    excess = table.row_count - materialized_rows
    removed = 0
    while excess > 0:
        table.remove_last_row()
        excess -= 1
        removed += 1
    if removed:
        _LOGGER.debug(
            "preallocation_trimmed",
            capacity=plan.capacity,
            materialized_rows=materialized_rows,
            removed_rows=removed,
        )
    return removed
