"""Cooperative cancellation checkpoint."""

from __future__ import annotations

from core.errors import IngestCancelledError
from core.types import CancellationSignal


def check_cancelled(cancel: CancellationSignal | None, stage: str) -> None:
    """Raise when the caller has signalled cancellation.

    Args:
        cancel: Optional signal polled at row or token boundaries.
        stage: Human-readable description of the work about to start.

    Raises:
        IngestCancelledError: If the signal is set.
    """
    if cancel is not None and cancel.is_set():
        raise IngestCancelledError(f"Ingestion cancelled before {stage}.")
