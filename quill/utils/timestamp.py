"""Timestamp and duration utilities."""

import time
from datetime import datetime, timezone


def now() -> str:
    """Compact local timestamp for directory names (e.g. '20251114_123456')."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def now_exact() -> str:
    """UTC ISO 8601 timestamp with microseconds, used in event logs."""
    return datetime.now(timezone.utc).isoformat()


def utcnow() -> datetime:
    """Timezone-aware current UTC datetime."""
    return datetime.now(timezone.utc)


def elapsed_ms(start: float) -> int:
    """
    Milliseconds elapsed since a ``time.perf_counter()`` reading.

    Args:
        start: Value previously returned by time.perf_counter()

    Returns:
        Whole milliseconds, never negative
    """
    return max(0, int((time.perf_counter() - start) * 1000))
