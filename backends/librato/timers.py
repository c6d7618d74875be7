from __future__ import annotations

from collections.abc import Sequence

from backends.librato.naming import sanitize_name
from core.contracts import TimerRecord


def reduce_timer(name: str, samples: Sequence[float]) -> TimerRecord | None:
    """Reduce a timer's samples to count, sum, sum of squares, min and max.

    Returns None when no samples were collected during the cycle.
    """
    if not samples:
        return None

    total: float = 0
    sum_of_squares: float = 0
    low = high = samples[0]
    for value in samples:
        if value < low:
            low = value
        if value > high:
            high = value
        total += value
        sum_of_squares += value * value

    return TimerRecord(
        name=sanitize_name(name),
        count=len(samples),
        sum=total,
        sum_of_squares=sum_of_squares,
        min=low,
        max=high,
    )
