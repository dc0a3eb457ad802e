"""
Interval overlap predicate.

The one definition of "conflict" used by slot generation, closure windows
and the booking guard. Intervals are half-open: ``[start, end)``.
"""

from datetime import datetime


def overlaps(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """
    Check whether ``[a_start, a_end)`` and ``[b_start, b_end)`` intersect.

    Back-to-back intervals (one ends exactly when the other starts) do not
    overlap.
    """
    return b_start < a_end and b_end > a_start
