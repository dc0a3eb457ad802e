"""
Closure resolution and validation.

A day is fully closed when any covering closure is full-day. A day is
partially closed when a single-day closure with an "HH:mm" window covers it;
that window is then treated exactly like an occupying appointment.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence

from .clock import SalonClock, format_clock, parse_clock
from .exceptions import ValidationError
from .models import DEFAULT_CLOSURE_REASON, Closure, ClosureDisposition, OperatingConfig

logger = logging.getLogger(__name__)

# Partial closure boundaries must sit on the slot grid.
CLOSURE_TIME_STEP_MINUTES = 5

DAY_OFF_REASON = "Weekly day off"


def resolve_closure(
    day: date,
    closures: Iterable[Closure],
    clock: SalonClock,
) -> ClosureDisposition:
    """
    Determine the closure disposition of ``day``.

    Args:
        day: Calendar day being resolved
        closures: Closure records; records not covering ``day`` are ignored
        clock: Salon clock used to turn "HH:mm" windows into instants

    Returns:
        ClosureDisposition (open, fully closed or partially closed)
    """
    covering = [closure for closure in closures if closure.covers(day)]

    if not covering:
        return ClosureDisposition.open()

    for closure in covering:
        if closure.is_full_day:
            return ClosureDisposition.fully_closed(closure.reason or DEFAULT_CLOSURE_REASON)

    if len(covering) > 1:
        # Creation rejects overlapping closures; older data may still hold some.
        logger.warning(
            "%d partial closures cover %s; treating every window as closed",
            len(covering),
            day.isoformat(),
        )

    ordered = sorted(covering, key=lambda c: parse_clock(c.start_time))
    windows = [closure.window_on(day, clock) for closure in ordered]
    return ClosureDisposition.partially_closed(
        windows,
        reason=ordered[0].reason or DEFAULT_CLOSURE_REASON,
    )


def resolve_day(
    day: date,
    config: OperatingConfig,
    closures: Iterable[Closure],
    clock: SalonClock,
) -> ClosureDisposition:
    """Like :func:`resolve_closure`, but weekly days off close the whole day."""
    if config.is_day_off(day):
        return ClosureDisposition.fully_closed(DAY_OFF_REASON)
    return resolve_closure(day, closures, clock)


def _validate_window_time(value: Optional[str], label: str) -> str:
    if not value:
        raise ValidationError(f"{label} is required for a partial-day closure")

    parsed = parse_clock(value)
    if parsed.minute % CLOSURE_TIME_STEP_MINUTES != 0:
        raise ValidationError(
            f"{label} must align to a {CLOSURE_TIME_STEP_MINUTES}-minute boundary, got {value}"
        )
    return format_clock(parsed)


def build_closure(
    *,
    closure_id: str,
    start_date: date,
    end_date: date,
    is_full_day: bool = False,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    reason: Optional[str] = None,
) -> Closure:
    """
    Validate and normalise a closure request.

    Multi-day ranges are always full-day; any times supplied with them are
    dropped.

    Raises:
        ValidationError: If dates or times are missing, misaligned or reversed
    """
    if start_date is None or end_date is None:
        raise ValidationError("Start and end dates are required")

    if end_date < start_date:
        raise ValidationError("End date cannot be before start date")

    full_day = bool(is_full_day) or start_date != end_date

    if full_day:
        window_start = window_end = None
    else:
        window_start = _validate_window_time(start_time, "Start time")
        window_end = _validate_window_time(end_time, "End time")
        if parse_clock(window_start) >= parse_clock(window_end):
            raise ValidationError("Closure start time must be before its end time")

    return Closure(
        id=closure_id,
        start_date=start_date,
        end_date=end_date,
        is_full_day=full_day,
        start_time=window_start,
        end_time=window_end,
        reason=(reason or "").strip() or DEFAULT_CLOSURE_REASON,
    )


def ensure_no_overlapping_closure(closure: Closure, existing: Sequence[Closure]) -> None:
    """
    Reject a closure whose dates touch a day already covered by another one.

    Keeping at most one closure per day means resolution never has to pick
    between competing records.
    """
    clashes: List[Closure] = [
        other
        for other in existing
        if other.id != closure.id and other.overlaps_dates(closure.start_date, closure.end_date)
    ]
    if clashes:
        described = ", ".join(other.describe() for other in clashes)
        raise ValidationError(f"Closure overlaps existing closure(s): {described}")
