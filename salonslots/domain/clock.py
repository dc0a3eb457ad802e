"""
Fixed-offset civil clock for the salon.

All "HH:mm" strings (shift windows, closure windows) are combined with a
calendar date through a single ``SalonClock``. Slot generation and booking
validation share the same instance, so both sides agree on which absolute
instant "09:00" means.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Union

import pendulum
from pendulum import DateTime

from .exceptions import ValidationError

# Indian Standard Time; the salon does not observe daylight saving.
DEFAULT_UTC_OFFSET = "+05:30"

_OFFSET_PATTERN = re.compile(r"^([+-])(\d{2}):(\d{2})$")
_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_clock(value: str) -> time:
    """Parse an "HH:mm" string into a time object."""
    match = _CLOCK_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError(f"Invalid time '{value}', expected HH:mm")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValidationError(f"Invalid time '{value}', expected HH:mm")

    return time(hour=hour, minute=minute)


def format_clock(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def parse_utc_offset(value: str) -> int:
    """
    Convert a "+HH:MM" / "-HH:MM" offset into seconds east of UTC.

    Raises:
        ValidationError: If the offset is malformed or out of range
    """
    match = _OFFSET_PATTERN.match(value or "")
    if not match:
        raise ValidationError(f"Invalid UTC offset '{value}', expected +HH:MM")

    sign, hours, minutes = match.group(1), int(match.group(2)), int(match.group(3))
    if hours > 14 or minutes > 59:
        raise ValidationError(f"UTC offset out of range: {value}")

    seconds = hours * 3600 + minutes * 60
    return -seconds if sign == "-" else seconds


def as_date(value: Union[date, datetime, str]) -> date:
    """
    Normalise a calendar day to a plain ``datetime.date``.

    Strings must be ISO formatted (YYYY-MM-DD).
    """
    if isinstance(value, datetime):
        return date(value.year, value.month, value.day)
    if isinstance(value, date):
        return date(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            parsed = pendulum.from_format(value.strip(), "YYYY-MM-DD")
        except ValueError as exc:
            raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD") from exc
        return date(parsed.year, parsed.month, parsed.day)
    raise ValidationError(f"Invalid date value: {value!r}")


class SalonClock:
    """Combines calendar days with local "HH:mm" times at a fixed UTC offset."""

    def __init__(self, utc_offset: str = DEFAULT_UTC_OFFSET):
        self.utc_offset = utc_offset
        self.timezone = pendulum.fixed_timezone(parse_utc_offset(utc_offset))

    def at(self, day: date, clock: Union[str, time]) -> DateTime:
        """Return the absolute instant of ``clock`` on ``day`` in salon time."""
        local = clock if isinstance(clock, time) else parse_clock(clock)
        return pendulum.datetime(
            day.year,
            day.month,
            day.day,
            local.hour,
            local.minute,
            tz=self.timezone,
        )

    def localize(self, instant: datetime) -> DateTime:
        """
        Express an instant in salon time.

        Naive datetimes are taken to already be salon-local.
        """
        if instant.tzinfo is None:
            return pendulum.instance(instant, tz=self.timezone)
        return pendulum.instance(instant).in_timezone(self.timezone)

    def parse_instant(self, value: str) -> DateTime:
        """Parse an ISO-8601 instant; strings without an offset are salon-local."""
        try:
            parsed = pendulum.parse(value, tz=self.timezone)
        except ValueError as exc:
            raise ValidationError(f"Invalid start time '{value}'") from exc

        if not isinstance(parsed, DateTime):
            raise ValidationError(f"Start time '{value}' must include a date and time")

        return parsed.in_timezone(self.timezone)

    def local_date(self, instant: datetime) -> date:
        return as_date(self.localize(instant))

    def today(self) -> date:
        return as_date(pendulum.now(self.timezone))

    def __repr__(self) -> str:
        return f"SalonClock(utc_offset={self.utc_offset!r})"
