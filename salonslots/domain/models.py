"""
Domain models for the salon timeline: services, shift windows, appointments,
closures and generated slots.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple

from pendulum import DateTime

from .clock import SalonClock, parse_clock
from .exceptions import ValidationError
from .overlap import overlaps

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def new_id() -> str:
    """Generate an opaque record identifier."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return overlaps(self.start, self.end, other.start, other.end)

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class ShiftWindow:
    """One daily operating interval, e.g. the morning shift 09:00-14:00."""
    opens: str
    closes: str

    def __post_init__(self):
        if parse_clock(self.opens) >= parse_clock(self.closes):
            raise ValidationError(
                f"Shift window must open before it closes ({self.opens} - {self.closes})"
            )

    def bounds(self, day: date, clock: SalonClock) -> TimeRange:
        """Absolute bounds of this window on ``day``."""
        return TimeRange(start=clock.at(day, self.opens), end=clock.at(day, self.closes))

    def __str__(self) -> str:
        return f"{self.opens} - {self.closes}"


@dataclass(frozen=True)
class OperatingConfig:
    """
    Salon operating hours: a morning and an evening shift plus weekly days off.

    The morning window must close no later than the evening window opens.
    """
    morning_window: ShiftWindow
    evening_window: ShiftWindow
    days_off: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "days_off", normalize_days_off(self.days_off))
        if parse_clock(self.morning_window.closes) > parse_clock(self.evening_window.opens):
            raise ValidationError(
                f"Morning window ({self.morning_window}) must close before the evening "
                f"window ({self.evening_window}) opens"
            )

    def windows(self) -> List[ShiftWindow]:
        return [self.morning_window, self.evening_window]

    def is_day_off(self, day: date) -> bool:
        """Check if the salon is closed on this weekday."""
        return WEEKDAY_NAMES[day.weekday()] in self.days_off


def normalize_days_off(days_off) -> Tuple[str, ...]:
    """Lower-case, validate and deduplicate weekday names, preserving order."""
    seen: List[str] = []
    for name in days_off or ():
        key = str(name).strip().lower()
        if key not in WEEKDAY_NAMES:
            raise ValidationError(f"Unknown weekday in days off: {name}")
        if key not in seen:
            seen.append(key)
    return tuple(seen)


@dataclass(frozen=True)
class Service:
    """A bookable salon service with a fixed duration."""
    id: str
    name: str
    duration_minutes: int
    price: float
    is_active: bool = True

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError("Service name is required")
        if self.duration_minutes <= 0:
            raise ValidationError("Service duration must be greater than zero")
        if self.price < 0:
            raise ValidationError("Service price must not be negative")


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELED = "canceled"
    BLOCKED = "blocked"


# Only these statuses hold time on the shared timeline.
OCCUPYING_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.BLOCKED})


@dataclass(frozen=True)
class Appointment:
    """
    A booking (or an admin block) on the salon timeline.

    ``end_time`` is frozen at creation from the service duration at that
    moment and is never recomputed.
    """
    id: str
    customer_name: str
    phone_number: str
    calendar_date: date
    service_id: str
    start_time: DateTime
    end_time: DateTime
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    created_at: Optional[DateTime] = None

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)

    @property
    def is_occupying(self) -> bool:
        return self.status in OCCUPYING_STATUSES

    @property
    def is_blocked(self) -> bool:
        return self.status == AppointmentStatus.BLOCKED

    def with_status(self, status: AppointmentStatus) -> "Appointment":
        return replace(self, status=status)


DEFAULT_CLOSURE_REASON = "Shop Closed"


@dataclass(frozen=True)
class Closure:
    """
    An admin-declared closure covering ``start_date..end_date`` (inclusive).

    Partial closures (``is_full_day=False``) cover a single day and carry an
    "HH:mm" window.
    """
    id: str
    start_date: date
    end_date: date
    is_full_day: bool = True
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: str = DEFAULT_CLOSURE_REASON

    @property
    def is_multi_day(self) -> bool:
        return self.start_date != self.end_date

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def overlaps_dates(self, start_date: date, end_date: date) -> bool:
        return self.start_date <= end_date and self.end_date >= start_date

    def window_on(self, day: date, clock: SalonClock) -> Optional[TimeRange]:
        """Absolute closure window on ``day``; None for full-day closures."""
        if self.is_full_day or not self.covers(day):
            return None
        return TimeRange(start=clock.at(day, self.start_time), end=clock.at(day, self.end_time))

    def describe(self) -> str:
        span = self.start_date.isoformat()
        if self.is_multi_day:
            span = f"{span} .. {self.end_date.isoformat()}"
        if self.is_full_day:
            return f"{span} (full day)"
        return f"{span} {self.start_time}-{self.end_time}"


class ClosureState(str, Enum):
    OPEN = "open"
    FULLY_CLOSED = "fully_closed"
    PARTIALLY_CLOSED = "partially_closed"


@dataclass(frozen=True)
class ClosureDisposition:
    """Outcome of resolving closures for one calendar day."""
    state: ClosureState
    reason: Optional[str] = None
    windows: Tuple[TimeRange, ...] = ()

    @classmethod
    def open(cls) -> "ClosureDisposition":
        return cls(state=ClosureState.OPEN)

    @classmethod
    def fully_closed(cls, reason: str) -> "ClosureDisposition":
        return cls(state=ClosureState.FULLY_CLOSED, reason=reason)

    @classmethod
    def partially_closed(cls, windows, reason: str) -> "ClosureDisposition":
        return cls(state=ClosureState.PARTIALLY_CLOSED, reason=reason, windows=tuple(windows))

    @property
    def is_open(self) -> bool:
        return self.state == ClosureState.OPEN

    @property
    def is_fully_closed(self) -> bool:
        return self.state == ClosureState.FULLY_CLOSED

    @property
    def is_partially_closed(self) -> bool:
        return self.state == ClosureState.PARTIALLY_CLOSED

    @property
    def window(self) -> Optional[TimeRange]:
        return self.windows[0] if self.windows else None


@dataclass(frozen=True)
class Slot:
    """A candidate start time for a service and whether it can be booked."""
    start: DateTime
    end: DateTime
    available: bool

    def format_display(self) -> str:
        return f"{self.start.format('HH:mm')} - {self.end.format('HH:mm')}"


@dataclass
class SlotList:
    """Slots for one (date, service) pair in chronological order."""
    all_slots: List[Slot] = field(default_factory=list)
    available_slots: List[DateTime] = field(default_factory=list)
    closure_reason: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        return self.closure_reason is not None
