"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .clock import SalonClock
from .closures import build_closure, resolve_closure, resolve_day
from .models import (
    Appointment,
    AppointmentStatus,
    Closure,
    ClosureDisposition,
    OperatingConfig,
    Service,
    ShiftWindow,
    Slot,
    SlotList,
    TimeRange,
)
from .overlap import overlaps
from .slot_generator import SlotGenerator

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "Closure",
    "ClosureDisposition",
    "OperatingConfig",
    "SalonClock",
    "Service",
    "ShiftWindow",
    "Slot",
    "SlotGenerator",
    "SlotList",
    "TimeRange",
    "build_closure",
    "overlaps",
    "resolve_closure",
    "resolve_day",
]
