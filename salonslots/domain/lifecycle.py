"""
Appointment status rules.

New appointments start as ``scheduled`` (or ``blocked`` when an administrator
reserves time). Afterwards an administrator may overwrite the status with
any valid value; only occupancy depends on it.
"""

from typing import Union

from .exceptions import ValidationError
from .models import OCCUPYING_STATUSES, AppointmentStatus

INITIAL_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.BLOCKED)


def parse_status(value: Union[str, AppointmentStatus, None]) -> AppointmentStatus:
    """Convert user input into an AppointmentStatus."""
    if isinstance(value, AppointmentStatus):
        return value
    if not value:
        raise ValidationError("Status is required")
    try:
        return AppointmentStatus(str(value).strip().lower())
    except ValueError as exc:
        valid = ", ".join(status.value for status in AppointmentStatus)
        raise ValidationError(f"Invalid status '{value}', expected one of: {valid}") from exc


def initial_status(override: Union[str, AppointmentStatus, None] = None) -> AppointmentStatus:
    """Status a new appointment is created with."""
    if override is None or override == "":
        return AppointmentStatus.SCHEDULED

    status = parse_status(override)
    if status not in INITIAL_STATUSES:
        raise ValidationError(f"Appointments cannot be created as '{status.value}'")
    return status


def frees_timeline(before: AppointmentStatus, after: AppointmentStatus) -> bool:
    """True if a status change releases the interval for other bookings."""
    return before in OCCUPYING_STATUSES and after not in OCCUPYING_STATUSES

