"""
Service layer helpers that orchestrate the repository and domain logic.
"""

from .admin import AdminService, AppointmentCount
from .booking import BookingRequest, BookingService
from .locks import DayLockRegistry
from .repository import SchedulingRepository

__all__ = [
    "AdminService",
    "AppointmentCount",
    "BookingRequest",
    "BookingService",
    "DayLockRegistry",
    "SchedulingRepository",
]
