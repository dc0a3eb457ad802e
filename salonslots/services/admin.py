"""
Administrative operations: service catalogue, operating hours, closures,
slot blocking and appointment counts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import List, Optional, Sequence, Union

from ..domain.clock import as_date
from ..domain.closures import build_closure, ensure_no_overlapping_closure
from ..domain.exceptions import AlreadyExistsError, ConflictError, NotFoundError, ValidationError
from ..domain.models import (
    Appointment,
    AppointmentStatus,
    Closure,
    OperatingConfig,
    Service,
    ShiftWindow,
    new_id,
)
from .booking import BookingService
from .repository import SchedulingRepository

logger = logging.getLogger(__name__)

BLOCKED_CUSTOMER_NAME = "BLOCKED"
BLOCKED_PHONE_NUMBER = "ADMIN"


@dataclass(frozen=True)
class AppointmentCount:
    """Appointment totals for a day or a month. ``total`` excludes canceled."""
    label: str
    total: int
    scheduled: int
    completed: int


def count_appointments(label: str, appointments: Sequence[Appointment]) -> AppointmentCount:
    return AppointmentCount(
        label=label,
        total=sum(1 for appt in appointments if appt.status != AppointmentStatus.CANCELED),
        scheduled=sum(1 for appt in appointments if appt.status == AppointmentStatus.SCHEDULED),
        completed=sum(1 for appt in appointments if appt.status == AppointmentStatus.COMPLETED),
    )


class AdminService:
    """Administrator-facing operations that sit around the booking engine."""

    def __init__(self, repository: SchedulingRepository, booking_service: BookingService) -> None:
        self._repository = repository
        self._booking = booking_service

    # Services

    async def create_service(self, name: str, duration_minutes: int, price: float) -> Service:
        if name is None or duration_minutes is None or price is None:
            raise ValidationError("All fields are required")

        service = Service(
            id=new_id(),
            name=name.strip(),
            duration_minutes=int(duration_minutes),
            price=float(price),
        )
        created = await self._repository.create_service(service)
        logger.info("Created service %s (%s, %d min)", created.id, created.name, created.duration_minutes)
        return created

    async def update_service(
        self,
        service_id: str,
        *,
        name: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        price: Optional[float] = None,
        is_active: Optional[bool] = None,
    ) -> Service:
        """
        Update a service. Existing appointments keep the end time they were
        created with.
        """
        changes = {}
        if name is not None:
            changes["name"] = name.strip()
        if duration_minutes is not None:
            changes["duration_minutes"] = int(duration_minutes)
        if price is not None:
            changes["price"] = float(price)
        if is_active is not None:
            changes["is_active"] = bool(is_active)

        async with self._repository.transaction():
            current = await self._repository.find_service(service_id)
            if current is None:
                raise NotFoundError("service", service_id)
            return await self._repository.update_service(replace(current, **changes))

    async def delete_service(self, service_id: str) -> None:
        """
        Remove a service from the catalogue.

        Raises:
            NotFoundError: If the service does not exist
            ConflictError: While scheduled or blocked appointments still use it;
                deactivate the service instead to stop new bookings
        """
        async with self._repository.transaction():
            if await self._repository.find_service(service_id) is None:
                raise NotFoundError("service", service_id)

            appointments = await self._repository.find_appointments_for_service(service_id)
            in_use = [appt for appt in appointments if appt.is_occupying]
            if in_use:
                raise ConflictError(
                    f"Service is used by {len(in_use)} active appointment(s); deactivate it instead",
                    conflicting_id=in_use[0].id,
                )

            await self._repository.delete_service(service_id)
        logger.info("Deleted service %s", service_id)

    async def list_services(self, active_only: bool = False) -> List[Service]:
        async with self._repository.transaction():
            services = await self._repository.list_services()
        if active_only:
            services = [service for service in services if service.is_active]
        return services

    # Operating hours

    async def get_operating_config(self) -> OperatingConfig:
        async with self._repository.transaction():
            config = await self._repository.find_operating_config()
        if config is None:
            raise NotFoundError("operating config")
        return config

    async def create_operating_config(
        self,
        morning_window: ShiftWindow,
        evening_window: ShiftWindow,
        days_off: Sequence[str] = (),
    ) -> OperatingConfig:
        """
        Create the salon's operating hours.

        Raises:
            AlreadyExistsError: If operating hours were already configured
        """
        if morning_window is None or evening_window is None:
            raise ValidationError("Morning slot and evening slot are required")

        config = OperatingConfig(
            morning_window=morning_window,
            evening_window=evening_window,
            days_off=tuple(days_off or ()),
        )

        async with self._repository.transaction():
            if await self._repository.find_operating_config() is not None:
                raise AlreadyExistsError("Operating config already exists")
            return await self._repository.save_operating_config(config)

    async def update_operating_config(
        self,
        *,
        morning_window: Optional[ShiftWindow] = None,
        evening_window: Optional[ShiftWindow] = None,
        days_off: Optional[Sequence[str]] = None,
    ) -> OperatingConfig:
        async with self._repository.transaction():
            current = await self.get_operating_config()
            updated = OperatingConfig(
                morning_window=morning_window or current.morning_window,
                evening_window=evening_window or current.evening_window,
                days_off=tuple(days_off) if days_off is not None else current.days_off,
            )
            return await self._repository.save_operating_config(updated)

    # Closures

    async def create_closure(
        self,
        start_date: Union[date, str],
        end_date: Union[date, str, None] = None,
        *,
        is_full_day: bool = False,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Closure:
        """
        Declare a closure. A single date without times closes the whole day;
        a date range is always a full-day closure.

        Raises:
            ValidationError: If the closure is malformed or overlaps another one
        """
        if start_date is None:
            raise ValidationError("Start and End dates are required")
        first_day = as_date(start_date)
        last_day = as_date(end_date) if end_date is not None else first_day

        if first_day == last_day and not is_full_day and not start_time and not end_time:
            is_full_day = True

        closure = build_closure(
            closure_id=new_id(),
            start_date=first_day,
            end_date=last_day,
            is_full_day=is_full_day,
            start_time=start_time,
            end_time=end_time,
            reason=reason,
        )

        async with self._repository.transaction():
            existing = await self._repository.find_closures_overlapping(first_day, last_day)
            ensure_no_overlapping_closure(closure, existing)
            created = await self._repository.create_closure(closure)
        logger.info("Created closure %s: %s", created.id, created.describe())

        affected = await self._affected_appointments(created)
        if affected:
            logger.warning(
                "Closure %s overlaps %d existing appointment(s); they were not canceled",
                created.id,
                len(affected),
            )
        return created

    async def list_closures(self) -> List[Closure]:
        async with self._repository.transaction():
            closures = await self._repository.list_closures()
        return sorted(closures, key=lambda closure: closure.start_date)

    async def delete_closure(self, closure_id: str) -> None:
        if not closure_id:
            raise ValidationError("Closure ID required")
        if not await self._repository.delete_closure(closure_id):
            raise NotFoundError("closure", closure_id)
        logger.info("Removed closure %s", closure_id)

    async def _affected_appointments(self, closure: Closure) -> List[Appointment]:
        appointments = await self._repository.find_appointments_between(
            closure.start_date,
            closure.end_date + timedelta(days=1),
        )
        affected = []
        for appt in appointments:
            if not appt.is_occupying:
                continue
            window = closure.window_on(appt.calendar_date, self._booking.clock)
            if window is None or window.overlaps(appt.time_range):
                affected.append(appt)
        return affected

    # Blocking

    async def block_slot(
        self,
        day: Union[date, str],
        start_time,
        service_id: Optional[str] = None,
    ) -> Appointment:
        """
        Reserve an interval with a synthetic ``blocked`` appointment.

        The interval length is the duration of ``service_id`` (the first
        active service in the catalogue when omitted).
        """
        if service_id is None:
            services = await self.list_services(active_only=True)
            if not services:
                raise ValidationError("Please create at least one service first")
            service_id = services[0].id

        return await self._booking.create_booking(
            customer_name=BLOCKED_CUSTOMER_NAME,
            phone_number=BLOCKED_PHONE_NUMBER,
            day=day,
            service_id=service_id,
            start_time=start_time,
            status_override=AppointmentStatus.BLOCKED,
        )

    async def unblock_slot(self, appointment_id: str) -> None:
        async with self._repository.transaction():
            appointment = await self._repository.find_appointment(appointment_id)
        if appointment is None or not appointment.is_blocked:
            raise NotFoundError("blocked slot", appointment_id)
        await self._booking.delete_appointment(appointment_id)

    async def list_blocked(self, day: Union[date, str]) -> List[Appointment]:
        appointments = await self._booking.list_appointments(day)
        return [appt for appt in appointments if appt.is_blocked]

    # Reporting

    async def daily_count(self, day: Union[date, str]) -> AppointmentCount:
        day = as_date(day)
        async with self._repository.transaction():
            appointments = await self._repository.find_appointments(day)
        return count_appointments(day.isoformat(), appointments)

    async def monthly_count(self, year: int, month: int) -> AppointmentCount:
        if not 1 <= month <= 12:
            raise ValidationError("Invalid year or month")
        first = date(year, month, 1)
        following = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)

        async with self._repository.transaction():
            appointments = await self._repository.find_appointments_between(first, following)
        return count_appointments(f"{year}-{month:02d}", appointments)
