"""
Application service for slot listing and booking.

Slot listing is read-only and delegates to the domain ``SlotGenerator``.
Booking re-reads the day's occupying appointments and closures inside a
per-day lock right before writing, so a slot shown as free a moment ago is
checked again against the current timeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Union

import pendulum
from pendulum import DateTime

from ..domain.clock import SalonClock, as_date
from ..domain.closures import resolve_day
from ..domain.exceptions import ConflictError, NotFoundError, ValidationError
from ..domain.lifecycle import frees_timeline, initial_status, parse_status
from ..domain.models import (
    OCCUPYING_STATUSES,
    Appointment,
    AppointmentStatus,
    OperatingConfig,
    Service,
    SlotList,
    new_id,
)
from ..domain.overlap import overlaps
from ..domain.slot_generator import SlotGenerator
from .locks import DayLockRegistry
from .repository import SchedulingRepository

logger = logging.getLogger(__name__)

BLOCKED_MESSAGE = "This time slot is blocked by admin"
BOOKED_MESSAGE = "This time slot is already booked"


@dataclass(frozen=True)
class BookingRequest:
    """Everything needed to reserve one interval on the timeline."""
    customer_name: str
    phone_number: str
    calendar_date: date
    service_id: str
    start_time: Union[DateTime, datetime, str]
    status_override: Optional[Union[str, AppointmentStatus]] = None


class BookingService:
    """
    Orchestrates slot generation and conflict-checked booking.

    The service owns a ``DayLockRegistry`` that serializes bookings for the
    same day within this instance. Repositories shared between processes
    add their own lock through ``transaction``.
    """

    def __init__(
        self,
        repository: SchedulingRepository,
        clock: SalonClock,
        slot_generator: Optional[SlotGenerator] = None,
        locks: Optional[DayLockRegistry] = None,
    ) -> None:
        self._repository = repository
        self._clock = clock
        self._slot_generator = slot_generator or SlotGenerator(clock=clock)
        self._locks = locks or DayLockRegistry()

    @property
    def clock(self) -> SalonClock:
        return self._clock

    @property
    def locks(self) -> DayLockRegistry:
        return self._locks

    async def get_available_slots(
        self,
        day: Union[date, str],
        service_id: str,
    ) -> SlotList:
        """
        List every candidate slot for the service on ``day``.

        Raises:
            ValidationError: If the date or service id is missing/malformed,
                or the service is no longer offered
            NotFoundError: If the service or operating config does not exist
        """
        if not service_id:
            raise ValidationError("Missing date or serviceId")
        day = as_date(day)

        async with self._repository.transaction():
            service = await self._require_service(service_id, active_only=True)
            config = await self._require_config()

            closures = await self._repository.find_closures_covering(day)
            disposition = resolve_day(day, config, closures, self._clock)

            appointments = []
            if not disposition.is_fully_closed:
                appointments = await self._repository.find_occupying_appointments(day)

        return self._slot_generator.generate_slots(
            day=day,
            service=service,
            config=config,
            existing_appointments=appointments,
            disposition=disposition,
        )

    async def create_booking(
        self,
        *,
        customer_name: str,
        phone_number: str,
        day: Union[date, str],
        service_id: str,
        start_time: Union[DateTime, datetime, str],
        status_override: Optional[Union[str, AppointmentStatus]] = None,
    ) -> Appointment:
        """Build a ``BookingRequest`` and run it through :meth:`try_book`."""
        return await self.try_book(
            BookingRequest(
                customer_name=customer_name,
                phone_number=phone_number,
                calendar_date=as_date(day),
                service_id=service_id,
                start_time=start_time,
                status_override=status_override,
            )
        )

    async def try_book(self, request: BookingRequest) -> Appointment:
        """
        Reserve the requested interval or fail without writing anything.

        Returns:
            The persisted appointment

        Raises:
            ValidationError: If the request is incomplete or inconsistent
            NotFoundError: If the service or operating config does not exist
            ConflictError: If the interval overlaps a booking, block or closure
        """
        day, start = self._validate_request(request)
        status = initial_status(request.status_override)

        async with self._locks.hold(day), self._repository.transaction():
            # Admin blocks may still use a retired service to size the interval.
            service = await self._require_service(
                request.service_id,
                active_only=status != AppointmentStatus.BLOCKED,
            )
            config = await self._require_config()
            end = start.add(minutes=service.duration_minutes)

            try:
                await self._ensure_timeline_free(day, config, start, end)
            except ConflictError as exc:
                logger.info(
                    "Rejected %s booking on %s at %s: %s",
                    service.name,
                    day.isoformat(),
                    start.format("HH:mm"),
                    exc,
                )
                raise

            appointment = Appointment(
                id=new_id(),
                customer_name=request.customer_name.strip(),
                phone_number=request.phone_number.strip(),
                calendar_date=day,
                service_id=service.id,
                start_time=start,
                end_time=end,
                status=status,
                created_at=pendulum.now("UTC"),
            )
            created = await self._repository.create_appointment(appointment)

        logger.info(
            "Created %s appointment %s on %s %s-%s",
            created.status.value,
            created.id,
            day.isoformat(),
            start.format("HH:mm"),
            end.format("HH:mm"),
        )
        return created

    async def set_appointment_status(
        self,
        appointment_id: str,
        new_status: Union[str, AppointmentStatus],
    ) -> Appointment:
        """
        Overwrite an appointment's status.

        Moving a canceled/completed appointment back onto the timeline is
        conflict-checked like a new booking.
        """
        status = parse_status(new_status)

        async with self._repository.transaction():
            current = await self._repository.find_appointment(appointment_id)
        if current is None:
            raise NotFoundError("appointment", appointment_id)

        async with self._locks.hold(current.calendar_date), self._repository.transaction():
            current = await self._repository.find_appointment(appointment_id)
            if current is None:
                raise NotFoundError("appointment", appointment_id)

            if status in OCCUPYING_STATUSES and not current.is_occupying:
                config = await self._require_config()
                await self._ensure_timeline_free(
                    current.calendar_date,
                    config,
                    current.start_time,
                    current.end_time,
                    exclude_id=current.id,
                )
            updated = await self._repository.update_appointment_status(appointment_id, status)

        if updated is None:
            raise NotFoundError("appointment", appointment_id)

        if frees_timeline(current.status, updated.status):
            logger.info("Appointment %s released its slot (%s)", updated.id, updated.status.value)
        return updated

    async def delete_appointment(self, appointment_id: str) -> None:
        """Remove an appointment entirely (also used to unblock a slot)."""
        if not await self._repository.delete_appointment(appointment_id):
            raise NotFoundError("appointment", appointment_id)
        logger.info("Deleted appointment %s", appointment_id)

    async def list_appointments(self, day: Union[date, str]) -> List[Appointment]:
        """All appointments on ``day`` ordered by start time."""
        async with self._repository.transaction():
            appointments = await self._repository.find_appointments(as_date(day))
        return sorted(appointments, key=lambda appt: appt.start_time)

    async def _ensure_timeline_free(
        self,
        day: date,
        config: OperatingConfig,
        start: DateTime,
        end: DateTime,
        exclude_id: Optional[str] = None,
    ) -> None:
        """Fresh read of the day's timeline; raise on the first conflict found."""
        occupying = await self._repository.find_occupying_appointments(day)
        for existing in occupying:
            if existing.id == exclude_id or not existing.is_occupying:
                continue
            if overlaps(existing.start_time, existing.end_time, start, end):
                raise ConflictError(
                    BLOCKED_MESSAGE if existing.is_blocked else BOOKED_MESSAGE,
                    is_blocked=existing.is_blocked,
                    conflicting_id=existing.id,
                )

        closures = await self._repository.find_closures_covering(day)
        disposition = resolve_day(day, config, closures, self._clock)

        if disposition.is_fully_closed:
            raise ConflictError(
                f"The salon is closed on {day.isoformat()}: {disposition.reason}",
                is_blocked=True,
                reason=disposition.reason,
            )

        for window in disposition.windows:
            if overlaps(window.start, window.end, start, end):
                raise ConflictError(
                    f"This time slot falls within a closure: {disposition.reason}",
                    is_blocked=True,
                    reason=disposition.reason,
                )

    def _validate_request(self, request: BookingRequest) -> tuple:
        missing = [
            label
            for label, value in (
                ("customer name", request.customer_name),
                ("phone number", request.phone_number),
                ("date", request.calendar_date),
                ("service", request.service_id),
                ("start time", request.start_time),
            )
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise ValidationError(f"All fields are required (missing: {', '.join(missing)})")

        for label, value in (
            ("Customer name", request.customer_name),
            ("Phone number", request.phone_number),
            ("Service id", request.service_id),
        ):
            if not isinstance(value, str):
                raise ValidationError(f"{label} must be a string, got {type(value).__name__}")

        day = as_date(request.calendar_date)

        if isinstance(request.start_time, str):
            start = self._clock.parse_instant(request.start_time)
        elif isinstance(request.start_time, datetime):
            start = self._clock.localize(request.start_time)
        else:
            raise ValidationError(f"Invalid start time: {request.start_time!r}")

        if self._clock.local_date(start) != day:
            raise ValidationError(
                f"Start time {start.format('YYYY-MM-DD HH:mm')} does not fall on {day.isoformat()}"
            )

        return day, start

    async def _require_service(self, service_id: str, active_only: bool = False) -> Service:
        service = await self._repository.find_service(service_id)
        if service is None:
            raise NotFoundError("service", service_id)
        if active_only and not service.is_active:
            raise ValidationError(f"Service is no longer offered: {service.name}")
        return service

    async def _require_config(self) -> OperatingConfig:
        config = await self._repository.find_operating_config()
        if config is None:
            raise NotFoundError("operating config")
        return config
