"""
In-memory repository implementation.
"""

from __future__ import annotations

from contextlib import asynccontextmanager, contextmanager
from datetime import date
from typing import AsyncIterator, Dict, Iterator, List, Optional

from ..domain.models import Appointment, AppointmentStatus, Closure, OperatingConfig, Service


class InMemoryRepository:
    """
    Keeps every record in dictionaries.

    Records are immutable dataclasses, so callers never observe later
    mutations of what they were handed. Every write runs inside
    ``_writing``; subclasses override it to refresh before and persist after
    the change.
    """

    def __init__(self) -> None:
        self.services: Dict[str, Service] = {}
        self.appointments: Dict[str, Appointment] = {}
        self.closures: Dict[str, Closure] = {}
        self.operating_config: Optional[OperatingConfig] = None

    @contextmanager
    def _writing(self) -> Iterator[None]:
        yield

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Scope in which reads and writes see one consistent state."""
        yield

    # Services

    async def find_service(self, service_id: str) -> Optional[Service]:
        return self.services.get(service_id)

    async def list_services(self) -> List[Service]:
        return list(self.services.values())

    async def create_service(self, service: Service) -> Service:
        with self._writing():
            self.services[service.id] = service
        return service

    async def update_service(self, service: Service) -> Service:
        with self._writing():
            self.services[service.id] = service
        return service

    async def delete_service(self, service_id: str) -> bool:
        with self._writing():
            return self.services.pop(service_id, None) is not None

    # Operating config

    async def find_operating_config(self) -> Optional[OperatingConfig]:
        return self.operating_config

    async def save_operating_config(self, config: OperatingConfig) -> OperatingConfig:
        with self._writing():
            self.operating_config = config
        return config

    # Appointments

    async def find_occupying_appointments(self, day: date) -> List[Appointment]:
        return [
            appt
            for appt in self.appointments.values()
            if appt.calendar_date == day and appt.is_occupying
        ]

    async def find_appointments(self, day: date) -> List[Appointment]:
        return [appt for appt in self.appointments.values() if appt.calendar_date == day]

    async def find_appointments_between(self, start_day: date, end_day: date) -> List[Appointment]:
        return [
            appt
            for appt in self.appointments.values()
            if start_day <= appt.calendar_date < end_day
        ]

    async def find_appointments_for_service(self, service_id: str) -> List[Appointment]:
        return [appt for appt in self.appointments.values() if appt.service_id == service_id]

    async def find_appointment(self, appointment_id: str) -> Optional[Appointment]:
        return self.appointments.get(appointment_id)

    async def create_appointment(self, appointment: Appointment) -> Appointment:
        with self._writing():
            self.appointments[appointment.id] = appointment
        return appointment

    async def update_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
    ) -> Optional[Appointment]:
        with self._writing():
            current = self.appointments.get(appointment_id)
            if current is None:
                return None
            updated = current.with_status(status)
            self.appointments[appointment_id] = updated
        return updated

    async def delete_appointment(self, appointment_id: str) -> bool:
        with self._writing():
            return self.appointments.pop(appointment_id, None) is not None

    # Closures

    async def find_closures_covering(self, day: date) -> List[Closure]:
        return [closure for closure in self.closures.values() if closure.covers(day)]

    async def find_closures_overlapping(self, start_date: date, end_date: date) -> List[Closure]:
        return [
            closure
            for closure in self.closures.values()
            if closure.overlaps_dates(start_date, end_date)
        ]

    async def list_closures(self) -> List[Closure]:
        return sorted(self.closures.values(), key=lambda closure: closure.start_date)

    async def create_closure(self, closure: Closure) -> Closure:
        with self._writing():
            self.closures[closure.id] = closure
        return closure

    async def delete_closure(self, closure_id: str) -> bool:
        with self._writing():
            return self.closures.pop(closure_id, None) is not None
