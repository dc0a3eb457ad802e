"""
Persistence protocol consumed by the application services.

Any store (in-memory, JSON file, a database adapter) can back the services
as long as it provides these coroutines.
"""

from __future__ import annotations

from datetime import date
from typing import AsyncContextManager, List, Optional, Protocol

from ..domain.models import Appointment, AppointmentStatus, Closure, OperatingConfig, Service


class SchedulingRepository(Protocol):
    """Protocol describing the storage behaviour needed by the services."""

    def transaction(self) -> AsyncContextManager[None]:
        """
        Scope that makes a read-check-write sequence atomic with respect to
        other writers of the same store, and whose reads see current data.
        """

    async def find_service(self, service_id: str) -> Optional[Service]:
        """Return the service or None."""

    async def list_services(self) -> List[Service]:
        """Return all services."""

    async def create_service(self, service: Service) -> Service:
        """Persist a new service."""

    async def update_service(self, service: Service) -> Service:
        """Replace an existing service record."""

    async def delete_service(self, service_id: str) -> bool:
        """Remove the service; False if it did not exist."""

    async def find_operating_config(self) -> Optional[OperatingConfig]:
        """Return the operating config, if one was created."""

    async def save_operating_config(self, config: OperatingConfig) -> OperatingConfig:
        """Create or replace the operating config."""

    async def find_occupying_appointments(self, day: date) -> List[Appointment]:
        """Return scheduled and blocked appointments on ``day``."""

    async def find_appointments(self, day: date) -> List[Appointment]:
        """Return all appointments on ``day`` regardless of status."""

    async def find_appointments_between(self, start_day: date, end_day: date) -> List[Appointment]:
        """Return all appointments with ``start_day <= calendar_date < end_day``."""

    async def find_appointments_for_service(self, service_id: str) -> List[Appointment]:
        """Return every appointment that references ``service_id``."""

    async def find_appointment(self, appointment_id: str) -> Optional[Appointment]:
        """Return the appointment or None."""

    async def create_appointment(self, appointment: Appointment) -> Appointment:
        """Persist a new appointment."""

    async def update_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
    ) -> Optional[Appointment]:
        """Overwrite the status; None if the appointment does not exist."""

    async def delete_appointment(self, appointment_id: str) -> bool:
        """Remove the appointment; False if it did not exist."""

    async def find_closures_covering(self, day: date) -> List[Closure]:
        """Return closures whose date range includes ``day``."""

    async def find_closures_overlapping(self, start_date: date, end_date: date) -> List[Closure]:
        """Return closures whose date range intersects ``start_date..end_date``."""

    async def list_closures(self) -> List[Closure]:
        """Return all closures ordered by start date."""

    async def create_closure(self, closure: Closure) -> Closure:
        """Persist a new closure."""

    async def delete_closure(self, closure_id: str) -> bool:
        """Remove the closure; False if it did not exist."""
