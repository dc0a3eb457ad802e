"""
Core business logic for generating bookable slots.

Pure domain logic without any external dependencies (no database, no I/O):
everything the generator needs is passed in, so identical inputs always
yield identical slot lists.
"""

from datetime import date
from typing import Iterable, List

from .clock import SalonClock
from .models import (
    Appointment,
    ClosureDisposition,
    OperatingConfig,
    Service,
    Slot,
    SlotList,
    TimeRange,
)
from .overlap import overlaps

SLOT_INTERVAL_MINUTES = 5


class SlotGenerator:
    """
    Enumerates candidate start times for a service on one day.

    Algorithm:
    1. A fully closed day yields no slots at all
    2. For each shift window, step from opening time in fixed increments
    3. Stop a window as soon as the service would run past closing
    4. Mark each candidate available unless it overlaps an occupying
       appointment or a partial-closure window
    5. Morning slots come before evening slots

    Slots slide rather than tile: a 25-minute service can start at :00, :05,
    :10 and so on.
    """

    def __init__(self, clock: SalonClock, interval_minutes: int = SLOT_INTERVAL_MINUTES):
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be greater than zero")
        self.clock = clock
        self.interval_minutes = interval_minutes

    def generate_slots(
        self,
        day: date,
        service: Service,
        config: OperatingConfig,
        existing_appointments: Iterable[Appointment],
        disposition: ClosureDisposition,
    ) -> SlotList:
        """
        Generate all candidate slots for ``service`` on ``day``.

        Args:
            day: Calendar day to generate slots for
            service: Service being booked (its duration sizes each slot)
            config: Operating hours
            existing_appointments: Appointments on ``day``; non-occupying ones
                are ignored
            disposition: Closure disposition for ``day``

        Returns:
            SlotList with every candidate and the available start times
        """
        if disposition.is_fully_closed:
            return SlotList(closure_reason=disposition.reason)

        busy = [appt.time_range for appt in existing_appointments if appt.is_occupying]
        busy.extend(disposition.windows)

        all_slots: List[Slot] = []
        for window in config.windows():
            all_slots.extend(
                self._slots_for_window(
                    bounds=window.bounds(day, self.clock),
                    duration_minutes=service.duration_minutes,
                    busy=busy,
                )
            )

        return SlotList(
            all_slots=all_slots,
            available_slots=[slot.start for slot in all_slots if slot.available],
        )

    def _slots_for_window(
        self,
        bounds: TimeRange,
        duration_minutes: int,
        busy: List[TimeRange],
    ) -> List[Slot]:
        """
        Step through one shift window.

        Example (25 min service, window 09:00 - 14:00):
        09:00, 09:05, ..., 13:35 (ends 14:00). 13:40 would end at 14:05 and is
        not emitted.
        """
        slots: List[Slot] = []
        current = bounds.start

        while True:
            slot_end = current.add(minutes=duration_minutes)
            if slot_end > bounds.end:
                break

            available = not any(
                overlaps(taken.start, taken.end, current, slot_end) for taken in busy
            )
            slots.append(Slot(start=current, end=slot_end, available=available))

            current = current.add(minutes=self.interval_minutes)

        return slots
