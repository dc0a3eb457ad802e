"""
Tests for the BookingService orchestration layer.
"""

import asyncio
from datetime import date

import pytest

from salonslots.adapters.memory_store import InMemoryRepository
from salonslots.domain.clock import SalonClock
from salonslots.domain.exceptions import ConflictError, NotFoundError, ValidationError
from salonslots.domain.models import (
    AppointmentStatus,
    Closure,
    OperatingConfig,
    Service,
    ShiftWindow,
)
from salonslots.services.booking import BookingService
from salonslots.services.locks import DayLockRegistry

CLOCK = SalonClock("+05:30")
DAY = date(2025, 3, 14)
HAIRCUT = Service(id="haircut", name="Haircut", duration_minutes=25, price=300)


class SlowRepository(InMemoryRepository):
    """Yields to the event loop between reading and writing, like a real database."""

    async def find_occupying_appointments(self, day):
        result = await super().find_occupying_appointments(day)
        await asyncio.sleep(0.01)
        return result


def _build_service(repository=None, with_config: bool = True) -> BookingService:
    repository = repository or InMemoryRepository()
    repository.services[HAIRCUT.id] = HAIRCUT
    if with_config:
        repository.operating_config = OperatingConfig(
            morning_window=ShiftWindow(opens="09:00", closes="14:00"),
            evening_window=ShiftWindow(opens="16:00", closes="22:00"),
        )
    return BookingService(repository=repository, clock=CLOCK)


def _book(service: BookingService, start: str, **overrides):
    fields = {
        "customer_name": "Ravi",
        "phone_number": "9999999999",
        "day": DAY,
        "service_id": HAIRCUT.id,
        "start_time": CLOCK.at(DAY, start),
    }
    fields.update(overrides)
    return service.create_booking(**fields)


class TestGetAvailableSlots:
    """Tests for slot listing."""

    def test_unknown_service(self):
        service = _build_service()

        with pytest.raises(NotFoundError, match="Service not found"):
            asyncio.run(service.get_available_slots(DAY, "missing"))

    def test_missing_config(self):
        service = _build_service(with_config=False)

        with pytest.raises(NotFoundError, match="Operating config not found"):
            asyncio.run(service.get_available_slots(DAY, HAIRCUT.id))

    def test_accepts_iso_date_string(self):
        service = _build_service()

        result = asyncio.run(service.get_available_slots("2025-03-14", HAIRCUT.id))

        assert result.available_slots[0] == CLOCK.at(DAY, "09:00")

    def test_full_day_closure_reason_surfaced(self):
        repository = InMemoryRepository()
        repository.closures["c1"] = Closure(id="c1", start_date=DAY, end_date=DAY, reason="Diwali")
        service = _build_service(repository)

        result = asyncio.run(service.get_available_slots(DAY, HAIRCUT.id))

        assert result.all_slots == []
        assert result.closure_reason == "Diwali"

    def test_inactive_service_not_offered(self):
        repository = InMemoryRepository()
        service = _build_service(repository)
        repository.services[HAIRCUT.id] = Service(
            id=HAIRCUT.id, name="Haircut", duration_minutes=25, price=300, is_active=False
        )

        with pytest.raises(ValidationError, match="no longer offered"):
            asyncio.run(service.get_available_slots(DAY, HAIRCUT.id))

    def test_booking_then_requery_shows_slot_taken(self):
        """A freshly booked slot disappears from the available list."""
        service = _build_service()

        async def scenario():
            before = await service.get_available_slots(DAY, HAIRCUT.id)
            await _book(service, "10:00")
            after = await service.get_available_slots(DAY, HAIRCUT.id)
            return before, after

        before, after = asyncio.run(scenario())

        assert CLOCK.at(DAY, "10:00") in before.available_slots
        assert CLOCK.at(DAY, "10:00") not in after.available_slots
        assert CLOCK.at(DAY, "10:25") in after.available_slots


class TestCreateBooking:
    """Tests for the booking conflict guard."""

    def test_successful_booking(self):
        service = _build_service()

        appointment = asyncio.run(_book(service, "10:00"))

        assert appointment.status == AppointmentStatus.SCHEDULED
        assert appointment.start_time == CLOCK.at(DAY, "10:00")
        assert appointment.end_time == CLOCK.at(DAY, "10:25")
        assert appointment.calendar_date == DAY
        assert appointment.created_at is not None

    def test_double_booking_conflicts(self):
        """The same interval booked twice: the second is rejected, nothing written."""
        repository = InMemoryRepository()
        service = _build_service(repository)

        async def scenario():
            await _book(service, "10:00")
            await _book(service, "10:00", customer_name="Arjun")

        with pytest.raises(ConflictError) as exc_info:
            asyncio.run(scenario())

        assert exc_info.value.is_blocked is False
        assert str(exc_info.value) == "This time slot is already booked"
        assert len(repository.appointments) == 1

    def test_blocked_slot_conflict_discriminator(self):
        service = _build_service()

        async def scenario():
            await _book(service, "11:00", status_override="blocked")
            await _book(service, "11:10")

        with pytest.raises(ConflictError) as exc_info:
            asyncio.run(scenario())

        assert exc_info.value.is_blocked is True
        assert str(exc_info.value) == "This time slot is blocked by admin"

    def test_back_to_back_bookings_allowed(self):
        service = _build_service()

        async def scenario():
            first = await _book(service, "10:00")
            second = await _book(service, "10:25", customer_name="Arjun")
            return first, second

        first, second = asyncio.run(scenario())

        assert first.end_time == second.start_time

    def test_canceled_appointment_frees_interval(self):
        service = _build_service()

        async def scenario():
            first = await _book(service, "10:00")
            await service.set_appointment_status(first.id, "canceled")
            return await _book(service, "10:00", customer_name="Arjun")

        appointment = asyncio.run(scenario())

        assert appointment.customer_name == "Arjun"

    def test_partial_closure_rechecked_at_commit(self):
        """A closure declared after slots were listed still rejects the booking."""
        repository = InMemoryRepository()
        service = _build_service(repository)

        async def scenario():
            slots = await service.get_available_slots(DAY, HAIRCUT.id)
            assert CLOCK.at(DAY, "10:00") in slots.available_slots
            repository.closures["c1"] = Closure(
                id="c1",
                start_date=DAY,
                end_date=DAY,
                is_full_day=False,
                start_time="10:15",
                end_time="11:00",
                reason="Staff meeting",
            )
            await _book(service, "10:00")

        with pytest.raises(ConflictError) as exc_info:
            asyncio.run(scenario())

        assert exc_info.value.is_blocked is True
        assert exc_info.value.reason == "Staff meeting"
        assert repository.appointments == {}

    def test_full_day_closure_rejects_booking(self):
        repository = InMemoryRepository()
        repository.closures["c1"] = Closure(id="c1", start_date=DAY, end_date=DAY, reason="Diwali")
        service = _build_service(repository)

        with pytest.raises(ConflictError, match="closed"):
            asyncio.run(_book(service, "10:00"))

    def test_unknown_service(self):
        service = _build_service()

        with pytest.raises(NotFoundError, match="Service not found"):
            asyncio.run(_book(service, "10:00", service_id="missing"))

    def test_missing_config(self):
        repository = InMemoryRepository()
        service = _build_service(repository, with_config=False)

        with pytest.raises(NotFoundError, match="Operating config"):
            asyncio.run(_book(service, "10:00"))
        assert repository.appointments == {}

    def test_missing_fields(self):
        service = _build_service()

        with pytest.raises(ValidationError, match="customer name"):
            asyncio.run(_book(service, "10:00", customer_name="  "))

    def test_non_string_fields_rejected(self):
        service = _build_service()

        with pytest.raises(ValidationError, match="Customer name must be a string, got int"):
            asyncio.run(_book(service, "10:00", customer_name=123))
        with pytest.raises(ValidationError, match="Phone number must be a string"):
            asyncio.run(_book(service, "10:00", phone_number=9999999999))

    def test_inactive_service_rejected(self):
        repository = InMemoryRepository()
        service = _build_service(repository)
        repository.services[HAIRCUT.id] = Service(
            id=HAIRCUT.id, name="Haircut", duration_minutes=25, price=300, is_active=False
        )

        with pytest.raises(ValidationError, match="no longer offered"):
            asyncio.run(_book(service, "10:00"))
        assert repository.appointments == {}

    def test_blocking_with_inactive_service(self):
        repository = InMemoryRepository()
        service = _build_service(repository)
        repository.services[HAIRCUT.id] = Service(
            id=HAIRCUT.id, name="Haircut", duration_minutes=25, price=300, is_active=False
        )

        blocked = asyncio.run(_book(service, "10:00", status_override="blocked"))

        assert blocked.status == AppointmentStatus.BLOCKED

    def test_start_must_fall_on_requested_day(self):
        service = _build_service()

        with pytest.raises(ValidationError, match="does not fall on"):
            asyncio.run(_book(service, "10:00", start_time=CLOCK.at(date(2025, 3, 15), "10:00")))

    def test_start_time_string_is_salon_local(self):
        service = _build_service()

        appointment = asyncio.run(_book(service, "10:00", start_time="2025-03-14T10:00:00"))

        assert appointment.start_time == CLOCK.at(DAY, "10:00")

    def test_cannot_create_completed_appointment(self):
        service = _build_service()

        with pytest.raises(ValidationError, match="cannot be created"):
            asyncio.run(_book(service, "10:00", status_override="completed"))

    def test_end_time_frozen_at_creation(self):
        """Changing the service duration later leaves existing appointments alone."""
        repository = InMemoryRepository()
        service = _build_service(repository)

        appointment = asyncio.run(_book(service, "10:00"))
        repository.services[HAIRCUT.id] = Service(id=HAIRCUT.id, name="Haircut", duration_minutes=60, price=300)

        stored = asyncio.run(repository.find_appointment(appointment.id))
        assert stored.end_time == CLOCK.at(DAY, "10:25")

    def test_concurrent_bookings_for_same_interval(self):
        """Only one of two simultaneous bookings for the same slot succeeds."""
        repository = SlowRepository()
        service = _build_service(repository)

        async def scenario():
            return await asyncio.gather(
                _book(service, "10:00", customer_name="Ravi"),
                _book(service, "10:10", customer_name="Arjun"),
                return_exceptions=True,
            )

        results = asyncio.run(scenario())

        conflicts = [r for r in results if isinstance(r, ConflictError)]
        booked = [r for r in results if not isinstance(r, Exception)]
        assert len(booked) == 1
        assert len(conflicts) == 1
        assert len(repository.appointments) == 1

    def test_concurrent_bookings_on_different_days(self):
        """Bookings on different days never contend."""
        repository = SlowRepository()
        service = _build_service(repository)
        other_day = date(2025, 3, 15)

        async def scenario():
            return await asyncio.gather(
                _book(service, "10:00"),
                _book(service, "10:00", day=other_day, start_time=CLOCK.at(other_day, "10:00")),
            )

        results = asyncio.run(scenario())

        assert len(results) == 2
        assert len(repository.appointments) == 2


class TestAppointmentLifecycle:
    """Tests for status changes and deletion."""

    def test_set_status(self):
        service = _build_service()

        async def scenario():
            appointment = await _book(service, "10:00")
            return await service.set_appointment_status(appointment.id, "completed")

        updated = asyncio.run(scenario())

        assert updated.status == AppointmentStatus.COMPLETED

    def test_invalid_status(self):
        service = _build_service()

        async def scenario():
            appointment = await _book(service, "10:00")
            await service.set_appointment_status(appointment.id, "archived")

        with pytest.raises(ValidationError, match="Invalid status"):
            asyncio.run(scenario())

    def test_set_status_unknown_appointment(self):
        service = _build_service()

        with pytest.raises(NotFoundError, match="Appointment not found"):
            asyncio.run(service.set_appointment_status("missing", "completed"))

    def test_reactivating_into_taken_interval_conflicts(self):
        """A canceled booking cannot come back over someone else's slot."""
        service = _build_service()

        async def scenario():
            first = await _book(service, "10:00")
            await service.set_appointment_status(first.id, "canceled")
            await _book(service, "10:00", customer_name="Arjun")
            await service.set_appointment_status(first.id, "scheduled")

        with pytest.raises(ConflictError):
            asyncio.run(scenario())

    def test_reactivating_free_interval(self):
        service = _build_service()

        async def scenario():
            first = await _book(service, "10:00")
            await service.set_appointment_status(first.id, "canceled")
            return await service.set_appointment_status(first.id, "scheduled")

        assert asyncio.run(scenario()).status == AppointmentStatus.SCHEDULED

    def test_delete_frees_slot(self):
        service = _build_service()

        async def scenario():
            blocked = await _book(service, "10:00", status_override="blocked")
            await service.delete_appointment(blocked.id)
            return await service.get_available_slots(DAY, HAIRCUT.id)

        result = asyncio.run(scenario())

        assert CLOCK.at(DAY, "10:00") in result.available_slots

    def test_delete_unknown_appointment(self):
        service = _build_service()

        with pytest.raises(NotFoundError):
            asyncio.run(service.delete_appointment("missing"))

    def test_list_appointments_sorted(self):
        service = _build_service()

        async def scenario():
            await _book(service, "16:00")
            await _book(service, "09:00")
            return await service.list_appointments(DAY)

        appointments = asyncio.run(scenario())

        assert [a.start_time.format("HH:mm") for a in appointments] == ["09:00", "16:00"]


class TestDayLockRegistry:
    """Tests for the per-day lock registry."""

    def test_one_lock_per_day(self):
        locks = DayLockRegistry()

        assert locks.lock_for(DAY) is locks.lock_for("2025-03-14")
        assert locks.lock_for(DAY) is not locks.lock_for(date(2025, 3, 15))
        assert len(locks) == 2

    def test_hold_marks_day_locked(self):
        locks = DayLockRegistry()

        async def scenario():
            async with locks.hold(DAY):
                return locks.is_locked(DAY), locks.is_locked(date(2025, 3, 15))

        assert asyncio.run(scenario()) == (True, False)
        assert not locks.is_locked(DAY)

    def test_released_days_are_dropped(self):
        locks = DayLockRegistry()

        async def scenario():
            async with locks.hold(DAY):
                async with locks.hold(date(2025, 3, 15)):
                    held = len(locks)
            return held

        assert asyncio.run(scenario()) == 2
        assert len(locks) == 0

    def test_lock_kept_while_bookings_wait(self):
        """The day's lock survives until the last waiting booking is done."""
        locks = DayLockRegistry()
        seen = []

        async def worker(name):
            async with locks.hold(DAY):
                seen.append((name, len(locks)))
                await asyncio.sleep(0.01)

        async def scenario():
            await asyncio.gather(worker("first"), worker("second"), worker("third"))

        asyncio.run(scenario())

        assert seen == [("first", 1), ("second", 1), ("third", 1)]
        assert len(locks) == 0

    def test_many_days_do_not_accumulate(self):
        repository = InMemoryRepository()
        service = _build_service(repository)

        async def scenario():
            for offset in range(5):
                day = date(2025, 3, 17 + offset)
                await _book(service, "10:00", day=day, start_time=CLOCK.at(day, "10:00"))

        asyncio.run(scenario())

        assert len(repository.appointments) == 5
        assert len(service.locks) == 0
