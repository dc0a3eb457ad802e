"""
Tests for slot generator.
"""

from datetime import date

import pendulum

from salonslots.domain.clock import SalonClock
from salonslots.domain.models import (
    Appointment,
    AppointmentStatus,
    ClosureDisposition,
    OperatingConfig,
    Service,
    ShiftWindow,
    TimeRange,
)
from salonslots.domain.slot_generator import SlotGenerator

CLOCK = SalonClock("+05:30")
DAY = date(2025, 3, 14)
CONFIG = OperatingConfig(
    morning_window=ShiftWindow(opens="09:00", closes="14:00"),
    evening_window=ShiftWindow(opens="16:00", closes="22:00"),
)
HAIRCUT = Service(id="haircut", name="Haircut", duration_minutes=25, price=300)
BEARD = Service(id="beard", name="Beard Trimming", duration_minutes=20, price=150)


def _at(value: str):
    return CLOCK.at(DAY, value)


def _appointment(start: str, end: str, status=AppointmentStatus.SCHEDULED) -> Appointment:
    return Appointment(
        id=f"appt-{start}",
        customer_name="Ravi",
        phone_number="9999999999",
        calendar_date=DAY,
        service_id=HAIRCUT.id,
        start_time=_at(start),
        end_time=_at(end),
        status=status,
    )


def _slot_map(result):
    return {slot.start.format("HH:mm"): slot.available for slot in result.all_slots}


class TestSlotGenerator:
    """Tests for SlotGenerator."""

    def test_concrete_morning_window(self):
        """25 min service in 09:00-14:00: 09:00, 09:05, ..., 13:35; 13:40 excluded."""
        generator = SlotGenerator(clock=CLOCK)

        result = generator.generate_slots(DAY, HAIRCUT, CONFIG, [], ClosureDisposition.open())

        morning = [slot for slot in result.all_slots if slot.start < _at("16:00")]
        assert morning[0].start == _at("09:00")
        assert morning[1].start == _at("09:05")
        assert morning[-1].start == _at("13:35")
        assert morning[-1].end == _at("14:00")
        assert len(morning) == 56
        assert "13:40" not in _slot_map(result)

    def test_no_appointments_all_available(self):
        generator = SlotGenerator(clock=CLOCK)

        result = generator.generate_slots(DAY, HAIRCUT, CONFIG, [], ClosureDisposition.open())

        assert all(slot.available for slot in result.all_slots)
        assert result.available_slots == [slot.start for slot in result.all_slots]
        assert result.closure_reason is None

    def test_slots_never_run_past_closing(self):
        """Every emitted slot ends within its window."""
        generator = SlotGenerator(clock=CLOCK)

        result = generator.generate_slots(DAY, BEARD, CONFIG, [], ClosureDisposition.open())

        for slot in result.all_slots:
            if slot.start < _at("16:00"):
                assert slot.end <= _at("14:00")
            else:
                assert slot.end <= _at("22:00")

    def test_morning_precedes_evening(self):
        generator = SlotGenerator(clock=CLOCK)

        result = generator.generate_slots(DAY, HAIRCUT, CONFIG, [], ClosureDisposition.open())

        starts = [slot.start for slot in result.all_slots]
        assert starts == sorted(starts)
        assert _at("16:00") in starts
        assert _at("21:35") == starts[-1]

    def test_existing_appointment_blocks_overlapping_slots(self):
        """A 10:00-10:25 booking blocks 09:40..10:20 for a 25 min service."""
        generator = SlotGenerator(clock=CLOCK)

        result = generator.generate_slots(
            DAY, HAIRCUT, CONFIG, [_appointment("10:00", "10:25")], ClosureDisposition.open()
        )
        slots = _slot_map(result)

        assert slots["09:35"] is True  # ends 10:00, back-to-back
        assert slots["09:40"] is False
        assert slots["10:20"] is False
        assert slots["10:25"] is True
        assert _at("09:40") not in result.available_slots

    def test_blocked_appointment_occupies(self):
        generator = SlotGenerator(clock=CLOCK)

        result = generator.generate_slots(
            DAY,
            HAIRCUT,
            CONFIG,
            [_appointment("11:00", "11:25", AppointmentStatus.BLOCKED)],
            ClosureDisposition.open(),
        )

        assert _slot_map(result)["11:00"] is False

    def test_canceled_and_completed_do_not_occupy(self):
        generator = SlotGenerator(clock=CLOCK)

        result = generator.generate_slots(
            DAY,
            HAIRCUT,
            CONFIG,
            [
                _appointment("10:00", "10:25", AppointmentStatus.CANCELED),
                _appointment("11:00", "11:25", AppointmentStatus.COMPLETED),
            ],
            ClosureDisposition.open(),
        )

        assert all(slot.available for slot in result.all_slots)

    def test_full_closure_yields_no_slots(self):
        """Fully closed days produce nothing regardless of other inputs."""
        generator = SlotGenerator(clock=CLOCK)

        result = generator.generate_slots(
            DAY,
            HAIRCUT,
            CONFIG,
            [_appointment("10:00", "10:25")],
            ClosureDisposition.fully_closed("Holidays"),
        )

        assert result.all_slots == []
        assert result.available_slots == []
        assert result.closure_reason == "Holidays"

    def test_partial_closure_suppresses_overlapping_slots(self):
        """Closure 10:00-10:30 with a 20 min service: 09:50 blocked, 10:30 free."""
        generator = SlotGenerator(clock=CLOCK)
        closure = ClosureDisposition.partially_closed(
            [TimeRange(start=_at("10:00"), end=_at("10:30"))],
            reason="Staff meeting",
        )

        result = generator.generate_slots(DAY, BEARD, CONFIG, [], closure)
        slots = _slot_map(result)

        assert slots["09:40"] is True
        assert slots["09:50"] is False
        assert slots["10:25"] is False
        assert slots["10:30"] is True
        assert result.closure_reason is None

    def test_duration_longer_than_window(self):
        """A window shorter than the service yields nothing; the other still does."""
        generator = SlotGenerator(clock=CLOCK)
        config = OperatingConfig(
            morning_window=ShiftWindow(opens="09:00", closes="09:30"),
            evening_window=ShiftWindow(opens="16:00", closes="18:00"),
        )
        long_service = Service(id="facial", name="Facial", duration_minutes=45, price=400)

        result = generator.generate_slots(DAY, long_service, config, [], ClosureDisposition.open())

        assert result.all_slots[0].start == _at("16:00")
        assert result.all_slots[-1].start == _at("17:15")

    def test_generation_is_idempotent(self):
        generator = SlotGenerator(clock=CLOCK)
        appointments = [_appointment("12:00", "12:25")]

        first = generator.generate_slots(DAY, HAIRCUT, CONFIG, appointments, ClosureDisposition.open())
        second = generator.generate_slots(DAY, HAIRCUT, CONFIG, appointments, ClosureDisposition.open())

        assert first == second

    def test_custom_interval(self):
        generator = SlotGenerator(clock=CLOCK, interval_minutes=15)

        result = generator.generate_slots(DAY, HAIRCUT, CONFIG, [], ClosureDisposition.open())

        assert [slot.start for slot in result.all_slots[:3]] == [_at("09:00"), _at("09:15"), _at("09:30")]

    def test_other_offsets_are_respected(self):
        """The same HH:mm means a different instant under another offset."""
        clock = SalonClock("+01:00")
        generator = SlotGenerator(clock=clock)

        result = generator.generate_slots(DAY, HAIRCUT, CONFIG, [], ClosureDisposition.open())

        assert result.all_slots[0].start == pendulum.datetime(2025, 3, 14, 8, 0, tz="UTC")
