"""Tests for per-day slot calendars and slot validation."""

from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

import pytest

from app.core.exceptions import DoctorInactiveException, InvalidSlotException
from app.scheduling.availability import build_day_schedule, ensure_bookable
from app.schemas.availability import AvailabilityReason, SlotStatus
from app.schemas.doctors import DoctorProfile, WorkingHours

MONDAY = date(2025, 3, 10)
SATURDAY = date(2025, 3, 15)


def make_profile(**overrides) -> DoctorProfile:
    values = {"id": uuid4(), "user_id": uuid4()}
    values.update(overrides)
    return DoctorProfile(**values)


def statuses(schedule) -> dict[str, SlotStatus]:
    return {slot.time: slot.status for slot in schedule.slots}


def test_default_working_day():
    """Mon-Fri 09:00-17:00 with a 13:00-14:00 break."""
    schedule = build_day_schedule(make_profile(), MONDAY)
    by_time = statuses(schedule)

    assert schedule.reason is None
    assert len(schedule.slots) == 16
    assert by_time["09:00"] == SlotStatus.AVAILABLE
    assert by_time["12:30"] == SlotStatus.AVAILABLE
    assert by_time["13:00"] == SlotStatus.BREAK
    assert by_time["13:30"] == SlotStatus.BREAK
    assert by_time["14:00"] == SlotStatus.AVAILABLE
    assert by_time["16:30"] == SlotStatus.AVAILABLE
    assert "17:00" not in by_time
    assert schedule.total_available == 14


def test_slot_straddling_break_start_is_break():
    """A slot that only partly overlaps the break is not offered."""
    profile = make_profile(
        working_hours=WorkingHours(start="09:00", end="17:00", break_start="12:45", break_end="13:15")
    )
    by_time = statuses(build_day_schedule(profile, MONDAY))

    assert by_time["12:00"] == SlotStatus.AVAILABLE
    assert by_time["12:30"] == SlotStatus.BREAK
    assert by_time["13:00"] == SlotStatus.BREAK
    assert by_time["13:30"] == SlotStatus.AVAILABLE


def test_no_break_configured():
    profile = make_profile(
        working_hours=WorkingHours(start="09:00", end="11:00", break_start=None, break_end=None)
    )
    schedule = build_day_schedule(profile, MONDAY)

    assert [slot.time for slot in schedule.slots] == ["09:00", "09:30", "10:00", "10:30"]
    assert schedule.total_available == 4


def test_off_day_returns_no_slots():
    schedule = build_day_schedule(make_profile(), SATURDAY)

    assert schedule.slots == []
    assert schedule.reason == AvailabilityReason.DOCTOR_OFF_DAY
    assert schedule.total_available == 0


def test_unavailable_day_marks_every_slot_outside_hours():
    """Leave applies to dates strictly before unavailable_until."""
    profile = make_profile(unavailable_until=date(2025, 3, 12))

    on_leave = build_day_schedule(profile, MONDAY)
    assert on_leave.reason == AvailabilityReason.DOCTOR_UNAVAILABLE
    assert len(on_leave.slots) == 16
    assert all(slot.status == SlotStatus.OUTSIDE_HOURS for slot in on_leave.slots)

    back = build_day_schedule(profile, date(2025, 3, 12))
    assert back.reason is None
    assert back.total_available == 14


def test_unavailability_wins_over_off_day():
    profile = make_profile(unavailable_until=date(2025, 3, 20))

    schedule = build_day_schedule(profile, SATURDAY)

    assert schedule.reason == AvailabilityReason.DOCTOR_UNAVAILABLE


def test_booked_slots_overlay():
    """booked_by is only exposed when asked for."""
    patient_id = uuid4()
    profile = make_profile()

    public = build_day_schedule(profile, MONDAY, {"10:00": patient_id})
    slot = public.slot_at("10:00")
    assert slot.status == SlotStatus.BOOKED
    assert slot.booked_by is None
    assert public.total_available == 13

    admin_view = build_day_schedule(profile, MONDAY, {"10:00": patient_id}, include_booked_by=True)
    assert admin_view.slot_at("10:00").booked_by == patient_id


def test_dst_gap_slots_are_outside_hours():
    """Wall times skipped by the spring-forward jump cannot be booked."""
    profile = make_profile(
        timezone="America/New_York",
        available_days=["sunday"],
        working_hours=WorkingHours(start="01:00", end="04:00", break_start=None, break_end=None),
    )
    by_time = statuses(build_day_schedule(profile, date(2025, 3, 9)))

    assert by_time["01:30"] == SlotStatus.AVAILABLE
    assert by_time["02:00"] == SlotStatus.OUTSIDE_HOURS
    assert by_time["02:30"] == SlotStatus.OUTSIDE_HOURS
    assert by_time["03:00"] == SlotStatus.AVAILABLE


class TestEnsureBookable:
    """Slot validation used by create and reschedule."""

    now = datetime(2025, 3, 3, 8, 0, tzinfo=UTC)

    def test_valid_slot_returns_local_start(self):
        profile = make_profile(timezone="Europe/London")

        start = ensure_bookable(profile, MONDAY, "10:00", self.now)

        assert start.astimezone(UTC) == datetime(2025, 3, 10, 10, 0, tzinfo=UTC)

    def test_start_one_second_ahead_is_accepted(self):
        start = datetime(2025, 3, 10, 10, 0, tzinfo=UTC)

        assert ensure_bookable(make_profile(), MONDAY, "10:00", start - timedelta(seconds=1))

    def test_start_equal_to_now_is_rejected(self):
        start = datetime(2025, 3, 10, 10, 0, tzinfo=UTC)

        with pytest.raises(InvalidSlotException):
            ensure_bookable(make_profile(), MONDAY, "10:00", start)

    def test_past_date_is_rejected(self):
        with pytest.raises(InvalidSlotException):
            ensure_bookable(make_profile(), date(2025, 2, 28), "10:00", self.now)

    @pytest.mark.parametrize("time", ["10:15", "10:45"])
    def test_off_grid_time_is_rejected(self, time):
        with pytest.raises(InvalidSlotException):
            ensure_bookable(make_profile(), MONDAY, time, self.now)

    @pytest.mark.parametrize("time", ["08:30", "17:00", "17:30"])
    def test_outside_working_hours_is_rejected(self, time):
        with pytest.raises(InvalidSlotException):
            ensure_bookable(make_profile(), MONDAY, time, self.now)

    def test_break_start_rejected_break_end_accepted(self):
        with pytest.raises(InvalidSlotException):
            ensure_bookable(make_profile(), MONDAY, "13:00", self.now)

        assert ensure_bookable(make_profile(), MONDAY, "14:00", self.now)

    def test_off_day_is_rejected(self):
        with pytest.raises(InvalidSlotException):
            ensure_bookable(make_profile(), SATURDAY, "10:00", self.now)

    def test_inactive_doctor(self):
        with pytest.raises(DoctorInactiveException):
            ensure_bookable(make_profile(is_active=False), MONDAY, "10:00", self.now)

    def test_doctor_on_leave(self):
        profile = make_profile(unavailable_until=date(2025, 3, 12), unavailability_reason="Conference")

        with pytest.raises(DoctorInactiveException) as exc_info:
            ensure_bookable(profile, MONDAY, "10:00", self.now)

        assert "Conference" in exc_info.value.message
