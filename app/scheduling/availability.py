"""Per-day slot calendars for a doctor."""

from collections.abc import Mapping
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DoctorInactiveException, InvalidSlotException
from app.models import SLOT_HOLDING_STATUSES, appointments
from app.scheduling.slots import (
    SLOT_MINUTES,
    WEEKDAY_LABELS,
    exists_locally,
    format_hhmm,
    grid_starts,
    is_on_grid,
    is_strictly_future,
    localize,
    overlaps,
    parse_hhmm,
)
from app.schemas.availability import AvailabilityReason, DayAvailability, Slot, SlotStatus
from app.schemas.doctors import DoctorProfile


def build_day_schedule(
    profile: DoctorProfile,
    day: date,
    booked: Mapping[str, UUID] | None = None,
    include_booked_by: bool = False,
    step: int = SLOT_MINUTES,
) -> DayAvailability:
    """
    Lay out a doctor's slots for one date.

    Args:
        profile: Doctor availability profile
        day: Local calendar date
        booked: Slot-holding appointments for the day, ``{"HH:MM": patient_id}``
        include_booked_by: Expose the patient ID on booked slots (admin view)
        step: Slot length in minutes

    Returns:
        The day's calendar. Leave days come back with every slot
        ``outside-hours``; non-working weekdays come back empty.
    """
    booked = booked or {}
    hours = profile.working_hours
    result = DayAvailability(
        doctor_id=profile.id,
        date=day,
        timezone=profile.timezone,
        working_hours=hours,
    )

    starts = grid_starts(parse_hhmm(hours.start), parse_hhmm(hours.end), step)

    # Leave wins over the weekly pattern
    if profile.is_unavailable_on(day):
        result.reason = AvailabilityReason.DOCTOR_UNAVAILABLE
        result.slots = [Slot(time=format_hhmm(m), status=SlotStatus.OUTSIDE_HOURS) for m in starts]
        return result

    if not profile.works_on(day):
        result.reason = AvailabilityReason.DOCTOR_OFF_DAY
        return result

    break_window = None
    if hours.break_start and hours.break_end:
        break_window = (parse_hhmm(hours.break_start), parse_hhmm(hours.break_end))

    for minutes in starts:
        label = format_hhmm(minutes)
        if not exists_locally(localize(day, label, profile.timezone)):
            status = SlotStatus.OUTSIDE_HOURS
        elif break_window and overlaps(minutes, minutes + step, *break_window):
            status = SlotStatus.BREAK
        else:
            status = SlotStatus.AVAILABLE

        slot = Slot(time=label, status=status)
        if label in booked:
            slot.status = SlotStatus.BOOKED
            if include_booked_by:
                slot.booked_by = booked[label]
        result.slots.append(slot)

    return result


def ensure_bookable(
    profile: DoctorProfile,
    day: date,
    hhmm: str,
    now: datetime,
    step: int = SLOT_MINUTES,
) -> datetime:
    """
    Check that ``day``/``hhmm`` is a slot the doctor offers and that it lies ahead.

    Bookings already in the slot are not looked at here.

    Returns:
        The aware start of the slot in the doctor's timezone

    Raises:
        InvalidSlotException: Off-grid, past, or outside working hours
        DoctorInactiveException: Doctor is inactive or on leave that day
    """
    if not profile.is_active:
        raise DoctorInactiveException()
    if not is_on_grid(hhmm, step):
        raise InvalidSlotException(f"Appointment time must fall on the {step}-minute grid")
    if profile.is_unavailable_on(day):
        message = f"Doctor is unavailable until {profile.unavailable_until.isoformat()}"
        if profile.unavailability_reason:
            message = f"{message}: {profile.unavailability_reason}"
        raise DoctorInactiveException(message)

    schedule = build_day_schedule(profile, day, step=step)
    if schedule.reason == AvailabilityReason.DOCTOR_OFF_DAY:
        raise InvalidSlotException(f"Doctor does not work on {WEEKDAY_LABELS[day.weekday()]}")

    slot = schedule.slot_at(hhmm)
    if slot is None:
        raise InvalidSlotException("Requested time is outside the doctor's working hours")
    if slot.status == SlotStatus.BREAK:
        raise InvalidSlotException("Requested time falls within the doctor's break")
    if slot.status == SlotStatus.OUTSIDE_HOURS:
        raise InvalidSlotException("Requested time does not exist in the doctor's timezone")

    start = localize(day, hhmm, profile.timezone)
    if not is_strictly_future(start, now):
        raise InvalidSlotException("Appointment must be scheduled for a future time")
    return start


class AvailabilityResolver:
    """Reads bookings and lays them over a doctor's working pattern."""

    def __init__(self, db: AsyncSession, step: int = SLOT_MINUTES):
        """Initialize resolver with database session."""
        self.db = db
        self.step = step

    async def booked_slots(
        self,
        doctor_id: UUID,
        day: date,
        exclude_id: UUID | None = None,
    ) -> dict[str, UUID]:
        """Return ``{"HH:MM": patient_id}`` for slot-holding appointments on ``day``."""
        conditions = [
            appointments.c.doctor_id == doctor_id,
            appointments.c.appointment_date == day,
            appointments.c.status.in_(SLOT_HOLDING_STATUSES),
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        stmt = select(appointments.c.appointment_time, appointments.c.patient_id).where(
            and_(*conditions)
        )
        result = await self.db.execute(stmt)
        return {row.appointment_time: row.patient_id for row in result.fetchall()}

    async def schedule_for(
        self,
        profile: DoctorProfile,
        day: date,
        include_booked_by: bool = False,
        exclude_id: UUID | None = None,
    ) -> DayAvailability:
        """Build the day's calendar for ``profile`` with current bookings applied."""
        booked = await self.booked_slots(profile.id, day, exclude_id=exclude_id)
        return build_day_schedule(profile, day, booked, include_booked_by, self.step)
