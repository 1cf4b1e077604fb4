"""Doctor availability response schemas."""

from datetime import date
from enum import Enum
from uuid import UUID

from pydantic import Field, computed_field

from app.schemas.common import CamelModel
from app.schemas.doctors import WorkingHours


class SlotStatus(str, Enum):
    """State of one 30-minute slot on a doctor's calendar."""

    AVAILABLE = "available"
    BOOKED = "booked"
    BREAK = "break"
    OUTSIDE_HOURS = "outside-hours"


class AvailabilityReason(str, Enum):
    """Why a day has no bookable slots."""

    DOCTOR_OFF_DAY = "doctor-off-day"
    DOCTOR_UNAVAILABLE = "doctor-unavailable"


class Slot(CamelModel):
    """One slot. ``booked_by`` (patient ID) is only filled in for admins."""

    time: str
    status: SlotStatus
    booked_by: UUID | None = Field(default=None)


class DayAvailability(CamelModel):
    """A doctor's calendar for one date."""

    doctor_id: UUID
    date: date
    timezone: str
    working_hours: WorkingHours
    reason: AvailabilityReason | None = None
    slots: list[Slot] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_available(self) -> int:
        """Number of slots that can still be booked."""
        return sum(1 for slot in self.slots if slot.status == SlotStatus.AVAILABLE)

    def slot_at(self, time: str) -> Slot | None:
        """Return the slot starting at ``time``, if generated."""
        for slot in self.slots:
            if slot.time == time:
                return slot
        return None
