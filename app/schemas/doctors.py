"""Doctor availability profile schema."""

from datetime import date
from uuid import UUID

from pydantic import Field, field_validator

from app.schemas.common import CamelModel

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DEFAULT_AVAILABLE_DAYS = ["monday", "tuesday", "wednesday", "thursday", "friday"]
DEFAULT_WORKING_HOURS_START = "09:00"
DEFAULT_WORKING_HOURS_END = "17:00"
DEFAULT_BREAK_START = "13:00"
DEFAULT_BREAK_END = "14:00"


class WorkingHours(CamelModel):
    """Daily working window and break, as local ``HH:MM`` strings."""

    start: str = DEFAULT_WORKING_HOURS_START
    end: str = DEFAULT_WORKING_HOURS_END
    break_start: str | None = DEFAULT_BREAK_START
    break_end: str | None = DEFAULT_BREAK_END


class DoctorProfile(CamelModel):
    """The part of a doctor record the scheduler reads."""

    id: UUID
    user_id: UUID
    is_active: bool = True
    specialization: str | None = None
    working_hours: WorkingHours = Field(default_factory=WorkingHours)
    available_days: list[str] = Field(default_factory=lambda: list(DEFAULT_AVAILABLE_DAYS))
    timezone: str = "UTC"
    unavailable_until: date | None = None
    unavailability_reason: str | None = None

    @field_validator("available_days")
    @classmethod
    def normalize_days(cls, value: list[str]) -> list[str]:
        """Lower-case weekday names and drop unknown entries."""
        return [day.lower() for day in value if day.lower() in WEEKDAYS]

    def works_on(self, day: date) -> bool:
        """Return True when ``day`` is one of the doctor's working weekdays."""
        return WEEKDAYS[day.weekday()] in self.available_days

    def is_unavailable_on(self, day: date) -> bool:
        """Return True when the doctor is on leave for ``day``."""
        return self.unavailable_until is not None and day < self.unavailable_until

    @classmethod
    def from_row(cls, row: dict, default_timezone: str = "UTC") -> "DoctorProfile":
        """Build a profile from a ``doctors`` row, applying defaults for NULL columns."""
        hours = WorkingHours(
            start=row.get("working_hours_start") or DEFAULT_WORKING_HOURS_START,
            end=row.get("working_hours_end") or DEFAULT_WORKING_HOURS_END,
            break_start=row.get("break_start") or DEFAULT_BREAK_START,
            break_end=row.get("break_end") or DEFAULT_BREAK_END,
        )
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            is_active=bool(row.get("is_active", True)),
            specialization=row.get("specialization"),
            working_hours=hours,
            available_days=row.get("available_days") or list(DEFAULT_AVAILABLE_DAYS),
            timezone=row.get("timezone") or default_timezone,
            unavailable_until=row.get("unavailable_until"),
            unavailability_reason=row.get("unavailability_reason"),
        )
