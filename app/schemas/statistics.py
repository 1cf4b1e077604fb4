"""Appointment statistics schemas."""

from datetime import date
from enum import Enum

from pydantic import Field

from app.schemas.common import CamelModel


class StatisticsPeriod(str, Enum):
    """Reporting period, always ending today."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class DateRange(CamelModel):
    """Inclusive calendar date range."""

    date_from: date = Field(..., alias="from")
    date_to: date = Field(..., alias="to")


class AppointmentStatistics(CamelModel):
    """Dashboard counters for one period."""

    period: StatisticsPeriod
    date_range: DateRange
    total: int
    upcoming: int
    by_status: dict[str, int] = Field(default_factory=dict)
    by_type: dict[str, int] = Field(default_factory=dict)
    by_priority: dict[str, int] = Field(default_factory=dict)
