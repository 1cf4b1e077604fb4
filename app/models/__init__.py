"""Database models."""

from app.models.appointments import appointments
from app.models.base import SLOT_HOLDING_STATUSES, metadata
from app.models.counters import counters
from app.models.doctors import doctors
from app.models.notifications import notifications
from app.models.patients import patients
from app.models.users import users

__all__ = [
    "SLOT_HOLDING_STATUSES",
    "appointments",
    "counters",
    "doctors",
    "metadata",
    "notifications",
    "patients",
    "users",
]
