"""Shared metadata for all tables."""

from sqlalchemy import MetaData

# One metadata object so foreign keys between tables resolve on create_all
metadata = MetaData()

# Statuses that occupy a slot on the doctor's and the patient's calendar
SLOT_HOLDING_STATUSES = ("scheduled", "confirmed", "rescheduled")
