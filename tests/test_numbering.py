"""Tests for appointment number allocation and write-conflict mapping."""

import pytest
from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import PatientConflictException, SlotTakenException
from app.models import counters
from app.scheduling.conflicts import translate_integrity_error
from app.scheduling.numbering import (
    APPOINTMENT_COUNTER,
    format_appointment_number,
    next_appointment_number,
    next_counter_value,
)


def integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, Exception(message))


def test_format_appointment_number():
    assert format_appointment_number(42) == "APT-000042"


async def test_counter_created_on_first_use(db_session):
    """An empty counters table starts numbering at one."""
    assert await next_counter_value(db_session, APPOINTMENT_COUNTER) == 1
    assert await next_counter_value(db_session, APPOINTMENT_COUNTER) == 2

    result = await db_session.execute(
        select(counters.c.value).where(counters.c.name == APPOINTMENT_COUNTER)
    )
    assert result.scalar_one() == 2


async def test_seeded_counter(db_session):
    await db_session.execute(insert(counters).values(name=APPOINTMENT_COUNTER, value=0))

    assert await next_appointment_number(db_session) == "APT-000001"


async def test_counters_are_independent(db_session):
    await next_counter_value(db_session, APPOINTMENT_COUNTER)

    assert await next_counter_value(db_session, "invoice") == 1


@pytest.mark.parametrize(
    "message,expected",
    [
        (
            'duplicate key value violates unique constraint "uq_appointments_doctor_slot"',
            SlotTakenException,
        ),
        (
            'duplicate key value violates unique constraint "uq_appointments_patient_slot"',
            PatientConflictException,
        ),
        (
            "UNIQUE constraint failed: appointments.patient_id, "
            "appointments.appointment_date, appointments.appointment_time",
            PatientConflictException,
        ),
        ("UNIQUE constraint failed: counters.name", SlotTakenException),
    ],
    ids=["doctor-index", "patient-index", "sqlite-patient", "unknown-duplicate"],
)
def test_translate_integrity_error(message, expected):
    translated = translate_integrity_error(integrity_error(message))

    assert type(translated) is expected
    assert translated.status_code == 409
