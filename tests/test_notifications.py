"""Tests for appointment event subscribers."""

import json
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from app import dependencies
from app.config import settings
from app.models import notifications
from app.scheduling.events import AppointmentEventType, EventEmitter
from app.services.appointment_service import AppointmentService
from app.services.notification_service import (
    InAppNotificationWriter,
    RedisEventPublisher,
    notification_type_for,
)
from app.schemas.appointments import AppointmentCreate, AppointmentStatus, AppointmentStatusUpdate

from conftest import FIXED_NOW
from test_events import make_event


@pytest.mark.parametrize(
    "event_type,expected",
    [
        (AppointmentEventType.CREATED, "appointment_created"),
        (AppointmentEventType.NO_SHOW, "appointment_no_show"),
        (AppointmentEventType.RESCHEDULED, "appointment_rescheduled"),
    ],
)
def test_notification_type_for(event_type, expected):
    assert notification_type_for(event_type) == expected


async def test_booking_creates_notification_for_patient_and_doctor(db_session, patient, doctor):
    """Every event produces one pending row per participant."""
    service = AppointmentService(
        db_session,
        emitter=EventEmitter([InAppNotificationWriter(db_session)]),
        clock=lambda: FIXED_NOW,
    )

    appointment = await service.create_appointment(
        patient.principal,
        AppointmentCreate(
            doctor_id=doctor.profile_id,
            appointment_date="2025-03-10",
            appointment_time="10:00",
            type="consultation",
            priority="urgent",
            reason="Chest pain",
        ),
    )

    result = await db_session.execute(select(notifications))
    rows = result.mappings().all()

    assert {row["user_id"] for row in rows} == {patient.user_id, doctor.user_id}
    for row in rows:
        assert row["notification_type"] == "appointment_created"
        assert row["status"] == "pending"
        assert row["priority"] == "high"
        assert appointment.appointment_number in row["body"]
        assert row["data"]["appointment_id"] == str(appointment.id)


async def test_cancellation_notification_carries_reason(db_session, patient, doctor, book):
    appointment = await book(patient, doctor)
    service = AppointmentService(
        db_session,
        emitter=EventEmitter([InAppNotificationWriter(db_session)]),
        clock=lambda: FIXED_NOW,
    )

    await service.update_status(
        patient.principal,
        appointment.id,
        AppointmentStatusUpdate(
            status=AppointmentStatus.CANCELLED, cancellation_reason="Travelling"
        ),
    )

    result = await db_session.execute(
        select(notifications).where(notifications.c.notification_type == "appointment_cancelled")
    )
    rows = result.mappings().all()
    assert len(rows) == 2
    assert all(row["data"]["reason"] == "Travelling" for row in rows)


async def test_notification_failure_does_not_fail_the_booking(db_session, patient, doctor):
    """A broken handler is logged; the appointment is still committed."""

    async def broken(event):
        raise RuntimeError("notification store down")

    service = AppointmentService(
        db_session, emitter=EventEmitter([broken]), clock=lambda: FIXED_NOW
    )

    appointment = await service.create_appointment(
        patient.principal,
        AppointmentCreate(
            doctor_id=doctor.profile_id,
            appointment_date="2025-03-10",
            appointment_time="11:00",
            type="checkup",
            reason="Annual checkup",
        ),
    )

    fetched = await service.get_appointment(patient.principal, appointment.id)
    assert fetched.status == AppointmentStatus.SCHEDULED


async def test_redis_publisher_publishes_json():
    redis_client = MagicMock()
    redis_client.publish.return_value = 2
    publisher = RedisEventPublisher(redis_client, "appointments:events")
    event = make_event(AppointmentEventType.CONFIRMED)

    await publisher(event)

    channel, payload = redis_client.publish.call_args.args
    assert channel == "appointments:events"
    decoded = json.loads(payload)
    assert decoded["type"] == "appointment.confirmed"
    assert decoded["appointment_id"] == str(event.appointment_id)


def test_event_emitter_dependency_adds_redis_when_enabled(monkeypatch, db_session):
    redis_client = MagicMock()
    monkeypatch.setattr(settings, "events_redis_enabled", True)
    monkeypatch.setattr(dependencies, "get_redis_client", lambda: redis_client)

    emitter = dependencies.get_event_emitter(db_session)

    kinds = [type(handler) for handler in emitter.handlers]
    assert kinds == [InAppNotificationWriter, RedisEventPublisher]


def test_event_emitter_dependency_without_redis(monkeypatch, db_session):
    monkeypatch.setattr(settings, "events_redis_enabled", False)

    emitter = dependencies.get_event_emitter(db_session)

    assert [type(handler) for handler in emitter.handlers] == [InAppNotificationWriter]
