"""Appointment event subscribers: in-app notification records and Redis fan-out."""

from uuid import UUID, uuid4

import redis
import structlog
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import doctors, notifications, patients
from app.scheduling.events import AppointmentEvent, AppointmentEventType

logger = structlog.get_logger(__name__)

# (title, body) per event; body is formatted with number, date and time
MESSAGES: dict[AppointmentEventType, tuple[str, str]] = {
    AppointmentEventType.CREATED: (
        "Appointment booked",
        "Appointment {number} is booked for {date} at {time}.",
    ),
    AppointmentEventType.CONFIRMED: (
        "Appointment confirmed",
        "Appointment {number} on {date} at {time} has been confirmed.",
    ),
    AppointmentEventType.CANCELLED: (
        "Appointment cancelled",
        "Appointment {number} on {date} at {time} has been cancelled.",
    ),
    AppointmentEventType.COMPLETED: (
        "Appointment completed",
        "Appointment {number} on {date} has been completed.",
    ),
    AppointmentEventType.NO_SHOW: (
        "Missed appointment",
        "Appointment {number} on {date} at {time} was marked as a no-show.",
    ),
    AppointmentEventType.RESCHEDULED: (
        "Appointment rescheduled",
        "Appointment {number} has moved to {date} at {time}.",
    ),
}

# appointment priority -> notification priority
PRIORITY_MAP = {
    "routine": "normal",
    "urgent": "high",
    "emergency": "urgent",
}


def notification_type_for(event_type: AppointmentEventType) -> str:
    """``appointment.no-show`` -> ``appointment_no_show``."""
    return event_type.value.replace(".", "_").replace("-", "_")


class InAppNotificationWriter:
    """Writes one pending notification row per participant for each event."""

    def __init__(self, db: AsyncSession):
        """Initialize writer with database session."""
        self.db = db

    async def _recipients(self, event: AppointmentEvent) -> list[UUID]:
        patient_user = await self.db.execute(
            select(patients.c.user_id).where(patients.c.id == event.patient_id)
        )
        doctor_user = await self.db.execute(
            select(doctors.c.user_id).where(doctors.c.id == event.doctor_id)
        )
        user_ids = [patient_user.scalar_one_or_none(), doctor_user.scalar_one_or_none()]
        return [user_id for user_id in user_ids if user_id is not None]

    async def __call__(self, event: AppointmentEvent) -> None:
        """Create notification records for the patient and the doctor."""
        title, template = MESSAGES[event.type]
        body = template.format(
            number=event.appointment_number,
            date=event.slot.date.isoformat(),
            time=event.slot.time,
        )
        data = {
            "event_id": str(event.id),
            "event_type": event.type.value,
            "appointment_id": str(event.appointment_id),
            "appointment_number": event.appointment_number,
            "status": event.status,
        }
        if event.reason:
            data["reason"] = event.reason

        recipients = await self._recipients(event)
        if not recipients:
            logger.warning(
                "no_notification_recipients",
                appointment_id=str(event.appointment_id),
                event_type=event.type.value,
            )
            return

        rows = [
            {
                "id": uuid4(),
                "user_id": user_id,
                "title": title,
                "body": body,
                "notification_type": notification_type_for(event.type),
                "priority": PRIORITY_MAP.get(event.priority, "normal"),
                "data": data,
                "status": "pending",
            }
            for user_id in recipients
        ]

        try:
            await self.db.execute(insert(notifications).values(rows))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "appointment_notifications_created",
            appointment_id=str(event.appointment_id),
            event_type=event.type.value,
            recipients=len(rows),
        )


class RedisEventPublisher:
    """Publishes each event as JSON on a Redis channel."""

    def __init__(self, redis_client: redis.Redis, channel: str):
        """Initialize publisher with Redis client and channel name."""
        self.redis = redis_client
        self.channel = channel

    async def __call__(self, event: AppointmentEvent) -> None:
        """Publish ``event``; the number of receiving subscribers is logged."""
        receivers = self.redis.publish(self.channel, event.model_dump_json())
        logger.debug(
            "appointment_event_published",
            channel=self.channel,
            event_type=event.type.value,
            receivers=receivers,
        )
