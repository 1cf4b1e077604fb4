"""Appointment lifecycle events and their fan-out."""

from collections.abc import Awaitable, Callable
from datetime import UTC, date, datetime
from enum import Enum
from uuid import UUID, uuid4

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


class AppointmentEventType(str, Enum):
    """Events emitted after a scheduling change is committed."""

    CREATED = "appointment.created"
    CONFIRMED = "appointment.confirmed"
    CANCELLED = "appointment.cancelled"
    COMPLETED = "appointment.completed"
    NO_SHOW = "appointment.no-show"
    RESCHEDULED = "appointment.rescheduled"


class SlotRef(BaseModel):
    """A (date, time) slot as carried in event payloads."""

    date: date
    time: str


class AppointmentEvent(BaseModel):
    """Payload handed to every subscriber."""

    id: UUID = Field(default_factory=uuid4)
    type: AppointmentEventType
    appointment_id: UUID
    appointment_number: str
    patient_id: UUID
    doctor_id: UUID
    status: str
    priority: str = "routine"
    slot: SlotRef
    previous_slot: SlotRef | None = None
    reason: str | None = None
    actor_id: UUID | None = None
    actor_role: str | None = None
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


EventHandler = Callable[[AppointmentEvent], Awaitable[None]]


class EventEmitter:
    """
    In-process publisher.

    Handlers run one after another once the change is committed. A failing
    handler is logged and skipped; it never undoes or fails the operation
    that produced the event.
    """

    def __init__(self, handlers: list[EventHandler] | None = None):
        """Initialize emitter with an optional list of handlers."""
        self._handlers: list[EventHandler] = list(handlers or [])

    def subscribe(self, handler: EventHandler) -> None:
        """Register a handler for every event type."""
        self._handlers.append(handler)

    @property
    def handlers(self) -> list[EventHandler]:
        return list(self._handlers)

    async def emit(self, event: AppointmentEvent) -> None:
        """Deliver ``event`` to all handlers."""
        for handler in self._handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.warning(
                    "appointment_event_handler_failed",
                    event_type=event.type.value,
                    appointment_id=str(event.appointment_id),
                    handler=getattr(handler, "__name__", type(handler).__name__),
                    error=str(e),
                )
