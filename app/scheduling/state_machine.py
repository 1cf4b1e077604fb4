"""Appointment status lifecycle."""

from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from app.core.exceptions import (
    CancelWindowExpiredException,
    InvalidTransitionException,
    UnauthorizedException,
    ValidationException,
)
from app.scheduling.events import AppointmentEventType
from app.scheduling.permissions import Role
from app.schemas.appointments import AppointmentStatus

STAFF = frozenset({Role.DOCTOR, Role.ADMIN})
PARTICIPANTS = frozenset({Role.PATIENT, Role.DOCTOR, Role.ADMIN})

# current status -> {target status: roles allowed to make the change}
TRANSITIONS: dict[AppointmentStatus, dict[AppointmentStatus, frozenset[Role]]] = {
    AppointmentStatus.SCHEDULED: {
        AppointmentStatus.CONFIRMED: STAFF,
        AppointmentStatus.CANCELLED: PARTICIPANTS,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.COMPLETED: STAFF,
        AppointmentStatus.CANCELLED: PARTICIPANTS,
        AppointmentStatus.NO_SHOW: STAFF,
    },
    AppointmentStatus.NO_SHOW: {
        AppointmentStatus.RESCHEDULED: STAFF,
    },
    AppointmentStatus.RESCHEDULED: {
        AppointmentStatus.SCHEDULED: frozenset({Role.SYSTEM}),
        AppointmentStatus.CONFIRMED: STAFF,
    },
    AppointmentStatus.COMPLETED: {},
    AppointmentStatus.CANCELLED: {},
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)

# Statuses an appointment can be moved out of by the reschedule operation
RESCHEDULE_ACTORS: dict[AppointmentStatus, frozenset[Role]] = {
    AppointmentStatus.SCHEDULED: PARTICIPANTS,
    AppointmentStatus.CONFIRMED: PARTICIPANTS,
    AppointmentStatus.RESCHEDULED: PARTICIPANTS,
    AppointmentStatus.NO_SHOW: STAFF,
}

STATUS_EVENTS: dict[AppointmentStatus, AppointmentEventType] = {
    AppointmentStatus.CONFIRMED: AppointmentEventType.CONFIRMED,
    AppointmentStatus.CANCELLED: AppointmentEventType.CANCELLED,
    AppointmentStatus.COMPLETED: AppointmentEventType.COMPLETED,
    AppointmentStatus.NO_SHOW: AppointmentEventType.NO_SHOW,
    AppointmentStatus.RESCHEDULED: AppointmentEventType.RESCHEDULED,
}


def allowed_targets(current: AppointmentStatus) -> frozenset[AppointmentStatus]:
    """Statuses reachable from ``current`` in one step."""
    return frozenset(TRANSITIONS.get(current, {}))


def is_terminal(status: AppointmentStatus) -> bool:
    return status in TERMINAL_STATUSES


def validate_transition(
    current: AppointmentStatus,
    target: AppointmentStatus,
    role: Role,
) -> None:
    """
    Check a status change against the lifecycle.

    Raises:
        InvalidTransitionException: The change is not part of the lifecycle
        UnauthorizedException: The change exists but ``role`` may not make it
    """
    actors = TRANSITIONS.get(current, {}).get(target)
    if actors is None:
        raise InvalidTransitionException(current.value, target.value)
    if role not in actors:
        raise UnauthorizedException(
            f"Role {role.value} cannot change status from {current.value} to {target.value}"
        )


def validate_reschedule(current: AppointmentStatus, role: Role) -> None:
    """
    Check that an appointment in ``current`` may be moved by ``role``.

    Raises:
        InvalidTransitionException: Appointment is completed or cancelled
        UnauthorizedException: Only staff may rebook a no-show
    """
    actors = RESCHEDULE_ACTORS.get(current)
    if actors is None:
        raise InvalidTransitionException(
            current.value,
            AppointmentStatus.RESCHEDULED.value,
            f"Cannot reschedule a {current.value} appointment",
        )
    if role not in actors:
        raise UnauthorizedException(
            f"Role {role.value} cannot reschedule a {current.value} appointment"
        )


def event_for(target: AppointmentStatus) -> AppointmentEventType | None:
    """Event published when an appointment enters ``target``, if any."""
    return STATUS_EVENTS.get(target)


def ensure_cancellation_window(
    start: datetime,
    now: datetime,
    role: Role,
    hours: int = 24,
) -> None:
    """
    Patients must cancel at least ``hours`` before the slot starts.

    Raises:
        CancelWindowExpiredException: A patient is cancelling too late
    """
    if role == Role.PATIENT and start - now < timedelta(hours=hours):
        raise CancelWindowExpiredException(hours)


def transition_values(
    target: AppointmentStatus,
    actor_id: UUID,
    now: datetime,
    cancellation_reason: str | None = None,
    notes: str | None = None,
) -> dict[str, Any]:
    """
    Column values written when an appointment enters ``target``.

    Raises:
        ValidationException: Cancelling without a reason
    """
    values: dict[str, Any] = {
        "status": target.value,
        "updated_by": actor_id,
        "updated_at": now,
    }

    if target == AppointmentStatus.CANCELLED:
        if not cancellation_reason or not cancellation_reason.strip():
            raise ValidationException("cancellationReason is required when cancelling")
        values["cancellation_reason"] = cancellation_reason.strip()
        values["cancelled_by"] = actor_id
        values["cancelled_at"] = now
    elif target == AppointmentStatus.COMPLETED:
        values["completed_at"] = now

    if notes:
        values["notes"] = notes

    return values


def reschedule_snapshot(
    appointment: Mapping[str, Any],
    actor_id: UUID,
    now: datetime,
    reason: str | None = None,
) -> dict[str, Any]:
    """JSON-ready record of the slot an appointment is leaving."""
    return {
        "appointment_date": appointment["appointment_date"].isoformat(),
        "appointment_time": appointment["appointment_time"],
        "previous_status": appointment["status"],
        "rescheduled_at": now.isoformat(),
        "rescheduled_by": str(actor_id),
        "reschedule_reason": reason,
    }
