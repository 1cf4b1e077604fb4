"""Who may do what to which appointment."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID


class Role(str, Enum):
    """Caller roles. ``system`` is used by background jobs only."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"
    TECHNICIAN = "technician"
    SYSTEM = "system"


class Operation(str, Enum):
    """Scheduling operations subject to authorization."""

    CREATE = "create"
    VIEW = "view"
    LIST = "list"
    UPDATE_STATUS = "update-status"
    RESCHEDULE = "reschedule"
    ADD_NOTES = "add-notes"
    VIEW_AVAILABILITY = "view-availability"
    VIEW_STATISTICS = "view-statistics"


@dataclass(frozen=True)
class Principal:
    """
    The authenticated caller.

    ``profile_id`` is the caller's patient or doctor profile ID; it is None
    for admins and for users whose profile has not been created yet.
    """

    user_id: UUID
    role: Role
    profile_id: UUID | None = None


SYSTEM_PRINCIPAL = Principal(user_id=UUID(int=0), role=Role.SYSTEM)

# Operations each role may attempt at all, before ownership is considered
ROLE_OPERATIONS: dict[Role, frozenset[Operation]] = {
    Role.PATIENT: frozenset(
        {
            Operation.CREATE,
            Operation.VIEW,
            Operation.LIST,
            Operation.UPDATE_STATUS,
            Operation.RESCHEDULE,
            Operation.VIEW_AVAILABILITY,
            Operation.VIEW_STATISTICS,
        }
    ),
    Role.DOCTOR: frozenset(Operation),
    Role.ADMIN: frozenset(Operation) - {Operation.ADD_NOTES},
    Role.TECHNICIAN: frozenset(),
    Role.SYSTEM: frozenset({Operation.VIEW, Operation.UPDATE_STATUS}),
}

# Operations that only need the role, not a particular appointment
UNSCOPED_OPERATIONS = frozenset(
    {Operation.LIST, Operation.VIEW_AVAILABILITY, Operation.VIEW_STATISTICS}
)


def role_can(role: Role, operation: Operation) -> bool:
    """Return True when ``role`` may attempt ``operation`` on some appointment."""
    return operation in ROLE_OPERATIONS.get(role, frozenset())


def owns(principal: Principal, appointment: Mapping[str, Any]) -> bool:
    """Return True when the appointment belongs to the caller's own profile."""
    if principal.profile_id is None:
        return False
    if principal.role == Role.PATIENT:
        return appointment.get("patient_id") == principal.profile_id
    if principal.role == Role.DOCTOR:
        return appointment.get("doctor_id") == principal.profile_id
    return False


def authorize(
    principal: Principal,
    operation: Operation,
    appointment: Mapping[str, Any] | None = None,
) -> bool:
    """
    Decide whether ``principal`` may perform ``operation``.

    Args:
        principal: Authenticated caller
        operation: Requested operation
        appointment: The appointment acted on. For ``CREATE`` this is the
            draft, only ``patient_id`` is read.

    Returns:
        True if allowed
    """
    if not role_can(principal.role, operation):
        return False
    if operation in UNSCOPED_OPERATIONS:
        return True

    role = principal.role
    if role in (Role.ADMIN, Role.SYSTEM):
        return True

    if operation == Operation.CREATE:
        # Doctors book for any patient; patients only for themselves
        if role == Role.DOCTOR:
            return True
        return appointment is not None and owns(principal, appointment)

    return appointment is not None and owns(principal, appointment)
