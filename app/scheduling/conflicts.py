"""Double-booking checks for doctors and patients."""

from datetime import date
from enum import Enum
from uuid import UUID

import structlog
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AppException,
    PatientConflictException,
    SlotTakenException,
)
from app.models import SLOT_HOLDING_STATUSES, appointments

logger = structlog.get_logger(__name__)


class ConflictResult(str, Enum):
    """Outcome of a slot conflict check."""

    OK = "ok"
    DOCTOR_CONFLICT = "doctor-conflict"
    PATIENT_CONFLICT = "patient-conflict"


class ConflictDetector:
    """Looks for slot-holding appointments that would collide with a booking."""

    def __init__(self, db: AsyncSession):
        """Initialize detector with database session."""
        self.db = db

    async def _slot_held(
        self,
        column,
        owner_id: UUID,
        day: date,
        hhmm: str,
        exclude_id: UUID | None,
    ) -> bool:
        conditions = [
            column == owner_id,
            appointments.c.appointment_date == day,
            appointments.c.appointment_time == hhmm,
            appointments.c.status.in_(SLOT_HOLDING_STATUSES),
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        stmt = select(appointments.c.id).where(and_(*conditions)).limit(1)
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def check(
        self,
        doctor_id: UUID,
        patient_id: UUID,
        day: date,
        hhmm: str,
        exclude_id: UUID | None = None,
    ) -> ConflictResult:
        """
        Check a slot for both parties.

        Args:
            doctor_id: Doctor to book
            patient_id: Patient to book
            day: Slot date
            hhmm: Slot start time
            exclude_id: Appointment being moved, ignored when looking for conflicts

        Returns:
            The first conflict found, doctor before patient
        """
        if await self._slot_held(appointments.c.doctor_id, doctor_id, day, hhmm, exclude_id):
            return ConflictResult.DOCTOR_CONFLICT
        if await self._slot_held(appointments.c.patient_id, patient_id, day, hhmm, exclude_id):
            return ConflictResult.PATIENT_CONFLICT
        return ConflictResult.OK

    async def ensure_free(
        self,
        doctor_id: UUID,
        patient_id: UUID,
        day: date,
        hhmm: str,
        exclude_id: UUID | None = None,
    ) -> None:
        """Raise the matching conflict exception unless the slot is free for both."""
        outcome = await self.check(doctor_id, patient_id, day, hhmm, exclude_id)
        if outcome == ConflictResult.DOCTOR_CONFLICT:
            raise SlotTakenException()
        if outcome == ConflictResult.PATIENT_CONFLICT:
            raise PatientConflictException()


def translate_integrity_error(exc: IntegrityError) -> AppException:
    """
    Map a unique-index violation raised on write to the conflict it represents.

    The partial unique indexes are the last line against two writers passing
    the pre-checks at the same time. Any other duplicate on the booking path
    is reported as slot-taken.
    """
    detail = str(exc.orig).lower()
    if "uq_appointments_patient_slot" in detail or "appointments.patient_id" in detail:
        return PatientConflictException()
    if "uq_appointments_doctor_slot" in detail or "appointments.doctor_id" in detail:
        return SlotTakenException()
    logger.warning("unrecognized_integrity_error", detail=detail)
    return SlotTakenException()
