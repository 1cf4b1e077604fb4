"""Appointment service for business logic."""

import math
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    SlotTakenException,
    UnauthorizedException,
    ValidationException,
)
from app.models import SLOT_HOLDING_STATUSES, appointments
from app.scheduling.availability import AvailabilityResolver, ensure_bookable
from app.scheduling.conflicts import ConflictDetector, translate_integrity_error
from app.scheduling.events import AppointmentEvent, AppointmentEventType, EventEmitter, SlotRef
from app.scheduling.numbering import next_appointment_number
from app.scheduling.permissions import (
    SYSTEM_PRINCIPAL,
    Operation,
    Principal,
    Role,
    authorize,
    role_can,
)
from app.scheduling.slots import localize
from app.scheduling.state_machine import (
    ensure_cancellation_window,
    event_for,
    reschedule_snapshot,
    transition_values,
    validate_reschedule,
    validate_transition,
)
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListData,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    ClinicalNotesUpdate,
    PaymentStatus,
    SortOrder,
)
from app.schemas.availability import DayAvailability, SlotStatus
from app.schemas.common import Pagination
from app.schemas.doctors import DoctorProfile
from app.schemas.statistics import AppointmentStatistics, DateRange, StatisticsPeriod
from app.services.directory_service import DirectoryService

logger = structlog.get_logger(__name__)

# Conditional status writes that lose a race are retried this many times
MAX_WRITE_ATTEMPTS = 3

NOTES_STATUSES = (AppointmentStatus.CONFIRMED.value, AppointmentStatus.COMPLETED.value)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class AppointmentService:
    """Service for managing appointments."""

    def __init__(
        self,
        db: AsyncSession,
        directory: DirectoryService | None = None,
        emitter: EventEmitter | None = None,
        clock: Clock = utc_now,
    ):
        """
        Initialize service.

        Args:
            db: Database session
            directory: Lookups of users, patients and doctors
            emitter: Receives an event after every committed change
            clock: Returns the current aware UTC time
        """
        self.db = db
        self.directory = directory or DirectoryService(db)
        self.emitter = emitter or EventEmitter()
        self.clock = clock
        self.availability = AvailabilityResolver(db, step=settings.slot_duration_minutes)
        self.conflicts = ConflictDetector(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load(self, appointment_id: UUID) -> dict[str, Any]:
        result = await self.db.execute(
            select(appointments).where(appointments.c.id == appointment_id)
        )
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Appointment not found")
        return dict(row)

    @staticmethod
    def _require(
        principal: Principal,
        operation: Operation,
        appointment: dict[str, Any] | None = None,
    ) -> None:
        """Raise unauthorized for a role that can never do ``operation``, forbidden otherwise."""
        if not role_can(principal.role, operation):
            raise UnauthorizedException(
                f"Role {principal.role.value} is not allowed to {operation.value.replace('-', ' ')}"
            )
        if not authorize(principal, operation, appointment):
            raise ForbiddenException("Access denied to this appointment")

    def _scope_conditions(self, principal: Principal) -> list:
        """Restrict queries to the caller's own appointments."""
        if principal.role == Role.PATIENT:
            if principal.profile_id is None:
                raise NotFoundException("Patient profile not found")
            return [appointments.c.patient_id == principal.profile_id]
        if principal.role == Role.DOCTOR:
            if principal.profile_id is None:
                raise NotFoundException("Doctor profile not found")
            return [appointments.c.doctor_id == principal.profile_id]
        return []

    async def _bookable_doctor(self, doctor_id: UUID) -> DoctorProfile:
        profile = await self.directory.get_doctor(doctor_id)
        if profile is None:
            raise NotFoundException("Doctor not found")
        return profile

    async def _ensure_slot_open(
        self,
        profile: DoctorProfile,
        patient_id: UUID,
        day: date,
        hhmm: str,
        exclude_id: UUID | None = None,
    ) -> None:
        """Reject slots already held by the doctor or the patient."""
        schedule = await self.availability.schedule_for(profile, day, exclude_id=exclude_id)
        slot = schedule.slot_at(hhmm)
        if slot is not None and slot.status == SlotStatus.BOOKED:
            raise SlotTakenException()
        await self.conflicts.ensure_free(profile.id, patient_id, day, hhmm, exclude_id)

    async def _resolve_booking_patient(
        self,
        principal: Principal,
        data: AppointmentCreate,
    ) -> UUID:
        if principal.role == Role.PATIENT:
            if principal.profile_id is None:
                raise NotFoundException("Patient profile not found")
            if data.patient_id is not None and data.patient_id != principal.profile_id:
                raise UnauthorizedException("Patients can only book appointments for themselves")
            return principal.profile_id

        if not role_can(principal.role, Operation.CREATE):
            raise UnauthorizedException(f"Role {principal.role.value} is not allowed to create")
        if data.patient_id is None:
            raise ValidationException("patientId is required when booking for a patient")
        return data.patient_id

    def _event(
        self,
        event_type: AppointmentEventType,
        row: dict[str, Any],
        principal: Principal,
        previous_slot: SlotRef | None = None,
        reason: str | None = None,
    ) -> AppointmentEvent:
        return AppointmentEvent(
            type=event_type,
            appointment_id=row["id"],
            appointment_number=row["appointment_number"],
            patient_id=row["patient_id"],
            doctor_id=row["doctor_id"],
            status=row["status"],
            priority=row["priority"],
            slot=SlotRef(date=row["appointment_date"], time=row["appointment_time"]),
            previous_slot=previous_slot,
            reason=reason,
            actor_id=principal.user_id,
            actor_role=principal.role.value,
            occurred_at=self.clock(),
        )

    async def _conditional_update(
        self,
        appointment_id: UUID,
        expected_status: str,
        values: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Write ``values`` only if the status is still ``expected_status``."""
        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.id == appointment_id,
                    appointments.c.status == expected_status,
                )
            )
            .values(**values)
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        if row is None:
            await self.db.rollback()
            return None
        row = dict(row)
        await self.db.commit()
        return row

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create_appointment(
        self,
        principal: Principal,
        data: AppointmentCreate,
    ) -> AppointmentResponse:
        """
        Book a new appointment.

        Args:
            principal: Authenticated caller
            data: Appointment creation data

        Returns:
            Created appointment in status ``scheduled``

        Raises:
            NotFoundException: Patient or doctor does not exist
            DoctorInactiveException: Doctor is inactive or on leave that day
            InvalidSlotException: Slot is past, off-grid or outside hours
            SlotTakenException: Doctor already holds the slot
            PatientConflictException: Patient already holds the slot
        """
        patient_id = await self._resolve_booking_patient(principal, data)
        self._require(principal, Operation.CREATE, {"patient_id": patient_id})

        await self.directory.get_active_patient(patient_id)
        profile = await self._bookable_doctor(data.doctor_id)

        now = self.clock()
        ensure_bookable(
            profile,
            data.appointment_date,
            data.appointment_time,
            now,
            settings.slot_duration_minutes,
        )
        await self._ensure_slot_open(
            profile, patient_id, data.appointment_date, data.appointment_time
        )

        try:
            appointment_number = await next_appointment_number(self.db)
            values = {
                "id": uuid4(),
                "appointment_number": appointment_number,
                "patient_id": patient_id,
                "doctor_id": profile.id,
                "appointment_date": data.appointment_date,
                "appointment_time": data.appointment_time,
                "type": data.type.value,
                "priority": data.priority.value,
                "reason": data.reason,
                "symptoms": list(data.symptoms),
                "notes": data.notes,
                "status": AppointmentStatus.SCHEDULED.value,
                "payment_status": PaymentStatus.UNPAID.value,
                "recommendations": [],
                "reschedule_history": [],
                "follow_up_required": False,
                "created_by": principal.user_id,
                "updated_by": principal.user_id,
                "created_at": now,
                "updated_at": now,
            }
            result = await self.db.execute(
                insert(appointments).values(**values).returning(appointments)
            )
            row = dict(result.mappings().one())
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info(
                "appointment_slot_race_lost",
                doctor_id=str(profile.id),
                patient_id=str(patient_id),
                appointment_date=data.appointment_date.isoformat(),
                appointment_time=data.appointment_time,
            )
            raise translate_integrity_error(e) from e

        logger.info(
            "appointment_created",
            appointment_id=str(row["id"]),
            appointment_number=row["appointment_number"],
            doctor_id=str(row["doctor_id"]),
            patient_id=str(row["patient_id"]),
            actor_role=principal.role.value,
        )
        await self.emitter.emit(self._event(AppointmentEventType.CREATED, row, principal))

        return AppointmentResponse.model_validate(row)

    async def get_appointment(
        self,
        principal: Principal,
        appointment_id: UUID,
    ) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is not a participant
        """
        row = await self._load(appointment_id)
        self._require(principal, Operation.VIEW, row)
        return AppointmentResponse.model_validate(row)

    async def list_appointments(
        self,
        principal: Principal,
        filters: AppointmentFilters,
    ) -> AppointmentListData:
        """
        List appointments with filtering and pagination.

        Patients see their own appointments, doctors the ones booked with
        them, admins everything.
        """
        self._require(principal, Operation.LIST)
        conditions = self._scope_conditions(principal)

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.type:
            conditions.append(appointments.c.type == filters.type.value)

        if filters.priority:
            conditions.append(appointments.c.priority == filters.priority.value)

        if filters.doctor_id:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.date_from:
            conditions.append(appointments.c.appointment_date >= filters.date_from)

        if filters.date_to:
            conditions.append(appointments.c.appointment_date <= filters.date_to)

        # Count total
        count_stmt = select(func.count()).select_from(appointments).where(*conditions)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        # Get paginated results
        if filters.sort_order == SortOrder.DESC:
            ordering = (appointments.c.appointment_date.desc(), appointments.c.appointment_time.desc())
        else:
            ordering = (appointments.c.appointment_date.asc(), appointments.c.appointment_time.asc())

        offset = (filters.page - 1) * filters.limit
        stmt = (
            select(appointments)
            .where(*conditions)
            .order_by(*ordering)
            .limit(filters.limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        items = [AppointmentResponse.model_validate(dict(row)) for row in result.mappings().all()]

        return AppointmentListData(
            items=items,
            pagination=Pagination(
                page=filters.page,
                limit=filters.limit,
                total=total,
                total_pages=math.ceil(total / filters.limit) if total else 0,
                has_next_page=filters.page * filters.limit < total,
            ),
        )

    async def update_status(
        self,
        principal: Principal,
        appointment_id: UUID,
        data: AppointmentStatusUpdate,
    ) -> AppointmentResponse:
        """
        Move an appointment along its lifecycle.

        Args:
            principal: Authenticated caller
            appointment_id: Appointment ID
            data: Target status, cancellation reason and notes

        Returns:
            Updated appointment

        Raises:
            InvalidTransitionException: Change is not part of the lifecycle
            UnauthorizedException: Caller's role may not make this change
            ValidationException: Cancelling without a reason
            CancelWindowExpiredException: Patient cancelling too late
        """
        target = data.status

        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            row = await self._load(appointment_id)
            self._require(principal, Operation.UPDATE_STATUS, row)
            current = AppointmentStatus(row["status"])

            if target == AppointmentStatus.RESCHEDULED:
                raise InvalidTransitionException(
                    current.value,
                    target.value,
                    "Use the reschedule operation to move an appointment to a new slot",
                )
            validate_transition(current, target, principal.role)

            now = self.clock()
            values = transition_values(
                target,
                principal.user_id,
                now,
                cancellation_reason=data.cancellation_reason,
                notes=data.notes,
            )

            if target == AppointmentStatus.CANCELLED:
                profile = await self.directory.get_doctor(row["doctor_id"])
                tz_name = profile.timezone if profile else settings.default_doctor_timezone
                start = localize(row["appointment_date"], row["appointment_time"], tz_name)
                ensure_cancellation_window(
                    start, now, principal.role, settings.patient_cancellation_window_hours
                )

            updated = await self._conditional_update(appointment_id, current.value, values)
            if updated is None:
                logger.info(
                    "appointment_status_write_retry",
                    appointment_id=str(appointment_id),
                    expected_status=current.value,
                    attempt=attempt,
                )
                continue

            logger.info(
                "appointment_status_updated",
                appointment_id=str(appointment_id),
                from_status=current.value,
                to_status=target.value,
                actor_role=principal.role.value,
            )
            event_type = event_for(target)
            if event_type is not None:
                await self.emitter.emit(
                    self._event(event_type, updated, principal, reason=data.cancellation_reason)
                )
            return AppointmentResponse.model_validate(updated)

        raise ConflictException("Appointment was modified concurrently, please retry")

    async def reschedule(
        self,
        principal: Principal,
        appointment_id: UUID,
        data: AppointmentReschedule,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new slot.

        The old slot is kept in ``previous_appointment`` and appended to
        ``reschedule_history``; the appointment ends up ``rescheduled``.

        Raises:
            InvalidTransitionException: Appointment is completed or cancelled
            InvalidSlotException: New slot is past, off-grid or outside hours
            SlotTakenException: Doctor already holds the new slot
            PatientConflictException: Patient already holds the new slot
        """
        new_date = data.new_appointment_date
        new_time = data.new_appointment_time

        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            row = await self._load(appointment_id)
            self._require(principal, Operation.RESCHEDULE, row)
            current = AppointmentStatus(row["status"])
            validate_reschedule(current, principal.role)

            profile = await self._bookable_doctor(row["doctor_id"])
            now = self.clock()
            ensure_bookable(profile, new_date, new_time, now, settings.slot_duration_minutes)
            await self._ensure_slot_open(
                profile, row["patient_id"], new_date, new_time, exclude_id=appointment_id
            )

            snapshot = reschedule_snapshot(row, principal.user_id, now, data.reason)
            values = {
                "appointment_date": new_date,
                "appointment_time": new_time,
                "status": AppointmentStatus.RESCHEDULED.value,
                "previous_appointment": snapshot,
                "reschedule_history": [*(row["reschedule_history"] or []), snapshot],
                "updated_by": principal.user_id,
                "updated_at": now,
            }

            try:
                updated = await self._conditional_update(appointment_id, current.value, values)
            except IntegrityError as e:
                await self.db.rollback()
                raise translate_integrity_error(e) from e

            if updated is None:
                logger.info(
                    "appointment_reschedule_retry",
                    appointment_id=str(appointment_id),
                    expected_status=current.value,
                    attempt=attempt,
                )
                continue

            logger.info(
                "appointment_rescheduled",
                appointment_id=str(appointment_id),
                from_date=row["appointment_date"].isoformat(),
                from_time=row["appointment_time"],
                to_date=new_date.isoformat(),
                to_time=new_time,
                actor_role=principal.role.value,
            )
            previous_slot = SlotRef(date=row["appointment_date"], time=row["appointment_time"])
            await self.emitter.emit(
                self._event(
                    AppointmentEventType.RESCHEDULED,
                    updated,
                    principal,
                    previous_slot=previous_slot,
                    reason=data.reason,
                )
            )
            return AppointmentResponse.model_validate(updated)

        raise ConflictException("Appointment was modified concurrently, please retry")

    async def add_clinical_notes(
        self,
        principal: Principal,
        appointment_id: UUID,
        data: ClinicalNotesUpdate,
    ) -> AppointmentResponse:
        """
        Record the treating doctor's notes on a confirmed or completed appointment.

        Raises:
            UnauthorizedException: Caller is not a doctor
            ForbiddenException: Doctor is not the appointment's doctor
            ValidationException: Appointment is not confirmed or completed, or
                the follow-up date is not after the appointment date
        """
        row = await self._load(appointment_id)
        if principal.role != Role.DOCTOR:
            raise UnauthorizedException("Only doctors can add clinical notes")
        self._require(principal, Operation.ADD_NOTES, row)

        if row["status"] not in NOTES_STATUSES:
            raise ValidationException(
                "Clinical notes can only be added to confirmed or completed appointments"
            )
        if data.follow_up_date and data.follow_up_date <= row["appointment_date"]:
            raise ValidationException("followUpDate must be after the appointment date")

        now = self.clock()
        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.id == appointment_id,
                    appointments.c.status.in_(NOTES_STATUSES),
                )
            )
            .values(
                clinical_notes=data.clinical_notes,
                follow_up_required=data.follow_up_required,
                follow_up_date=data.follow_up_date,
                recommendations=list(data.recommendations),
                notes_added_at=now,
                updated_by=principal.user_id,
                updated_at=now,
            )
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        updated = result.mappings().first()
        if updated is None:
            await self.db.rollback()
            raise ValidationException(
                "Clinical notes can only be added to confirmed or completed appointments"
            )
        updated = dict(updated)
        await self.db.commit()

        logger.info(
            "clinical_notes_added",
            appointment_id=str(appointment_id),
            follow_up_required=data.follow_up_required,
        )
        return AppointmentResponse.model_validate(updated)

    async def get_availability(
        self,
        principal: Principal,
        doctor_id: UUID,
        day: date,
    ) -> DayAvailability:
        """
        A doctor's slots for one date.

        Only admins see which patient holds a booked slot.

        Raises:
            NotFoundException: Doctor does not exist or is inactive
        """
        self._require(principal, Operation.VIEW_AVAILABILITY)
        profile = await self.directory.get_active_doctor(doctor_id)
        return await self.availability.schedule_for(
            profile,
            day,
            include_booked_by=principal.role == Role.ADMIN,
        )

    @staticmethod
    def period_range(period: StatisticsPeriod, today: date) -> tuple[date, date]:
        """Inclusive date range for ``period`` ending ``today``. Weeks start on Sunday."""
        if period == StatisticsPeriod.DAY:
            return today, today
        if period == StatisticsPeriod.WEEK:
            return today - timedelta(days=(today.weekday() + 1) % 7), today
        if period == StatisticsPeriod.MONTH:
            return today.replace(day=1), today
        return today.replace(month=1, day=1), today

    async def _count_by(self, column, conditions: list) -> dict[str, int]:
        stmt = (
            select(column, func.count())
            .select_from(appointments)
            .where(*conditions)
            .group_by(column)
        )
        result = await self.db.execute(stmt)
        return {value: count for value, count in result.all()}

    async def get_statistics(
        self,
        principal: Principal,
        period: StatisticsPeriod = StatisticsPeriod.MONTH,
    ) -> AppointmentStatistics:
        """Dashboard counters for the caller's appointments over ``period``."""
        self._require(principal, Operation.VIEW_STATISTICS)
        scope = self._scope_conditions(principal)

        today = self.clock().date()
        date_from, date_to = self.period_range(period, today)
        in_range = [
            *scope,
            appointments.c.appointment_date >= date_from,
            appointments.c.appointment_date <= date_to,
        ]

        total_stmt = select(func.count()).select_from(appointments).where(*in_range)
        total = (await self.db.execute(total_stmt)).scalar() or 0

        upcoming_stmt = (
            select(func.count())
            .select_from(appointments)
            .where(
                *scope,
                appointments.c.appointment_date >= today,
                appointments.c.status.in_(SLOT_HOLDING_STATUSES),
            )
        )
        upcoming = (await self.db.execute(upcoming_stmt)).scalar() or 0

        return AppointmentStatistics(
            period=period,
            date_range=DateRange(date_from=date_from, date_to=date_to),
            total=total,
            upcoming=upcoming,
            by_status=await self._count_by(appointments.c.status, in_range),
            by_type=await self._count_by(appointments.c.type, in_range),
            by_priority=await self._count_by(appointments.c.priority, in_range),
        )

    async def settle_rescheduled(self, cutoff: datetime | None = None) -> int:
        """
        Return unconfirmed reschedules to ``scheduled``.

        Appointments still ``rescheduled`` and last touched at or before
        ``cutoff`` are moved back. Runs as the system principal.

        Returns:
            Number of appointments settled
        """
        validate_transition(
            AppointmentStatus.RESCHEDULED,
            AppointmentStatus.SCHEDULED,
            SYSTEM_PRINCIPAL.role,
        )
        now = self.clock()
        if cutoff is None:
            cutoff = now - timedelta(minutes=settings.reschedule_settle_minutes)

        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.status == AppointmentStatus.RESCHEDULED.value,
                    appointments.c.updated_at <= cutoff,
                )
            )
            .values(status=AppointmentStatus.SCHEDULED.value, updated_at=now)
            .returning(appointments.c.id)
        )
        result = await self.db.execute(stmt)
        settled = [row.id for row in result.fetchall()]
        await self.db.commit()

        logger.info(
            "rescheduled_appointments_settled",
            count=len(settled),
            cutoff=cutoff.isoformat(),
        )
        return len(settled)
