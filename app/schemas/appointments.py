"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum
from typing import Annotated
from uuid import UUID

from pydantic import Field, model_validator

from app.schemas.common import CamelModel, Pagination

# 24-hour "HH:MM"; grid alignment is checked by the scheduler, not here
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

AppointmentTime = Annotated[str, Field(pattern=TIME_PATTERN, examples=["10:30"])]
Symptom = Annotated[str, Field(min_length=1, max_length=200)]
Recommendation = Annotated[str, Field(min_length=1, max_length=500)]


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"
    RESCHEDULED = "rescheduled"


class AppointmentType(str, Enum):
    """Kind of clinical encounter."""

    CONSULTATION = "consultation"
    FOLLOW_UP = "follow-up"
    CHECKUP = "checkup"
    EMERGENCY = "emergency"
    SURGERY = "surgery"
    TEST = "test"


class AppointmentPriority(str, Enum):
    """Clinical priority."""

    ROUTINE = "routine"
    URGENT = "urgent"
    EMERGENCY = "emergency"


class PaymentStatus(str, Enum):
    """Payment state, maintained by the payment service."""

    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"


class SortOrder(str, Enum):
    """Sort direction for listings."""

    ASC = "asc"
    DESC = "desc"


class AppointmentCreate(CamelModel):
    """Schema for booking a new appointment."""

    doctor_id: UUID
    # Required when a doctor or admin books on behalf of a patient
    patient_id: UUID | None = None
    appointment_date: date
    appointment_time: AppointmentTime
    type: AppointmentType
    reason: str = Field(..., min_length=1, max_length=500)
    symptoms: list[Symptom] = Field(default_factory=list, max_length=20)
    priority: AppointmentPriority = AppointmentPriority.ROUTINE
    notes: str | None = Field(None, max_length=1000)


class AppointmentStatusUpdate(CamelModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    cancellation_reason: str | None = Field(None, min_length=1, max_length=500)
    notes: str | None = Field(None, max_length=1000)


class AppointmentReschedule(CamelModel):
    """Schema for moving an appointment to a new slot."""

    new_appointment_date: date
    new_appointment_time: AppointmentTime
    reason: str | None = Field(None, max_length=500)


class ClinicalNotesUpdate(CamelModel):
    """Schema for doctor's clinical notes."""

    clinical_notes: str = Field(..., min_length=1, max_length=5000)
    follow_up_required: bool = False
    follow_up_date: date | None = None
    recommendations: list[Recommendation] = Field(default_factory=list, max_length=50)

    @model_validator(mode="after")
    def follow_up_date_implies_required(self) -> "ClinicalNotesUpdate":
        """A follow-up date only makes sense when a follow-up is required."""
        if self.follow_up_date is not None and not self.follow_up_required:
            raise ValueError("followUpDate requires followUpRequired to be true")
        return self


class RescheduleSnapshot(CamelModel):
    """Slot an appointment occupied before a reschedule."""

    appointment_date: date
    appointment_time: str
    previous_status: AppointmentStatus
    rescheduled_at: datetime
    rescheduled_by: UUID | None = None
    reschedule_reason: str | None = None


class AppointmentResponse(CamelModel):
    """Schema for appointment response."""

    id: UUID
    appointment_number: str
    patient_id: UUID
    doctor_id: UUID
    appointment_date: date
    appointment_time: str
    type: AppointmentType
    priority: AppointmentPriority
    reason: str
    symptoms: list[str] = Field(default_factory=list)
    notes: str | None = None
    status: AppointmentStatus
    payment_status: PaymentStatus
    medical_record_id: UUID | None = None
    prescription_id: UUID | None = None
    clinical_notes: str | None = None
    recommendations: list[str] = Field(default_factory=list)
    follow_up_required: bool = False
    follow_up_date: date | None = None
    previous_appointment: RescheduleSnapshot | None = None
    reschedule_history: list[RescheduleSnapshot] = Field(default_factory=list)
    created_by: UUID | None = None
    updated_by: UUID | None = None
    cancelled_by: UUID | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    completed_at: datetime | None = None
    notes_added_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="before")
    @classmethod
    def null_lists_to_empty(cls, data: dict) -> dict:
        """JSON list columns are NULL until first written."""
        if isinstance(data, dict):
            data = dict(data)
            for key in ("symptoms", "recommendations", "reschedule_history"):
                if data.get(key) is None:
                    data[key] = []
        return data


class AppointmentFilters(CamelModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    type: AppointmentType | None = None
    priority: AppointmentPriority | None = None
    doctor_id: UUID | None = None
    patient_id: UUID | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_order: SortOrder = SortOrder.ASC

    @model_validator(mode="after")
    def check_date_range(self) -> "AppointmentFilters":
        """Reject inverted date ranges."""
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("dateFrom must not be after dateTo")
        return self


class AppointmentListData(CamelModel):
    """Paginated appointment list."""

    items: list[AppointmentResponse]
    pagination: Pagination
