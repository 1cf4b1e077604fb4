"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from app.models.base import SLOT_HOLDING_STATUSES, metadata

_slot_holding = text(
    "status IN (" + ", ".join(f"'{status}'" for status in SLOT_HOLDING_STATUSES) + ")"
)

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("appointment_number", String(20), nullable=False, unique=True),
    # Ownership / references
    Column("patient_id", Uuid, ForeignKey("patients.id"), nullable=False),
    Column("doctor_id", Uuid, ForeignKey("doctors.id"), nullable=False),
    # Slot: local calendar date + "HH:MM" in the doctor's timezone
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", String(5), nullable=False),
    # Classification
    Column("type", String(20), nullable=False),
    Column("priority", String(20), nullable=False, server_default=text("'routine'")),
    Column("reason", Text, nullable=False),
    Column("symptoms", JSON),
    Column("notes", Text),
    # Status management
    Column("status", String(20), nullable=False, server_default=text("'scheduled'")),
    Column("payment_status", String(20), nullable=False, server_default=text("'unpaid'")),
    # Clinical attachments (written by the medical-record / prescription services)
    Column("medical_record_id", Uuid),
    Column("prescription_id", Uuid),
    Column("clinical_notes", Text),
    Column("recommendations", JSON),
    Column("follow_up_required", Boolean, nullable=False, server_default=text("false")),
    Column("follow_up_date", Date),
    # Reschedule trail
    Column("previous_appointment", JSON),
    Column("reschedule_history", JSON),
    # Audit fields
    Column("created_by", Uuid),
    Column("updated_by", Uuid),
    Column("cancelled_by", Uuid),
    Column("cancelled_at", DateTime(timezone=True)),
    Column("cancellation_reason", Text),
    Column("completed_at", DateTime(timezone=True)),
    Column("notes_added_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'completed', 'cancelled', 'no-show', 'rescheduled')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "type IN ('consultation', 'follow-up', 'checkup', 'emergency', 'surgery', 'test')",
        name="appointments_type_check",
    ),
    CheckConstraint(
        "priority IN ('routine', 'urgent', 'emergency')",
        name="appointments_priority_check",
    ),
    CheckConstraint(
        "payment_status IN ('unpaid', 'paid', 'refunded')",
        name="appointments_payment_status_check",
    ),
    CheckConstraint(
        "(status = 'cancelled' AND cancellation_reason IS NOT NULL) "
        "OR (status <> 'cancelled' AND cancellation_reason IS NULL)",
        name="appointments_cancellation_reason_check",
    ),
)

# A doctor and a patient can each hold a slot only once
Index(
    "uq_appointments_doctor_slot",
    appointments.c.doctor_id,
    appointments.c.appointment_date,
    appointments.c.appointment_time,
    unique=True,
    postgresql_where=_slot_holding,
    sqlite_where=_slot_holding,
)
Index(
    "uq_appointments_patient_slot",
    appointments.c.patient_id,
    appointments.c.appointment_date,
    appointments.c.appointment_time,
    unique=True,
    postgresql_where=_slot_holding,
    sqlite_where=_slot_holding,
)

# Availability and listing queries
Index("idx_appointments_doctor_date", appointments.c.doctor_id, appointments.c.appointment_date)
Index("idx_appointments_patient_id", appointments.c.patient_id)
Index("idx_appointments_doctor_id", appointments.c.doctor_id)
Index("idx_appointments_status", appointments.c.status)
Index("idx_appointments_date", appointments.c.appointment_date)
