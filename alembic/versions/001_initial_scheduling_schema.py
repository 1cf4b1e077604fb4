"""Create scheduling schema: users, patients, doctors, appointments, counters, notifications.

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SLOT_HOLDING = "status IN ('scheduled', 'confirmed', 'rescheduled')"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    # Users
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("phone", sa.VARCHAR(length=20), nullable=True),
        sa.Column("role", sa.VARCHAR(length=20), server_default="patient", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "role IN ('patient', 'doctor', 'admin', 'technician')",
            name="users_role_check",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # Patients
    op.create_table(
        "patients",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("blood_group", sa.VARCHAR(length=10), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.VARCHAR(length=20), nullable=True),
        sa.Column("emergency_contact_name", sa.Text(), nullable=True),
        sa.Column("emergency_contact_phone", sa.VARCHAR(length=20), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index("ix_patients_user_id", "patients", ["user_id"])

    # Doctors
    op.create_table(
        "doctors",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("license_number", sa.VARCHAR(length=100), nullable=True),
        sa.Column("specialization", sa.VARCHAR(length=200), nullable=True),
        sa.Column("consultation_fee", sa.Numeric(10, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("available_days", postgresql.JSON(), nullable=True),
        sa.Column("working_hours_start", sa.VARCHAR(length=5), nullable=True),
        sa.Column("working_hours_end", sa.VARCHAR(length=5), nullable=True),
        sa.Column("break_start", sa.VARCHAR(length=5), nullable=True),
        sa.Column("break_end", sa.VARCHAR(length=5), nullable=True),
        sa.Column("timezone", sa.VARCHAR(length=64), nullable=True),
        sa.Column("unavailable_until", sa.Date(), nullable=True),
        sa.Column("unavailability_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
        sa.UniqueConstraint("license_number"),
    )
    op.create_index("ix_doctors_user_id", "doctors", ["user_id"])
    op.create_index("ix_doctors_specialization", "doctors", ["specialization"])
    op.create_index("ix_doctors_is_active", "doctors", ["is_active"])

    # Counters
    counters_table = op.create_table(
        "counters",
        sa.Column("name", sa.VARCHAR(length=50), nullable=False),
        sa.Column("value", sa.BigInteger(), server_default=sa.text("0"), nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )
    op.bulk_insert(counters_table, [{"name": "appointment", "value": 0}])

    # Appointments
    op.create_table(
        "appointments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("appointment_number", sa.VARCHAR(length=20), nullable=False),
        sa.Column("patient_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("doctor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.VARCHAR(length=5), nullable=False),
        sa.Column("type", sa.VARCHAR(length=20), nullable=False),
        sa.Column("priority", sa.VARCHAR(length=20), server_default="routine", nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("symptoms", postgresql.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.VARCHAR(length=20), server_default="scheduled", nullable=False),
        sa.Column(
            "payment_status", sa.VARCHAR(length=20), server_default="unpaid", nullable=False
        ),
        sa.Column("medical_record_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("prescription_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("clinical_notes", sa.Text(), nullable=True),
        sa.Column("recommendations", postgresql.JSON(), nullable=True),
        sa.Column(
            "follow_up_required", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        sa.Column("follow_up_date", sa.Date(), nullable=True),
        sa.Column("previous_appointment", postgresql.JSON(), nullable=True),
        sa.Column("reschedule_history", postgresql.JSON(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("cancelled_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("cancelled_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("completed_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("notes_added_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'completed', 'cancelled', 'no-show', "
            "'rescheduled')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "type IN ('consultation', 'follow-up', 'checkup', 'emergency', 'surgery', 'test')",
            name="appointments_type_check",
        ),
        sa.CheckConstraint(
            "priority IN ('routine', 'urgent', 'emergency')",
            name="appointments_priority_check",
        ),
        sa.CheckConstraint(
            "payment_status IN ('unpaid', 'paid', 'refunded')",
            name="appointments_payment_status_check",
        ),
        sa.CheckConstraint(
            "(status = 'cancelled' AND cancellation_reason IS NOT NULL) "
            "OR (status <> 'cancelled' AND cancellation_reason IS NULL)",
            name="appointments_cancellation_reason_check",
        ),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"]),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("appointment_number"),
    )

    # One slot-holding appointment per doctor slot and per patient slot
    op.create_index(
        "uq_appointments_doctor_slot",
        "appointments",
        ["doctor_id", "appointment_date", "appointment_time"],
        unique=True,
        postgresql_where=sa.text(SLOT_HOLDING),
    )
    op.create_index(
        "uq_appointments_patient_slot",
        "appointments",
        ["patient_id", "appointment_date", "appointment_time"],
        unique=True,
        postgresql_where=sa.text(SLOT_HOLDING),
    )
    op.create_index(
        "idx_appointments_doctor_date", "appointments", ["doctor_id", "appointment_date"]
    )
    op.create_index("idx_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("idx_appointments_doctor_id", "appointments", ["doctor_id"])
    op.create_index("idx_appointments_status", "appointments", ["status"])
    op.create_index("idx_appointments_date", "appointments", ["appointment_date"])

    # Notifications
    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("notification_type", sa.VARCHAR(length=50), nullable=False),
        sa.Column("priority", sa.VARCHAR(length=20), server_default="normal", nullable=False),
        sa.Column("data", postgresql.JSON(), nullable=True),
        sa.Column("status", sa.VARCHAR(length=20), server_default="pending", nullable=False),
        sa.Column("read_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "notification_type IN ('appointment_created', 'appointment_confirmed', "
            "'appointment_cancelled', 'appointment_completed', 'appointment_no_show', "
            "'appointment_rescheduled', 'other')",
            name="notifications_type_check",
        ),
        sa.CheckConstraint(
            "priority IN ('low', 'normal', 'high', 'urgent')",
            name="notifications_priority_check",
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'sent', 'delivered', 'failed', 'read')",
            name="notifications_status_check",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_notifications_user_id", "notifications", ["user_id"])
    op.create_index("idx_notifications_user_status", "notifications", ["user_id", "status"])
    op.create_index("idx_notifications_type", "notifications", ["notification_type"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("notifications")
    op.drop_table("appointments")
    op.drop_table("counters")
    op.drop_table("doctors")
    op.drop_table("patients")
    op.drop_table("users")
