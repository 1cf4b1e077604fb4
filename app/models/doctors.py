"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from app.models.base import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column(
        "user_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    ),
    # Professional credentials
    Column("license_number", String(100), unique=True),
    Column("specialization", String(200), index=True),
    Column("consultation_fee", Numeric(10, 2)),
    Column("is_active", Boolean, nullable=False, server_default=text("true"), index=True),
    # Availability profile, read-only to the scheduler.
    # NULL columns fall back to Mon-Fri 09:00-17:00 with a 13:00-14:00 break.
    Column("available_days", JSON),
    # Example: ["monday", "wednesday", "friday"]
    Column("working_hours_start", String(5)),
    Column("working_hours_end", String(5)),
    Column("break_start", String(5)),
    Column("break_end", String(5)),
    Column("timezone", String(64)),
    Column("unavailable_until", Date),
    Column("unavailability_reason", Text),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
