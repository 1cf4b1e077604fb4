"""In-app notification records produced from appointment events."""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
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

from app.models.base import metadata

notifications = Table(
    "notifications",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("title", Text, nullable=False),
    Column("body", Text, nullable=False),
    Column("notification_type", String(50), nullable=False),
    Column("priority", String(20), nullable=False, server_default=text("'normal'")),
    Column("data", JSON, nullable=True),
    # Delivery is owned by the notification service; we only create pending rows
    Column("status", String(20), nullable=False, server_default=text("'pending'")),
    Column("read_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "notification_type IN ('appointment_created', 'appointment_confirmed', "
        "'appointment_cancelled', 'appointment_completed', 'appointment_no_show', "
        "'appointment_rescheduled', 'other')",
        name="notifications_type_check",
    ),
    CheckConstraint(
        "priority IN ('low', 'normal', 'high', 'urgent')",
        name="notifications_priority_check",
    ),
    CheckConstraint(
        "status IN ('pending', 'sent', 'delivered', 'failed', 'read')",
        name="notifications_status_check",
    ),
    Index("idx_notifications_user_id", "user_id"),
    Index("idx_notifications_user_status", "user_id", "status"),
    Index("idx_notifications_type", "notification_type"),
)
