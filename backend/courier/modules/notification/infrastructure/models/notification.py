"""SQLAlchemy model for the Notification aggregate."""

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text

from courier.core.database import Base


class NotificationModel(Base):
    """Database model for notifications."""

    __tablename__ = "notifications"

    # Primary key
    id = Column(String(36), primary_key=True)

    # Core fields
    recipient_id = Column(String(255), nullable=False, index=True)
    notification_type = Column(String(50), nullable=False)
    priority = Column(String(20), nullable=False, default="NORMAL")
    priority_level = Column(Integer, nullable=False, default=2, index=True)
    delivery_channels = Column(JSON, nullable=False, default=list)

    # Content fields
    title = Column(String(100), nullable=False)
    message = Column(Text, nullable=False)
    image_url = Column(String(2048), nullable=True)
    action_url = Column(String(2048), nullable=True)
    action_text = Column(String(100), nullable=True)

    # Template reference
    template_id = Column(String(255), nullable=True)
    template_variables = Column(JSON, nullable=False, default=dict)

    # Status tracking
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    delivery_attempts = Column(JSON, nullable=False, default=list)
    attempt_count = Column(Integer, nullable=False, default=0)
    max_retries = Column(Integer, nullable=False, default=3)

    # Scheduling
    scheduled_at = Column(DateTime(timezone=True), nullable=True, index=True)
    timezone = Column(String(64), nullable=True)
    recurrence = Column(String(20), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)

    version = Column(Integer, nullable=False, default=1)

    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)

    __table_args__ = (
        Index("idx_notifications_recipient_status", "recipient_id", "status"),
        Index("idx_notifications_scheduled", "scheduled_at", "status"),
        Index("idx_notifications_priority_created", "priority_level", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<NotificationModel(id={self.id}, status={self.status})>"


__all__ = ["Base", "NotificationModel"]
