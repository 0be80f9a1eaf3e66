"""Scheduled notification model."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScheduledNotification(Base):
    """A future reminder waiting for the dispatcher.

    Rows are never deleted; once claimed by a dispatcher run ``sent`` stays
    true whether or not a device accepted the push. Snoozing appends a new
    row and points ``superseded_by_id`` of the original at it.
    """

    __tablename__ = "scheduled_notifications"
    __table_args__ = (
        Index("ix_scheduled_notifications_due", "sent", "scheduled_for"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    notification_type = Column(String(50), nullable=False, default="reminder")
    title = Column(Text, nullable=False)
    body = Column(Text, nullable=False)
    scheduled_for = Column(DateTime(timezone=True), nullable=False)

    sent = Column(Boolean, nullable=False, default=False)
    sent_at = Column(DateTime(timezone=True))
    delivery_error = Column(Text)
    superseded_by_id = Column(
        UUID(as_uuid=True), ForeignKey("scheduled_notifications.id", ondelete="SET NULL")
    )

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    user = relationship("User", back_populates="scheduled_notifications")

    @property
    def is_pending(self) -> bool:
        return not self.sent and self.superseded_by_id is None
