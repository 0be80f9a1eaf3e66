"""Hydration goal settings and intake log models."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HydrationSettings(Base):
    """Per-user daily goal and server-side reminder preferences.

    ``wake_hour``/``sleep_hour`` are local hours in the user's timezone.
    ``last_reminded_at`` is claimed with a conditional update so one
    reminder window yields at most one push.
    """

    __tablename__ = "hydration_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    daily_goal_ml = Column(Integer, nullable=False, default=2000)
    reminder_interval_minutes = Column(Integer, nullable=False, default=60)
    reminder_enabled = Column(Boolean, nullable=False, default=True)
    wake_hour = Column(Integer, nullable=False, default=7)
    sleep_hour = Column(Integer, nullable=False, default=22)
    last_reminded_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="hydration_settings")


class HydrationLog(Base):
    """One recorded drink."""

    __tablename__ = "hydration_logs"
    __table_args__ = (Index("ix_hydration_logs_user_created", "user_id", "created_at"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount_ml = Column(Integer, nullable=False, default=250)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
