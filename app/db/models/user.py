"""User database model."""
import uuid

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class User(Base):
    """Represents an application user."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255))

    # Settings
    notifications_enabled = Column(Boolean, default=True, nullable=False)
    timezone = Column(String(64), default="UTC", nullable=False)

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    is_active = Column(Boolean, default=True)

    push_subscriptions = relationship(
        "PushSubscription", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    scheduled_notifications = relationship(
        "ScheduledNotification", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    hydration_settings = relationship(
        "HydrationSettings",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
