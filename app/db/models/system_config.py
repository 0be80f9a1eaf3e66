"""Process-wide key/value configuration persisted in the database."""
from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from app.db.base import Base


class SystemConfig(Base):
    """Holds values that must be shared by every process, such as VAPID keys."""

    __tablename__ = "system_config"

    config_key = Column(String(100), primary_key=True)
    config_value = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
