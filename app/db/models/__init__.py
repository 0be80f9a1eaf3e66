"""Database models package."""
from app.db.models.user import User
from app.db.models.hydration import HydrationLog, HydrationSettings
from app.db.models.push_subscription import PushSubscription
from app.db.models.scheduled_notification import ScheduledNotification
from app.db.models.system_config import SystemConfig

__all__ = [
    "User",
    "PushSubscription",
    "ScheduledNotification",
    "SystemConfig",
    "HydrationSettings",
    "HydrationLog",
]
