"""Service layer package."""

from app.services.auth import AuthService
from app.services.dispatcher import DispatchResult, ScheduledNotificationDispatcher
from app.services.hydration import HydrationReminderJob, HydrationService
from app.services.notification_service import FanOutResult, NotificationService, create_push_sender
from app.services.scheduled_notifications import ScheduledNotificationService
from app.services.subscription_registry import SubscriptionRegistry
from app.services.users import UserService
from app.services.vapid_keys import VapidKeyStore

__all__ = [
    "AuthService",
    "DispatchResult",
    "FanOutResult",
    "HydrationReminderJob",
    "HydrationService",
    "NotificationService",
    "ScheduledNotificationDispatcher",
    "ScheduledNotificationService",
    "SubscriptionRegistry",
    "UserService",
    "VapidKeyStore",
    "create_push_sender",
]
