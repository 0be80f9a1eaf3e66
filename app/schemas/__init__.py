"""Pydantic schemas package."""

from app.schemas.auth import RefreshRequest, Token, TokenPayload
from app.schemas.hydration import (
    HydrationLogCreate,
    HydrationLogRead,
    HydrationReminderResponse,
    HydrationSettingsRead,
    HydrationSettingsUpdate,
    HydrationSummary,
)
from app.schemas.push import (
    DeliveryResultRead,
    DirectPushRequest,
    FanOutResponse,
    PushSubscriptionCreate,
    PushSubscriptionKeys,
    PushSubscriptionRead,
    PushUnsubscribeRequest,
    UnsubscribeResponse,
    VapidPublicKeyResponse,
)
from app.schemas.scheduled import (
    DispatchResponse,
    ScheduledNotificationCreate,
    ScheduledNotificationRead,
    SnoozeRequest,
)
from app.schemas.user import UserBase, UserCreate, UserLogin, UserRead, UserUpdate

__all__ = [
    "RefreshRequest",
    "Token",
    "TokenPayload",
    "HydrationLogCreate",
    "HydrationLogRead",
    "HydrationReminderResponse",
    "HydrationSettingsRead",
    "HydrationSettingsUpdate",
    "HydrationSummary",
    "DeliveryResultRead",
    "DirectPushRequest",
    "FanOutResponse",
    "PushSubscriptionCreate",
    "PushSubscriptionKeys",
    "PushSubscriptionRead",
    "PushUnsubscribeRequest",
    "UnsubscribeResponse",
    "VapidPublicKeyResponse",
    "DispatchResponse",
    "ScheduledNotificationCreate",
    "ScheduledNotificationRead",
    "SnoozeRequest",
    "UserBase",
    "UserCreate",
    "UserLogin",
    "UserRead",
    "UserUpdate",
]
