"""Pydantic schemas for web push subscriptions and direct sends."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PushSubscriptionKeys(BaseModel):
    """Keys the browser generated for payload encryption."""

    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class PushSubscriptionCreate(BaseModel):
    """Body of ``PushSubscription.toJSON()`` as uploaded by the client."""

    endpoint: str = Field(min_length=1)
    keys: PushSubscriptionKeys
    expirationTime: Optional[float] = None


class PushUnsubscribeRequest(BaseModel):
    """Request to drop one device subscription."""

    endpoint: str = Field(min_length=1)


class PushSubscriptionRead(BaseModel):
    """Subscription as returned to its owner."""

    id: uuid.UUID
    endpoint: str
    p256dh: str
    auth: str
    user_agent: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VapidPublicKeyResponse(BaseModel):
    """Application server key the browser subscribes with."""

    publicKey: str


class UnsubscribeResponse(BaseModel):
    removed: bool


class DirectPushRequest(BaseModel):
    """System-to-system request to push a message to every device of a user."""

    userId: uuid.UUID
    title: Optional[str] = Field(default=None, max_length=200)
    body: Optional[str] = Field(default=None, max_length=1000)
    icon: Optional[str] = None
    tag: Optional[str] = None
    url: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class DeliveryResultRead(BaseModel):
    endpoint: str
    status_code: Optional[int] = None
    success: bool
    gone: bool = False
    rate_limited: bool = False
    retry_after: Optional[str] = None
    error: Optional[str] = None


class FanOutResponse(BaseModel):
    """Outcome of a fan-out across a user's devices."""

    success: bool
    message: str
    sent: int
    total: int
    pruned: int
    results: List[DeliveryResultRead]
