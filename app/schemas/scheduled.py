"""Schemas for scheduled notifications and dispatcher runs."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ScheduledNotificationCreate(BaseModel):
    """Schedule a reminder either at an instant or after a delay."""

    title: str = Field(min_length=1, max_length=200)
    body: str = Field(min_length=1, max_length=1000)
    notification_type: str = Field(default="reminder", max_length=50)
    scheduled_for: Optional[datetime] = None
    delay_seconds: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_schedule(self) -> "ScheduledNotificationCreate":
        if (self.scheduled_for is None) == (self.delay_seconds is None):
            raise ValueError("Provide exactly one of scheduled_for or delay_seconds")
        return self


class ScheduledNotificationRead(BaseModel):
    id: uuid.UUID
    notification_type: str
    title: str
    body: str
    scheduled_for: datetime
    sent: bool
    sent_at: Optional[datetime] = None
    superseded_by_id: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SnoozeRequest(BaseModel):
    minutes: int = Field(default=10, ge=1, le=24 * 60)


class DispatchResponse(BaseModel):
    """Counts returned to the external scheduler."""

    processed: int
    pushSent: int
    failed: int
