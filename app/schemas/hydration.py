"""Schemas for hydration tracking and the reminder job."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class HydrationSettingsRead(BaseModel):
    daily_goal_ml: int
    reminder_interval_minutes: int
    reminder_enabled: bool
    wake_hour: int
    sleep_hour: int
    last_reminded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class HydrationSettingsUpdate(BaseModel):
    """Partial update; omitted fields keep their value."""

    daily_goal_ml: Optional[int] = Field(default=None, ge=250, le=10000)
    reminder_interval_minutes: Optional[int] = Field(default=None, ge=15, le=24 * 60)
    reminder_enabled: Optional[bool] = None
    wake_hour: Optional[int] = Field(default=None, ge=0, le=23)
    sleep_hour: Optional[int] = Field(default=None, ge=1, le=24)


class HydrationLogCreate(BaseModel):
    amount_ml: int = Field(default=250, ge=1, le=5000)


class HydrationLogRead(BaseModel):
    id: uuid.UUID
    amount_ml: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HydrationSummary(BaseModel):
    """Intake on the caller's local calendar day."""

    total_ml: int
    goal_ml: int
    remaining_ml: int
    percent: int
    goal_reached: bool


class HydrationReminderResponse(BaseModel):
    checked: int
    reminded: int
    pushSent: int
