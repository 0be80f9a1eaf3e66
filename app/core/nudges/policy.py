"""When local nudges may fire, and how loudly."""
from __future__ import annotations

from datetime import datetime
from enum import Enum

from app.core.nudges.rhythm import LifeRhythm, is_weekend

RELAXED_WEEKEND_WAKE_HOUR = 9
WIND_DOWN_HOUR = 21
EVENING_HOUR = 19
GENTLE_BLOCK_PATTERNS = ("busy", "focused", "study")


class NudgeIntensity(str, Enum):
    NORMAL = "normal"
    GENTLE = "gentle"
    SILENT = "silent"


def _weekday_block(hour: int) -> str:
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    return "evening"


def is_active_hours(now: datetime, rhythm: LifeRhythm) -> bool:
    """``wake_hour <= hour < sleep_hour``, adjusted by the onboarded profile."""

    hour = now.hour
    wake_hour = rhythm.wake_hour
    weekend = is_weekend(now)

    if rhythm.onboarding_complete:
        if weekend and rhythm.weekend_pattern.pace == "relaxed":
            wake_hour = max(wake_hour, RELAXED_WEEKEND_WAKE_HOUR)
        if not weekend and rhythm.weekday_pattern.night == "wind down" and hour >= WIND_DOWN_HOUR:
            return False

    return wake_hour <= hour < rhythm.sleep_hour


def nudge_intensity(now: datetime, rhythm: LifeRhythm) -> NudgeIntensity:
    if not is_active_hours(now, rhythm):
        return NudgeIntensity.SILENT

    if rhythm.onboarding_complete:
        weekend = is_weekend(now)
        if weekend and rhythm.weekend_pattern.flexibility == "high":
            return NudgeIntensity.GENTLE
        if now.hour >= EVENING_HOUR:
            return NudgeIntensity.GENTLE
        if not weekend:
            pattern = rhythm.weekday_pattern.for_block(_weekday_block(now.hour))
            if pattern in GENTLE_BLOCK_PATTERNS:
                return NudgeIntensity.GENTLE

    return NudgeIntensity.NORMAL
