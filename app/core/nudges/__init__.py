"""Local, best-effort nudges (hydration, focus check-ins)."""

from app.core.nudges.base import Nudge, NudgePhase
from app.core.nudges.focus import FocusSessionNudger, FocusType
from app.core.nudges.hydration import HydrationNudger, HydrationNudgeState
from app.core.nudges.loop import NudgeLoop
from app.core.nudges.policy import NudgeIntensity, is_active_hours, nudge_intensity
from app.core.nudges.rhythm import LifeRhythm, WeekdayPattern, WeekendPattern, parse_life_rhythm
from app.core.nudges.storage import JsonFileStateStore, MemoryStateStore, NudgeStateStore

__all__ = [
    "FocusSessionNudger",
    "FocusType",
    "HydrationNudger",
    "HydrationNudgeState",
    "JsonFileStateStore",
    "LifeRhythm",
    "MemoryStateStore",
    "Nudge",
    "NudgeIntensity",
    "NudgeLoop",
    "NudgePhase",
    "NudgeStateStore",
    "WeekdayPattern",
    "WeekendPattern",
    "is_active_hours",
    "nudge_intensity",
    "parse_life_rhythm",
]
