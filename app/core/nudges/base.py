"""Types shared by the nudge categories."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from app.core.nudges.policy import NudgeIntensity

Clock = Callable[[], datetime]


class NudgePhase(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    FIRED = "fired"


@dataclass(frozen=True)
class Nudge:
    """An in-app toast; never delivered through the push pipeline."""

    category: str
    message: str
    created_at: datetime
    intensity: NudgeIntensity = NudgeIntensity.NORMAL
    icon: Optional[str] = None
    is_break_suggestion: bool = False
