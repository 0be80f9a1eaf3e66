"""Hydration reminders paced by the user's life rhythm."""
from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from loguru import logger

from app.core.nudges.base import Clock, Nudge, NudgePhase
from app.core.nudges.policy import NudgeIntensity, is_active_hours, nudge_intensity
from app.core.nudges.rhythm import LifeRhythm
from app.core.nudges.storage import MemoryStateStore, NudgeStateStore

STORAGE_KEY = "aurra-smart-hydration"
DEFAULT_INTERVAL_MINUTES = 60
HYDRATION_ICON = "\U0001F4A7"

NUDGE_MESSAGES = (
    "Quick reminder, take a sip of water",
    "Hydration check! How's your water intake?",
    "Don't forget to stay hydrated",
    "Your body will thank you for some water",
    "Time for a water break",
    "Stay refreshed, grab some water",
)

GENTLE_MESSAGES = (
    "Just a soft reminder to hydrate",
    "Water when you're ready",
    "No rush, but water is nice",
)


@dataclass
class HydrationNudgeState:
    enabled: bool = True
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    last_nudge_time: Optional[datetime] = None
    nudges_shown: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isEnabled": self.enabled,
            "intervalMinutes": self.interval_minutes,
            "lastNudgeTime": self.last_nudge_time.isoformat() if self.last_nudge_time else None,
            "nudgesShown": self.nudges_shown,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HydrationNudgeState":
        last = data.get("lastNudgeTime")
        return cls(
            enabled=bool(data.get("isEnabled", True)),
            interval_minutes=int(data.get("intervalMinutes", DEFAULT_INTERVAL_MINUTES)),
            last_nudge_time=datetime.fromisoformat(last) if last else None,
            nudges_shown=int(data.get("nudgesShown", 0)),
        )


class HydrationNudger:
    """Fires at most one water reminder per interval, inside active hours only."""

    category = "hydration"

    def __init__(
        self,
        store: Optional[NudgeStateStore] = None,
        rhythm: Optional[LifeRhythm] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store if store is not None else MemoryStateStore()
        self.rhythm = rhythm or LifeRhythm()
        self._clock = clock or datetime.now
        self._rng = rng or random.Random()
        self.state = self._load()
        self.phase = NudgePhase.IDLE

    def _load(self) -> HydrationNudgeState:
        data = self.store.load(STORAGE_KEY)
        if not data:
            return HydrationNudgeState()
        try:
            return HydrationNudgeState.from_dict(data)
        except (TypeError, ValueError) as exc:
            logger.warning("Failed to parse smart hydration settings", error=str(exc))
            return HydrationNudgeState()

    def _save(self) -> None:
        self.store.save(STORAGE_KEY, self.state.to_dict())

    def intensity(self, now: Optional[datetime] = None) -> NudgeIntensity:
        return nudge_intensity(now or self._clock(), self.rhythm)

    def should_nudge_now(self, now: Optional[datetime] = None) -> bool:
        now = now or self._clock()
        if not self.state.enabled or not is_active_hours(now, self.rhythm):
            return False
        if self.state.last_nudge_time is None:
            return True
        return now - self.state.last_nudge_time >= timedelta(minutes=self.state.interval_minutes)

    def show_nudge(self, now: Optional[datetime] = None) -> Optional[Nudge]:
        """Produce a reminder unless disabled or the current intensity is silent."""

        now = now or self._clock()
        if not self.state.enabled:
            return None
        intensity = self.intensity(now)
        if intensity is NudgeIntensity.SILENT:
            return None

        messages = GENTLE_MESSAGES if intensity is NudgeIntensity.GENTLE else NUDGE_MESSAGES
        nudge = Nudge(
            category=self.category,
            message=self._rng.choice(messages),
            created_at=now,
            intensity=intensity,
            icon=HYDRATION_ICON,
        )
        self.state.last_nudge_time = now
        self.state.nudges_shown += 1
        self._save()
        self.phase = NudgePhase.FIRED
        logger.debug("Hydration nudge shown", intensity=intensity.value, shown=self.state.nudges_shown)
        return nudge

    def tick(self, now: Optional[datetime] = None) -> Optional[Nudge]:
        """One scheduler check: fire when due, otherwise report whether armed."""

        now = now or self._clock()
        if self.phase is NudgePhase.FIRED:
            self.phase = NudgePhase.IDLE

        if self.should_nudge_now(now):
            nudge = self.show_nudge(now)
            if nudge is not None:
                return nudge

        if self.state.enabled and is_active_hours(now, self.rhythm):
            self.phase = NudgePhase.ARMED
        else:
            self.phase = NudgePhase.IDLE
        return None

    def dismiss(self) -> None:
        if self.phase is NudgePhase.FIRED:
            self.phase = NudgePhase.IDLE

    def log_hydration(self, amount_ml: int = 250, now: Optional[datetime] = None) -> str:
        """Record a drink; the next reminder is a full interval away."""

        if amount_ml <= 0:
            raise ValueError("amount_ml must be positive")
        self.state.last_nudge_time = now or self._clock()
        self._save()
        return f"+{amount_ml}ml logged!"

    def pause(self, minutes: int = 60, now: Optional[datetime] = None) -> None:
        """Push the last-nudge marker into the future.

        Reminders resume one interval after the pause ends.
        """

        if minutes <= 0:
            raise ValueError("minutes must be positive")
        self.state.last_nudge_time = (now or self._clock()) + timedelta(minutes=minutes)
        self._save()

    def set_enabled(self, enabled: bool) -> None:
        self.state.enabled = enabled
        if not enabled:
            self.phase = NudgePhase.IDLE
        self._save()

    def set_interval(self, minutes: int) -> None:
        if minutes < 1:
            raise ValueError("Interval must be at least one minute")
        self.state.interval_minutes = minutes
        self._save()
