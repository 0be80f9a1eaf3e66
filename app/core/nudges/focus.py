"""Check-ins during a focus session, worded per focus mode."""
from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Union

from loguru import logger

from app.core.nudges.base import Clock, Nudge

BREAK_AFTER_MINUTES = 45
MIN_NUDGE_INTERVAL_MINUTES = 20
MAX_NUDGE_INTERVAL_MINUTES = 40


class FocusType(str, Enum):
    CODING = "coding"
    STUDY = "study"
    WORK = "work"
    GYM = "gym"
    CREATIVE = "creative"
    QUIET = "quiet"


@dataclass(frozen=True)
class FocusTemplates:
    framing: tuple[str, ...]
    nudges: tuple[str, ...]
    break_suggestions: tuple[str, ...]
    reflection_prompts: tuple[str, ...]


MODE_TEMPLATES: Dict[FocusType, FocusTemplates] = {
    FocusType.CODING: FocusTemplates(
        framing=(
            "Flow state incoming. I'll stay quiet unless you need me.",
            "Let's debug together. Take your time.",
            "Building something cool. I'm here if you get stuck.",
        ),
        nudges=(
            "Still in the zone? Want a hint or explanation?",
            "How's the logic feeling? Need a fresh perspective?",
            "Any blockers I can help with?",
        ),
        break_suggestions=(
            "Eyes need a break? 5 minutes can help you see the solution.",
            "Step away for a moment? Sometimes the answer comes when you're not looking.",
        ),
        reflection_prompts=("What did you build or fix?", "Any 'aha' moments worth remembering?"),
    ),
    FocusType.STUDY: FocusTemplates(
        framing=(
            "Learning mode activated. Let's make it stick.",
            "Ready to understand, not just memorize.",
            "Your brain is ready. Let's go at your pace.",
        ),
        nudges=(
            "What did you just learn? (Quick recall helps!)",
            "Any stuck point I can help clarify?",
            "Want me to quiz you on what you've covered?",
        ),
        break_suggestions=(
            "Short break? Your brain consolidates during rest.",
            "5 minutes to stretch. The concepts will settle in.",
        ),
        reflection_prompts=("What stayed with you from this session?", "Anything you want to revisit tomorrow?"),
    ),
    FocusType.WORK: FocusTemplates(
        framing=(
            "Priorities clear. Let's knock them out.",
            "Focus on what matters. I'll help you stay on track.",
            "Work mode: clarity over chaos.",
        ),
        nudges=(
            "Making progress? Anything blocking you?",
            "Need help prioritizing the next step?",
            "How can I help you move faster?",
        ),
        break_suggestions=(
            "Quick breather? You'll come back sharper.",
            "5 minutes to reset. Then we finish strong.",
        ),
        reflection_prompts=("What did you accomplish?", "What's the one thing left for later?"),
    ),
    FocusType.GYM: FocusTemplates(
        framing=(
            "Time to move. I'm here for support, not pressure.",
            "Your body, your pace. Let's do this.",
            "Workout companion mode. Form over ego.",
        ),
        nudges=(
            "Hydration check.",
            "How's your form feeling?",
            "Rest when needed. Consistency beats intensity.",
        ),
        break_suggestions=(
            "Take a breather between sets.",
            "Listen to your body. Rest is part of the workout.",
        ),
        reflection_prompts=("How do you feel?", "Remember to stretch and hydrate."),
    ),
    FocusType.CREATIVE: FocusTemplates(
        framing=(
            "Creative flow. I'll stay out of your way.",
            "Make something. I'm just here if you need me.",
            "Your canvas, your rules.",
        ),
        nudges=("Still creating? Need any input?",),
        break_suggestions=("Step back and see it with fresh eyes?",),
        reflection_prompts=("What did you create today?",),
    ),
    FocusType.QUIET: FocusTemplates(
        framing=("Quiet focus. No interruptions from me.", "I'll be here. Silently."),
        nudges=(),
        break_suggestions=(),
        reflection_prompts=("How was the focus time?",),
    ),
}


class FocusSessionNudger:
    """Arms a random 20-40 minute timer per check-in while a session runs."""

    category = "focus"

    def __init__(
        self,
        focus_type: Union[FocusType, str],
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ):
        self.focus_type = FocusType(focus_type)
        self.templates = MODE_TEMPLATES[self.focus_type]
        self._clock = clock or datetime.now
        self._rng = rng or random.Random()
        self.started_at: Optional[datetime] = None
        self.next_nudge_at: Optional[datetime] = None
        self.current_nudge: Optional[Nudge] = None
        self.history: List[datetime] = []

    @property
    def is_active(self) -> bool:
        return self.started_at is not None

    def start(self, now: Optional[datetime] = None) -> str:
        """Begin a session and return its framing message."""

        now = now or self._clock()
        self.started_at = now
        self.history = []
        self.current_nudge = None
        self._schedule_next(now)
        logger.debug("Focus session started", focus_type=self.focus_type.value)
        return self._rng.choice(self.templates.framing)

    def stop(self) -> None:
        self.started_at = None
        self.next_nudge_at = None
        self.current_nudge = None

    def _schedule_next(self, now: datetime) -> None:
        if self.focus_type is FocusType.QUIET:
            self.next_nudge_at = None
            return
        minutes = self._rng.uniform(MIN_NUDGE_INTERVAL_MINUTES, MAX_NUDGE_INTERVAL_MINUTES)
        self.next_nudge_at = now + timedelta(minutes=minutes)

    def session_minutes(self, now: Optional[datetime] = None) -> int:
        if self.started_at is None:
            return 0
        elapsed = (now or self._clock()) - self.started_at
        return int(elapsed.total_seconds() // 60)

    def generate_nudge(self, now: Optional[datetime] = None) -> Optional[Nudge]:
        now = now or self._clock()
        if self.focus_type is FocusType.QUIET or not self.templates.nudges:
            return None

        if self.session_minutes(now) >= BREAK_AFTER_MINUTES and self.templates.break_suggestions:
            return Nudge(
                category=self.category,
                message=self._rng.choice(self.templates.break_suggestions),
                created_at=now,
                icon="☕",
                is_break_suggestion=True,
            )

        return Nudge(
            category=self.category,
            message=self._rng.choice(self.templates.nudges),
            created_at=now,
            icon="\U0001F4AA" if self.focus_type is FocusType.GYM else "✨",
        )

    def tick(self, now: Optional[datetime] = None) -> Optional[Nudge]:
        now = now or self._clock()
        if not self.is_active or self.next_nudge_at is None or now < self.next_nudge_at:
            return None

        nudge = self.generate_nudge(now)
        if nudge is not None:
            self.current_nudge = nudge
            self.history.append(now)
        self._schedule_next(now)
        return nudge

    def dismiss(self) -> None:
        self.current_nudge = None

    def reflection_prompt(self) -> str:
        return self._rng.choice(self.templates.reflection_prompts)

    def affirmation(self, now: Optional[datetime] = None) -> str:
        minutes = self.session_minutes(now)
        if minutes >= 60:
            return "That was a solid session. Well done."
        if minutes >= 30:
            return "Good focus block. You showed up."
        if minutes >= 15:
            return "Every minute counts."
        return "Showing up is half the battle."
