"""Weekly life-rhythm profile and its free-text parser."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from loguru import logger

from app.core.nudges.storage import NudgeStateStore

STORAGE_KEY = "aurra-life-rhythm"
DEFAULT_WAKE_HOUR = 7
DEFAULT_SLEEP_HOUR = 22

PATTERN_KEYWORDS: Dict[str, tuple[str, ...]] = {
    "busy": ("college", "work", "meetings", "class", "classes", "packed", "hectic", "busy", "full", "office", "school"),
    "study": ("study", "studying", "learn", "learning", "homework", "exam", "exams", "assignment", "library"),
    "work": ("work", "working", "office", "job", "meetings", "business", "clients", "calls"),
    "gym": ("gym", "workout", "exercise", "fitness", "training", "run", "running", "sports"),
    "rest": ("rest", "relax", "chill", "sleep", "nap", "recover", "recovery", "lazy"),
    "social": ("friends", "family", "hangout", "party", "meet", "social", "date", "outing"),
    "creative": ("coding", "music", "art", "writing", "content", "creative", "project", "side project"),
}

TIME_KEYWORDS: Dict[str, tuple[str, ...]] = {
    "morning": ("morning", "early", "sunrise", "am", "breakfast", "wake"),
    "afternoon": ("afternoon", "lunch", "mid-day", "noon", "midday"),
    "evening": ("evening", "dinner", "sunset", "after work", "after college"),
    "night": ("night", "late", "pm", "sleep", "bed", "wind down"),
}

RELAXED_KEYWORDS = ("chill", "relax", "slow", "easy", "lazy", "rest", "nothing", "free")
PRODUCTIVE_KEYWORDS = ("plan", "productive", "busy", "work", "study", "gym", "active")
LOW_FLEX_KEYWORDS = ("strict", "fixed", "always", "must", "have to", "scheduled")
HIGH_FLEX_KEYWORDS = ("sometimes", "maybe", "depends", "flexible", "free", "whatever")
SOCIAL_KEYWORDS = ("friends", "family", "people", "hangout", "meet", "party")
RECOVERY_KEYWORDS = ("rest", "recover", "recharge", "chill", "relax", "sleep")


@dataclass
class WeekdayPattern:
    morning: str = "flexible"
    afternoon: str = "flexible"
    evening: str = "flexible"
    night: str = "wind down"

    def for_block(self, block: str) -> str:
        return getattr(self, block)


@dataclass
class WeekendPattern:
    pace: str = "relaxed"
    flexibility: str = "high"
    social: str = "optional"
    recovery: bool = True


@dataclass
class LifeRhythm:
    weekday_pattern: WeekdayPattern = field(default_factory=WeekdayPattern)
    weekend_pattern: WeekendPattern = field(default_factory=WeekendPattern)
    raw_weekday_description: str = ""
    raw_weekend_description: str = ""
    wake_hour: int = DEFAULT_WAKE_HOUR
    sleep_hour: int = DEFAULT_SLEEP_HOUR
    onboarding_complete: bool = False
    last_updated: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LifeRhythm":
        return cls(
            weekday_pattern=WeekdayPattern(**data.get("weekday_pattern", {})),
            weekend_pattern=WeekendPattern(**data.get("weekend_pattern", {})),
            raw_weekday_description=data.get("raw_weekday_description", ""),
            raw_weekend_description=data.get("raw_weekend_description", ""),
            wake_hour=int(data.get("wake_hour", DEFAULT_WAKE_HOUR)),
            sleep_hour=int(data.get("sleep_hour", DEFAULT_SLEEP_HOUR)),
            onboarding_complete=bool(data.get("onboarding_complete", False)),
            last_updated=data.get("last_updated"),
        )


def _mentions(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def _activity_for_block(text: str, block: str) -> str:
    if _mentions(text, TIME_KEYWORDS[block]):
        for activity, keywords in PATTERN_KEYWORDS.items():
            if _mentions(text, keywords):
                return activity

    if block == "morning":
        return "busy" if _mentions(text, PATTERN_KEYWORDS["busy"]) else "flexible"
    if block == "afternoon":
        if _mentions(text, PATTERN_KEYWORDS["work"]):
            return "focused"
        return "study" if _mentions(text, PATTERN_KEYWORDS["study"]) else "flexible"
    if block == "evening":
        if _mentions(text, PATTERN_KEYWORDS["gym"]):
            return "gym"
        return "rest" if _mentions(text, PATTERN_KEYWORDS["rest"]) else "flexible"
    return "wind down"


def _pace(text: str) -> str:
    relaxed = _mentions(text, RELAXED_KEYWORDS)
    productive = _mentions(text, PRODUCTIVE_KEYWORDS)
    if relaxed and productive:
        return "mixed"
    if productive:
        return "productive"
    return "relaxed"


def _flexibility(text: str) -> str:
    if _mentions(text, LOW_FLEX_KEYWORDS):
        return "low"
    return "high"


def parse_life_rhythm(
    weekday_text: str,
    weekend_text: str,
    now: Optional[datetime] = None,
) -> LifeRhythm:
    """Infer a rhythm profile from two short free-text descriptions.

    Keyword matching is substring based, so "exam" also counts as a morning
    mention ("am"). Unknown text falls back to flexible weekdays and a
    relaxed, highly flexible weekend.
    """

    weekday = weekday_text.lower()
    weekend = weekend_text.lower()

    return LifeRhythm(
        weekday_pattern=WeekdayPattern(
            morning=_activity_for_block(weekday, "morning"),
            afternoon=_activity_for_block(weekday, "afternoon"),
            evening=_activity_for_block(weekday, "evening"),
            night=_activity_for_block(weekday, "night"),
        ),
        weekend_pattern=WeekendPattern(
            pace=_pace(weekend),
            flexibility=_flexibility(weekend),
            social="friends / personal time" if _mentions(weekend, SOCIAL_KEYWORDS) else "optional",
            recovery=_mentions(weekend, RECOVERY_KEYWORDS),
        ),
        raw_weekday_description=weekday_text,
        raw_weekend_description=weekend_text,
        onboarding_complete=True,
        last_updated=(now or datetime.now()).isoformat(),
    )


def time_of_day(hour: int) -> str:
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    if hour >= 21 or hour < 5:
        return "night"
    return "morning"


def is_weekend(moment: datetime) -> bool:
    return moment.weekday() >= 5


def load_rhythm(store: NudgeStateStore) -> LifeRhythm:
    data = store.load(STORAGE_KEY)
    if not data:
        return LifeRhythm()
    try:
        return LifeRhythm.from_dict(data)
    except (TypeError, ValueError) as exc:
        logger.warning("Failed to parse life rhythm", error=str(exc))
        return LifeRhythm()


def save_rhythm(store: NudgeStateStore, rhythm: LifeRhythm) -> None:
    store.save(STORAGE_KEY, rhythm.to_dict())
