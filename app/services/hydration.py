"""Daily hydration goal tracking and the server-side reminder job."""
from __future__ import annotations

import math
import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Dict, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.hydration import HydrationLog, HydrationSettings
from app.db.models.user import User
from app.services.notification_service import NotificationService
from app.services.subscription_registry import SubscriptionRegistry
from app.utils.exceptions import StorageError, ValidationError

GLASS_ML = 250
REMINDER_TITLE = "AURA Hydration Reminder"
REMINDER_TAG = "aura-hydration"
DEFAULT_WINDOW_MINUTES = 15

SETTINGS_FIELDS = (
    "daily_goal_ml",
    "reminder_interval_minutes",
    "reminder_enabled",
    "wake_hour",
    "sleep_hour",
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def user_zone(user: User) -> tzinfo:
    try:
        return ZoneInfo(user.timezone or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown user timezone, using UTC", user_id=str(user.id), timezone=user.timezone)
        return timezone.utc


def local_day_bounds(now: datetime, zone: tzinfo) -> Tuple[datetime, datetime]:
    """UTC start and end of the calendar day containing ``now`` in ``zone``."""

    local = _as_utc(now).astimezone(zone)
    start = datetime(local.year, local.month, local.day, tzinfo=zone)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


@dataclass
class HydrationProgress:
    total_ml: int
    goal_ml: int

    @property
    def remaining_ml(self) -> int:
        return max(self.goal_ml - self.total_ml, 0)

    @property
    def percent(self) -> int:
        if self.goal_ml <= 0:
            return 100
        return round(self.total_ml / self.goal_ml * 100)

    @property
    def glasses_left(self) -> int:
        return math.ceil(self.remaining_ml / GLASS_ML)

    @property
    def goal_reached(self) -> bool:
        return self.total_ml >= self.goal_ml

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_ml": self.total_ml,
            "goal_ml": self.goal_ml,
            "remaining_ml": self.remaining_ml,
            "percent": self.percent,
            "goal_reached": self.goal_reached,
        }


class HydrationService:
    """Per-user hydration settings and intake log."""

    def __init__(self, db: Session):
        self.db = db

    def get_settings(self, user_id: uuid.UUID) -> HydrationSettings:
        """Return the user's settings, creating the defaults on first access."""

        settings = self.db.scalar(select(HydrationSettings).where(HydrationSettings.user_id == user_id))
        if settings is not None:
            return settings
        settings = HydrationSettings(user_id=user_id)
        self._save(settings)
        return settings

    def update_settings(self, user_id: uuid.UUID, changes: Dict[str, Any]) -> HydrationSettings:
        settings = self.get_settings(user_id)
        for field in SETTINGS_FIELDS:
            if changes.get(field) is not None:
                setattr(settings, field, changes[field])
        if not 0 <= settings.wake_hour < settings.sleep_hour <= 24:
            self.db.rollback()
            raise ValidationError(
                "wake_hour must be before sleep_hour",
                {"wake_hour": settings.wake_hour, "sleep_hour": settings.sleep_hour},
            )
        self._save(settings)
        logger.info("Hydration settings updated", user_id=str(user_id))
        return settings

    def log_intake(
        self, user_id: uuid.UUID, amount_ml: int = GLASS_ML, now: Optional[datetime] = None
    ) -> HydrationLog:
        if amount_ml <= 0:
            raise ValidationError("amount_ml must be positive", {"amount_ml": amount_ml})
        entry = HydrationLog(
            user_id=user_id,
            amount_ml=amount_ml,
            created_at=_as_utc(now) if now else datetime.now(timezone.utc),
        )
        self._save(entry)
        return entry

    def progress(self, user: User, now: Optional[datetime] = None) -> HydrationProgress:
        """Intake so far on the user's local calendar day."""

        start, end = local_day_bounds(now or datetime.now(timezone.utc), user_zone(user))
        total = self.db.scalar(
            select(func.coalesce(func.sum(HydrationLog.amount_ml), 0)).where(
                HydrationLog.user_id == user.id,
                HydrationLog.created_at >= start,
                HydrationLog.created_at < end,
            )
        )
        return HydrationProgress(total_ml=int(total or 0), goal_ml=self.get_settings(user.id).daily_goal_ml)

    def _save(self, instance) -> None:
        self.db.add(instance)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("Failed to store hydration data") from exc
        self.db.refresh(instance)


@dataclass
class HydrationReminderResult:
    checked: int = 0
    reminded: int = 0
    push_sent: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"checked": self.checked, "reminded": self.reminded, "pushSent": self.push_sent}


def reminder_message(progress: HydrationProgress, name: Optional[str], rng: random.Random) -> str:
    greeting = f"Hey {name}!" if name else "Hey!"
    messages = (
        f"Time to hydrate! You're at {progress.percent}% - just {progress.glasses_left} more glasses to go!",
        f"Water break! {progress.remaining_ml}ml left to reach your goal today.",
        f"{greeting} Don't forget to drink water. {progress.percent}% complete!",
        f"Hydration check! You need {progress.glasses_left} more glasses today.",
        f"Stay refreshed! {progress.remaining_ml}ml until you hit your goal.",
    )
    return rng.choice(messages)


class HydrationReminderJob:
    """Push a water reminder to every opted-in user who is behind on their goal.

    A user is reminded when, in their own timezone, the current time lies
    between ``wake_hour`` and ``sleep_hour`` and within ``window_minutes``
    after a multiple of ``reminder_interval_minutes`` since midnight. The
    window is claimed on ``last_reminded_at`` before sending, so frequent or
    overlapping runs send at most one reminder per window.
    """

    def __init__(
        self,
        db: Session,
        notification_service: NotificationService,
        window_minutes: int = DEFAULT_WINDOW_MINUTES,
        rng: Optional[random.Random] = None,
    ):
        self.db = db
        self.notification_service = notification_service
        self.hydration = HydrationService(db)
        self.registry = SubscriptionRegistry(db)
        self.window_minutes = window_minutes
        self.rng = rng or random.Random()

    def candidates(self) -> list[Tuple[HydrationSettings, User]]:
        stmt = (
            select(HydrationSettings, User)
            .join(User, User.id == HydrationSettings.user_id)
            .where(
                HydrationSettings.reminder_enabled.is_(True),
                User.notifications_enabled.is_(True),
                User.is_active.is_(True),
            )
        )
        return [(row[0], row[1]) for row in self.db.execute(stmt)]

    def run(self, now: Optional[datetime] = None) -> HydrationReminderResult:
        now = _as_utc(now) if now else datetime.now(timezone.utc)
        result = HydrationReminderResult()

        try:
            candidates = self.candidates()
        except SQLAlchemyError:
            logger.exception("Failed to load hydration settings")
            self.db.rollback()
            return result

        logger.info("Checking hydration reminders", users=len(candidates))
        for settings, user in candidates:
            result.checked += 1
            try:
                self._remind(settings, user, now, result)
            except Exception:
                logger.exception("Hydration reminder failed", user_id=str(user.id))
                self.db.rollback()

        logger.info("Hydration reminders processed", **result.as_dict())
        return result

    def window_start(self, settings: HydrationSettings, local: datetime) -> Optional[datetime]:
        """Start of the reminder window containing ``local``, or ``None`` outside one."""

        if not settings.wake_hour <= local.hour < settings.sleep_hour:
            return None
        interval = max(settings.reminder_interval_minutes, 1)
        minutes = local.hour * 60 + local.minute
        offset = minutes % interval
        if offset > self.window_minutes:
            return None
        return local.replace(second=0, microsecond=0) - timedelta(minutes=offset)

    def claim(self, settings: HydrationSettings, window_start: datetime, now: datetime) -> bool:
        """Record the reminder for this window; ``False`` when already taken."""

        stmt = (
            update(HydrationSettings)
            .where(HydrationSettings.id == settings.id)
            .where(
                or_(
                    HydrationSettings.last_reminded_at.is_(None),
                    HydrationSettings.last_reminded_at < window_start,
                )
            )
            .values(last_reminded_at=now)
            .execution_options(synchronize_session=False)
        )
        claimed = self.db.execute(stmt).rowcount == 1
        self.db.commit()
        return claimed

    def _remind(
        self, settings: HydrationSettings, user: User, now: datetime, result: HydrationReminderResult
    ) -> None:
        local = now.astimezone(user_zone(user))
        window_start = self.window_start(settings, local)
        if window_start is None:
            logger.debug("Outside reminder window", user_id=str(user.id))
            return

        progress = self.hydration.progress(user, now)
        if progress.goal_reached:
            logger.debug("Hydration goal already reached", user_id=str(user.id))
            return
        if not self.registry.list_by_user(user.id):
            logger.debug("No push subscriptions for hydration reminder", user_id=str(user.id))
            return
        if not self.claim(settings, window_start.astimezone(timezone.utc), now):
            return

        outcome = self.notification_service.send_to_user(
            user.id,
            REMINDER_TITLE,
            reminder_message(progress, user.full_name, self.rng),
            tag=REMINDER_TAG,
            data={"type": "hydration"},
            url="/",
        )
        result.reminded += 1
        result.push_sent += outcome.sent
        logger.info(
            "Sent hydration reminder",
            user_id=str(user.id),
            percent=progress.percent,
            sent=outcome.sent,
        )
