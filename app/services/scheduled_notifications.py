"""Create, list and snooze scheduled reminders."""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.scheduled_notification import ScheduledNotification
from app.utils.exceptions import NotFoundError, StorageError, ValidationError

MAX_TITLE_LENGTH = 200
MAX_BODY_LENGTH = 1000


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _clean_text(value: Optional[str], field_name: str, max_length: int) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"Notification {field_name} must not be empty", {"field": field_name})
    if len(text) > max_length:
        raise ValidationError(
            f"Notification {field_name} is too long",
            {"field": field_name, "max_length": max_length},
        )
    return text


class ScheduledNotificationService:
    """Persistence operations behind the reminder scheduling API.

    Malformed rows are rejected here, at creation time, so the dispatcher
    never meets a row it cannot render.
    """

    def __init__(self, db: Session):
        self.db = db

    def schedule(
        self,
        user_id: uuid.UUID,
        title: str,
        body: str,
        *,
        scheduled_for: Optional[datetime] = None,
        delay_seconds: Optional[int] = None,
        notification_type: str = "reminder",
        now: Optional[datetime] = None,
    ) -> ScheduledNotification:
        if (scheduled_for is None) == (delay_seconds is None):
            raise ValidationError("Provide exactly one of scheduled_for or delay_seconds")
        if delay_seconds is not None and delay_seconds < 0:
            raise ValidationError("delay_seconds must not be negative")

        current = _as_utc(now) if now else datetime.now(timezone.utc)
        due = _as_utc(scheduled_for) if scheduled_for else current + timedelta(seconds=delay_seconds)

        notification = ScheduledNotification(
            user_id=user_id,
            title=_clean_text(title, "title", MAX_TITLE_LENGTH),
            body=_clean_text(body, "body", MAX_BODY_LENGTH),
            notification_type=(notification_type or "reminder").strip()[:50] or "reminder",
            scheduled_for=due,
            sent=False,
        )
        self._save(notification)
        logger.info(
            "Notification scheduled",
            user_id=str(user_id),
            notification_id=str(notification.id),
            scheduled_for=due.isoformat(),
        )
        return notification

    def list_for_user(self, user_id: uuid.UUID, limit: int = 50) -> list[ScheduledNotification]:
        stmt = (
            select(ScheduledNotification)
            .where(ScheduledNotification.user_id == user_id)
            .order_by(ScheduledNotification.created_at.desc())
            .limit(limit)
        )
        return list(self.db.scalars(stmt))

    def get_for_user(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> ScheduledNotification:
        notification = self.db.get(ScheduledNotification, notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFoundError("Scheduled notification not found")
        return notification

    def snooze(
        self,
        user_id: uuid.UUID,
        notification_id: uuid.UUID,
        minutes: int,
        now: Optional[datetime] = None,
    ) -> ScheduledNotification:
        """Re-issue a pending reminder ``minutes`` from now.

        The original row keeps its ``scheduled_for`` and is linked to the
        replacement through ``superseded_by_id``, which also removes it from
        the dispatcher's due set.
        """

        if minutes <= 0:
            raise ValidationError("Snooze duration must be positive")
        original = self.get_for_user(user_id, notification_id)
        if not original.is_pending:
            raise ValidationError("Only pending notifications can be snoozed")

        current = _as_utc(now) if now else datetime.now(timezone.utc)
        replacement = ScheduledNotification(
            user_id=user_id,
            title=original.title,
            body=original.body,
            notification_type=original.notification_type,
            scheduled_for=current + timedelta(minutes=minutes),
            sent=False,
        )
        try:
            self.db.add(replacement)
            self.db.flush()
            original.superseded_by_id = replacement.id
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("Failed to snooze notification") from exc

        self.db.refresh(replacement)
        logger.info(
            "Notification snoozed",
            user_id=str(user_id),
            original_id=str(original.id),
            replacement_id=str(replacement.id),
            minutes=minutes,
        )
        return replacement

    def _save(self, notification: ScheduledNotification) -> None:
        self.db.add(notification)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("Failed to store scheduled notification") from exc
        self.db.refresh(notification)
