"""Periodic job that turns due scheduled notifications into push deliveries."""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.scheduled_notification import ScheduledNotification
from app.services.notification_service import NotificationService

DEFAULT_BATCH_SIZE = 100


@dataclass
class DispatchResult:
    """Counters reported back to whoever triggered the run."""

    processed: int = 0
    push_sent: int = 0
    failed: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"processed": self.processed, "pushSent": self.push_sent, "failed": self.failed}


class ScheduledNotificationDispatcher:
    """Deliver due rows of ``scheduled_notifications`` in earliest-due order.

    Every row is claimed with a conditional ``UPDATE ... WHERE sent = false``
    before anything is sent, so overlapping runs never deliver the same row
    twice. A claimed row stays ``sent`` whatever the delivery outcome; failed
    deliveries are recorded in ``delivery_error`` and are not retried.
    """

    def __init__(
        self,
        db: Session,
        notification_service: NotificationService,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.db = db
        self.notification_service = notification_service
        self.batch_size = batch_size

    def due_ids(self, now: datetime) -> List[uuid.UUID]:
        stmt = (
            select(ScheduledNotification.id)
            .where(ScheduledNotification.sent.is_(False))
            .where(ScheduledNotification.superseded_by_id.is_(None))
            .where(ScheduledNotification.scheduled_for <= now)
            .order_by(ScheduledNotification.scheduled_for.asc(), ScheduledNotification.created_at.asc())
            .limit(self.batch_size)
        )
        return list(self.db.scalars(stmt))

    def claim(self, notification_id: uuid.UUID, now: datetime) -> bool:
        """Atomically flip ``sent``; ``False`` means another run got there first."""

        stmt = (
            update(ScheduledNotification)
            .where(ScheduledNotification.id == notification_id)
            .where(ScheduledNotification.sent.is_(False))
            .values(sent=True, sent_at=now)
            .execution_options(synchronize_session=False)
        )
        claimed = self.db.execute(stmt).rowcount == 1
        self.db.commit()
        return claimed

    def run(self, now: Optional[datetime] = None) -> DispatchResult:
        now = now or datetime.now(timezone.utc)
        result = DispatchResult()

        try:
            pending = self.due_ids(now)
        except SQLAlchemyError:
            logger.exception("Failed to load due notifications")
            self.db.rollback()
            return result

        if not pending:
            logger.debug("No pending notifications")
            return result

        logger.info("Processing scheduled notifications", count=len(pending))
        for notification_id in pending:
            self._process(notification_id, now, result)

        logger.info("Scheduled notifications processed", **result.as_dict())
        return result

    def _process(self, notification_id: uuid.UUID, now: datetime, result: DispatchResult) -> None:
        try:
            if not self.claim(notification_id, now):
                logger.info("Notification already claimed", notification_id=str(notification_id))
                return
        except SQLAlchemyError:
            logger.exception("Failed to claim notification", notification_id=str(notification_id))
            self.db.rollback()
            result.failed += 1
            return

        result.processed += 1
        notification = self.db.get(ScheduledNotification, notification_id)
        if notification is None:
            return

        try:
            outcome = self.notification_service.send_to_user(
                notification.user_id,
                notification.title,
                notification.body,
                tag=f"scheduled-{notification.id}",
                data={"notificationId": str(notification.id), "type": notification.notification_type},
            )
        except Exception as exc:
            logger.exception("Push delivery error", notification_id=str(notification_id))
            self.db.rollback()
            result.failed += 1
            self._record_error(notification_id, repr(exc))
            return

        if outcome.success:
            result.push_sent += 1
        elif outcome.has_failures:
            result.failed += 1
            errors = "; ".join(r.error or "unknown error" for r in outcome.results if not r.success)
            self._record_error(notification_id, errors)
        logger.info(
            "Push result",
            notification_id=str(notification_id),
            sent=outcome.sent,
            total=outcome.total,
        )

    def _record_error(self, notification_id: uuid.UUID, error: str) -> None:
        try:
            self.db.execute(
                update(ScheduledNotification)
                .where(ScheduledNotification.id == notification_id)
                .values(delivery_error=error[:2000])
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            logger.exception("Failed to record delivery error", notification_id=str(notification_id))
            self.db.rollback()
