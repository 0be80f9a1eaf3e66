"""Celery tasks for push notification delivery."""
from __future__ import annotations

from loguru import logger

from app.celery_app import celery_app
from app.config import settings
from app.db.session import SessionLocal
from app.services.dispatcher import ScheduledNotificationDispatcher
from app.services.hydration import HydrationReminderJob
from app.services.notification_service import NotificationService, create_push_sender
from app.utils.exceptions import ConfigurationError


@celery_app.task(name="app.tasks.notifications.process_scheduled_notifications")
def process_scheduled_notifications() -> dict:
    """Deliver every scheduled notification that has come due."""

    db = SessionLocal()
    try:
        try:
            sender = create_push_sender(db)
        except ConfigurationError as exc:
            logger.error("VAPID keys not configured", error=exc.message)
            return {"error": "VAPID keys not configured", "processed": 0, "pushSent": 0, "failed": 0}

        with sender:
            dispatcher = ScheduledNotificationDispatcher(
                db,
                NotificationService(db, sender),
                batch_size=settings.DISPATCH_BATCH_SIZE,
            )
            return dispatcher.run().as_dict()
    finally:
        db.close()


@celery_app.task(name="app.tasks.notifications.send_hydration_reminders")
def send_hydration_reminders() -> dict:
    """Push water reminders to users who are behind on their daily goal."""

    db = SessionLocal()
    try:
        try:
            sender = create_push_sender(db)
        except ConfigurationError as exc:
            logger.error("VAPID keys not configured", error=exc.message)
            return {"error": "VAPID keys not configured", "checked": 0, "reminded": 0, "pushSent": 0}

        with sender:
            job = HydrationReminderJob(
                db,
                NotificationService(db, sender),
                window_minutes=settings.HYDRATION_REMINDER_WINDOW_MINUTES,
            )
            return job.run().as_dict()
    finally:
        db.close()
