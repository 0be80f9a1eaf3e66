"""Tests for Celery background tasks."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.orm import sessionmaker

from app.celery_app import celery_app
from app.db.models import ScheduledNotification
from app.services.scheduled_notifications import ScheduledNotificationService
from app.services.subscription_registry import SubscriptionRegistry
from app.services.hydration import HydrationService
from app.tasks.notifications import process_scheduled_notifications, send_hydration_reminders
from app.utils.exceptions import ConfigurationError


@pytest.fixture()
def task_session_factory(db_session):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=db_session.bind)
    sessions: list = []

    def create_session():
        session = factory()
        sessions.append(session)
        return session

    try:
        yield create_session
    finally:
        for session in sessions:
            session.close()


@pytest.fixture()
def due_notification(db_session, user, subscriber):
    SubscriptionRegistry(db_session).upsert(
        user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth
    )
    return ScheduledNotificationService(db_session).schedule(
        user.id,
        "Drink water",
        "Stay hydrated",
        scheduled_for=datetime.now(timezone.utc) - timedelta(minutes=1),
    )


def test_dispatch_is_on_the_beat_schedule():
    entry = celery_app.conf.beat_schedule["process-scheduled-notifications"]

    assert entry["task"] == "app.tasks.notifications.process_scheduled_notifications"
    assert entry["schedule"] == 60.0


def test_process_scheduled_notifications(
    db_session, task_session_factory, push_sender, push_service, due_notification
):
    with patch("app.tasks.notifications.SessionLocal", side_effect=task_session_factory), patch(
        "app.tasks.notifications.create_push_sender", return_value=push_sender
    ):
        result = process_scheduled_notifications.run()

    assert result == {"processed": 1, "pushSent": 1, "failed": 0}
    assert len(push_service.requests) == 1
    db_session.expire_all()
    assert db_session.get(ScheduledNotification, due_notification.id).sent is True


def test_missing_vapid_keys_fail_fast(
    db_session, task_session_factory, push_service, due_notification
):
    with patch("app.tasks.notifications.SessionLocal", side_effect=task_session_factory), patch(
        "app.tasks.notifications.create_push_sender",
        side_effect=ConfigurationError("VAPID keys are not configured"),
    ):
        result = process_scheduled_notifications.run()

    assert result["error"] == "VAPID keys not configured"
    assert result["processed"] == 0
    assert push_service.requests == []
    db_session.expire_all()
    assert db_session.get(ScheduledNotification, due_notification.id).sent is False


def test_hydration_reminders_are_on_the_beat_schedule():
    entry = celery_app.conf.beat_schedule["send-hydration-reminders"]

    assert entry["task"] == "app.tasks.notifications.send_hydration_reminders"
    assert entry["schedule"] == 300.0


def test_send_hydration_reminders(db_session, task_session_factory, push_sender, push_service, user):
    HydrationService(db_session).get_settings(user.id)

    with patch("app.tasks.notifications.SessionLocal", side_effect=task_session_factory), patch(
        "app.tasks.notifications.create_push_sender", return_value=push_sender
    ):
        result = send_hydration_reminders.run()

    assert result["checked"] == 1
    assert result["reminded"] == 0
    assert push_service.requests == []


def test_hydration_reminders_without_vapid_keys(db_session, task_session_factory, push_service, user):
    HydrationService(db_session).get_settings(user.id)

    with patch("app.tasks.notifications.SessionLocal", side_effect=task_session_factory), patch(
        "app.tasks.notifications.create_push_sender",
        side_effect=ConfigurationError("VAPID keys are not configured"),
    ):
        result = send_hydration_reminders.run()

    assert result == {"error": "VAPID keys not configured", "checked": 0, "reminded": 0, "pushSent": 0}
