"""Celery application instance and configuration."""
from __future__ import annotations

from celery import Celery

from app.config import settings


def _resolve_broker_url() -> str:
    if settings.CELERY_BROKER_URL is not None:
        return str(settings.CELERY_BROKER_URL)
    return str(settings.REDIS_URL)


def _resolve_result_backend() -> str:
    if settings.CELERY_RESULT_BACKEND is not None:
        return str(settings.CELERY_RESULT_BACKEND)
    return str(settings.REDIS_URL)


celery_app = Celery(
    "aurra_notifications",
    broker=_resolve_broker_url(),
    backend=_resolve_result_backend(),
    include=["app.tasks.notifications"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

celery_app.conf.beat_schedule = {
    "process-scheduled-notifications": {
        "task": "app.tasks.notifications.process_scheduled_notifications",
        "schedule": float(settings.DISPATCH_INTERVAL_SECONDS),
    },
    "send-hydration-reminders": {
        "task": "app.tasks.notifications.send_hydration_reminders",
        "schedule": float(settings.HYDRATION_CHECK_INTERVAL_SECONDS),
    },
}

__all__ = ["celery_app"]
