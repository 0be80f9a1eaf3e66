"""Scheduled notification endpoints and the dispatcher trigger."""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api import deps
from app.config import settings
from app.db.models.user import User
from app.schemas import (
    DispatchResponse,
    ScheduledNotificationCreate,
    ScheduledNotificationRead,
    SnoozeRequest,
)
from app.services.dispatcher import ScheduledNotificationDispatcher
from app.services.notification_service import NotificationService
from app.services.scheduled_notifications import ScheduledNotificationService
from app.utils.exceptions import (
    NotFoundError,
    StorageError,
    ValidationError,
    handle_not_found_error,
    handle_storage_error,
    handle_validation_error,
)

router = APIRouter(prefix="/notifications", tags=["scheduled-notifications"])


@router.post(
    "/scheduled",
    response_model=ScheduledNotificationRead,
    status_code=status.HTTP_201_CREATED,
)
def create_scheduled_notification(
    payload: ScheduledNotificationCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    service = ScheduledNotificationService(db)
    try:
        return service.schedule(
            current_user.id,
            payload.title,
            payload.body,
            scheduled_for=payload.scheduled_for,
            delay_seconds=payload.delay_seconds,
            notification_type=payload.notification_type,
        )
    except ValidationError as exc:
        raise handle_validation_error(exc) from exc
    except StorageError as exc:
        raise handle_storage_error(exc) from exc


@router.get("/scheduled", response_model=list[ScheduledNotificationRead])
def list_scheduled_notifications(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    """Return the caller's reminders, newest first."""

    return ScheduledNotificationService(db).list_for_user(current_user.id, limit=limit)


@router.post("/scheduled/{notification_id}/snooze", response_model=ScheduledNotificationRead)
def snooze_scheduled_notification(
    notification_id: uuid.UUID,
    payload: SnoozeRequest,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    """Replace a pending reminder with a new one ``minutes`` from now."""

    service = ScheduledNotificationService(db)
    try:
        return service.snooze(current_user.id, notification_id, payload.minutes)
    except NotFoundError as exc:
        raise handle_not_found_error(exc) from exc
    except ValidationError as exc:
        raise handle_validation_error(exc) from exc
    except StorageError as exc:
        raise handle_storage_error(exc) from exc


@router.post(
    "/dispatch",
    response_model=DispatchResponse,
    dependencies=[Depends(deps.require_cron_secret)],
)
def dispatch_scheduled_notifications(
    db: Session = Depends(deps.get_db),
    service: NotificationService = Depends(deps.get_notification_service),
) -> dict:
    """Deliver every due reminder; invoked by an external scheduler."""

    dispatcher = ScheduledNotificationDispatcher(db, service, batch_size=settings.DISPATCH_BATCH_SIZE)
    return dispatcher.run().as_dict()
