"""Hydration tracking endpoints and the reminder trigger."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api import deps
from app.config import settings
from app.db.models.user import User
from app.schemas import (
    HydrationLogCreate,
    HydrationLogRead,
    HydrationReminderResponse,
    HydrationSettingsRead,
    HydrationSettingsUpdate,
    HydrationSummary,
)
from app.services.hydration import HydrationReminderJob, HydrationService
from app.services.notification_service import NotificationService
from app.utils.exceptions import (
    StorageError,
    ValidationError,
    handle_storage_error,
    handle_validation_error,
)

router = APIRouter(prefix="/hydration", tags=["hydration"])


@router.get("/settings", response_model=HydrationSettingsRead)
def read_hydration_settings(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    try:
        return HydrationService(db).get_settings(current_user.id)
    except StorageError as exc:
        raise handle_storage_error(exc) from exc


@router.put("/settings", response_model=HydrationSettingsRead)
def update_hydration_settings(
    payload: HydrationSettingsUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    try:
        return HydrationService(db).update_settings(current_user.id, payload.model_dump(exclude_unset=True))
    except ValidationError as exc:
        raise handle_validation_error(exc) from exc
    except StorageError as exc:
        raise handle_storage_error(exc) from exc


@router.post("/logs", response_model=HydrationLogRead, status_code=status.HTTP_201_CREATED)
def log_hydration(
    payload: HydrationLogCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    """Record a drink for the caller."""

    try:
        return HydrationService(db).log_intake(current_user.id, payload.amount_ml)
    except ValidationError as exc:
        raise handle_validation_error(exc) from exc
    except StorageError as exc:
        raise handle_storage_error(exc) from exc


@router.get("/today", response_model=HydrationSummary)
def read_hydration_today(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> dict:
    return HydrationService(db).progress(current_user).as_dict()


@router.post(
    "/reminders",
    response_model=HydrationReminderResponse,
    dependencies=[Depends(deps.require_cron_secret)],
)
def send_hydration_reminders(
    db: Session = Depends(deps.get_db),
    service: NotificationService = Depends(deps.get_notification_service),
) -> dict:
    """Remind users who are behind on their goal; invoked by an external scheduler."""

    job = HydrationReminderJob(db, service, window_minutes=settings.HYDRATION_REMINDER_WINDOW_MINUTES)
    return job.run().as_dict()
