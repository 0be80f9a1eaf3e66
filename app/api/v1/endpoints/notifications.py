"""Push subscription registry and direct delivery endpoints."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from app.api import deps
from app.config import settings
from app.db.models.user import User
from app.schemas import (
    DirectPushRequest,
    FanOutResponse,
    PushSubscriptionCreate,
    PushSubscriptionRead,
    PushUnsubscribeRequest,
    UnsubscribeResponse,
    VapidPublicKeyResponse,
)
from app.services.notification_service import NotificationService
from app.services.subscription_registry import SubscriptionRegistry
from app.services.vapid_keys import VapidKeyStore
from app.utils.exceptions import (
    ConfigurationError,
    StorageError,
    ValidationError,
    handle_configuration_error,
    handle_storage_error,
    handle_validation_error,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
def get_vapid_public_key(db: Session = Depends(deps.get_db)) -> VapidPublicKeyResponse:
    """Return the application server key, generating the pair on first use."""

    try:
        keys = VapidKeyStore(db).resolve(settings)
    except ConfigurationError as exc:
        raise handle_configuration_error(exc) from exc
    return VapidPublicKeyResponse(publicKey=keys.public_key)


@router.post("/subscribe", response_model=PushSubscriptionRead, status_code=status.HTTP_201_CREATED)
def subscribe(
    subscription: PushSubscriptionCreate,
    user_agent: Optional[str] = Header(default=None),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> PushSubscriptionRead:
    """Register (or refresh) the caller's push subscription for this device."""

    registry = SubscriptionRegistry(db)
    try:
        return registry.upsert(
            current_user.id,
            subscription.endpoint,
            subscription.keys.p256dh,
            subscription.keys.auth,
            user_agent=user_agent,
        )
    except ValidationError as exc:
        raise handle_validation_error(exc) from exc
    except StorageError as exc:
        raise handle_storage_error(exc) from exc


@router.delete("/subscribe", response_model=UnsubscribeResponse)
def unsubscribe(
    request: PushUnsubscribeRequest,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> UnsubscribeResponse:
    """Forget one device subscription of the caller."""

    try:
        removed = SubscriptionRegistry(db).remove(current_user.id, request.endpoint)
    except StorageError as exc:
        raise handle_storage_error(exc) from exc
    return UnsubscribeResponse(removed=removed)


@router.get("/subscriptions", response_model=list[PushSubscriptionRead])
def list_subscriptions(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    return SubscriptionRegistry(db).list_by_user(current_user.id)


@router.post("/test", response_model=FanOutResponse)
def test_notification(
    current_user: User = Depends(deps.get_current_user),
    service: NotificationService = Depends(deps.get_notification_service),
) -> dict:
    """Push a test message to every device of the caller."""

    outcome = service.send_to_user(
        current_user.id,
        "Success!",
        "This is a test notification from AURRA.",
        tag="aura-test",
    )
    return outcome.as_dict()


@router.post(
    "/send",
    response_model=FanOutResponse,
    dependencies=[Depends(deps.require_cron_secret)],
)
def send_notification(
    request: DirectPushRequest,
    service: NotificationService = Depends(deps.get_notification_service),
) -> dict:
    """System-to-system: push a message to every device of ``userId``."""

    outcome = service.send_to_user(
        request.userId,
        request.title,
        request.body,
        icon=request.icon,
        tag=request.tag,
        data=request.data,
        url=request.url,
    )
    return outcome.as_dict()
