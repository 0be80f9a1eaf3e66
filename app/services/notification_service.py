"""Service for handling Web Push notifications."""
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from sqlalchemy.orm import Session

from app.config import settings
from app.core.service_worker import DEFAULT_BODY, DEFAULT_TITLE
from app.core.webpush.sender import DeliveryResult, WebPushSender
from app.db.models.user import User
from app.services.subscription_registry import SubscriptionRegistry
from app.services.vapid_keys import VapidKeyStore


@dataclass
class FanOutResult:
    """Aggregated outcome of delivering one message to every device of a user."""

    results: List[DeliveryResult] = field(default_factory=list)
    pruned: int = 0
    opted_out: bool = False

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def sent(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def success(self) -> bool:
        return self.sent > 0

    @property
    def has_failures(self) -> bool:
        """True when a delivery failed for a reason other than the endpoint being gone."""

        return any(not result.success and not result.gone for result in self.results)

    @property
    def message(self) -> str:
        if self.opted_out:
            return "Notifications are disabled for this user"
        if not self.results:
            return "No push subscriptions found"
        return f"Sent to {self.sent}/{self.total} subscription(s)"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "sent": self.sent,
            "total": self.total,
            "pruned": self.pruned,
            "results": [result.as_dict() for result in self.results],
        }


def build_payload(
    title: Optional[str] = None,
    body: Optional[str] = None,
    *,
    icon: Optional[str] = None,
    tag: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
    url: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the JSON document the service worker renders."""

    payload: Dict[str, Any] = {
        "title": title or DEFAULT_TITLE,
        "body": body or DEFAULT_BODY,
        "icon": icon or settings.NOTIFICATION_ICON,
        "badge": settings.NOTIFICATION_ICON,
        "tag": tag or f"aura-{int(time.time() * 1000)}",
        "data": data or {},
        "timestamp": int(time.time() * 1000),
    }
    if url:
        payload["url"] = url
    return payload


def create_push_sender(db: Session, client: Optional[httpx.Client] = None) -> WebPushSender:
    """Build a sender bound to the process-wide VAPID key pair.

    Raises ``ConfigurationError`` when no usable key pair is available.
    """

    keys = VapidKeyStore(db).resolve(settings)
    return WebPushSender(
        keys,
        settings.VAPID_SUBJECT,
        client=client,
        ttl_seconds=settings.PUSH_TTL_SECONDS,
        timeout=settings.PUSH_REQUEST_TIMEOUT_SECONDS,
        token_ttl_seconds=settings.VAPID_TOKEN_TTL_SECONDS,
    )


class NotificationService:
    """Fan a message out to every registered device of a user."""

    def __init__(self, db: Session, sender: WebPushSender):
        self.db = db
        self.sender = sender
        self.registry = SubscriptionRegistry(db)

    def send_to_user(
        self,
        user_id: uuid.UUID,
        title: Optional[str] = None,
        body: Optional[str] = None,
        *,
        icon: Optional[str] = None,
        tag: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        url: Optional[str] = None,
    ) -> FanOutResult:
        """Deliver to each subscription independently, then prune gone endpoints.

        Nothing is sent to users who turned notifications off.
        """

        user = self.db.get(User, user_id)
        if user is not None and not user.notifications_enabled:
            logger.info("Notifications disabled, skipping push", user_id=str(user_id))
            return FanOutResult(opted_out=True)

        payload = build_payload(title, body, icon=icon, tag=tag, data=data, url=url)
        outcome = FanOutResult()

        for subscription in self.registry.list_by_user(user_id):
            outcome.results.append(self.sender.send(subscription, payload))

        expired = [result.endpoint for result in outcome.results if result.gone]
        if expired:
            outcome.pruned = self.registry.remove_many(user_id, expired)
            logger.info("Cleaned up expired subscriptions", user_id=str(user_id), count=outcome.pruned)

        logger.info(
            "Push fan-out finished",
            user_id=str(user_id),
            sent=outcome.sent,
            total=outcome.total,
        )
        return outcome
