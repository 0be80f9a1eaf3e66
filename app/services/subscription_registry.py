"""Durable mapping from (user, device endpoint) to push credentials."""
from __future__ import annotations

import uuid
from typing import Iterable, Optional
from urllib.parse import urlparse

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.webpush.crypto import load_auth_secret, load_subscriber_key
from app.core.webpush.encoding import normalize_b64url
from app.core.webpush.sender import short_endpoint
from app.db.models.push_subscription import PushSubscription
from app.db.models.user import User
from app.utils.exceptions import StorageError, ValidationError


def _validate_endpoint(endpoint: str) -> str:
    endpoint = (endpoint or "").strip()
    parsed = urlparse(endpoint)
    if parsed.scheme != "https" or not parsed.netloc:
        raise ValidationError("Push endpoint must be an absolute https URL", {"endpoint": endpoint})
    return endpoint


class SubscriptionRegistry:
    """Insert, list and remove push subscriptions.

    Storage failures are rolled back and surfaced as :class:`StorageError`;
    retrying is left to the caller.
    """

    def __init__(self, db: Session):
        self.db = db

    def upsert(
        self,
        user_id: uuid.UUID,
        endpoint: str,
        p256dh: str,
        auth: str,
        user_agent: Optional[str] = None,
    ) -> PushSubscription:
        """Insert or update the subscription keyed on ``(user_id, endpoint)``.

        Users who turned notifications off cannot register devices.
        """

        endpoint = _validate_endpoint(endpoint)
        user = self.db.get(User, user_id)
        if user is not None and not user.notifications_enabled:
            raise ValidationError(
                "Notifications are disabled for this user", {"notifications_enabled": False}
            )
        load_subscriber_key(p256dh)
        load_auth_secret(auth)
        p256dh = normalize_b64url(p256dh)
        auth = normalize_b64url(auth)
        user_agent = user_agent[:255] if user_agent else None

        try:
            subscription = self._get(user_id, endpoint)
            if subscription is None:
                subscription = PushSubscription(
                    user_id=user_id,
                    endpoint=endpoint,
                    p256dh=p256dh,
                    auth=auth,
                    user_agent=user_agent,
                )
                self.db.add(subscription)
                try:
                    self.db.commit()
                except IntegrityError:
                    # A concurrent subscribe for the same device won the insert.
                    self.db.rollback()
                    subscription = self._get(user_id, endpoint)
                    if subscription is None:
                        raise
                    self._apply_keys(subscription, p256dh, auth, user_agent)
                    self.db.commit()
                logger.info("Push subscription registered", user_id=str(user_id), endpoint=short_endpoint(endpoint))
            else:
                self._apply_keys(subscription, p256dh, auth, user_agent)
                self.db.commit()
                logger.info("Push subscription refreshed", user_id=str(user_id), endpoint=short_endpoint(endpoint))
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("Failed to store push subscription") from exc

        self.db.refresh(subscription)
        return subscription

    def list_by_user(self, user_id: uuid.UUID) -> list[PushSubscription]:
        """Return every device subscription of a user, oldest first."""

        stmt = (
            select(PushSubscription)
            .where(PushSubscription.user_id == user_id)
            .order_by(PushSubscription.created_at.asc())
        )
        try:
            return list(self.db.scalars(stmt))
        except SQLAlchemyError as exc:
            raise StorageError("Failed to load push subscriptions") from exc

    def remove(self, user_id: uuid.UUID, endpoint: str) -> bool:
        """Delete one subscription; returns ``False`` when nothing matched."""

        return self.remove_many(user_id, [endpoint]) > 0

    def remove_many(self, user_id: uuid.UUID, endpoints: Iterable[str]) -> int:
        """Delete the given endpoints of a user and return how many rows went."""

        endpoints = list(endpoints)
        if not endpoints:
            return 0
        stmt = delete(PushSubscription).where(
            PushSubscription.user_id == user_id,
            PushSubscription.endpoint.in_(endpoints),
        )
        return self._delete(stmt, user_id)

    def remove_all(self, user_id: uuid.UUID) -> int:
        """Delete every subscription of a user (notifications disabled)."""

        stmt = delete(PushSubscription).where(PushSubscription.user_id == user_id)
        return self._delete(stmt, user_id)

    def _delete(self, stmt, user_id: uuid.UUID) -> int:
        try:
            removed = self.db.execute(stmt).rowcount or 0
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("Failed to remove push subscriptions") from exc
        if removed:
            logger.info("Push subscriptions removed", user_id=str(user_id), count=removed)
        return removed

    def _get(self, user_id: uuid.UUID, endpoint: str) -> Optional[PushSubscription]:
        stmt = select(PushSubscription).where(
            PushSubscription.user_id == user_id,
            PushSubscription.endpoint == endpoint,
        )
        return self.db.scalars(stmt).first()

    @staticmethod
    def _apply_keys(
        subscription: PushSubscription, p256dh: str, auth: str, user_agent: Optional[str]
    ) -> None:
        subscription.p256dh = p256dh
        subscription.auth = auth
        if user_agent:
            subscription.user_agent = user_agent
