"""Service layer for user operations."""
from __future__ import annotations

import uuid

from loguru import logger
from sqlalchemy.orm import Session

from app.db.models.user import User
from app.schemas.user import UserUpdate
from app.services.subscription_registry import SubscriptionRegistry


class UserNotFoundError(ValueError):
    """Raised when a user lookup fails."""


class UserService:
    """Encapsulates reusable user-related data access operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: uuid.UUID) -> User:
        """Return a user by identifier or raise ``UserNotFoundError``."""

        user = self.db.get(User, user_id)
        if not user:
            raise UserNotFoundError("User not found")
        return user

    def update(self, user: User, payload: UserUpdate) -> User:
        """Persist profile changes; disabling notifications unsubscribes every device."""

        update_data = payload.model_dump(exclude_unset=True)
        disabling = update_data.get("notifications_enabled") is False and user.notifications_enabled
        for field, value in update_data.items():
            if value is None and field != "full_name":
                continue
            setattr(user, field, value)

        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        if disabling:
            removed = SubscriptionRegistry(self.db).remove_all(user.id)
            logger.info("Notifications disabled", user_id=str(user.id), subscriptions_removed=removed)
        return user
