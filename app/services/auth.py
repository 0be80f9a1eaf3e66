"""Registration, login and session refresh."""
from __future__ import annotations

import uuid

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.security import (
    REFRESH_TOKEN,
    InvalidTokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from app.db.models.user import User
from app.schemas import Token, UserCreate
from app.utils.exceptions import AurraException, AuthenticationError, StorageError


class EmailAlreadyExistsError(AurraException):
    """Registration attempted with an email that is already taken."""


class AuthService:
    """Issues session tokens for users of the notification API.

    Access tokens authenticate API calls; refresh tokens are only accepted
    by :meth:`refresh`, which rotates both.
    """

    def __init__(self, db: Session):
        self.db = db

    def register_user(self, payload: UserCreate) -> User:
        email = payload.email.lower()
        if self.db.scalar(select(User.id).where(User.email == email)) is not None:
            raise EmailAlreadyExistsError("A user with this email already exists.")

        user = User(
            email=email,
            hashed_password=get_password_hash(payload.password),
            full_name=payload.full_name,
            notifications_enabled=payload.notifications_enabled,
            timezone=payload.timezone,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise EmailAlreadyExistsError("A user with this email already exists.") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("Failed to create user") from exc

        self.db.refresh(user)
        logger.info("User registered", user_id=str(user.id))
        return user

    def authenticate_user(self, email: str, password: str) -> User:
        user = self.db.scalar(select(User).where(User.email == email.lower()))
        if user is None or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Incorrect email or password")
        if not user.is_active:
            raise AuthenticationError("User account is inactive")
        return user

    def create_tokens(self, user: User) -> Token:
        return Token(
            access_token=create_access_token(user.id),
            refresh_token=create_refresh_token(user.id),
        )

    def refresh(self, refresh_token: str) -> Token:
        """Exchange a valid refresh token for a new access/refresh pair."""

        try:
            payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN)
            user_id = uuid.UUID(str(payload["sub"]))
        except (InvalidTokenError, KeyError, ValueError) as exc:
            raise AuthenticationError("Invalid refresh token") from exc

        user = self.db.get(User, user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("Invalid refresh token")
        logger.debug("Session refreshed", user_id=str(user_id))
        return self.create_tokens(user)
