"""Shared API dependencies."""
from __future__ import annotations

import uuid
from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from loguru import logger
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.security import ACCESS_TOKEN, InvalidTokenError, decode_token, verify_shared_secret
from app.core.webpush.sender import WebPushSender
from app.db.models.user import User
from app.db.session import SessionLocal
from app.schemas import TokenPayload
from app.services.notification_service import NotificationService, create_push_sender
from app.utils.exceptions import ConfigurationError, handle_configuration_error

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for request lifetime."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)
) -> User:
    """Resolve the authenticated user from the Authorization header."""

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    try:
        payload = decode_token(token, expected_type=ACCESS_TOKEN)
        token_data = TokenPayload.model_validate(payload)
    except (InvalidTokenError, ValidationError, ValueError, KeyError) as exc:
        raise credentials_exception from exc

    user_id = uuid.UUID(str(token_data.sub))
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise credentials_exception
    return user


def require_cron_secret(x_cron_secret: Optional[str] = Header(default=None)) -> None:
    """Authenticate system-to-system calls by the shared ``X-Cron-Secret`` header."""

    if not settings.CRON_SECRET:
        logger.error("CRON_SECRET not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error",
        )
    if not verify_shared_secret(x_cron_secret, settings.CRON_SECRET):
        logger.warning("Invalid or missing cron secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def get_push_sender(db: Session = Depends(get_db)) -> Generator[WebPushSender, None, None]:
    """Yield a sender bound to the VAPID key pair, closing its HTTP client afterwards."""

    try:
        sender = create_push_sender(db)
    except ConfigurationError as exc:
        raise handle_configuration_error(exc) from exc
    try:
        yield sender
    finally:
        sender.close()


def get_notification_service(
    db: Session = Depends(get_db),
    sender: WebPushSender = Depends(get_push_sender),
) -> NotificationService:
    """Assemble the fan-out service with request-scoped dependencies."""

    return NotificationService(db, sender)
