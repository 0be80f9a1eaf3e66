"""Security utilities: password hashing, session JWTs and system-call secrets."""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from app.config import settings


ALGORITHM = "HS256"
ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


class InvalidTokenError(Exception):
    """Raised when a JWT cannot be decoded, has expired or has the wrong type."""


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def get_password_hash(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""

    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def _lifetime(token_type: str) -> timedelta:
    if token_type == ACCESS_TOKEN:
        return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    if token_type == REFRESH_TOKEN:
        return timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    raise ValueError(f"Unknown token type: {token_type}")


def create_token(subject: Any, token_type: str, now: Optional[datetime] = None) -> str:
    """Sign a session token of ``token_type`` for ``subject`` (the user id)."""

    issued = now or datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": str(subject),
        "type": token_type,
        "iat": issued,
        "exp": issued + _lifetime(token_type),
        # distinct refresh tokens even when issued within the same second
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def create_access_token(subject: Any) -> str:
    return create_token(subject, ACCESS_TOKEN)


def create_refresh_token(subject: Any) -> str:
    return create_token(subject, REFRESH_TOKEN)


def decode_token(token: str, expected_type: Optional[str] = None) -> Dict[str, Any]:
    """Decode a session JWT, optionally insisting on its ``type`` claim.

    Raises ``InvalidTokenError`` for bad signatures, expired tokens and
    tokens of another type.
    """

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc
    if expected_type is not None and payload.get("type") != expected_type:
        raise InvalidTokenError(f"Expected a {expected_type} token")
    return payload


def verify_shared_secret(provided: Optional[str], expected: str) -> bool:
    """Constant-time comparison of a system-to-system secret header."""

    if not provided:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
