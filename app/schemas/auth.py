"""Session token schemas."""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class Token(BaseModel):
    """Access/refresh pair issued by login and refresh."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class TokenPayload(BaseModel):
    """Claims read back from a session token."""

    sub: uuid.UUID
    exp: datetime
    type: str
