"""Authentication API endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas import RefreshRequest, Token, UserCreate, UserLogin, UserRead
from app.services.auth import AuthService, EmailAlreadyExistsError
from app.utils.exceptions import (
    AuthenticationError,
    StorageError,
    handle_authentication_error,
    handle_storage_error,
)


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(payload: UserCreate, db: Session = Depends(get_db)) -> UserRead:
    """Register a new user and return the created entity."""

    try:
        return AuthService(db).register_user(payload)
    except EmailAlreadyExistsError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc
    except StorageError as exc:
        raise handle_storage_error(exc) from exc


@router.post("/login", response_model=Token)
def login(payload: UserLogin, db: Session = Depends(get_db)) -> Token:
    """Authenticate a user and return an access/refresh token pair."""

    service = AuthService(db)
    try:
        user = service.authenticate_user(payload.email, payload.password)
    except AuthenticationError as exc:
        raise handle_authentication_error(exc) from exc
    return service.create_tokens(user)


@router.post("/refresh", response_model=Token)
def refresh(payload: RefreshRequest, db: Session = Depends(get_db)) -> Token:
    """Rotate a session: a refresh token buys a fresh access/refresh pair."""

    try:
        return AuthService(db).refresh(payload.refresh_token)
    except AuthenticationError as exc:
        raise handle_authentication_error(exc) from exc
