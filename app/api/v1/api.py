"""API router for version 1."""
from fastapi import APIRouter

from app.api.v1.endpoints import auth, hydration, notifications, scheduled, users


api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(notifications.router)
api_router.include_router(scheduled.router)
api_router.include_router(hydration.router)
