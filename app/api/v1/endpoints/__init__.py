"""API endpoint modules for v1."""

from app.api.v1.endpoints import auth, hydration, notifications, scheduled, users

__all__ = ["auth", "hydration", "notifications", "scheduled", "users"]
