"""Utility helpers package."""

from app.utils.exceptions import (
    AurraException,
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    StorageError,
    ValidationError,
)

__all__ = [
    "AurraException",
    "AuthenticationError",
    "ConfigurationError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
]
