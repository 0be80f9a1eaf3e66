"""Custom exception classes and error handling utilities."""
from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from loguru import logger


class AurraException(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class StorageError(AurraException):
    """Database operation errors."""
    pass


class ValidationError(AurraException):
    """Data validation errors."""
    pass


class AuthenticationError(AurraException):
    """Authentication and authorization errors."""
    pass


class ConfigurationError(AurraException):
    """Missing or invalid server configuration (VAPID keys, shared secrets)."""
    pass


class NotFoundError(AurraException):
    """Requested resource does not exist or is not owned by the caller."""
    pass


def handle_storage_error(error: Exception) -> HTTPException:
    """Handle database errors and return appropriate HTTP response."""
    logger.error(f"Storage error: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Database operation failed. Please try again later."
    )


def handle_validation_error(error: ValidationError) -> HTTPException:
    """Handle validation errors."""
    logger.warning(f"Validation error: {error.message}")
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={
            "message": error.message,
            "details": error.details
        }
    )


def handle_authentication_error(error: AuthenticationError) -> HTTPException:
    """Handle authentication errors."""
    logger.warning(f"Authentication error: {error.message}")
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=error.message,
    )


def handle_configuration_error(error: ConfigurationError) -> HTTPException:
    """Handle server configuration errors."""
    logger.error(f"Configuration error: {error.message}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Server configuration error"
    )


def handle_not_found_error(error: NotFoundError) -> HTTPException:
    """Handle missing resources."""
    logger.info(f"Not found: {error.message}")
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=error.message
    )
