"""
Service-layer errors.

Each error carries the HTTP status it maps to; main.py renders them as
{"error": message}.
"""
from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ServiceError):
    """Required fields missing; raised before any write."""
    status_code = status.HTTP_400_BAD_REQUEST


class PermissionDeniedError(ServiceError):
    """Caller's role or tenant does not allow the operation."""
    status_code = status.HTTP_403_FORBIDDEN


class AuthenticationError(ServiceError):
    """Webhook signature missing or invalid."""
    status_code = status.HTTP_401_UNAUTHORIZED


class PayloadError(ServiceError):
    """Webhook body is not well-formed."""
    status_code = status.HTTP_400_BAD_REQUEST


class AllocationExhausted(ServiceError):
    """No unique registration code could be inserted within the attempt limit."""
    status_code = status.HTTP_409_CONFLICT


class PersistenceError(ServiceError):
    """The store rejected a write for a reason other than a retried conflict."""
    status_code = status.HTTP_400_BAD_REQUEST
