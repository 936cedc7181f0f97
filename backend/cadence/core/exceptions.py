"""
Custom exceptions for the application.
"""

from typing import Any, Optional
from uuid import UUID


class CadenceError(Exception):
    """Base exception for cadence."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(CadenceError):
    """Resource not found."""

    pass


class ValidationError(CadenceError):
    """Validation error (invalid caller input)."""

    pass


class InvalidPatternError(ValidationError):
    """Recurrence pattern cannot be expanded into occurrences."""

    pass


class AuthenticationError(CadenceError):
    """Authentication failed."""

    pass


class InfrastructureError(CadenceError):
    """Infrastructure-related error (DB, external services, etc.)."""

    pass


class StorageError(InfrastructureError):
    """
    Task store transaction failed.

    ``operation`` and ``series_id`` are filled in by the service layer before
    the error leaves it. ``retryable`` is False for mutations that must not be
    blindly replayed (following-scope and regeneration paths).
    """

    def __init__(
        self,
        message: str,
        details: Optional[Any] = None,
        operation: Optional[str] = None,
        series_id: Optional[UUID] = None,
        retryable: bool = True,
    ):
        super().__init__(message, details)
        self.operation = operation
        self.series_id = series_id
        self.retryable = retryable

    def annotate(
        self,
        operation: str,
        series_id: Optional[UUID] = None,
        retryable: bool = True,
    ) -> "StorageError":
        """Attach call-site context without replacing the exception."""
        self.operation = operation
        if series_id is not None:
            self.series_id = series_id
        self.retryable = retryable
        return self

    def __str__(self) -> str:
        parts = [self.message]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.series_id:
            parts.append(f"series_id={self.series_id}")
        return " ".join(parts)
