"""
Custom exceptions for service layer.

Provides specific exception types for business logic errors
that can be translated to appropriate HTTP responses.
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Base exception for service layer errors."""
    pass


class NotFoundError(ServiceError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")


class ConflictError(ServiceError):
    """Raised when an operation conflicts with existing state."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class ForbiddenError(ServiceError):
    """Raised when the acting user lacks the role required for an operation."""

    def __init__(self, message: str = "Trainer role required"):
        self.message = message
        super().__init__(message)


class ExternalServiceError(ServiceError):
    """Raised when the fixture feed fails or returns an unusable payload.

    The upstream HTTP status is kept so callers can surface it. A value of
    None means the request never produced a response (connection failure,
    timeout) or the body could not be parsed.
    """

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        self.message = message
        self.upstream_status = upstream_status
        super().__init__(message)


class FixtureRejected(ServiceError):
    """Raised for a single fixture record that cannot be imported.

    Never escapes a batch: the reconciler turns it into a skipped entry.
    """

    def __init__(self, reason: str, label: Optional[str] = None):
        self.reason = reason
        self.label = label
        super().__init__(f"Fixture rejected ({reason}): {label or 'unknown'}")
