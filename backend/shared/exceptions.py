"""
Base exception classes for the WearOn B2B API.

Each module defines its own exceptions that inherit from these bases.
The API layer maps each base to an HTTP status (see api/errors.py), so a
module only has to pick the right parent class.
"""

from typing import Optional, Any


class WearOnError(Exception):
    """
    Base exception for all WearOn errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(WearOnError):
    """Resource not found."""

    pass


class ValidationError(WearOnError):
    """Input validation failed."""

    pass


class AuthenticationError(WearOnError):
    """Authentication failed (invalid or missing credentials)."""

    pass


class ConflictError(WearOnError):
    """The request conflicts with state left by an earlier request."""

    pass


class PaymentRequiredError(WearOnError):
    """The caller must add credit before the operation can proceed."""

    pass


class ServiceUnavailableError(WearOnError):
    """A transient dependency failure; the caller may retry."""

    pass


class InternalError(WearOnError):
    """Unexpected or storage failure."""

    pass


class ExternalServiceError(WearOnError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service
