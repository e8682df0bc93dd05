"""
Shared infrastructure for the WearOn B2B API.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- exceptions: Base exception classes
- logging_config: Request-aware logging setup

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import create_supabase_client
from .exceptions import (
    WearOnError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    ConflictError,
    PaymentRequiredError,
    ServiceUnavailableError,
    InternalError,
    ExternalServiceError,
)
from .logging_config import configure_logging, request_id_var
from .models import AuthenticatedMerchant

__all__ = [
    "Settings",
    "get_settings",
    "create_supabase_client",
    "WearOnError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "ConflictError",
    "PaymentRequiredError",
    "ServiceUnavailableError",
    "InternalError",
    "ExternalServiceError",
    "configure_logging",
    "request_id_var",
    "AuthenticatedMerchant",
]
