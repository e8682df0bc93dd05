"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class AuthenticatedMerchant(BaseModel):
    """
    Represents an authenticated merchant (store) in the system.

    This model is populated from JWT claims and made available
    to route handlers via dependency injection.
    """

    store_id: str = Field(..., description="Store ID (UUID)")
    shop_domain: Optional[str] = Field(None, description="Merchant shop domain")
    issued_at: Optional[datetime] = Field(None, description="Token issue time")

    model_config = {
        "frozen": True,  # Make immutable for safety
        "extra": "ignore",  # Ignore extra fields from JWT
    }
