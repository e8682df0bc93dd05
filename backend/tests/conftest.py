"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

import time

import pytest
from datetime import datetime, timezone, timedelta
import jwt  # PyJWT

from shared.config import get_settings
from modules.billing.signature import compute_signature


# Test secrets (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"
TEST_CRON_SECRET = "test-cron-secret"
TEST_WEBHOOK_SECRET = "pdl_ntfset_test_secret"

TEST_STORE_ID = "3f1c2a9e-5b7d-4c1e-9a2b-8d6e4f0a1b2c"
OTHER_STORE_ID = "9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d"

TEST_ENV = {
    "MERCHANT_JWT_SECRET": TEST_JWT_SECRET,
    "CRON_SECRET": TEST_CRON_SECRET,
    "PADDLE_WEBHOOK_SECRET": TEST_WEBHOOK_SECRET,
    "PADDLE_API_KEY": "pdl_test_api_key",
    "PADDLE_OVERAGE_PRICE_ID_STARTER": "pri_overage_starter",
    "PADDLE_OVERAGE_PRICE_ID_GROWTH": "pri_overage_growth",
    "PADDLE_PRICE_ID_PAYG": "pri_payg",
}


def create_test_token(
    store_id: str = TEST_STORE_ID,
    expired: bool = False,
    audience: str = "merchant",
    secret: str = TEST_JWT_SECRET,
) -> str:
    """
    Create a merchant JWT for authentication.

    Args:
        store_id: Store ID placed in the subject claim
        expired: If True, creates an expired token
        audience: Audience claim
        secret: Signing secret

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload = {
        "sub": store_id,
        "shop_domain": "test-shop.myshopify.com",
        "aud": audience,
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def sign_paddle_body(
    body: bytes,
    secret: str = TEST_WEBHOOK_SECRET,
    timestamp: int | None = None,
) -> str:
    """Build a Paddle-Signature header for a body."""
    ts = str(timestamp if timestamp is not None else int(time.time()))
    return f"ts={ts};h1={compute_signature(body, ts, secret)}"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Point settings at test secrets; rebuild the cached instance per test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def store_id() -> str:
    """Provide a consistent test store ID."""
    return TEST_STORE_ID


@pytest.fixture
def auth_token(store_id: str) -> str:
    """Create a valid merchant token for testing."""
    return create_test_token(store_id=store_id)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers with a valid token."""
    return {"Authorization": f"Bearer {auth_token}"}


def upload_url(store_id: str = TEST_STORE_ID, name: str = "model.jpg") -> str:
    """A storage url inside the store's upload area."""
    return f"https://cdn.example.com/storage/v1/object/public/stores/{store_id}/uploads/{name}"
