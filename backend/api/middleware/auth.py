"""
JWT Authentication middleware.

Validates merchant JWT tokens and extracts the store they were issued to.
"""

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from datetime import datetime, timezone

from shared.config import get_settings
from shared.models import AuthenticatedMerchant

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


class AuthError(HTTPException):
    """Authentication error with consistent format."""
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


def decode_token(token: str) -> dict:
    """
    Decode and validate a merchant JWT.

    Args:
        token: The JWT token string

    Returns:
        Decoded claims

    Raises:
        AuthError: If token is invalid or expired
    """
    settings = get_settings()

    if not settings.merchant_jwt_secret:
        raise AuthError("Server authentication not configured")

    try:
        return jwt.decode(
            token,
            settings.merchant_jwt_secret,
            algorithms=["HS256"],
            audience=settings.merchant_jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Token has expired")
    except JWTError as e:
        raise AuthError(f"Invalid token: {str(e)}")


def get_merchant_from_claims(claims: dict) -> AuthenticatedMerchant:
    """
    Convert JWT claims to an AuthenticatedMerchant.

    Raises:
        AuthError: If the token carries no store id
    """
    store_id = claims.get("sub")
    if not store_id:
        raise AuthError("Invalid token: missing subject")

    issued_at = claims.get("iat")
    return AuthenticatedMerchant(
        store_id=store_id,
        shop_domain=claims.get("shop_domain"),
        issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc) if issued_at else None,
    )


async def get_current_merchant(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedMerchant:
    """
    Dependency that requires an authenticated merchant.

    Usage:
        @router.get("/protected")
        async def protected_route(merchant: AuthenticatedMerchant = Depends(get_current_merchant)):
            return {"store_id": merchant.store_id}
    """
    if credentials is None:
        raise AuthError("Missing authorization header")

    claims = decode_token(credentials.credentials)
    return get_merchant_from_claims(claims)


# Type alias for cleaner route definitions
RequireMerchant = Depends(get_current_merchant)
