"""
Scheduled job endpoints.

Called by an external scheduler with Authorization: Bearer <CRON_SECRET>.
"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from shared.config import Settings, get_settings
from shared.exceptions import AuthenticationError
from modules.generation.models import RecoveryResult
from modules.generation.recovery import StuckSessionRecovery

from ..dependencies import get_stuck_session_recovery

logger = logging.getLogger(__name__)

router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)


def require_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject callers that do not present the cron secret."""
    if not settings.cron_secret:
        logger.error("CRON_SECRET is not configured; rejecting cron call")
        raise AuthenticationError("Unauthorized", code="UNAUTHORIZED")
    if credentials is None or not hmac.compare_digest(
        credentials.credentials.encode(), settings.cron_secret.encode()
    ):
        raise AuthenticationError("Unauthorized", code="UNAUTHORIZED")


@router.post(
    "/stuck-sessions",
    response_model=RecoveryResult,
    dependencies=[Depends(require_cron_secret)],
)
async def recover_stuck_sessions(
    threshold_minutes: Optional[int] = Query(
        default=None, ge=1, description="Override the configured age threshold"
    ),
    recovery: StuckSessionRecovery = Depends(get_stuck_session_recovery),
) -> RecoveryResult:
    """Fail and compensate sessions stuck in queued or processing."""
    return await recovery.recover(threshold_minutes)
