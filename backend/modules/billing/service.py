"""
Paddle overage billing.

PaddleOverageBiller implements IOverageBiller against the Paddle Billing
REST API:
- charge: POST /subscriptions/{id}/charge with one unit of the tier's
  overage price
- reverse: POST /adjustments with a full refund of the charge

The httpx client is injected so that the service container owns its
lifecycle and tests can swap in httpx.MockTransport.
"""

import logging
from typing import Any, Optional

import httpx

from shared.config import Settings
from .exceptions import OverageChargeError
from .models import SubscriptionTier

logger = logging.getLogger(__name__)


class PaddleOverageBiller:
    """
    Overage biller backed by Paddle.

    Every call uses the configured timeout. A charge either returns the
    Paddle transaction id or raises OverageChargeError; there is no
    "unknown" outcome from the caller's point of view.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the biller.

        Args:
            settings: Application settings (API key, price ids, environment)
            client: HTTP client to use. If None, one is created from settings
                    and must be released with aclose().
        """
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=settings.paddle_api_base_url,
            timeout=settings.paddle_timeout_seconds,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.paddle_api_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post(
            path,
            json=payload,
            headers=self._headers(),
            timeout=self._settings.paddle_timeout_seconds,
        )
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError("Invalid Paddle response payload")
        return body

    async def charge(
        self,
        subscription_id: str,
        tier: SubscriptionTier,
        store_id: str,
        session_id: str,
        request_id: str,
    ) -> str:
        """Bill one overage unit; returns the Paddle transaction id."""
        if not self._settings.paddle_api_key:
            raise OverageChargeError("Paddle API key is not configured")

        price_id = self._settings.overage_price_id(tier.value)
        if not price_id:
            raise OverageChargeError(f"No overage price configured for tier {tier.value}")

        payload = {
            "effective_from": "immediately",
            "items": [{"price_id": price_id, "quantity": 1}],
            "custom_data": {
                "purchase_type": "overage",
                "tier": tier.value,
                "store_id": store_id,
                "session_id": session_id,
                "request_id": request_id,
            },
        }

        try:
            body = await self._post(f"/subscriptions/{subscription_id}/charge", payload)
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"Overage charge declined for store {store_id} "
                f"(status {e.response.status_code})"
            )
            raise OverageChargeError(
                "Overage charge was declined", processor_error=e.response.text[:500]
            ) from e
        except httpx.TimeoutException as e:
            logger.warning(f"Overage charge timed out for store {store_id}")
            raise OverageChargeError("Overage charge timed out") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Overage charge failed for store {store_id}: {e}")
            raise OverageChargeError("Overage charge failed", processor_error=str(e)) from e

        data = body.get("data")
        charge_id = data.get("id") if isinstance(data, dict) else None
        if not charge_id:
            raise OverageChargeError("Paddle overage charge ID missing in response")

        logger.info(
            f"Overage charged for store {store_id}: charge {charge_id}, "
            f"tier {tier.value}, session {session_id}"
        )
        return str(charge_id)

    async def reverse(self, charge_id: str, request_id: str, reason: str) -> None:
        """Refund a charge in full; failures are logged, never raised."""
        payload = {
            "action": "refund",
            "transaction_id": charge_id,
            "reason": reason,
            "items": [{"type": "full"}],
        }
        try:
            await self._post("/adjustments", payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                f"Failed to reverse overage charge {charge_id} "
                f"(request {request_id}): {e} - manual reconciliation required"
            )
            return

        logger.info(f"Overage charge {charge_id} reversed (request {request_id})")

    async def aclose(self) -> None:
        """Close the HTTP client if this biller created it."""
        if self._owns_client:
            await self._client.aclose()
