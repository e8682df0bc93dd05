"""
Generation fulfillment orchestrator.

Runs the saga for one generation request:

    reserve credit -> (bill overage) -> create session -> enqueue

and reconciles partial failures so that a request either ends queued with
exactly one payment, or failed with that payment compensated. The request
id is the idempotency token for every ledger call, and a store has at most
one session per request id: a replayed id gets its existing session back
without paying or enqueueing again.
"""

import asyncio
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Optional
from urllib.parse import parse_qsl, unquote, urlsplit

from modules.billing.exceptions import OverageChargeError
from modules.billing.interfaces import IBillingProfileResolver, IOverageBiller
from modules.billing.models import BillingMode, SubscriptionTier, get_tier_overage_cents
from modules.credits.exceptions import LedgerUnavailableError
from modules.credits.interfaces import ICreditLedger
from modules.credits.service import normalize_shopper_email
from shared.exceptions import ValidationError

from .interfaces import ISessionStore, ITaskQueue
from .models import (
    CreateGenerationRequest,
    CreateGenerationResponse,
    GenerationSession,
    GenerationStatusResponse,
    GenerationTask,
    PaymentMethod,
    SessionStatus,
    store_upload_path,
)
from .exceptions import (
    BillingFailureError,
    DuplicateSessionError,
    InsufficientCreditError,
    InvalidImageUrlError,
    InvalidSessionIdError,
    QueueFailureError,
    SessionCreationError,
    SessionNotFoundError,
    SessionStoreError,
)

logger = logging.getLogger(__name__)

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

QUEUE_FAILURE_MESSAGE = "Failed to queue generation task"
QUEUE_FAILURE_REVERSAL_REASON = "queue failure after successful billing - service not delivered"
SESSION_FAILURE_REVERSAL_REASON = "session creation failed after successful billing"
DUPLICATE_REQUEST_REVERSAL_REASON = "duplicate request id - session already exists"


def is_store_scoped_url(image_url: str, store_id: str) -> bool:
    """
    Check that an image url points into the store's upload area.

    The prefix may appear in the raw url, its percent-decoded form, the
    path, or any query parameter value (signed storage urls carry the
    object path as a parameter).
    """
    prefix = f"{store_upload_path(store_id)}/"
    candidates = [image_url, unquote(image_url)]

    parts = urlsplit(image_url)
    if parts.scheme and parts.netloc:
        candidates.append(parts.path)
        candidates.append(unquote(parts.path))
        candidates.extend(value for _, value in parse_qsl(parts.query))

    return any(prefix in candidate for candidate in candidates)


@dataclass
class Payment:
    """The instrument that paid for a request, needed to compensate it."""

    method: PaymentMethod
    shopper_email: Optional[str] = None
    charge_id: Optional[str] = None
    tier: Optional[SubscriptionTier] = None


class FulfillmentOrchestrator:
    """
    Coordinates ledger, billing, session store and queue for a generation.

    Overage audit writes run as background tasks; their failures are
    logged and never reach the caller. Call drain() to wait for them.
    """

    def __init__(
        self,
        ledger: ICreditLedger,
        profiles: IBillingProfileResolver,
        biller: IOverageBiller,
        sessions: ISessionStore,
        queue: ITaskQueue,
        queue_timeout_seconds: float = 5.0,
    ):
        self._ledger = ledger
        self._profiles = profiles
        self._biller = biller
        self._sessions = sessions
        self._queue = queue
        self._queue_timeout = queue_timeout_seconds
        self._background: set[asyncio.Task] = set()

    # -------------------------------------------------------------------------
    # Saga
    # -------------------------------------------------------------------------

    async def create_generation(
        self,
        store_id: str,
        request: CreateGenerationRequest,
        request_id: str,
        shopper_email: Optional[str] = None,
    ) -> CreateGenerationResponse:
        """Pay for, record and enqueue one generation."""
        for url in request.image_urls:
            if not is_store_scoped_url(url, store_id):
                raise InvalidImageUrlError(store_id)

        prompt = request.resolved_prompt()
        billing_mode = await self._profiles.get_billing_mode(store_id)

        shopper: Optional[str] = None
        if billing_mode is BillingMode.RESELL:
            if not shopper_email:
                raise ValidationError(
                    "X-Shopper-Email header is required for resell mode",
                    code="VALIDATION_ERROR",
                )
            shopper = normalize_shopper_email(shopper_email)

        existing = await self._sessions.find_by_request(store_id, request_id)
        if existing is not None:
            logger.info(
                f"Request {request_id} replayed for store {store_id}; "
                f"returning session {existing.id}"
            )
            return CreateGenerationResponse(session_id=existing.id, status=existing.status)

        # Generated up front so an overage charge can reference it
        session_id = str(uuid.uuid4())

        payment = await self._reserve(store_id, billing_mode, shopper, session_id, request_id)

        session = GenerationSession(
            id=session_id,
            store_id=store_id,
            status=SessionStatus.QUEUED,
            request_id=request_id,
            payment_method=payment.method,
            shopper_email=shopper,
            model_image_url=request.image_urls[0],
            outfit_image_url=request.image_urls[1] if len(request.image_urls) > 1 else None,
            prompt=prompt,
            credits_used=1,
        )
        try:
            await self._sessions.create(session)
        except DuplicateSessionError:
            return await self._resolve_concurrent_replay(store_id, payment, request_id)
        except SessionStoreError:
            logger.error(f"Session creation failed for store {store_id}; compensating payment")
            await self._compensate(
                store_id, payment, request_id, SESSION_FAILURE_REVERSAL_REASON
            )
            raise SessionCreationError()

        if payment.method is PaymentMethod.OVERAGE:
            self._record_overage_audit(store_id, session_id, request_id, payment)

        task = GenerationTask(
            task_id=str(uuid.uuid4()),
            store_id=store_id,
            session_id=session_id,
            image_urls=request.image_urls,
            prompt=prompt,
            request_id=request_id,
        )
        try:
            await asyncio.wait_for(self._queue.publish(task), timeout=self._queue_timeout)
        except (QueueFailureError, asyncio.TimeoutError) as e:
            logger.error(f"Queue push failed for session {session_id}: {e!r}")
            await self._fail_session(session_id, QUEUE_FAILURE_MESSAGE)
            await self._compensate(store_id, payment, request_id, QUEUE_FAILURE_REVERSAL_REASON)
            raise QueueFailureError()

        logger.info(
            f"Generation queued for store {store_id}: session {session_id}, "
            f"paid by {payment.method.value}"
        )
        return CreateGenerationResponse(session_id=session_id, status=SessionStatus.QUEUED)

    async def _reserve(
        self,
        store_id: str,
        billing_mode: BillingMode,
        shopper_email: Optional[str],
        session_id: str,
        request_id: str,
    ) -> Payment:
        """Reserve one unit of credit, falling back to overage in absorb mode."""
        if billing_mode is BillingMode.RESELL:
            reserved = await self._ledger.deduct_shopper(
                store_id, shopper_email, 1, request_id, "B2B shopper generation"
            )
            if not reserved:
                raise InsufficientCreditError("Insufficient shopper credits to create generation")
            return Payment(PaymentMethod.SHOPPER_CREDIT, shopper_email=shopper_email)

        if await self._ledger.deduct(store_id, 1, request_id, "B2B generation"):
            return Payment(PaymentMethod.CREDIT)

        profile = await self._profiles.get_billing_profile(store_id)
        if not profile.allows_overage:
            raise InsufficientCreditError()

        try:
            charge_id = await self._biller.charge(
                profile.subscription_id, profile.tier, store_id, session_id, request_id
            )
        except OverageChargeError as e:
            logger.error(f"Overage billing failed for store {store_id}: {e.message}")
            raise BillingFailureError() from e

        return Payment(PaymentMethod.OVERAGE, charge_id=charge_id, tier=profile.tier)

    async def _resolve_concurrent_replay(
        self,
        store_id: str,
        payment: Payment,
        request_id: str,
    ) -> CreateGenerationResponse:
        """
        Another call with the same request id created the session first.

        Ledger reservations are keyed by the request id, so when both calls
        paid from the same balance they share one reservation and it stays.
        Any other payment made by this call is its own and is compensated.
        """
        try:
            existing = await self._sessions.find_by_request(store_id, request_id)
        except SessionStoreError:
            if payment.method is PaymentMethod.OVERAGE:
                await self._compensate(
                    store_id, payment, request_id, DUPLICATE_REQUEST_REVERSAL_REASON
                )
            raise SessionCreationError()

        shared = (
            existing is not None
            and payment.method is not PaymentMethod.OVERAGE
            and existing.payment_method is payment.method
        )
        if not shared:
            await self._compensate(store_id, payment, request_id, DUPLICATE_REQUEST_REVERSAL_REASON)
        if existing is None:
            raise SessionCreationError()
        logger.info(
            f"Request {request_id} raced a concurrent call for store {store_id}; "
            f"returning session {existing.id}"
        )
        return CreateGenerationResponse(session_id=existing.id, status=existing.status)

    async def _compensate(
        self,
        store_id: str,
        payment: Payment,
        request_id: str,
        reason: str,
    ) -> None:
        """Undo exactly the instrument that paid; never raises."""
        try:
            if payment.method is PaymentMethod.OVERAGE:
                await self._biller.reverse(payment.charge_id, request_id, reason)
            elif payment.method is PaymentMethod.SHOPPER_CREDIT:
                await self._ledger.refund_shopper(
                    store_id, payment.shopper_email, 1, request_id,
                    f"Shopper refund: {reason}",
                )
            else:
                await self._ledger.refund(store_id, 1, request_id, f"Refund: {reason}")
        except LedgerUnavailableError as e:
            logger.error(
                f"Refund failed for store {store_id} (request {request_id}): "
                f"{e.message} - manual reconciliation required"
            )

    async def _fail_session(self, session_id: str, message: str) -> None:
        try:
            await self._sessions.mark_failed(session_id, message)
        except SessionStoreError as e:
            logger.error(f"Could not mark session {session_id} failed: {e.message}")

    # -------------------------------------------------------------------------
    # Background audit
    # -------------------------------------------------------------------------

    def _record_overage_audit(
        self,
        store_id: str,
        session_id: str,
        request_id: str,
        payment: Payment,
    ) -> None:
        cents = get_tier_overage_cents(payment.tier)
        self._dispatch(
            self._ledger.log_overage(
                store_id,
                request_id,
                f"Overage charge ({payment.tier.value}) billed at {cents} cents "
                f"via Paddle charge {payment.charge_id}",
            ),
            f"overage log for session {session_id}",
        )
        self._dispatch(
            self._sessions.merge_metadata(session_id, {
                "overage_charge_id": payment.charge_id,
                "overage_tier": payment.tier.value,
            }),
            f"metadata update for session {session_id}",
        )

    def _dispatch(self, work: Awaitable[Any], description: str) -> None:
        task = asyncio.create_task(self._run_audit(work, description))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _run_audit(self, work: Awaitable[Any], description: str) -> None:
        try:
            await work
        except Exception as e:
            logger.warning(f"Audit write failed ({description}): {e}")

    async def drain(self) -> None:
        """Wait for outstanding audit tasks."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_generation(self, store_id: str, session_id: str) -> GenerationStatusResponse:
        """Get a store-scoped session view."""
        if not _UUID_PATTERN.match(session_id):
            raise InvalidSessionIdError()

        session = await self._sessions.get(session_id, store_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return GenerationStatusResponse.from_session(session)
