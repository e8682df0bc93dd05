"""
Stuck session recovery.

Sessions the worker never picked up (or never finished) keep their
payment. A cron caller runs this periodically to fail them and give the
payment back through the same idempotent paths the orchestrator uses.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from modules.billing.interfaces import IOverageBiller
from modules.credits.exceptions import LedgerUnavailableError
from modules.credits.interfaces import ICreditLedger

from .interfaces import ISessionStore
from .models import GenerationSession, PaymentMethod, RecoveryResult

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Generation timed out"
TIMEOUT_REVERSAL_REASON = "generation timed out - service not delivered"


class StuckSessionRecovery:
    """Fails and compensates sessions stuck in queued or processing."""

    def __init__(
        self,
        sessions: ISessionStore,
        ledger: ICreditLedger,
        biller: IOverageBiller,
        threshold_minutes: int = 15,
        batch_size: int = 100,
    ):
        self._sessions = sessions
        self._ledger = ledger
        self._biller = biller
        self._threshold_minutes = threshold_minutes
        self._batch_size = batch_size

    async def recover(self, threshold_minutes: Optional[int] = None) -> RecoveryResult:
        """
        Run one recovery pass.

        Each session is failed with a conditional update first, so a session
        the worker completes concurrently, or that another pass already
        handled, is skipped and never compensated twice.
        """
        minutes = threshold_minutes if threshold_minutes is not None else self._threshold_minutes
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=minutes)
        result = RecoveryResult()

        for session in await self._sessions.find_stuck(cutoff, limit=self._batch_size):
            result.examined += 1

            updated = await self._sessions.mark_failed(
                session.id, TIMEOUT_MESSAGE, only_if_active=True
            )
            if not updated:
                result.skipped += 1
                continue
            result.failed += 1

            await self._compensate(session, result)

        logger.info(
            f"Stuck session recovery: examined={result.examined} failed={result.failed} "
            f"refunded={result.refunded} reversed={result.reversed} skipped={result.skipped}"
        )
        return result

    async def _compensate(self, session: GenerationSession, result: RecoveryResult) -> None:
        method = session.payment_method or PaymentMethod.CREDIT

        if method is PaymentMethod.OVERAGE:
            charge_id = session.metadata.get("overage_charge_id")
            if not charge_id:
                logger.error(
                    f"Stuck overage session {session.id} (request {session.request_id}) "
                    "has no charge id - manual reconciliation required"
                )
                return
            await self._biller.reverse(charge_id, session.request_id, TIMEOUT_REVERSAL_REASON)
            result.reversed += 1
            return

        try:
            if method is PaymentMethod.SHOPPER_CREDIT and session.shopper_email:
                await self._ledger.refund_shopper(
                    session.store_id, session.shopper_email, 1, session.request_id,
                    "Generation timed out - shopper refund",
                )
            else:
                await self._ledger.refund(
                    session.store_id, 1, session.request_id, "Generation timed out - refund"
                )
        except LedgerUnavailableError as e:
            logger.error(
                f"Refund for stuck session {session.id} failed: {e.message} "
                "- manual reconciliation required"
            )
            return
        result.refunded += 1
