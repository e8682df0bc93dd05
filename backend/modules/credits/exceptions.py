"""
Credits module exceptions.
"""

from shared.exceptions import ConflictError, ValidationError, InternalError


class InvalidAmountError(ValidationError):
    """Raised when a credit amount is not a positive whole number."""

    def __init__(self, amount: int, reason: str):
        super().__init__(
            f"Invalid amount: {amount}. {reason}",
            code="INVALID_AMOUNT",
            details={"amount": amount, "reason": reason},
        )


class InvalidShopperEmailError(ValidationError):
    """Raised when a shopper e-mail is missing or malformed."""

    def __init__(self):
        super().__init__(
            "A valid shopper e-mail is required",
            code="VALIDATION_ERROR",
        )


class LedgerUnavailableError(InternalError):
    """
    Raised when the ledger store could not be reached or rejected a call.

    The outcome of the operation is unknown: callers must not assume it
    was applied, and must retry only with the original idempotency token.
    """

    def __init__(self, operation: str, store_id: str, error: str):
        super().__init__(
            f"Credit ledger {operation} failed: {error}",
            code="INTERNAL_ERROR",
            details={"operation": operation, "store_id": store_id},
        )


class RequestIdReusedError(ConflictError):
    """
    Raised when a deduction is attempted with a token whose earlier
    reservation has already been refunded.

    A refunded request is finished; retrying it needs a new request id.
    """

    def __init__(self, store_id: str, request_id: str):
        super().__init__(
            f"Request id {request_id} belongs to a request that was already "
            "refunded; retry with a new request id",
            code="REQUEST_ID_REUSED",
            details={"store_id": store_id, "request_id": request_id},
        )
