"""
Request id middleware.

Every request gets an id, taken from the X-Request-Id header when the
caller supplies a well-formed one. The id is the idempotency token for
credit operations and keys at most one generation session per store, so a
replayed id returns the original outcome instead of paying or running again.
It is echoed on every response and tagged onto every log record.
"""

import logging
import re
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from shared.logging_config import request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"

_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-.:]{1,128}$")


def generate_request_id() -> str:
    return f"req_{uuid.uuid4()}"


def resolve_request_id(header_value: str | None) -> str:
    """Use the caller's id if it is safe to log and store, else a new one."""
    if header_value and _REQUEST_ID_PATTERN.match(header_value):
        return header_value
    return generate_request_id()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assign a request id and expose it via request.state and logging."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def get_request_id(request: Request) -> str:
    """
    Dependency returning the current request id.

    Falls back to a fresh id when the middleware is not installed (e.g. a
    router mounted on a bare test app).
    """
    request_id = getattr(request.state, "request_id", None)
    if request_id is None:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
    return request_id
