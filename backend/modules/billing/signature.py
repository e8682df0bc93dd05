"""
Paddle webhook signature verification.

Paddle signs each delivery with a header of the form
``Paddle-Signature: ts=1700000000;h1=<hex>``. The signed payload is
``"{ts}:{raw_body}"`` and the digest is HMAC-SHA256 with the endpoint's
secret key. A header may carry several ``h1`` values during secret rotation.
"""

import hashlib
import hmac
import time
from typing import Optional

DEFAULT_MAX_AGE_SECONDS = 300


def parse_signature_header(header: str) -> tuple[Optional[str], list[str]]:
    """Split a Paddle-Signature header into (timestamp, [h1 digests])."""
    timestamp: Optional[str] = None
    digests: list[str] = []

    for part in header.split(";"):
        key, sep, value = part.strip().partition("=")
        if not sep or not value:
            continue
        if key == "ts":
            timestamp = value
        elif key == "h1":
            digests.append(value)

    return timestamp, digests


def compute_signature(raw_body: bytes, timestamp: str, secret: str) -> str:
    """HMAC-SHA256 hex digest of "{ts}:{raw_body}"."""
    signed_payload = timestamp.encode("utf-8") + b":" + raw_body
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def verify_paddle_signature(
    raw_body: bytes,
    header: Optional[str],
    secret: str,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    now: Optional[float] = None,
) -> bool:
    """
    Check a webhook delivery against its Paddle-Signature header.

    Returns False for a missing or malformed header, a timestamp outside
    the allowed window (either direction), or no matching digest.
    """
    if not header or not secret:
        return False

    timestamp, digests = parse_signature_header(header)
    if timestamp is None or not digests:
        return False

    try:
        signed_at = int(timestamp)
    except ValueError:
        return False

    current = time.time() if now is None else now
    if abs(current - signed_at) > max_age_seconds:
        return False

    # Compared as bytes: compare_digest rejects non-ASCII str operands
    expected = compute_signature(raw_body, timestamp, secret).encode("ascii")
    return any(
        hmac.compare_digest(expected, digest.encode("utf-8", "replace")) for digest in digests
    )
