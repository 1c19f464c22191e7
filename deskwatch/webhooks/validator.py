"""Webhook signature and freshness checks."""

from __future__ import annotations

import hashlib
import hmac
import time

# Deliveries older (or newer) than this are treated as replays
TIMESTAMP_WINDOW_SECONDS = 5 * 60


def compute_signature(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of ``body``, as sent in the ``linear-signature`` header."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def validate_signature(signature: str | None, body: bytes, secret: str | None) -> bool:
    """Validate a Linear webhook HMAC-SHA256 signature.

    Returns False if no secret is configured (rejects unauthenticated requests).
    """
    if not signature:
        return False
    if not secret:
        return False
    expected = compute_signature(body, secret)
    # compare_digest is constant time for equal lengths and False otherwise
    return hmac.compare_digest(expected.encode(), signature.strip().encode())


def is_valid_timestamp(
    timestamp_ms: int | float,
    now: float | None = None,
    window_seconds: float = TIMESTAMP_WINDOW_SECONDS,
) -> bool:
    """Check a ``webhookTimestamp`` (epoch milliseconds) is within the window of now."""
    now_ms = (time.time() if now is None else now) * 1000
    return abs(now_ms - float(timestamp_ms)) < window_seconds * 1000
