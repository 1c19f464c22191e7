"""Inbound Linear webhook handling."""

from .handler import HandlerResult, WebhookHandler
from .models import WebhookEvent
from .validator import is_valid_timestamp, validate_signature

__all__ = [
    "HandlerResult",
    "WebhookHandler",
    "WebhookEvent",
    "is_valid_timestamp",
    "validate_signature",
]
