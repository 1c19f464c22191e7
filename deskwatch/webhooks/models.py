"""Webhook event models."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any

from deskwatch.errors import MalformedPayloadError


@dataclass
class WebhookEvent:
    """One Linear webhook delivery envelope."""

    type: str
    action: str
    data: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    webhook_timestamp: int | None = None
    webhook_id: str = ""
    url: str = ""
    organization_id: str = ""
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> WebhookEvent:
        if not isinstance(payload, dict):
            raise MalformedPayloadError("Webhook payload must be a JSON object")
        data = payload.get("data")
        timestamp = payload.get("webhookTimestamp")
        if timestamp is not None and (
            isinstance(timestamp, bool)
            or not isinstance(timestamp, (int, float))
            or not math.isfinite(timestamp)
        ):
            raise MalformedPayloadError("webhookTimestamp must be a finite number")
        return cls(
            type=str(payload.get("type") or ""),
            action=str(payload.get("action") or ""),
            data=data if isinstance(data, dict) else {},
            created_at=str(payload.get("createdAt") or ""),
            webhook_timestamp=int(timestamp) if timestamp is not None else None,
            webhook_id=str(payload.get("webhookId") or ""),
            url=str(payload.get("url") or ""),
            organization_id=str(payload.get("organizationId") or ""),
            payload=payload,
        )

    @classmethod
    def parse(cls, body: bytes) -> WebhookEvent:
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedPayloadError(f"Invalid JSON payload: {e}") from e
        return cls.from_payload(payload)

    @property
    def comment_body(self) -> str:
        body = self.data.get("body")
        return body if isinstance(body, str) else ""

    @property
    def comment_id(self) -> str:
        return str(self.data.get("id") or "")

    @property
    def issue_id(self) -> str:
        return str(self.data.get("issueId") or "")

    @property
    def is_edit(self) -> bool:
        return self.action == "update"

    @property
    def delivery_key(self) -> str:
        """Identifies the same event content across redeliveries."""
        updated = self.data.get("updatedAt") or self.created_at
        return f"{self.type}:{self.action}:{self.comment_id}:{updated}"
