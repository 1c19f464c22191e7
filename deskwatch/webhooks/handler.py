"""Linear comment webhook -> tag match -> Slack notification pipeline."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Protocol

from deskwatch.core.tags import TagMatcher
from deskwatch.errors import ConfigurationError, MalformedPayloadError, TrackerError
from deskwatch.notify.formatter import SlackMessage, format_notification
from deskwatch.notify.slack import DeliveryResult
from deskwatch.tracker.models import Comment, Issue
from deskwatch.utils.logging import get_logger
from deskwatch.webhooks.dedupe import DeliveryCache
from deskwatch.webhooks.models import WebhookEvent
from deskwatch.webhooks.validator import TIMESTAMP_WINDOW_SECONDS, is_valid_timestamp, validate_signature

log = get_logger(__name__)

HANDLED_TYPES = {"Comment"}
HANDLED_ACTIONS = {"create", "update"}


class IssueSource(Protocol):
    async def fetch_issue(self, issue_id: str) -> Issue: ...

    async def fetch_comment(self, comment_id: str) -> Comment: ...


class MessageSink(Protocol):
    async def send(self, message: SlackMessage) -> DeliveryResult: ...


@dataclass
class HandlerResult:
    outcome: str  # "notified" | "skipped" | "failed"
    status: int
    body: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def skipped(cls, message: str) -> HandlerResult:
        return cls("skipped", 200, {"ok": True, "message": message})

    @classmethod
    def failed(cls, status: int, error: str) -> HandlerResult:
        return cls("failed", status, {"error": error})


class WebhookHandler:
    """Runs one delivery through every filter, synchronously, to a terminal outcome."""

    def __init__(
        self,
        secret: str,
        matcher: TagMatcher,
        tracker: IssueSource,
        notifier: MessageSink,
        cache: DeliveryCache | None = None,
        timestamp_window: float = TIMESTAMP_WINDOW_SECONDS,
    ) -> None:
        self._secret = secret
        self._matcher = matcher
        self._tracker = tracker
        self._notifier = notifier
        self._cache = cache if cache is not None else DeliveryCache(window_seconds=0)
        self._timestamp_window = timestamp_window

    async def handle(self, signature: str | None, body: bytes) -> HandlerResult:
        try:
            return await self._handle(signature, body)
        except Exception:
            log.exception("webhook_unexpected_error")
            return HandlerResult.failed(500, "Internal server error")

    async def _handle(self, signature: str | None, body: bytes) -> HandlerResult:
        if not validate_signature(signature, body, self._secret):
            log.warning("webhook_invalid_signature", has_signature=bool(signature))
            return HandlerResult.failed(401, "Invalid signature")

        try:
            event = WebhookEvent.parse(body)
        except MalformedPayloadError as e:
            log.warning("webhook_malformed_payload", error=str(e))
            return HandlerResult.failed(400, "Invalid JSON payload")

        if event.webhook_timestamp is not None and not is_valid_timestamp(
            event.webhook_timestamp, window_seconds=self._timestamp_window
        ):
            log.warning("webhook_stale_timestamp", webhook_timestamp=event.webhook_timestamp)
            return HandlerResult.failed(400, "Timestamp too old")

        log.info("webhook_received", type=event.type, action=event.action)

        if event.type not in HANDLED_TYPES:
            return self._skip("Not a comment event", event)
        if event.action not in HANDLED_ACTIONS:
            return self._skip("Not a create or update action", event)

        text = event.comment_body
        if not text:
            return self._skip("Comment has no body", event)
        log.debug("webhook_comment_body", body=text[:100])

        matched = self._matcher.match(text)
        if not matched:
            return self._skip("No monitored tags found", event)
        log.info("webhook_tags_matched", tags=matched)

        if not event.issue_id:
            log.error("webhook_missing_issue_id", comment_id=event.comment_id)
            return self._skip("Comment has no issueId", event)
        if not event.comment_id:
            log.error("webhook_missing_comment_id")
            return self._skip("Comment has no id", event)

        if self._cache.seen(event.delivery_key):
            return self._skip("Duplicate delivery", event)

        try:
            issue, comment = await asyncio.gather(
                self._tracker.fetch_issue(event.issue_id),
                self._tracker.fetch_comment(event.comment_id),
            )
        except (TrackerError, ConfigurationError) as e:
            log.error("webhook_context_fetch_failed", error=str(e), issue_id=event.issue_id)
            return HandlerResult.failed(500, "Failed to fetch issue or comment details")

        message = format_notification(
            issue,
            comment,
            matched,
            is_edit=event.is_edit,
            highlighter=self._matcher.highlight,
        )
        result = await self._notifier.send(message)
        if not result.success:
            log.error("webhook_delivery_failed", error=result.error, issue=issue.identifier)
            return HandlerResult.failed(500, "Failed to send Slack notification")

        self._cache.remember(event.delivery_key)
        log.info("webhook_notified", issue=issue.identifier, tags=matched)
        return HandlerResult(
            "notified",
            200,
            {
                "ok": True,
                "notified": True,
                "issueIdentifier": issue.identifier,
                "matchedTags": matched,
            },
        )

    def _skip(self, message: str, event: WebhookEvent) -> HandlerResult:
        log.info("webhook_skipped", reason=message, type=event.type, action=event.action)
        return HandlerResult.skipped(message)
