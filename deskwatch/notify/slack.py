"""Slack incoming-webhook delivery."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse

import httpx

from deskwatch.config import SlackConfig
from deskwatch.notify.formatter import SlackMessage
from deskwatch.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class DeliveryResult:
    success: bool
    error: str | None = None


def is_slack_webhook_url(url: str) -> bool:
    """True for ``https://hooks.slack.com/services/...`` URLs."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.hostname == "hooks.slack.com" and parsed.path.startswith("/services/")


class SlackNotifier:
    """Posts messages to a single Slack incoming webhook.

    Failures are reported through :class:`DeliveryResult`; nothing is retried.
    """

    def __init__(self, config: SlackConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None

    @property
    def configured(self) -> bool:
        return bool(self._config.webhook_url)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send(self, message: SlackMessage) -> DeliveryResult:
        if not self._config.webhook_url:
            log.error("slack_not_configured")
            return DeliveryResult(False, "SLACK_WEBHOOK_URL environment variable is not set")

        try:
            resp = await self._http().post(self._config.webhook_url, json=message.to_payload())
        except httpx.HTTPError as e:
            log.error("slack_send_failed", error=str(e))
            return DeliveryResult(False, f"Slack webhook unreachable: {e}")

        if not resp.is_success:
            detail = f"Slack webhook returned {resp.status_code}: {resp.text[:200]}"
            log.error("slack_send_rejected", status=resp.status_code, body=resp.text[:200])
            return DeliveryResult(False, detail)

        log.info("slack_notification_sent")
        return DeliveryResult(True)
