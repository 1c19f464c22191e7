"""Explicitly constructed application components, built once at startup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import httpx

from deskwatch.config import Settings, TagConfig, resolve_tag_config
from deskwatch.core.tags import TagMatcher
from deskwatch.dashboard.service import TicketQueryService
from deskwatch.notify.slack import SlackNotifier, is_slack_webhook_url
from deskwatch.tracker.client import LinearGateway
from deskwatch.utils.logging import get_logger
from deskwatch.webhooks.dedupe import DeliveryCache
from deskwatch.webhooks.handler import WebhookHandler

log = get_logger(__name__)


@dataclass
class AppContext:
    settings: Settings
    tag_config: TagConfig
    matcher: TagMatcher
    gateway: LinearGateway
    notifier: SlackNotifier
    handler: WebhookHandler
    tickets: TicketQueryService

    async def close(self) -> None:
        await self.gateway.close()
        await self.notifier.close()


def build_context(
    settings: Settings,
    tag_config: TagConfig | None = None,
    environ: Mapping[str, str] | None = None,
    linear_client: httpx.AsyncClient | None = None,
    slack_client: httpx.AsyncClient | None = None,
) -> AppContext:
    """Construct every component once. Clients may be injected for tests."""
    if tag_config is None:
        tag_config = resolve_tag_config(settings.tags_file, environ=environ)

    if not settings.linear.api_key:
        log.warning("linear_api_key_missing", msg="Context fetches and /api/tickets will fail.")
    if not settings.linear.webhook_secret:
        log.warning("linear_webhook_secret_missing", msg="All webhook deliveries will be rejected.")
    if not settings.slack.webhook_url:
        log.warning("slack_webhook_url_missing", msg="Notifications cannot be delivered.")
    elif not is_slack_webhook_url(settings.slack.webhook_url):
        log.warning("slack_webhook_url_unusual", msg="URL is not a hooks.slack.com/services URL.")

    matcher = TagMatcher(tag_config)
    gateway = LinearGateway(settings.linear, matcher, client=linear_client)
    notifier = SlackNotifier(settings.slack, client=slack_client)
    handler = WebhookHandler(
        secret=settings.linear.webhook_secret,
        matcher=matcher,
        tracker=gateway,
        notifier=notifier,
        cache=DeliveryCache(window_seconds=settings.server.dedupe_window_seconds),
        timestamp_window=settings.server.timestamp_window_seconds,
    )
    return AppContext(
        settings=settings,
        tag_config=tag_config,
        matcher=matcher,
        gateway=gateway,
        notifier=notifier,
        handler=handler,
        tickets=TicketQueryService(gateway, settings.dashboard),
    )
