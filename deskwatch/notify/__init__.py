"""Slack notification formatting and delivery."""

from .formatter import SlackMessage, format_notification, priority_label
from .slack import DeliveryResult, SlackNotifier, is_slack_webhook_url

__all__ = [
    "SlackMessage",
    "format_notification",
    "priority_label",
    "DeliveryResult",
    "SlackNotifier",
    "is_slack_webhook_url",
]
