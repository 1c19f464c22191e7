"""Slack Block Kit formatting for service desk mentions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from deskwatch.tracker.models import Comment, Issue, format_timestamp

# Slack rejects section text longer than this
SECTION_TEXT_LIMIT = 3000

PRIORITY_LABELS: dict[int, str] = {
    0: "🔵 None",
    1: "🔴 Urgent",
    2: "🟠 High",
    3: "🟡 Normal",
    4: "⚪ Low",
}

UNKNOWN_AUTHOR = "Unknown"


@dataclass
class SlackMessage:
    text: str
    blocks: list[dict[str, Any]] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {"text": self.text, "blocks": self.blocks}


def priority_label(priority: int | None) -> str:
    """Convert Linear's 0-4 priority to a label with marker."""
    return PRIORITY_LABELS.get(priority, "Unknown")


def _mrkdwn(text: str) -> dict[str, str]:
    return {"type": "mrkdwn", "text": text}


def _fit(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def format_notification(
    issue: Issue,
    comment: Comment,
    matched_tags: list[str],
    is_edit: bool = False,
    highlighter: Callable[[str], str] | None = None,
) -> SlackMessage:
    """Build the Slack message for one matched comment. No side effects."""
    title = f"{issue.identifier}: {issue.title}"
    text = f"🔔 Service Desk Mention in {title}"
    if is_edit:
        text += " (edited)"

    author = comment.author_name or UNKNOWN_AUTHOR
    heading = f"*Comment by {author}:*\n"
    body = comment.body
    if highlighter is not None:
        body = highlighter(body)
    body = _fit(body, SECTION_TEXT_LIMIT - len(heading))

    fields = [_mrkdwn(f"*Status:*\n{issue.state.name if issue.state else 'Unknown'}")]
    if issue.priority:
        fields.append(_mrkdwn(f"*Priority:*\n{priority_label(issue.priority)}"))
    fields.append(_mrkdwn(f"*Assignee:*\n{issue.assignee.name if issue.assignee else 'Unassigned'}"))
    fields.append(_mrkdwn(f"*Tags:*\n{', '.join(matched_tags)}"))

    link = f"*<{issue.url}|{title}>*" if issue.url else f"*{title}*"

    blocks: list[dict[str, Any]] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": "🔔 Service Desk Mention"},
        },
        {"type": "section", "text": _mrkdwn(link)},
        {"type": "section", "fields": fields},
        {"type": "section", "text": _mrkdwn(heading + body)},
    ]

    if is_edit:
        blocks.append({"type": "context", "elements": [_mrkdwn("✏️ Comment was edited")]})

    if issue.url:
        blocks.append({
            "type": "actions",
            "elements": [{
                "type": "button",
                "text": {"type": "plain_text", "text": "Open in Linear"},
                "url": issue.url,
                "action_id": "open_linear",
            }],
        })

    if comment.created_at is not None:
        epoch = int(comment.created_at.timestamp())
        fallback = format_timestamp(comment.created_at)
        blocks.append({
            "type": "context",
            "elements": [_mrkdwn(f"<!date^{epoch}^{{date_short_pretty}} at {{time}}|{fallback}>")],
        })

    return SlackMessage(text=text, blocks=blocks)
