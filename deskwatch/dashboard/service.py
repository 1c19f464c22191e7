"""Recent matched tickets, filtered and serialized for the dashboard."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from deskwatch.config import DashboardConfig
from deskwatch.tracker.client import LinearGateway
from deskwatch.tracker.models import MatchedTicket, format_timestamp
from deskwatch.utils.logging import get_logger

log = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _created(ticket: MatchedTicket) -> datetime:
    return ticket.comment.created_at or _EPOCH


def filter_tickets(
    tickets: list[MatchedTicket],
    tag: str | None = None,
    query: str | None = None,
    since: datetime | None = None,
) -> list[MatchedTicket]:
    """Apply the dashboard filters and sort newest comment first."""
    result = list(tickets)
    if since is not None:
        result = [t for t in result if _created(t) >= since]
    if tag:
        wanted = tag.casefold()
        result = [t for t in result if any(m.casefold() == wanted for m in t.matched_tags)]
    if query:
        q = query.lower()
        result = [
            t for t in result
            if q in t.issue.title.lower()
            or q in t.issue.identifier.lower()
            or q in t.comment.body.lower()
        ]
    result.sort(key=_created, reverse=True)
    return result


class TicketQueryService:
    def __init__(self, gateway: LinearGateway, config: DashboardConfig | None = None) -> None:
        self._gateway = gateway
        self._config = config or DashboardConfig()

    async def list_tickets(
        self,
        days_back: int | None = None,
        tag: str | None = None,
        query: str | None = None,
        since_hours: int | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Return ``{tickets, fetchTime, truncated}``.

        Raises ConfigurationError when the Linear API key is missing.
        """
        self._gateway.require_configured()
        now = now or datetime.now(timezone.utc)
        days = days_back or self._config.days_back

        recent = await self._gateway.fetch_recent_comments(days_back=days, now=now)
        since = now - timedelta(hours=since_hours) if since_hours else None
        tickets = filter_tickets(recent.tickets, tag=tag, query=query, since=since)
        log.info(
            "dashboard_tickets",
            fetched=len(recent.tickets),
            returned=len(tickets),
            truncated=recent.truncated,
        )
        return {
            "tickets": [t.to_dict() for t in tickets],
            "fetchTime": format_timestamp(now),
            "truncated": recent.truncated,
        }
