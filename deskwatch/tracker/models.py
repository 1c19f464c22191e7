"""Snapshots of Linear entities as returned by the GraphQL API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a Linear ISO-8601 timestamp (``2024-05-01T12:00:00.000Z``)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str = ""
    avatar_url: str = ""

    @classmethod
    def from_api(cls, node: dict[str, Any] | None) -> User | None:
        if not node:
            return None
        return cls(
            id=node.get("id", ""),
            name=node.get("name") or "",
            email=node.get("email") or "",
            avatar_url=node.get("avatarUrl") or "",
        )


@dataclass(frozen=True)
class WorkflowState:
    id: str
    name: str
    color: str = ""
    type: str = ""

    @classmethod
    def from_api(cls, node: dict[str, Any] | None) -> WorkflowState | None:
        if not node:
            return None
        return cls(
            id=node.get("id", ""),
            name=node.get("name") or "",
            color=node.get("color") or "",
            type=node.get("type") or "",
        )


@dataclass(frozen=True)
class Comment:
    id: str
    body: str
    issue_id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    user: User | None = None

    @property
    def author_name(self) -> str | None:
        return self.user.name if self.user and self.user.name else None

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> Comment:
        issue = node.get("issue") or {}
        return cls(
            id=node["id"],
            body=node.get("body") or "",
            issue_id=issue.get("id") or node.get("issueId") or "",
            created_at=parse_timestamp(node.get("createdAt")),
            updated_at=parse_timestamp(node.get("updatedAt")),
            user=User.from_api(node.get("user")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "body": self.body,
            "issueId": self.issue_id,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "user": {"id": self.user.id, "name": self.user.name} if self.user else None,
        }


@dataclass(frozen=True)
class Issue:
    id: str
    identifier: str
    title: str
    url: str = ""
    description: str = ""
    priority: int = 0
    state: WorkflowState | None = None
    assignee: User | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> Issue:
        priority = node.get("priority")
        return cls(
            id=node["id"],
            identifier=node.get("identifier") or "",
            title=node.get("title") or "Untitled",
            url=node.get("url") or "",
            description=node.get("description") or "",
            priority=int(priority) if priority is not None else 0,
            state=WorkflowState.from_api(node.get("state")),
            assignee=User.from_api(node.get("assignee")),
            created_at=parse_timestamp(node.get("createdAt")),
            updated_at=parse_timestamp(node.get("updatedAt")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "identifier": self.identifier,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "priority": self.priority,
            "state": self.state.name if self.state else None,
            "assignee": self.assignee.name if self.assignee else None,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }


@dataclass(frozen=True)
class MatchedTicket:
    """A comment carrying monitored tags, enriched with its parent issue."""

    comment: Comment
    issue: Issue
    matched_tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "comment": self.comment.to_dict(),
            "issue": self.issue.to_dict(),
            "matchedTags": list(self.matched_tags),
        }


@dataclass
class RecentComments:
    """Result of a bulk comment scan.

    ``truncated`` is set when the page ceiling stopped pagination while the
    API still reported more pages, so older matches may be missing.
    """

    tickets: list[MatchedTicket] = field(default_factory=list)
    pages_fetched: int = 0
    scanned: int = 0
    truncated: bool = False
