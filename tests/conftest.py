"""Shared fixtures and fakes for deskwatch tests."""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from datetime import datetime, timezone
from typing import Any

import httpx
import pytest

from deskwatch.config import TagConfig
from deskwatch.core.tags import TagMatcher
from deskwatch.errors import NotFoundError
from deskwatch.notify.formatter import SlackMessage
from deskwatch.notify.slack import DeliveryResult
from deskwatch.tracker.models import Comment, Issue, User, WorkflowState

SECRET = "whsec-test"


def sign(body: bytes, secret: str = SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def comment_payload(body: str = "#sd help", action: str = "create", **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "action": action,
        "type": "Comment",
        "data": {
            "id": "comment-1",
            "body": body,
            "issueId": "issue-1",
            "userId": "user-1",
            "createdAt": "2024-05-01T12:00:00.000Z",
            "updatedAt": "2024-05-01T12:00:00.000Z",
        },
        "createdAt": "2024-05-01T12:00:00.000Z",
        "webhookTimestamp": int(time.time() * 1000),
        "webhookId": "webhook-1",
    }
    payload.update(extra)
    return payload


def encode(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode()


def make_issue(**overrides: Any) -> Issue:
    fields: dict[str, Any] = {
        "id": "issue-1",
        "identifier": "SD-42",
        "title": "Printer on fire",
        "url": "https://linear.app/acme/issue/SD-42",
        "priority": 2,
        "state": WorkflowState(id="state-1", name="In Progress"),
        "assignee": User(id="user-2", name="Grace"),
        "created_at": datetime(2024, 5, 1, 10, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Issue(**fields)


def make_comment(**overrides: Any) -> Comment:
    fields: dict[str, Any] = {
        "id": "comment-1",
        "body": "#sd help",
        "issue_id": "issue-1",
        "created_at": datetime(2024, 5, 1, 12, tzinfo=timezone.utc),
        "user": User(id="user-1", name="Ada"),
    }
    fields.update(overrides)
    return Comment(**fields)


class FakeTracker:
    def __init__(self, issue: Issue | None = None, comment: Comment | None = None) -> None:
        self.issue = issue or make_issue()
        self.comment = comment or make_comment()
        self.calls: list[tuple[str, str]] = []
        self.error: Exception | None = None

    async def fetch_issue(self, issue_id: str) -> Issue:
        self.calls.append(("issue", issue_id))
        if self.error is not None:
            raise self.error
        if issue_id != self.issue.id:
            raise NotFoundError("Issue", issue_id)
        return self.issue

    async def fetch_comment(self, comment_id: str) -> Comment:
        self.calls.append(("comment", comment_id))
        if self.error is not None:
            raise self.error
        return self.comment


class FakeNotifier:
    def __init__(self, result: DeliveryResult | None = None) -> None:
        self.result = result or DeliveryResult(True)
        self.sent: list[SlackMessage] = []

    async def send(self, message: SlackMessage) -> DeliveryResult:
        self.sent.append(message)
        return self.result


@pytest.fixture
def tag_config():
    return TagConfig(patterns=["#sd", "#service-desk", "#servicedesk"], case_sensitive=False)


@pytest.fixture
def matcher(tag_config):
    return TagMatcher(tag_config)


@pytest.fixture
def tracker():
    return FakeTracker()


@pytest.fixture
def notifier():
    return FakeNotifier()


ISSUE_NODE = {
    "id": "issue-1",
    "identifier": "SD-42",
    "title": "Printer on fire",
    "description": "",
    "url": "https://linear.app/acme/issue/SD-42",
    "priority": 1,
    "createdAt": "2024-05-01T10:00:00.000Z",
    "updatedAt": "2024-05-01T10:00:00.000Z",
    "state": {"id": "s1", "name": "Todo", "color": "#fff", "type": "unstarted"},
    "assignee": None,
}


def comment_node(i: int, body: str, issue_id: str = "issue-1") -> dict:
    return {
        "id": f"c{i}",
        "body": body,
        "createdAt": f"2024-05-0{1 + i % 9}T12:00:00.000Z",
        "updatedAt": "2024-05-01T12:00:00.000Z",
        "issue": {"id": issue_id},
        "user": {"id": "u1", "name": "Ada", "email": "", "avatarUrl": ""},
    }


class FakeLinear:
    """Serves a fixed list of comments with cursor pagination."""

    def __init__(self, comments: list[dict], issues: dict | None = None) -> None:
        self.comments = comments
        self.issues = issues if issues is not None else {"issue-1": ISSUE_NODE}
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append({"body": body, "auth": request.headers.get("Authorization")})
        query = body["query"]
        variables = body["variables"]
        if "comments(" in query:
            first = variables["first"]
            start = int(variables.get("after") or 0)
            page = self.comments[start:start + first]
            end = start + len(page)
            return httpx.Response(200, json={"data": {"comments": {
                "nodes": page,
                "pageInfo": {"hasNextPage": end < len(self.comments), "endCursor": str(end)},
            }}})
        if "issue(" in query:
            return httpx.Response(200, json={"data": {"issue": self.issues.get(variables["id"])}})
        if "comment(" in query:
            node = next((c for c in self.comments if c["id"] == variables["id"]), None)
            return httpx.Response(200, json={"data": {"comment": node}})
        if "viewer" in query:
            return httpx.Response(200, json={"data": {"viewer": {"id": "v", "name": "Bot", "email": "b@x"}}})
        return httpx.Response(400, json={"errors": [{"message": "unknown query"}]})

    def count(self, marker: str) -> int:
        return sum(1 for r in self.requests if marker in r["body"]["query"])
