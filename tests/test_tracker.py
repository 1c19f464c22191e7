"""Tests for the Linear GraphQL gateway."""

from datetime import datetime, timezone

import httpx
import pytest

from deskwatch.config import LinearConfig
from deskwatch.core.tags import TagMatcher
from deskwatch.errors import ConfigurationError, NotFoundError, TrackerError
from deskwatch.tracker.client import LinearGateway

from conftest import ISSUE_NODE, FakeLinear, comment_node

NOW = datetime(2024, 5, 10, tzinfo=timezone.utc)


def _gateway(handler, matcher=None, **config) -> LinearGateway:
    cfg = LinearConfig(api_key="lin_api_test", **config)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return LinearGateway(cfg, matcher or TagMatcher(), client=client)


class TestSingleLookups:
    async def test_fetch_issue(self):
        fake = FakeLinear([])
        issue = await _gateway(fake).fetch_issue("issue-1")
        assert issue.identifier == "SD-42"
        assert issue.priority == 1
        assert issue.state.name == "Todo"
        assert issue.assignee is None
        assert fake.requests[0]["auth"] == "lin_api_test"

    async def test_fetch_issue_not_found(self):
        with pytest.raises(NotFoundError):
            await _gateway(FakeLinear([])).fetch_issue("missing")

    async def test_fetch_comment(self):
        fake = FakeLinear([comment_node(1, "#sd hi")])
        comment = await _gateway(fake).fetch_comment("c1")
        assert comment.body == "#sd hi"
        assert comment.issue_id == "issue-1"
        assert comment.author_name == "Ada"

    async def test_fetch_comment_not_found(self):
        with pytest.raises(NotFoundError):
            await _gateway(FakeLinear([])).fetch_comment("nope")

    async def test_graphql_not_found_error(self):
        def handler(request):
            return httpx.Response(200, json={"errors": [{"message": "Entity not found: Issue"}]})

        with pytest.raises(NotFoundError):
            await _gateway(handler).fetch_issue("x")

    async def test_http_error(self):
        with pytest.raises(TrackerError):
            await _gateway(lambda r: httpx.Response(500, text="boom")).fetch_issue("x")

    async def test_graphql_error(self):
        def handler(request):
            return httpx.Response(200, json={"errors": [{"message": "Authentication required"}]})

        with pytest.raises(TrackerError) as exc:
            await _gateway(handler).fetch_issue("x")
        assert not isinstance(exc.value, NotFoundError)

    async def test_missing_api_key(self):
        gateway = LinearGateway(LinearConfig(), TagMatcher())
        with pytest.raises(ConfigurationError):
            await gateway.fetch_issue("issue-1")

    async def test_malformed_issue_is_tracker_error(self):
        fake = FakeLinear([], issues={"issue-1": {**ISSUE_NODE, "createdAt": "yesterday"}})
        with pytest.raises(TrackerError, match="malformed issue"):
            await _gateway(fake).fetch_issue("issue-1")

    async def test_validate_connection(self):
        assert await _gateway(FakeLinear([])).validate_connection() is True

    async def test_validate_connection_failure(self):
        assert await _gateway(lambda r: httpx.Response(401, text="no")).validate_connection() is False


class TestRecentComments:
    async def test_only_matches_are_enriched(self):
        fake = FakeLinear([
            comment_node(1, "#sd printer"),
            comment_node(2, "unrelated"),
            comment_node(3, "#random"),
        ])
        result = await _gateway(fake).fetch_recent_comments(days_back=7, now=NOW)
        assert [t.comment.id for t in result.tickets] == ["c1"]
        assert result.tickets[0].matched_tags == ["#sd"]
        assert result.tickets[0].issue.identifier == "SD-42"
        assert result.scanned == 3
        assert result.truncated is False
        assert fake.count("issue(") == 1

    async def test_issue_fetched_once_per_distinct_issue(self):
        fake = FakeLinear([comment_node(i, "#sd") for i in range(5)])
        result = await _gateway(fake).fetch_recent_comments(now=NOW)
        assert len(result.tickets) == 5
        assert fake.count("issue(") == 1

    async def test_page_cap_bounds_results(self):
        fake = FakeLinear([comment_node(i, "#sd") for i in range(50)])
        result = await _gateway(fake, max_pages=2, page_size=10).fetch_recent_comments(now=NOW)
        assert len(result.tickets) == 20
        assert result.pages_fetched == 2
        assert result.truncated is True
        assert fake.count("comments(") == 2

    async def test_explicit_limits_override_config(self):
        fake = FakeLinear([comment_node(i, "#sd") for i in range(50)])
        result = await _gateway(fake).fetch_recent_comments(max_pages=3, page_size=5, now=NOW)
        assert len(result.tickets) <= 15
        assert result.pages_fetched == 3

    async def test_exhausted_pages_not_truncated(self):
        fake = FakeLinear([comment_node(i, "#sd") for i in range(15)])
        result = await _gateway(fake, max_pages=5, page_size=10).fetch_recent_comments(now=NOW)
        assert len(result.tickets) == 15
        assert result.pages_fetched == 2
        assert result.truncated is False

    async def test_created_at_filter_and_cursor(self):
        fake = FakeLinear([comment_node(i, "x") for i in range(3)])
        await _gateway(fake, page_size=2).fetch_recent_comments(days_back=7, now=NOW)
        first, second = [r["body"]["variables"] for r in fake.requests]
        assert first["filter"] == {"createdAt": {"gte": "2024-05-03T00:00:00Z"}}
        assert "after" not in first
        assert second["after"] == "2"

    async def test_team_scope(self):
        fake = FakeLinear([])
        await _gateway(fake, team_id="team-9").fetch_recent_comments(now=NOW)
        assert fake.requests[0]["body"]["variables"]["filter"]["issue"] == {
            "team": {"id": {"eq": "team-9"}}
        }

    async def test_missing_issue_skipped(self):
        fake = FakeLinear([comment_node(1, "#sd", issue_id="gone")], issues={})
        result = await _gateway(fake).fetch_recent_comments(now=NOW)
        assert result.tickets == []

    async def test_malformed_comment_is_tracker_error(self):
        fake = FakeLinear([{**comment_node(1, "#sd"), "createdAt": "yesterday"}])
        with pytest.raises(TrackerError, match="malformed comment"):
            await _gateway(fake).fetch_recent_comments(now=NOW)

    async def test_comment_missing_id_is_tracker_error(self):
        node = comment_node(1, "#sd")
        del node["id"]
        with pytest.raises(TrackerError, match="malformed comment"):
            await _gateway(FakeLinear([node])).fetch_recent_comments(now=NOW)

    async def test_requires_api_key(self):
        gateway = LinearGateway(LinearConfig(), TagMatcher())
        with pytest.raises(ConfigurationError):
            await gateway.fetch_recent_comments()
