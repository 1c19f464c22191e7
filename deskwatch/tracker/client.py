"""Linear GraphQL gateway: single lookups and the bounded recent-comments scan."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, TypeVar

import httpx

from deskwatch.config import LinearConfig
from deskwatch.core.tags import TagMatcher
from deskwatch.errors import ConfigurationError, NotFoundError, TrackerError
from deskwatch.tracker.models import Comment, Issue, MatchedTicket, RecentComments, format_timestamp
from deskwatch.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


_USER_FIELDS = "id name email avatarUrl"

ISSUE_QUERY = f"""
query Issue($id: String!) {{
  issue(id: $id) {{
    id identifier title description url priority createdAt updatedAt
    state {{ id name color type }}
    assignee {{ {_USER_FIELDS} }}
  }}
}}
"""

COMMENT_QUERY = f"""
query Comment($id: String!) {{
  comment(id: $id) {{
    id body createdAt updatedAt
    issue {{ id }}
    user {{ {_USER_FIELDS} }}
  }}
}}
"""

COMMENTS_QUERY = f"""
query Comments($first: Int!, $after: String, $filter: CommentFilter) {{
  comments(first: $first, after: $after, filter: $filter) {{
    nodes {{
      id body createdAt updatedAt
      issue {{ id }}
      user {{ {_USER_FIELDS} }}
    }}
    pageInfo {{ hasNextPage endCursor }}
  }}
}}
"""

VIEWER_QUERY = """
query Viewer {
  viewer { id name email }
}
"""


class LinearGateway:
    """Thin async wrapper over the Linear GraphQL API.

    The HTTP client is created once and shared across requests; it holds
    only the endpoint and credentials.
    """

    def __init__(
        self,
        config: LinearConfig,
        matcher: TagMatcher,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._matcher = matcher
        self._client = client
        self._owns_client = client is None

    @property
    def configured(self) -> bool:
        return bool(self._config.api_key)

    def require_configured(self) -> None:
        if not self._config.api_key:
            raise ConfigurationError("LINEAR_API_KEY environment variable is not configured")

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        self.require_configured()
        try:
            resp = await self._http().post(
                self._config.api_url,
                json={"query": query, "variables": variables or {}},
                headers={
                    "Authorization": self._config.api_key,
                    "Content-Type": "application/json",
                },
            )
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as e:
            raise TrackerError(
                f"Linear API returned {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise TrackerError(f"Linear API unreachable: {e}") from e
        except ValueError as e:
            raise TrackerError("Linear API returned invalid JSON") from e

        errors = payload.get("errors")
        if errors:
            message = "; ".join(str(err.get("message", err)) for err in errors)
            if "not found" in message.lower():
                raise _NotFoundFromErrors(message)
            raise TrackerError(f"Linear API error: {message}")
        return payload.get("data") or {}

    # ------------------------------------------------------------------
    # Single lookups
    # ------------------------------------------------------------------

    async def fetch_issue(self, issue_id: str) -> Issue:
        try:
            data = await self._query(ISSUE_QUERY, {"id": issue_id})
        except _NotFoundFromErrors:
            raise NotFoundError("Issue", issue_id) from None
        node = data.get("issue")
        if not node:
            raise NotFoundError("Issue", issue_id)
        return _convert(Issue.from_api, node, "issue")

    async def fetch_comment(self, comment_id: str) -> Comment:
        try:
            data = await self._query(COMMENT_QUERY, {"id": comment_id})
        except _NotFoundFromErrors:
            raise NotFoundError("Comment", comment_id) from None
        node = data.get("comment")
        if not node:
            raise NotFoundError("Comment", comment_id)
        return _convert(Comment.from_api, node, "comment")

    async def validate_connection(self) -> bool:
        """Check the API key by asking who we are."""
        try:
            data = await self._query(VIEWER_QUERY)
        except (ConfigurationError, TrackerError):
            log.exception("linear_connection_failed")
            return False
        viewer = data.get("viewer") or {}
        log.info("linear_connected", name=viewer.get("name"), email=viewer.get("email"))
        return bool(viewer)

    # ------------------------------------------------------------------
    # Bulk scan
    # ------------------------------------------------------------------

    async def fetch_recent_comments(
        self,
        days_back: int = 7,
        team_id: str | None = None,
        max_pages: int | None = None,
        page_size: int | None = None,
        now: datetime | None = None,
    ) -> RecentComments:
        """Scan comments created in the last ``days_back`` days for monitored tags.

        Pagination stops after ``max_pages`` pages regardless of what is
        left upstream. Only matching comments are enriched with their issue.
        """
        self.require_configured()
        max_pages = max_pages or self._config.max_pages
        page_size = page_size or self._config.page_size
        team_id = team_id if team_id is not None else self._config.team_id

        threshold = (now or datetime.now(timezone.utc)) - timedelta(days=days_back)
        filter_: dict[str, Any] = {"createdAt": {"gte": format_timestamp(threshold)}}
        if team_id:
            filter_["issue"] = {"team": {"id": {"eq": team_id}}}

        result = RecentComments()
        issues: dict[str, Issue | None] = {}
        cursor: str | None = None
        has_next = True

        while has_next and result.pages_fetched < max_pages:
            variables: dict[str, Any] = {"first": page_size, "filter": filter_}
            if cursor:
                variables["after"] = cursor
            data = await self._query(COMMENTS_QUERY, variables)
            connection = data.get("comments") or {}
            nodes = connection.get("nodes") or []
            page_info = connection.get("pageInfo") or {}
            result.pages_fetched += 1
            log.debug(
                "linear_comments_page",
                page=result.pages_fetched,
                count=len(nodes),
                cursor=cursor,
            )

            for node in nodes[:page_size]:
                result.scanned += 1
                comment = _convert(Comment.from_api, node, "comment")
                matched = self._matcher.match(comment.body)
                if not matched or not comment.issue_id:
                    continue
                issue = await self._issue_for(comment.issue_id, issues)
                if issue is None:
                    continue
                result.tickets.append(
                    MatchedTicket(comment=comment, issue=issue, matched_tags=matched)
                )

            has_next = bool(page_info.get("hasNextPage"))
            cursor = page_info.get("endCursor")
            if has_next and not cursor:
                break

        result.truncated = has_next
        log.info(
            "linear_comments_scanned",
            scanned=result.scanned,
            matched=len(result.tickets),
            pages=result.pages_fetched,
            truncated=result.truncated,
        )
        return result

    async def _issue_for(self, issue_id: str, cache: dict[str, Issue | None]) -> Issue | None:
        if issue_id not in cache:
            try:
                cache[issue_id] = await self.fetch_issue(issue_id)
            except NotFoundError:
                log.warning("linear_issue_missing", issue_id=issue_id)
                cache[issue_id] = None
        return cache[issue_id]


class _NotFoundFromErrors(TrackerError):
    """GraphQL error response reporting a missing entity."""


def _convert(factory: Callable[[dict[str, Any]], T], node: dict[str, Any], kind: str) -> T:
    try:
        return factory(node)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise TrackerError(f"Linear API returned a malformed {kind}: {e!r}") from e
