"""Linear tracker access for deskwatch."""

from .client import LinearGateway
from .models import Comment, Issue, MatchedTicket, RecentComments, User, WorkflowState

__all__ = [
    "LinearGateway",
    "Comment",
    "Issue",
    "MatchedTicket",
    "RecentComments",
    "User",
    "WorkflowState",
]
