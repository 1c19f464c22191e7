"""Core matching logic for deskwatch."""

from .tags import TagMatcher, extract_hashtags, match_tags

__all__ = [
    "TagMatcher",
    "extract_hashtags",
    "match_tags",
]
