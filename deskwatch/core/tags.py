"""Hashtag extraction and matching against the monitored patterns."""

from __future__ import annotations

import re

from deskwatch.config import TagConfig

# '#' followed by word characters or hyphens: #sd, #service-desk, #on_call
HASHTAG_RE = re.compile(r"#[\w-]+")


def extract_hashtags(text: str | None) -> list[str]:
    """Return every hashtag in ``text`` in order of appearance, duplicates kept."""
    if not text:
        return []
    return HASHTAG_RE.findall(text)


class TagMatcher:
    """Matches hashtags against a fixed :class:`TagConfig`."""

    def __init__(self, config: TagConfig | None = None) -> None:
        self.config = config or TagConfig()
        if self.config.case_sensitive:
            self._patterns = frozenset(self.config.patterns)
        else:
            self._patterns = frozenset(p.casefold() for p in self.config.patterns)

    def is_monitored(self, tag: str) -> bool:
        key = tag if self.config.case_sensitive else tag.casefold()
        return key in self._patterns

    def match(self, text: str | None) -> list[str]:
        """Monitored hashtags found in ``text``, original casing preserved."""
        return [tag for tag in extract_hashtags(text) if self.is_monitored(tag)]

    def highlight(self, text: str, marker: str = "*") -> str:
        """Wrap every monitored hashtag span in ``marker``.

        Works on match positions in a single pass, so repeated or
        overlapping tags (``#sd`` inside ``#sd-ops``) are never wrapped twice.
        """
        parts: list[str] = []
        last = 0
        for m in HASHTAG_RE.finditer(text):
            if not self.is_monitored(m.group()):
                continue
            parts.append(text[last:m.start()])
            parts.append(f"{marker}{m.group()}{marker}")
            last = m.end()
        parts.append(text[last:])
        return "".join(parts)


def match_tags(text: str | None, config: TagConfig | None = None) -> list[str]:
    """One-shot helper: extract hashtags from ``text`` and keep the monitored ones."""
    return TagMatcher(config).match(text)
