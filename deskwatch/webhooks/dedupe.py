"""Bounded memory of recently notified webhook deliveries."""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Callable


class DeliveryCache:
    """Remembers delivery keys for ``window_seconds``.

    Only touched from the event loop, so no locking. A window of 0 disables
    the cache entirely.
    """

    def __init__(
        self,
        window_seconds: float = 600,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window = window_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._seen: OrderedDict[str, float] = OrderedDict()

    @property
    def enabled(self) -> bool:
        return self._window > 0

    def __len__(self) -> int:
        return len(self._seen)

    def _prune(self, now: float) -> None:
        while self._seen:
            key, expiry = next(iter(self._seen.items()))
            if expiry > now and len(self._seen) <= self._max_entries:
                break
            self._seen.popitem(last=False)

    def seen(self, key: str) -> bool:
        if not self.enabled:
            return False
        now = self._clock()
        self._prune(now)
        return key in self._seen

    def remember(self, key: str) -> None:
        if not self.enabled:
            return
        now = self._clock()
        self._seen.pop(key, None)
        self._seen[key] = now + self._window
        self._prune(now)
