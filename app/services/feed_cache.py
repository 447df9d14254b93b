"""Single-slot staleness cache for the computed home feed."""

from __future__ import annotations

import time
from typing import Callable

from ..models import FeedSnapshot


class FeedCache:
    """Holds the most recent :class:`FeedSnapshot`.

    The slot is only ever replaced wholesale, so readers either see the
    previous snapshot or the new one.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._snapshot: FeedSnapshot | None = None

    def now(self) -> float:
        return self._clock()

    def get(self) -> FeedSnapshot | None:
        return self._snapshot

    def put(self, snapshot: FeedSnapshot) -> None:
        self._snapshot = snapshot

    def clear(self) -> None:
        self._snapshot = None

    def is_fresh(self, now: float, ttl: float) -> bool:
        """Return whether the cached snapshot can be served without refetching."""

        snapshot = self._snapshot
        if snapshot is None:
            return False
        if now - snapshot.captured_at >= ttl:
            return False
        return snapshot.has_content() and snapshot.spotlight is not None
