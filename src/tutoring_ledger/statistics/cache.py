"""Consumer-side TTL cache for rollups.

Owned by whoever renders statistics (the HTTP layer here), never by the
aggregator. Entries expire after ttl_seconds and are dropped early when a
write reports the (contract_id, year, month) keys it touched.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Iterable, Optional

from ..core.constants import DEFAULT_ROLLUP_TTL_SECONDS
from .aggregator import ReconciliationAggregator
from .model import Rollup

CacheKey = tuple[int, Optional[int]]


class RollupCache:
    def __init__(
        self,
        aggregator: ReconciliationAggregator,
        *,
        ttl_seconds: float = DEFAULT_ROLLUP_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._aggregator = aggregator
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: dict[CacheKey, tuple[float, Rollup]] = {}
        self._lock = threading.Lock()
        # Bumped by every invalidation; a rollup computed across a bump is not stored.
        self._generation = 0

    def get(self, year: int, month: Optional[int] = None, *, force: bool = False) -> Rollup:
        key = (int(year), None if month is None else int(month))
        now = self._clock()
        with self._lock:
            generation = self._generation
            hit = None if force else self._entries.get(key)
        if hit and now - hit[0] < self._ttl:
            return hit[1]

        rollup = self._aggregator.rollup(key[0], key[1])
        with self._lock:
            if generation == self._generation:
                self._entries[key] = (now, rollup)
        return rollup

    def invalidate(self, keys: Iterable[tuple[int, int, int]]) -> int:
        """Drop cached months (and their year totals) touched by a write."""

        dropped = 0
        with self._lock:
            self._generation += 1
            for _, year, month in keys:
                for key in ((year, month), (year, None)):
                    if self._entries.pop(key, None) is not None:
                        dropped += 1
        return dropped

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._entries.clear()
