"""In-process counter store for tests and single-instance development."""

import time
from collections.abc import Callable

from src.store.base import CounterStore


class InMemoryCounterStore(CounterStore):
    """Dict-backed store with lazy expiry.

    No method awaits between reading and writing, so each call is atomic
    with respect to other tasks on the same event loop.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._counters: dict[str, tuple[dict[int, int], float]] = {}
        self._values: dict[str, tuple[str, float]] = {}

    async def hit(self, key: str, bucket: int, oldest_bucket: int, ttl_seconds: int) -> dict[int, int]:
        now = self._clock()
        self._evict_expired(now)
        existing, _ = self._counters.get(key, ({}, now))

        buckets = {b: c for b, c in existing.items() if b >= oldest_bucket}
        buckets[bucket] = buckets.get(bucket, 0) + 1
        self._counters[key] = (buckets, now + ttl_seconds)
        return dict(buckets)

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self._values[key] = (value, self._clock() + ttl_seconds)

    async def get(self, key: str) -> str | None:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            # Expired: remove and report absent
            del self._values[key]
            return None
        return value

    def _evict_expired(self, now: float) -> None:
        """Drop counters and values whose TTL has passed, so quiet keys don't pile up."""
        for key in [k for k, (_, exp) in self._counters.items() if now >= exp]:
            del self._counters[key]
        for key in [k for k, (_, exp) in self._values.items() if now >= exp]:
            del self._values[key]

    def clear(self) -> None:
        """Drop all counters and values. Useful for testing."""
        self._counters.clear()
        self._values.clear()
