"""Sliding window rate limiter backed by a shared counter store.

The window is cut into fixed-width buckets. Each check adds one to the
bucket the current time falls in and sums every bucket that overlaps the
trailing window ``[now - window, now]``. The oldest bucket is counted
whole even when only part of it overlaps, so the limiter can reject
slightly early (by less than one bucket) but never admits more than
``limit`` requests in any trailing window.

Every check consumes a slot, including rejected ones.

Returns standard rate limit metadata for response headers:
- X-RateLimit-Limit
- X-RateLimit-Remaining
- X-RateLimit-Reset
"""

import math
import time
from collections.abc import Callable

from src.ratelimit.models import (
    Action,
    RateLimitDecision,
    RateLimitPolicy,
    RateLimitScope,
    ScopeKind,
)
from src.store.base import CounterStore

DEFAULT_BUCKET_SECONDS = 60


class SlidingWindowLimiter:
    """Admission control for every scope, sharing one counter store."""

    def __init__(
        self,
        store: CounterStore,
        policies: dict[tuple[ScopeKind, Action], RateLimitPolicy],
        *,
        bucket_seconds: int = DEFAULT_BUCKET_SECONDS,
        prefix: str = "ratelimit",
        clock: Callable[[], float] = time.time,
    ):
        if bucket_seconds < 1:
            raise ValueError("bucket_seconds must be positive")
        self._store = store
        self._policies = dict(policies)
        self._bucket_seconds = bucket_seconds
        self._prefix = prefix
        self._clock = clock

    def policy_for(self, scope: RateLimitScope) -> RateLimitPolicy:
        try:
            return self._policies[scope.policy_key]
        except KeyError:
            raise ValueError(f"No rate limit policy for {scope.kind.value}:{scope.action.value}") from None

    async def check(self, scope: RateLimitScope) -> RateLimitDecision:
        """Record one attempt against ``scope`` and decide admission.

        Raises:
            StoreUnavailable: the counter store could not be reached.
        """
        policy = self.policy_for(scope)
        now = self._clock()
        width = self._bucket_seconds

        current = math.floor(now / width)
        oldest = math.floor((now - policy.window_seconds) / width)
        # Keep the counter alive until its newest bucket has left the window
        ttl = policy.window_seconds + 2 * width

        counts = await self._store.hit(
            scope.store_key(self._prefix), current, oldest, ttl
        )
        total = sum(counts.values())
        reset_bucket = _reset_bucket(counts, policy.limit, current)

        return RateLimitDecision(
            admitted=total <= policy.limit,
            limit=policy.limit,
            remaining=max(0, policy.limit - total),
            # A bucket stops overlapping the window at (bucket_end + window)
            reset_at=float((reset_bucket + 1) * width + policy.window_seconds),
            checked_at=now,
        )


def _reset_bucket(counts: dict[int, int], limit: int, current: int) -> int:
    """Newest bucket that has to leave the window before the next attempt is admitted.

    Rejected attempts stay counted, so once the limit is reached the next
    check only passes when at most ``limit - 1`` attempts remain in the
    window. Below the limit this is simply the oldest bucket.
    """
    total = sum(counts.values())
    allowed = min(total, limit) - 1
    remaining = total
    for bucket in sorted(counts):
        remaining -= counts[bucket]
        if remaining <= allowed:
            return bucket
    return current
