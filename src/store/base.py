"""Counter store abstraction.

Shared state for rate limiting and sessions lives behind this interface so
that every gateway instance sees the same counters. Implementations must
make ``hit`` a single atomic operation: increment the current bucket and
read back the window in one step, never read-then-write.
"""

from abc import ABC, abstractmethod


class CounterStore(ABC):
    """Abstract base for the shared key-value substrate."""

    @abstractmethod
    async def hit(self, key: str, bucket: int, oldest_bucket: int, ttl_seconds: int) -> dict[int, int]:
        """Atomically add one to ``bucket`` under ``key``.

        Args:
            key: Counter key for one rate limit scope.
            bucket: Index of the bucket the current time falls in.
            oldest_bucket: Lowest bucket index still inside the window.
                Buckets below it are dropped.
            ttl_seconds: Expiry for the whole counter, refreshed on each hit.

        Returns:
            Mapping of bucket index to count for every bucket in
            ``[oldest_bucket, bucket]``, including this hit.

        Raises:
            StoreUnavailable: the backend could not be reached.
        """
        ...

    @abstractmethod
    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` with an absolute expiry."""
        ...

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value under ``key``, or None if absent or expired."""
        ...

    async def close(self) -> None:
        """Release connections. Override if the backend holds any."""
        pass
