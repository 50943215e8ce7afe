"""Factory for counter store backends."""

from src.config.settings import Settings
from src.store.base import CounterStore
from src.store.memory import InMemoryCounterStore


def build_counter_store(settings: Settings) -> CounterStore:
    """Build the counter store named by ``settings.counter_store_backend``."""
    backend = settings.counter_store_backend

    if backend == "memory":
        return InMemoryCounterStore()

    if backend == "redis":
        # Lazy import to avoid the redis dependency when not needed
        from src.store.redis_store import RedisCounterStore
        return RedisCounterStore(url=settings.redis_url)

    if backend == "dynamodb":
        from src.store.dynamodb_store import DynamoDBCounterStore
        return DynamoDBCounterStore(
            table_name=settings.dynamodb_table_name,
            region=settings.aws_region,
        )

    raise ValueError(f"Unknown counter store backend: {backend}")
