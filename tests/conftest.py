"""Shared fixtures for the Document Q&A Gateway test suite."""

import pytest

from src.config.settings import get_settings
from src.ratelimit.limiter import SlidingWindowLimiter
from src.ratelimit.models import Action, RateLimitPolicy, ScopeKind
from src.sessions.store import SessionStore
from tests.fakes import DAY, FakeClock, FakeExtractor, FakeProvider, SpyStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> SpyStore:
    return SpyStore(clock)


@pytest.fixture
def policies() -> dict:
    """The production policy set: 50/day global upload, 1/day client upload, 5/day query."""
    return {
        (ScopeKind.GLOBAL, Action.UPLOAD): RateLimitPolicy(50, DAY),
        (ScopeKind.PER_CLIENT, Action.UPLOAD): RateLimitPolicy(1, DAY),
        (ScopeKind.PER_CLIENT, Action.QUERY): RateLimitPolicy(5, DAY),
    }


@pytest.fixture
def limiter(store, policies, clock) -> SlidingWindowLimiter:
    return SlidingWindowLimiter(store, policies, bucket_seconds=60, clock=clock)


@pytest.fixture
def sessions(store, clock) -> SessionStore:
    return SessionStore(store, ttl_seconds=DAY, max_chars=30_000, clock=clock)


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(COUNTER_STORE_BACKEND="redis", CLIENT_QUERY_LIMIT="3")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    # Always clear cache on teardown so other tests get fresh settings
    get_settings.cache_clear()
