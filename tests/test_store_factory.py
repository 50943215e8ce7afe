"""Tests for src/store/factory.py — build_counter_store."""

import pytest

from src.config.settings import get_settings
from src.store.dynamodb_store import DynamoDBCounterStore
from src.store.factory import build_counter_store
from src.store.memory import InMemoryCounterStore
from src.store.redis_store import RedisCounterStore


class TestBuildCounterStore:

    def test_memory_backend(self, override_settings):
        override_settings(COUNTER_STORE_BACKEND="memory")
        assert isinstance(build_counter_store(get_settings()), InMemoryCounterStore)

    def test_redis_backend(self, override_settings):
        override_settings(COUNTER_STORE_BACKEND="redis", REDIS_URL="redis://cache:6379/2")
        store = build_counter_store(get_settings())
        assert isinstance(store, RedisCounterStore)
        assert store._url == "redis://cache:6379/2"
        # No connection until first use
        assert store._redis is None

    def test_dynamodb_backend(self, override_settings):
        override_settings(
            COUNTER_STORE_BACKEND="dynamodb",
            DYNAMODB_TABLE_NAME="state-table",
            AWS_REGION="eu-west-1",
        )
        store = build_counter_store(get_settings())
        assert isinstance(store, DynamoDBCounterStore)
        assert store._table_name == "state-table"
        assert store._region == "eu-west-1"

    def test_unknown_backend(self, override_settings):
        override_settings(COUNTER_STORE_BACKEND="postgres")
        with pytest.raises(ValueError):
            build_counter_store(get_settings())

    def test_returns_fresh_instances(self, override_settings):
        override_settings(COUNTER_STORE_BACKEND="memory")
        settings = get_settings()
        assert build_counter_store(settings) is not build_counter_store(settings)
