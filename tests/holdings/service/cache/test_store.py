import datetime
import logging
from unittest.mock import MagicMock, create_autospec

import pytest
from freezegun import freeze_time

from virgo.holdings.service.cache.container import CacheContainer
from virgo.holdings.service.cache.store import MemoryCacheStore, RedisCacheStore
from virgo.holdings.service.redis.key import RedisKeyGenerator
from virgo.holdings.service.redis.redis import Redis


class TestMemoryCacheStore:
    def test_read_write_delete(self):
        store = MemoryCacheStore()
        assert store.read("key") is None

        store.write("key", "value", datetime.timedelta(minutes=5))
        assert store.read("key") == "value"
        assert len(store) == 1

        assert store.delete("key") is True
        assert store.read("key") is None
        assert store.delete("key") is False

    def test_expiration(self):
        store = MemoryCacheStore()
        with freeze_time("2024-01-01 12:00:00") as frozen:
            store.write("key", "value", datetime.timedelta(seconds=5))
            frozen.tick(datetime.timedelta(seconds=4))
            assert store.read("key") == "value"
            frozen.tick(datetime.timedelta(seconds=1))
            assert store.read("key") is None
            # Expired entries are dropped when they are read.
            assert len(store) == 0

    def test_size_is_bounded(self):
        store = MemoryCacheStore(max_len=3)
        with freeze_time("2024-01-01 12:00:00") as frozen:
            for i in range(10):
                store.write(f"FIREHOSE:items/{i}", "xml", datetime.timedelta(seconds=5))
            frozen.tick(datetime.timedelta(hours=1))
            store.write("FIREHOSE:items/new", "xml", datetime.timedelta(seconds=5))

            # Keys that are never read again do not pile up.
            assert len(store) == 3
            assert store.read("FIREHOSE:items/0") is None
            assert store.read("FIREHOSE:items/new") == "xml"

    def test_max_age_caps_lifetime(self):
        store = MemoryCacheStore(max_age=datetime.timedelta(minutes=10))
        with freeze_time("2024-01-01 12:00:00") as frozen:
            store.write("short", "1", datetime.timedelta(seconds=5))
            store.write("long", "2", datetime.timedelta(hours=2))

            frozen.tick(datetime.timedelta(seconds=6))
            assert store.read("short") is None
            assert store.read("long") == "2"

            frozen.tick(datetime.timedelta(minutes=10))
            assert store.read("long") is None
            assert len(store) == 0

    def test_clear(self):
        store = MemoryCacheStore()
        store.write("a", "1", datetime.timedelta(minutes=1))
        store.write("b", "2", datetime.timedelta(minutes=1))
        store.clear()
        assert len(store) == 0


class TestCacheStoreFetch:
    def test_fetch(self, caplog: pytest.LogCaptureFixture):
        caplog.set_level(logging.DEBUG)
        store = MemoryCacheStore()
        compute = MagicMock(return_value="computed")

        assert store.fetch("key", datetime.timedelta(minutes=1), compute) == "computed"
        assert store.fetch("key", datetime.timedelta(minutes=1), compute) == "computed"
        compute.assert_called_once_with()

        assert "MISS KEY => key" in caplog.messages
        assert "HIT KEY ==> key" in caplog.messages

    def test_fetch_none_is_not_cached(self):
        store = MemoryCacheStore()
        compute = MagicMock(return_value=None)
        assert store.fetch("key", datetime.timedelta(minutes=1), compute) is None
        assert store.fetch("key", datetime.timedelta(minutes=1), compute) is None
        assert compute.call_count == 2
        assert len(store) == 0

    def test_fetch_error_is_not_cached(self):
        store = MemoryCacheStore()
        compute = MagicMock(side_effect=[RuntimeError("boom"), "computed"])
        with pytest.raises(RuntimeError, match="boom"):
            store.fetch("key", datetime.timedelta(minutes=1), compute)
        assert len(store) == 0
        assert store.fetch("key", datetime.timedelta(minutes=1), compute) == "computed"


class TestRedisCacheStore:
    @pytest.fixture
    def client(self) -> MagicMock:
        client = create_autospec(Redis, instance=True)
        client.get_key = RedisKeyGenerator("virgo")
        return client

    def test_read(self, client: MagicMock):
        client.get.return_value = "value"
        store = RedisCacheStore(client)
        assert store.read("FIREHOSE:items/1") == "value"
        client.get.assert_called_once_with("virgo::cache::FIREHOSE:items/1")

    def test_write(self, client: MagicMock):
        store = RedisCacheStore(client)
        store.write("FIREHOSE:items/1", "value", datetime.timedelta(minutes=5))
        client.set.assert_called_once_with(
            "virgo::cache::FIREHOSE:items/1",
            "value",
            ex=datetime.timedelta(minutes=5),
        )

    def test_delete(self, client: MagicMock):
        store = RedisCacheStore(client)
        client.delete.return_value = 1
        assert store.delete("FIREHOSE:items/1") is True
        client.delete.assert_called_once_with("virgo::cache::FIREHOSE:items/1")

        client.delete.return_value = 0
        assert store.delete("FIREHOSE:items/1") is False

    def test_fetch(self, client: MagicMock):
        client.get.return_value = None
        store = RedisCacheStore(client)
        result = store.fetch("key", datetime.timedelta(seconds=5), lambda: "value")
        assert result == "value"
        client.set.assert_called_once_with(
            "virgo::cache::key", "value", ex=datetime.timedelta(seconds=5)
        )


class TestCacheContainer:
    def test_memory(self):
        container = CacheContainer()
        container.config.from_dict({"backend": "memory"})
        store = container.store()
        assert isinstance(store, MemoryCacheStore)
        assert container.store() is store

    def test_redis(self):
        container = CacheContainer()
        container.config.from_dict({"backend": "redis"})
        client = MagicMock()
        container.redis_client.override(client)
        store = container.store()
        assert isinstance(store, RedisCacheStore)
        assert store._client is client
