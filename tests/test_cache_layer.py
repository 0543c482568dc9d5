"""
Tests for the two-tier cache.

Every failure mode (miss, bad payload, Redis down) must read as a miss and
never raise.
"""

import json

import pytest

from taskapi.cache.layer import CacheLayer
from taskapi.exceptions import CacheError


class TestCacheReadWrite:
    async def test_miss_returns_none(self, cache):
        assert await cache.get("task:1") is None
        assert cache.stats["misses"] == 1

    async def test_set_then_get(self, cache, fake_redis):
        assert await cache.set("task:1", {"id": 1, "title": "Buy milk"}) is True

        assert await cache.get("task:1") == {"id": 1, "title": "Buy milk"}
        raw = await fake_redis.get("test:task:1")
        assert json.loads(raw) == {"id": 1, "title": "Buy milk"}

    async def test_set_applies_ttl(self, cache, fake_redis, settings):
        await cache.set("task:1", {"id": 1})
        ttl = await fake_redis.ttl("test:task:1")
        assert 0 < ttl <= settings.l2_ttl_seconds

        await cache.set("task:2", {"id": 2}, ttl=30)
        assert 0 < await fake_redis.ttl("test:task:2") <= 30

    async def test_l2_hit_populates_l1(self, cache, fake_redis):
        await fake_redis.set("test:task:all", json.dumps([{"id": 1}]))

        assert await cache.get("task:all") == [{"id": 1}]
        assert await cache.get("task:all") == [{"id": 1}]
        assert cache.stats["l2_hits"] == 1
        assert cache.stats["l1_hits"] == 1

    async def test_undecodable_value_is_a_miss(self, cache, fake_redis):
        await fake_redis.set("test:task:9", "{not json")

        assert await cache.get("task:9") is None
        assert cache.stats["errors"] == 1

    async def test_unserializable_value_is_rejected(self, cache):
        circular = []
        circular.append(circular)

        assert await cache.set("task:1", circular) is False
        assert await cache.get("task:1") is None

    def test_codec_failures_are_cache_errors(self):
        circular = []
        circular.append(circular)

        with pytest.raises(CacheError):
            CacheLayer._encode("task:1", circular)
        with pytest.raises(CacheError):
            CacheLayer._decode("task:1", "{not json")


class TestInvalidation:
    async def test_delete_removes_both_tiers(self, cache, fake_redis):
        await cache.set("task:1", {"id": 1})

        assert await cache.delete("task:1") is True
        assert await fake_redis.get("test:task:1") is None
        assert await cache.get("task:1") is None

    async def test_delete_prefix_only_touches_prefix(self, cache, fake_redis):
        await cache.set("task:1", {"id": 1})
        await cache.set("task:all", [])
        await cache.set("user:1", {"id": 1})

        assert await cache.delete_prefix("task:") is True

        assert await cache.get("task:1") is None
        assert await cache.get("task:all") is None
        assert await cache.get("user:1") == {"id": 1}
        assert await fake_redis.get("test:user:1") is not None


class TestDegradedOperation:
    async def test_outage_reads_as_miss(self, settings, fake_redis, redis_server):
        layer = CacheLayer(settings.model_copy(update={"l1_enabled": False}), redis=fake_redis)
        await layer.init_cache()
        await layer.set("task:1", {"id": 1})
        assert layer.is_available() is True

        redis_server.connected = False

        assert await layer.get("task:1") is None
        assert await layer.set("task:1", {"id": 2}) is False
        assert await layer.delete("task:1") is False
        assert await layer.delete_prefix("task:") is False
        assert layer.is_available() is False
        assert layer.stats["errors"] >= 4

    async def test_recovers_after_outage(self, settings, fake_redis, redis_server):
        layer = CacheLayer(settings.model_copy(update={"l1_enabled": False}), redis=fake_redis)
        await layer.init_cache()

        redis_server.connected = False
        assert await layer.set("task:1", {"id": 1}) is False

        redis_server.connected = True
        assert await layer.set("task:1", {"id": 1}) is True
        assert layer.is_available() is True

    async def test_unreachable_at_startup_falls_back_to_l1(self, settings, fake_redis, redis_server):
        redis_server.connected = False
        layer = CacheLayer(settings, redis=fake_redis)

        await layer.init_cache()

        assert layer.is_available() is False
        assert await layer.set("task:1", {"id": 1}) is True
        assert await layer.get("task:1") == {"id": 1}

    async def test_disabled_cache_is_a_noop(self, settings, fake_redis):
        layer = CacheLayer(settings.model_copy(update={"cache_enabled": False}), redis=fake_redis)
        await layer.init_cache()

        assert await layer.set("task:1", {"id": 1}) is False
        assert await layer.get("task:1") is None
        assert await layer.delete_prefix("task:") is False
        assert layer.status()["enabled"] is False
        assert await fake_redis.get("test:task:1") is None


async def test_status_reports_hit_rate(cache):
    await cache.set("task:1", {"id": 1})
    await cache.get("task:1")
    await cache.get("task:2")

    status = cache.status()
    assert status["available"] is True
    assert status["hit_rate"] == 0.5
    assert status["l1_size"] == 1
