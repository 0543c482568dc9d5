import json
import logging
from typing import Any, Optional

from cachetools import TTLCache
from redis.asyncio import Redis, RedisError

from taskapi.core.config import Settings
from taskapi.exceptions import CacheError

logger = logging.getLogger(__name__)

# Failures that mean "Redis is unreachable or misbehaving". Socket errors can
# escape redis-py as plain OSError during connection setup.
_REDIS_FAILURES = (RedisError, OSError)


class CacheLayer:
    """
    Two-tier optional cache.

    L1: Process-local TTLCache (fast, limited size)
    L2: Redis (shared, larger capacity)

    The cache is an accelerator, never a dependency:
    - Misses, undecodable values and Redis outages all read as ``None``
    - Writes and deletes report success as a bool and never raise
    - Keys are namespaced automatically
    """

    def __init__(self, settings: Settings, redis: Redis | None = None):
        self._settings = settings
        self._redis = redis
        self.enabled = settings.cache_enabled
        self.l1: TTLCache | None = None
        self._available = False
        self._initialized = False

        # Stats tracking
        self.stats = {
            "l1_hits": 0,
            "l2_hits": 0,
            "misses": 0,
            "errors": 0,
        }

    async def init_cache(self):
        """Initialize L1 and verify the Redis connection."""
        if self._initialized:
            return
        self._initialized = True

        if not self.enabled:
            logger.info("Cache disabled by configuration")
            return

        settings = self._settings

        if settings.l1_enabled:
            self.l1 = TTLCache(maxsize=settings.l1_maxsize, ttl=settings.l1_ttl_seconds)

        if self._redis is None:
            self._redis = Redis.from_url(
                settings.redis_dsn,
                encoding="utf-8",
                decode_responses=True,
                max_connections=settings.redis_pool_size,
                socket_connect_timeout=settings.redis_connect_timeout,
                socket_keepalive=True,
                health_check_interval=30,
            )

        try:
            await self._redis.ping()
            self._available = True
            logger.info("Redis connection established")
        except _REDIS_FAILURES as e:
            # Degraded operation: L1 only, or no caching at all.
            logger.error(f"Redis initialization failed, continuing without L2: {e}")
            await self._close_redis()

        logger.info("Cache layer initialized")

    @staticmethod
    def _encode(key: str, value: Any) -> str:
        try:
            return json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            raise CacheError(f"Cannot serialize cache entry {key!r}: {e}") from e

    @staticmethod
    def _decode(key: str, raw: str) -> Any:
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CacheError(f"undecodable cache entry {key!r}: {e}") from e

    def _key(self, key: str) -> str:
        """Build namespaced cache key."""
        return f"{self._settings.cache_namespace}{key}"

    def _record_failure(self, operation: str, key: str, error: Exception):
        self.stats["errors"] += 1
        if self._available:
            logger.warning(f"Redis became unavailable during {operation}: {error}")
        self._available = False
        logger.error(f"Redis {operation} error for {key!r}: {error}")

    def is_available(self) -> bool:
        """True when the shared (Redis) tier answered its last call."""
        return self.enabled and self._redis is not None and self._available

    async def get(self, key: str) -> Optional[Any]:
        """
        Look ``key`` up in L1, then L2.

        Returns the decoded value, or None on a miss, an undecodable
        payload, or an unreachable Redis.
        """
        if not self.enabled:
            return None

        full_key = self._key(key)

        if self.l1 is not None and full_key in self.l1:
            self.stats["l1_hits"] += 1
            logger.debug(f"L1 hit: {key}")
            return self.l1[full_key]

        if self._redis is not None:
            try:
                raw = await self._redis.get(full_key)
                self._available = True
            except _REDIS_FAILURES as e:
                self._record_failure("GET", key, e)
                raw = None

            if raw is not None:
                try:
                    value = self._decode(key, raw)
                except CacheError as e:
                    logger.warning(f"Discarding {e.message}")
                    self.stats["errors"] += 1
                    self.stats["misses"] += 1
                    return None
                self.stats["l2_hits"] += 1
                logger.debug(f"L2 hit: {key}")
                if self.l1 is not None:
                    self.l1[full_key] = value
                return value

        self.stats["misses"] += 1
        logger.debug(f"Cache miss: {key}")
        return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store ``value`` in both tiers.

        Args:
            key: Cache key (will be namespaced automatically)
            value: JSON-serializable value
            ttl: TTL for L2 in seconds (uses ``l2_ttl_seconds`` if None)

        Returns:
            True if at least one tier accepted the value
        """
        if not self.enabled:
            return False

        full_key = self._key(key)
        try:
            data = self._encode(key, value)
        except CacheError as e:
            logger.error(e.message)
            return False

        stored = False
        if self.l1 is not None:
            self.l1[full_key] = value
            stored = True

        if self._redis is not None:
            try:
                await self._redis.set(full_key, data, ex=ttl or self._settings.l2_ttl_seconds)
                self._available = True
                stored = True
                logger.debug(f"Stored in L2: {key}")
            except _REDIS_FAILURES as e:
                self._record_failure("SET", key, e)

        return stored

    async def delete(self, key: str) -> bool:
        """
        Delete a key from both tiers.

        Returns False when Redis could not be reached; the caller accepts
        that a stale L2 entry may live until its TTL expires.
        """
        if not self.enabled:
            return False

        full_key = self._key(key)
        if self.l1 is not None:
            self.l1.pop(full_key, None)

        if self._redis is None:
            return self.l1 is not None

        try:
            await self._redis.delete(full_key)
            self._available = True
            logger.debug(f"Deleted from both layers: {key}")
            return True
        except _REDIS_FAILURES as e:
            self._record_failure("DELETE", key, e)
            return False

    async def delete_prefix(self, prefix: str) -> bool:
        """
        Delete every key starting with ``prefix`` from both tiers.

        L2 is walked with SCAN so Redis is never blocked, but the walk is
        still O(keyspace).
        """
        if not self.enabled:
            return False

        full_prefix = self._key(prefix)

        if self.l1 is not None:
            for cached_key in [k for k in self.l1.keys() if k.startswith(full_prefix)]:
                self.l1.pop(cached_key, None)

        if self._redis is None:
            return self.l1 is not None

        try:
            cursor = 0
            deleted_count = 0

            while True:
                cursor, keys = await self._redis.scan(
                    cursor, match=f"{full_prefix}*", count=100
                )
                if keys:
                    await self._redis.delete(*keys)
                    deleted_count += len(keys)
                if cursor == 0:
                    break

            self._available = True
            logger.info(f"Prefix delete completed: {prefix!r}, {deleted_count} keys")
            return True

        except _REDIS_FAILURES as e:
            self._record_failure("prefix delete", prefix, e)
            return False

    async def _close_redis(self):
        redis, self._redis = self._redis, None
        self._available = False
        if redis is None:
            return
        try:
            await redis.aclose()
        except _REDIS_FAILURES as e:
            logger.error(f"Error closing Redis: {e}")

    async def close(self):
        """Graceful shutdown of cache connections."""
        if self._redis is not None:
            await self._close_redis()
            logger.info("Redis connection closed")
        if self.l1 is not None:
            self.l1.clear()

    def status(self) -> dict:
        """Availability and hit statistics."""
        total = self.stats["l1_hits"] + self.stats["l2_hits"] + self.stats["misses"]

        return {
            "enabled": self.enabled,
            "available": self.is_available(),
            **self.stats,
            "l1_size": len(self.l1) if self.l1 is not None else 0,
            "l1_maxsize": self.l1.maxsize if self.l1 is not None else 0,
            "hit_rate": (
                (self.stats["l1_hits"] + self.stats["l2_hits"]) / total
                if total > 0
                else 0
            ),
        }
