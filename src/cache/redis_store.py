# src/cache/redis_store.py — v1
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable when several app instances share one fingerprint cache.
"""

from __future__ import annotations

import json
import logging

from sitesense.cache.base_cache_store import BaseCacheStore, CacheCorruptionError
from sitesense.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_KEY_PREFIX = "sitesense:fp:"
_INDEX_KEY = "sitesense:fp:__index__"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store."""

    def __init__(self, redis_url: str) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        data = self._client.get(f"{_KEY_PREFIX}{key}")
        if data is None:
            return None
        try:
            return CacheEntry(**json.loads(data))
        except (ValueError, TypeError) as e:
            raise CacheCorruptionError(key, str(e)) from e

    async def put(self, entry: CacheEntry) -> None:
        """Store a cache entry."""
        self._client.set(f"{_KEY_PREFIX}{entry.key}", entry.model_dump_json())
        # Index of live keys for list_entries / clear
        self._client.sadd(_INDEX_KEY, entry.key)

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        self._client.delete(f"{_KEY_PREFIX}{key}")
        self._client.srem(_INDEX_KEY, key)

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        entries: list[CacheEntry] = []
        for key in self._client.smembers(_INDEX_KEY):
            try:
                entry = await self.get(key)
            except CacheCorruptionError as e:
                logger.warning("Skipping unreadable cache key %s: %s", key, e.detail)
                continue
            if entry is not None:
                entries.append(entry)
        return entries

    async def clear(self) -> None:
        """Remove every indexed entry and the index itself."""
        for key in self._client.smembers(_INDEX_KEY):
            self._client.delete(f"{_KEY_PREFIX}{key}")
        self._client.delete(_INDEX_KEY)

    async def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
