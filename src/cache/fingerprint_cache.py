# src/cache/fingerprint_cache.py — v1
"""Bounded fingerprint-key to site-id cache with expiry and LRC eviction.

Sits on top of any BaseCacheStore. Entries expire a fixed retention window
after their last confirmation and are purged lazily on lookup. When the
store holds more than ``max_entries``, the least-recently-confirmed entries
are evicted first.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable

from sitesense.cache.base_cache_store import BaseCacheStore, CacheCorruptionError
from sitesense.cache.models import CacheEntry, CacheStats
from sitesense.core.models import utcnow

logger = logging.getLogger(__name__)


class FingerprintCache:
    """Fingerprint cache with lazy expiry and least-recently-confirmed eviction.

    Args:
        store: Persistence backend.
        retention_days: Entries unconfirmed for longer than this are absent.
        max_entries: Capacity; eviction keeps the store at or below it.
        enabled: When False, lookups always miss and confirms are dropped.
        clock: Source of "now" (injected for tests).
    """

    def __init__(
        self,
        store: BaseCacheStore,
        retention_days: int = 30,
        max_entries: int = 100,
        enabled: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._store = store
        self._retention = timedelta(days=retention_days)
        self._max_entries = max_entries
        self._enabled = enabled
        self._clock = clock
        self._key_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._evict_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def max_entries(self) -> int:
        return self._max_entries

    async def lookup(self, key: str) -> str | None:
        """Return the cached site id for ``key``, or None on miss/expiry."""
        if not self._enabled:
            return None

        try:
            entry = await self._store.get(key)
        except CacheCorruptionError as e:
            logger.warning("Dropping corrupted cache entry: %s", e.detail)
            await self._store.delete(key)
            return None

        if entry is None:
            return None

        if self._is_expired(entry):
            logger.debug("Cache entry expired (last confirmed %s)", entry.last_confirmed_at)
            await self._store.delete(key)
            return None

        return entry.site_id

    async def confirm(self, key: str, site_id: str) -> CacheEntry | None:
        """Record or refresh ``key -> site_id``.

        Refreshing the same site bumps ``hit_count`` and ``last_confirmed_at``.
        A different site (or an expired/corrupted entry) starts a new entry.

        Returns:
            The stored entry, or None when caching is disabled.
        """
        if not self._enabled:
            return None

        async with self._key_locks[key]:
            now = self._clock()
            try:
                existing = await self._store.get(key)
            except CacheCorruptionError as e:
                logger.warning("Overwriting corrupted cache entry: %s", e.detail)
                existing = None

            if (
                existing is not None
                and existing.site_id == site_id
                and not self._is_expired(existing)
            ):
                entry = existing.model_copy(
                    update={
                        "last_confirmed_at": now,
                        "hit_count": existing.hit_count + 1,
                    }
                )
            else:
                entry = CacheEntry(
                    key=key,
                    site_id=site_id,
                    first_seen_at=now,
                    last_confirmed_at=now,
                    hit_count=1,
                )
            await self._store.put(entry)

        await self._evict_over_capacity(keep=key)
        logger.info("Cached site %s (hits=%d)", site_id, entry.hit_count)
        return entry

    async def clear(self) -> None:
        """Empty the cache (user-invoked privacy control)."""
        await self._store.clear()
        self._key_locks.clear()
        logger.info("Fingerprint cache cleared")

    async def stats(self) -> CacheStats:
        """Occupancy snapshot, ignoring expired entries."""
        entries = [e for e in await self._store.list_entries() if not self._is_expired(e)]
        if not entries:
            return CacheStats(entries=0, max_entries=self._max_entries)
        confirmed = [e.last_confirmed_at for e in entries]
        return CacheStats(
            entries=len(entries),
            max_entries=self._max_entries,
            oldest_confirmed_at=min(confirmed),
            newest_confirmed_at=max(confirmed),
        )

    async def _evict_over_capacity(self, keep: str) -> None:
        """Trim to capacity; ``keep`` (the key just confirmed) is never a victim."""
        async with self._evict_lock:
            entries = await self._store.list_entries()
            overflow = len(entries) - self._max_entries
            if overflow <= 0:
                return
            victims = sorted(
                (e for e in entries if e.key != keep),
                key=lambda e: (e.last_confirmed_at, e.key),
            )
            for victim in victims[:overflow]:
                await self._store.delete(victim.key)
                logger.debug("Evicted cache entry for site %s", victim.site_id)

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.last_confirmed_at > self._retention
