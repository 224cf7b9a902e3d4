# src/cache/base_cache_store.py — v1
"""Abstract cache store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from sitesense.cache.models import CacheEntry


class CacheCorruptionError(Exception):
    """A stored entry exists but cannot be decoded."""

    def __init__(self, key: str, detail: str) -> None:
        self.key = key
        self.detail = detail
        super().__init__(f"Corrupted cache entry {key!r}: {detail}")


class BaseCacheStore(ABC):
    """Unified interface for fingerprint cache storage backends.

    Implementations raise CacheCorruptionError from ``get`` when a key is
    present but unreadable; ``list_entries`` skips unreadable entries.
    """

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by fingerprint key."""

    @abstractmethod
    async def put(self, entry: CacheEntry) -> None:
        """Store (upsert) a cache entry under ``entry.key``."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove cache entry. Missing keys are ignored."""

    @abstractmethod
    async def list_entries(self) -> list[CacheEntry]:
        """List all readable entries."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry."""

    async def close(self) -> None:
        """Release backend resources. Default: nothing to release."""
