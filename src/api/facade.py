# src/api/facade.py — v1
"""Public API facade: one LocationSession per user session.

Usage:
    from sitesense.api.facade import open_session
    session = await open_session(settings, source, registry)
    outcome = await session.detect()
    ...
    await session.aclose()

The session owns the cache, engine, outcome policy and stats tracker, and
tears them down together in ``aclose``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sitesense.cache.cache_factory import create_cache_store
from sitesense.cache.fingerprint_cache import FingerprintCache
from sitesense.cache.models import CacheStats
from sitesense.config.settings import Settings
from sitesense.core.models import LocationContextRecord
from sitesense.detection.engine import LocationConfidenceEngine
from sitesense.detection.outcome import Outcome, OutcomePolicy
from sitesense.detection.retry import RetryPolicy, detect_with_retry
from sitesense.tracking.detection_stats import DetectionStatsTracker
from sitesense.tracking.models import DetectionStats

if TYPE_CHECKING:
    from sitesense.cache.base_cache_store import BaseCacheStore
    from sitesense.positioning.base_source import BasePositioningSource
    from sitesense.registry.base_registry import BaseSiteRegistry

logger = logging.getLogger(__name__)


class LocationSession:
    """Dependency-injected handle over the whole detection flow."""

    def __init__(
        self,
        settings: Settings,
        source: BasePositioningSource,
        registry: BaseSiteRegistry,
        cache_store: BaseCacheStore,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._settings = settings
        self._registry = registry
        self._store = cache_store
        self.cache = FingerprintCache(
            cache_store,
            retention_days=settings.cache_retention_days,
            max_entries=settings.cache_max_entries,
            enabled=settings.allow_location_caching,
        )
        self.engine = LocationConfidenceEngine(settings, source, registry, cache=self.cache)
        self.policy = OutcomePolicy.from_settings(settings, cache=self.cache)
        self.retry_policy = retry_policy or RetryPolicy.from_settings(settings)
        self._stats = DetectionStatsTracker()
        self._last_outcome: Outcome | None = None

    async def detect(self, retry: bool = True) -> Outcome:
        """Detect the current site and resolve it into an Outcome.

        Raises:
            DetectionCancelledError: If the attempt was cancelled.
        """
        if retry:
            result = await detect_with_retry(self.engine, self.retry_policy)
        else:
            result = await self.engine.detect()

        # A result reused by the engine was already resolved, cached and counted.
        last = self._last_outcome
        if last is not None and last.result.attempt_id == result.attempt_id:
            return last

        outcome = await self.policy.resolve(result)
        self._stats.record(outcome)
        self._last_outcome = outcome
        return outcome

    async def cancel(self) -> bool:
        return await self.engine.cancel()

    async def confirm(self, outcome: Outcome, site_id: str) -> LocationContextRecord:
        """Confirm ``site_id`` for ``outcome`` (suggestion accepted or manual pick).

        Raises:
            ValueError: If the site is not registered or the outcome is an error.
        """
        site = await self._registry.get_site(site_id)
        if site is None:
            raise ValueError(f"Unknown site: {site_id!r}")
        record = await self.policy.confirm(outcome, site)
        self._stats.record_confirmation(record.detection_method)
        self.engine.forget_last_result()
        return record

    def decline(self, outcome: Outcome) -> Outcome:
        self.engine.forget_last_result()
        return self.policy.decline(outcome)

    async def clear_cache(self) -> None:
        await self.cache.clear()
        self.engine.forget_last_result()

    async def cache_stats(self) -> CacheStats:
        return await self.cache.stats()

    def stats(self) -> DetectionStats:
        return self._stats.snapshot()

    async def aclose(self) -> None:
        """Cancel in-flight work, release the sensor and close the store."""
        await self.engine.aclose()
        await self._store.close()
        logger.debug("Location session closed")

    async def __aenter__(self) -> LocationSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


async def open_session(
    settings: Settings | None,
    source: BasePositioningSource,
    registry: BaseSiteRegistry,
    cache_store: BaseCacheStore | None = None,
) -> LocationSession:
    """Build a LocationSession.

    Args:
        settings: Global settings. Loaded from .env if None.
        source: Positioning source adapter.
        registry: Site registry.
        cache_store: Cache backend. Built from settings if None.
    """
    settings = settings or Settings()
    store = cache_store or create_cache_store(settings)
    logger.info(
        "Opening location session (cache=%s, caching=%s, fingerprinting=%s)",
        settings.cache_backend,
        settings.allow_location_caching,
        settings.allow_wifi_fingerprinting,
    )
    return LocationSession(settings, source, registry, store)
