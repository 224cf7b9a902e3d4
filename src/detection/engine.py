# src/detection/engine.py — v1
"""Location Confidence Engine: one detection attempt, end to end.

Stages of an attempt:
  permission -> cache_lookup -> (cache_hit | positioning_wait)
             -> ranking -> scoring -> resolved

Sensor and timing failures never escape as exceptions; they come back as a
DetectionResult with tier NONE and a reason code. Only cancellation is
raised (DetectionCancelledError), and no result is produced for it.

At most one attempt is in flight per engine: starting a new one cancels
the previous one. The positioning source is released on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
import weakref
from contextlib import aclosing
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from sitesense.cache.fingerprint import fingerprint_or_none
from sitesense.core.models import (
    ConfidenceTier,
    Coordinate,
    DetectionResult,
    PermissionStatus,
    ReasonCode,
    Site,
    WirelessObservation,
    utcnow,
)
from sitesense.detection.errors import DetectionCancelledError, SensorUnavailableError
from sitesense.detection.ranker import rank
from sitesense.detection.scorer import ScoringThresholds, score
from sitesense.logging.context import set_attempt_context, set_site_context, set_stage

if TYPE_CHECKING:
    from sitesense.cache.fingerprint_cache import FingerprintCache
    from sitesense.config.settings import Settings
    from sitesense.positioning.base_source import BasePositioningSource
    from sitesense.registry.base_registry import BaseSiteRegistry

logger = logging.getLogger(__name__)


class LocationConfidenceEngine:
    """Fuses the fingerprint cache with live positioning into a DetectionResult.

    Args:
        settings: Thresholds, timeouts and privacy toggles.
        source: Positioning source (shared sensor).
        registry: Authoritative site registry.
        cache: Fingerprint cache. None disables cache lookups.
        clock: Wall clock used to age Wi-Fi observations.
    """

    def __init__(
        self,
        settings: Settings,
        source: BasePositioningSource,
        registry: BaseSiteRegistry,
        cache: FingerprintCache | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings
        self._source = source
        self._registry = registry
        self._cache = cache
        self._clock = clock
        self._thresholds = ScoringThresholds.from_settings(settings)
        self._current: asyncio.Task[DetectionResult] | None = None
        self._cancel_requested: weakref.WeakSet[asyncio.Task[DetectionResult]] = weakref.WeakSet()
        self._last_result: DetectionResult | None = None
        self._last_result_at = 0.0
        self._closed = False
        self._start_lock = asyncio.Lock()

    @property
    def in_flight(self) -> bool:
        return self._current is not None and not self._current.done()

    async def detect(self) -> DetectionResult:
        """Run one detection attempt.

        A recent successful result is returned as-is within
        RESULT_REUSE_WINDOW_S. Any attempt already in flight is cancelled.

        Raises:
            DetectionCancelledError: If this attempt was cancelled via
                ``cancel()`` or superseded by a newer ``detect()``.
            RuntimeError: If the engine has been closed.
        """
        if self._closed:
            raise RuntimeError("LocationConfidenceEngine is closed")

        reused = self._reusable_result()
        if reused is not None and not self.in_flight:
            logger.debug("Reusing detection result %s", reused.attempt_id)
            return reused

        # Cancel-then-start is atomic: a later caller always supersedes
        # the task started by an earlier one.
        async with self._start_lock:
            if self._closed:
                raise RuntimeError("LocationConfidenceEngine is closed")
            if await self._cancel_current():
                logger.info("Superseded in-flight detection attempt")
            task = asyncio.create_task(self._run_attempt())
            self._current = task
        try:
            result = await task
        except asyncio.CancelledError:
            if task in self._cancel_requested:
                raise DetectionCancelledError("Detection attempt cancelled") from None
            raise
        finally:
            if self._current is task:
                self._current = None

        if result.reason is None:
            self._last_result = result
            self._last_result_at = time.monotonic()
        return result

    async def cancel(self) -> bool:
        """Cancel the in-flight attempt, waiting until the sensor is released.

        Returns:
            True if an attempt was cancelled.
        """
        return await self._cancel_current()

    def forget_last_result(self) -> None:
        """Drop the reusable result (after a confirmation or cache clear)."""
        self._last_result = None

    async def aclose(self) -> None:
        """Cancel any attempt and release the sensor. Idempotent."""
        self._closed = True
        await self._cancel_current()
        await self._source.release()

    # --- Attempt ---

    async def _run_attempt(self) -> DetectionResult:
        attempt_id = uuid.uuid4().hex
        set_attempt_context(attempt_id)
        started = time.monotonic()
        s = self._settings

        set_stage("permission")
        if not await self._ensure_permission():
            logger.warning("Location permission denied; detection aborted")
            return self._finish(attempt_id, started, reason=ReasonCode.PERMISSION_DENIED)

        set_stage("cache_lookup")
        observation = await self._fresh_observation()
        key = fingerprint_or_none(observation, salt=s.fingerprint_salt)
        cache_site = await self._lookup_cached_site(key) if key else None

        if cache_site is not None:
            set_stage("cache_hit")
            set_site_context(cache_site.site_id)
            # Positioning only corroborates a cache hit; it must not hold it up.
            budget = s.corroboration_timeout_s
        else:
            set_stage("positioning_wait")
            budget = s.detection_timeout_s
        elapsed = time.monotonic() - started
        budget = max(0.0, min(budget, s.detection_timeout_s - elapsed))

        coordinate, fix_reason = await self._acquire_fix(budget)

        set_stage("ranking")
        ranked = []
        if coordinate is not None:
            sites = await self._registry.list_sites_near(coordinate, s.max_detection_radius_m)
            ranked = rank(
                coordinate,
                sites,
                max_radius_m=s.max_detection_radius_m,
                high_confidence_radius_m=s.high_confidence_radius_m,
            )

        set_stage("scoring")
        decision = score(
            cache_site,
            ranked,
            coordinate.accuracy_m if coordinate is not None else None,
            self._thresholds,
            wifi_observed=key is not None,
        )

        reason: ReasonCode | None = None
        if cache_site is None and fix_reason is not None:
            reason = fix_reason
        elif coordinate is not None and not ranked and decision.tier is ConfidenceTier.NONE:
            reason = ReasonCode.NO_CANDIDATES_FOUND

        from_cache = (
            cache_site is not None
            and decision.chosen_site is not None
            and decision.chosen_site.site_id == cache_site.site_id
        )

        set_stage("resolved")
        set_site_context(decision.chosen_site.site_id if decision.chosen_site else None)
        result = self._finish(
            attempt_id,
            started,
            chosen_site=decision.chosen_site,
            candidates=ranked,
            tier=decision.tier,
            method=decision.method,
            from_cache=from_cache,
            reason=reason,
            coordinate=coordinate,
            fingerprint_key=key,
            wifi_observed=key is not None,
        )
        logger.info(
            "Detection resolved: tier=%s method=%s site=%s candidates=%d elapsed=%dms",
            result.tier.value,
            result.method.value,
            result.chosen_site.site_id if result.chosen_site else None,
            len(ranked),
            result.elapsed_ms,
        )
        return result

    async def _ensure_permission(self) -> bool:
        status = await self._source.permission_status()
        if status is PermissionStatus.GRANTED:
            return True
        if status is PermissionStatus.NOT_DETERMINED:
            try:
                return await asyncio.wait_for(
                    self._source.request_permission(),
                    timeout=self._settings.permission_request_timeout_s,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Permission request timed out after %.0fs",
                    self._settings.permission_request_timeout_s,
                )
                return False
        return False

    async def _fresh_observation(self) -> WirelessObservation | None:
        if not self._settings.allow_wifi_fingerprinting:
            return None
        observation = await self._source.latest_observation()
        if observation is None:
            return None
        age_s = (self._clock() - observation.observed_at).total_seconds()
        if age_s > self._settings.observation_staleness_s:
            logger.debug("Ignoring stale Wi-Fi observation (%.0fs old)", age_s)
            return None
        return observation

    async def _lookup_cached_site(self, key: str) -> Site | None:
        if self._cache is None or not self._cache.enabled:
            return None
        budget_s = self._settings.cache_lookup_budget_ms / 1000.0
        try:
            site_id = await asyncio.wait_for(self._cache.lookup(key), timeout=budget_s)
        except asyncio.TimeoutError:
            logger.warning(
                "Cache lookup exceeded %dms budget; treating as miss",
                self._settings.cache_lookup_budget_ms,
            )
            return None
        if site_id is None:
            return None
        site = await self._registry.get_site(site_id)
        if site is None:
            logger.info("Cached site %s is no longer registered; ignoring", site_id)
            return None
        logger.debug("Cache hit for site %s", site_id)
        return site

    async def _acquire_fix(self, budget_s: float) -> tuple[Coordinate | None, ReasonCode | None]:
        """First fix meeting MIN_ACCURACY_M within ``budget_s``.

        Falls back to the best coarse fix seen when the budget runs out.
        The sensor is released on every path, including cancellation.
        """
        coarse: list[Coordinate] = []
        try:
            await self._source.acquire()
            coordinate = await asyncio.wait_for(self._first_accurate_fix(coarse), timeout=budget_s)
            return coordinate, None
        except asyncio.TimeoutError:
            if coarse:
                logger.info("Using degraded fix (accuracy %.0fm)", coarse[0].accuracy_m)
                return coarse[0], None
            logger.warning("No position fix within %.1fs", budget_s)
            return None, ReasonCode.DETECTION_TIMEOUT
        except SensorUnavailableError as e:
            logger.warning("Positioning unavailable: %s", e)
            return (coarse[0] if coarse else None), ReasonCode.SENSOR_UNAVAILABLE
        finally:
            await self._source.release()

    async def _first_accurate_fix(self, coarse: list[Coordinate]) -> Coordinate:
        limit = self._settings.min_accuracy_m
        async with aclosing(self._source.coordinates()) as stream:
            async for coordinate in stream:
                if coordinate.accuracy_m <= limit:
                    return coordinate
                if not coarse or coordinate.accuracy_m < coarse[0].accuracy_m:
                    coarse[:] = [coordinate]
        if coarse:
            return coarse[0]
        raise SensorUnavailableError("Positioning stream ended without a fix")

    # --- Helpers ---

    def _finish(self, attempt_id: str, started: float, **fields: object) -> DetectionResult:
        elapsed_ms = int((time.monotonic() - started) * 1000)
        return DetectionResult(attempt_id=attempt_id, elapsed_ms=elapsed_ms, **fields)  # type: ignore[arg-type]

    def _reusable_result(self) -> DetectionResult | None:
        window = self._settings.result_reuse_window_s
        if window <= 0 or self._last_result is None:
            return None
        if time.monotonic() - self._last_result_at >= window:
            return None
        return self._last_result

    async def _cancel_current(self) -> bool:
        task = self._current
        if task is None or task.done():
            return False
        self._cancel_requested.add(task)
        task.cancel()
        await asyncio.wait([task])
        return True
