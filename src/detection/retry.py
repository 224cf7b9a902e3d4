# src/detection/retry.py — v1
"""Backoff retry for recoverable detection failures.

Only DETECTION_TIMEOUT and SENSOR_UNAVAILABLE are retried, following a
fixed delay schedule (default 1s, 2s, 5s). The number of retries is capped
by the schedule length; the last result is returned as-is so the caller
can still fall back to manual selection.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable

from sitesense.core.models import DetectionResult
from sitesense.detection.errors import is_retryable

if TYPE_CHECKING:
    from sitesense.config.settings import Settings
    from sitesense.detection.engine import LocationConfidenceEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Delays (seconds) before each retry; len(delays) is the retry cap."""

    delays: tuple[float, ...] = (1.0, 2.0, 5.0)

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(delays=tuple(settings.retry_schedule_list))

    @property
    def max_retries(self) -> int:
        return len(self.delays)


async def detect_with_retry(
    engine: LocationConfidenceEngine,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> DetectionResult:
    """Run ``engine.detect()`` and retry recoverable failures.

    Args:
        engine: Engine to drive.
        policy: Backoff schedule. Defaults to 1s/2s/5s.
        sleep: Awaitable delay (injected for tests).

    Returns:
        The first non-retryable result, or the last one once retries run out.

    Raises:
        DetectionCancelledError: Propagated from the engine.
    """
    policy = policy or RetryPolicy()
    attempts = 0

    while True:
        result = await engine.detect()
        attempts += 1
        if not is_retryable(result.reason) or attempts > policy.max_retries:
            if is_retryable(result.reason):
                logger.warning(
                    "Detection still failing after %d attempts (%s); giving up",
                    attempts, result.reason.value,  # type: ignore[union-attr]
                )
            return result

        delay = policy.delays[attempts - 1]
        logger.warning(
            "Detection %s (attempt %d/%d), retrying in %.1fs",
            result.reason.value, attempts, policy.max_retries + 1, delay,  # type: ignore[union-attr]
        )
        await sleep(delay)
