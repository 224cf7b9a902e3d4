# src/positioning/replay_source.py — v1
"""Scripted positioning source.

Replays a fixed sequence of fixes with per-fix delays. Used by the CLI to
run a detection from command-line coordinates, and by tests to drive the
engine through timeouts, cancellation and degraded fixes. After the script
is exhausted the stream stays open and silent, like a sensor that has lost
signal.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence

from sitesense.core.models import Coordinate, PermissionStatus, WirelessObservation
from sitesense.detection.errors import SensorUnavailableError
from sitesense.positioning.base_source import BasePositioningSource

logger = logging.getLogger(__name__)


class ReplayPositioningSource(BasePositioningSource):
    """Positioning source backed by a script of (delay_s, Coordinate) pairs.

    Args:
        fixes: Fixes to emit, each after its delay from the previous one.
        observation: Wi-Fi observation returned by ``latest_observation``.
        permission: Initial permission status.
        grant_on_request: Result of ``request_permission`` when undetermined.
        fail_acquire: Make ``acquire`` raise SensorUnavailableError.
    """

    def __init__(
        self,
        fixes: Sequence[tuple[float, Coordinate]] = (),
        observation: WirelessObservation | None = None,
        permission: PermissionStatus = PermissionStatus.GRANTED,
        grant_on_request: bool = True,
        fail_acquire: bool = False,
    ) -> None:
        self._fixes = list(fixes)
        self._observation = observation
        self._permission = permission
        self._grant_on_request = grant_on_request
        self._fail_acquire = fail_acquire
        self._acquired = False
        self.acquire_count = 0
        self.release_count = 0
        self.fixes_emitted = 0

    @classmethod
    def single_fix(
        cls,
        coordinate: Coordinate,
        observation: WirelessObservation | None = None,
        delay_s: float = 0.0,
    ) -> ReplayPositioningSource:
        """Source that yields one fix and then goes quiet."""
        return cls(fixes=[(delay_s, coordinate)], observation=observation)

    @property
    def is_acquired(self) -> bool:
        return self._acquired

    async def permission_status(self) -> PermissionStatus:
        return self._permission

    async def request_permission(self) -> bool:
        if self._permission is PermissionStatus.NOT_DETERMINED:
            self._permission = (
                PermissionStatus.GRANTED if self._grant_on_request else PermissionStatus.DENIED
            )
        return self._permission is PermissionStatus.GRANTED

    async def acquire(self) -> None:
        if self._fail_acquire:
            raise SensorUnavailableError()
        self._acquired = True
        self.acquire_count += 1

    async def release(self) -> None:
        if self._acquired:
            self.release_count += 1
        self._acquired = False

    async def coordinates(self) -> AsyncIterator[Coordinate]:
        if not self._acquired:
            raise SensorUnavailableError("coordinates() read before acquire()")
        for delay_s, coordinate in self._fixes:
            if delay_s > 0:
                await asyncio.sleep(delay_s)
            if not self._acquired:
                return
            self.fixes_emitted += 1
            yield coordinate
        # Script exhausted: stay silent until the consumer gives up.
        await asyncio.Event().wait()

    async def latest_observation(self) -> WirelessObservation | None:
        return self._observation
