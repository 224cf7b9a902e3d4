# src/positioning/base_source.py — v1
"""Abstract positioning source interface.

Adapters wrap the platform location and Wi-Fi APIs. The engine drives
them with a strict acquire/release discipline: ``acquire`` before reading
``coordinates()``, ``release`` once the attempt resolves, times out,
fails or is cancelled.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from sitesense.core.models import Coordinate, PermissionStatus, WirelessObservation


class BasePositioningSource(ABC):
    """Unified interface for live coordinates and Wi-Fi observations."""

    @abstractmethod
    async def permission_status(self) -> PermissionStatus:
        """Current location permission."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """Prompt for permission. True when granted."""

    @abstractmethod
    async def acquire(self) -> None:
        """Start the sensor.

        Raises:
            SensorUnavailableError: If the sensor cannot be started.
        """

    @abstractmethod
    async def release(self) -> None:
        """Stop the sensor. Must be safe to call when not acquired."""

    @abstractmethod
    def coordinates(self) -> AsyncIterator[Coordinate]:
        """Stream of position fixes while acquired."""

    @abstractmethod
    async def latest_observation(self) -> WirelessObservation | None:
        """Most recent Wi-Fi observation, if the platform exposes one."""
