# src/registry/base_registry.py — v1
"""Abstract site registry interface.

The registry is authoritative and read-only from the engine's point of view.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from sitesense.core.models import Coordinate, Site


class BaseSiteRegistry(ABC):
    """Source of registered sites."""

    @abstractmethod
    async def list_sites_near(self, coordinate: Coordinate, radius_m: float) -> list[Site]:
        """Sites whose location lies within ``radius_m`` of ``coordinate``.

        Implementations may over-return (e.g. a bounding-box query); the
        ranker applies the exact great-circle cut.
        """

    @abstractmethod
    async def get_site(self, site_id: str) -> Site | None:
        """Site by id, or None if it is not registered."""

    @abstractmethod
    async def list_sites(self) -> list[Site]:
        """Every registered site (manual pick-list fallback)."""
