# src/registry/memory_registry.py — v1
"""In-memory site registry, optionally loaded from a JSON file.

JSON layout: a list of objects
``{"site_id", "name", "address", "latitude", "longitude", "metadata"}``
or objects already shaped like ``Site`` (with a nested ``location``).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import numpy as np

from sitesense.core.geo import haversine_many_m
from sitesense.core.models import Coordinate, GeoPoint, Site
from sitesense.registry.base_registry import BaseSiteRegistry

logger = logging.getLogger(__name__)


class InMemorySiteRegistry(BaseSiteRegistry):
    """Registry holding a small fleet of sites in memory."""

    def __init__(self, sites: Iterable[Site] = ()) -> None:
        self._sites: dict[str, Site] = {}
        for site in sites:
            if site.site_id in self._sites:
                raise ValueError(f"Duplicate site_id: {site.site_id!r}")
            self._sites[site.site_id] = site

    def __len__(self) -> int:
        return len(self._sites)

    async def list_sites_near(self, coordinate: Coordinate, radius_m: float) -> list[Site]:
        sites = list(self._sites.values())
        if not sites:
            return []
        lats = np.array([s.location.latitude for s in sites])
        lons = np.array([s.location.longitude for s in sites])
        distances = haversine_many_m(coordinate.latitude, coordinate.longitude, lats, lons)
        return [site for site, d in zip(sites, distances) if d <= radius_m]

    async def get_site(self, site_id: str) -> Site | None:
        return self._sites.get(site_id)

    async def list_sites(self) -> list[Site]:
        return sorted(self._sites.values(), key=lambda s: s.site_id)


def load_sites(path: Path | str) -> InMemorySiteRegistry:
    """Build a registry from a JSON file.

    Raises:
        ValueError: If the file is not a JSON list of site objects.
    """
    raw = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"Expected a JSON list of sites in {path}")
    sites = [_parse_site(item) for item in raw]
    logger.info("Loaded %d sites from %s", len(sites), path)
    return InMemorySiteRegistry(sites)


def _parse_site(item: dict[str, Any]) -> Site:
    if "location" in item:
        return Site(**item)
    return Site(
        site_id=str(item["site_id"]),
        name=item.get("name", str(item["site_id"])),
        address=item.get("address", ""),
        location=GeoPoint(latitude=item["latitude"], longitude=item["longitude"]),
        metadata=item.get("metadata", {}),
    )
