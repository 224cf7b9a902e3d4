# src/detection/ranker.py — v1
"""Candidate ranking: sites near a coordinate, nearest first."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from sitesense.core.geo import haversine_many_m
from sitesense.core.models import CandidateSite, Coordinate, Site

DEFAULT_MAX_RADIUS_M = 500.0
DEFAULT_HIGH_CONFIDENCE_RADIUS_M = 50.0


def rank(
    coordinate: Coordinate,
    sites: Sequence[Site],
    max_radius_m: float = DEFAULT_MAX_RADIUS_M,
    high_confidence_radius_m: float = DEFAULT_HIGH_CONFIDENCE_RADIUS_M,
) -> list[CandidateSite]:
    """Rank sites by great-circle distance from ``coordinate``.

    Sites farther than ``max_radius_m`` are dropped. Equal distances are
    ordered by ``site_id``. An empty list is a normal result and routes the
    flow to manual selection.

    Args:
        coordinate: Current position fix.
        sites: Registry sites to consider.
        max_radius_m: Exclusion radius.
        high_confidence_radius_m: Radius for the ``within_high_confidence`` flag.

    Returns:
        Candidates ordered by (distance, site_id).
    """
    if not sites:
        return []

    lats = np.fromiter((s.location.latitude for s in sites), dtype=np.float64, count=len(sites))
    lons = np.fromiter((s.location.longitude for s in sites), dtype=np.float64, count=len(sites))
    distances = haversine_many_m(coordinate.latitude, coordinate.longitude, lats, lons)

    candidates = [
        CandidateSite(
            site=site,
            distance_m=float(distance),
            within_high_confidence=bool(distance <= high_confidence_radius_m),
        )
        for site, distance in zip(sites, distances)
        if distance <= max_radius_m
    ]
    candidates.sort(key=lambda c: (c.distance_m, c.site_id))
    return candidates


def nearest(ranked: Sequence[CandidateSite]) -> CandidateSite | None:
    return ranked[0] if ranked else None


def find_candidate(ranked: Sequence[CandidateSite], site_id: str) -> CandidateSite | None:
    """Candidate for ``site_id`` in a ranked list, if present."""
    for candidate in ranked:
        if candidate.site_id == site_id:
            return candidate
    return None
