# src/core/geo.py — v1
"""Great-circle distance helpers.

Scalar haversine for single pairs and a numpy-vectorized variant used by
the candidate ranker to measure one fix against the whole site fleet.
"""

from __future__ import annotations

import math

import numpy as np

# Mean Earth radius (IUGG), meters.
EARTH_RADIUS_M = 6_371_008.8


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two WGS84 points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def haversine_many_m(
    lat: float, lon: float, lats: np.ndarray, lons: np.ndarray
) -> np.ndarray:
    """Distances in meters from one point to many.

    Args:
        lat: Origin latitude in degrees.
        lon: Origin longitude in degrees.
        lats: 1D array of target latitudes.
        lons: 1D array of target longitudes, same shape as ``lats``.

    Returns:
        1D float64 array of distances, aligned with the inputs.

    Raises:
        ValueError: If ``lats`` and ``lons`` differ in shape.
    """
    lats = np.asarray(lats, dtype=np.float64)
    lons = np.asarray(lons, dtype=np.float64)
    if lats.shape != lons.shape:
        raise ValueError(f"Shape mismatch: {lats.shape} vs {lons.shape}")
    if lats.size == 0:
        return np.empty(0, dtype=np.float64)

    phi1 = np.radians(lat)
    phi2 = np.radians(lats)
    d_phi = phi2 - phi1
    d_lambda = np.radians(lons - lon)

    a = np.sin(d_phi / 2.0) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_M * np.arcsin(np.minimum(1.0, np.sqrt(a)))


def offset_point(lat: float, lon: float, north_m: float, east_m: float) -> tuple[float, float]:
    """Approximate point displaced by local north/east offsets in meters.

    Flat-earth approximation; fine for the sub-kilometer offsets used when
    placing synthetic fixes around a site.
    """
    d_lat = north_m / EARTH_RADIUS_M
    d_lon = east_m / (EARTH_RADIUS_M * math.cos(math.radians(lat)))
    return lat + math.degrees(d_lat), lon + math.degrees(d_lon)
