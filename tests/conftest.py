# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a small site fleet, synthetic fixes placed at known offsets from
it, tight-timeout settings and temp-dir cache stores. No network I/O.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from sitesense.cache.fingerprint_cache import FingerprintCache
from sitesense.cache.json_store import JsonCacheStore
from sitesense.config.settings import Settings
from sitesense.core.geo import offset_point
from sitesense.core.models import Coordinate, GeoPoint, Site, WirelessObservation
from sitesense.registry.memory_registry import InMemorySiteRegistry

HQ_LAT = 48.8566
HQ_LON = 2.3522


def coordinate_near(
    site: Site, north_m: float = 0.0, east_m: float = 0.0, accuracy_m: float = 10.0
) -> Coordinate:
    """Fix displaced from ``site`` by local offsets in meters."""
    lat, lon = offset_point(site.location.latitude, site.location.longitude, north_m, east_m)
    return Coordinate(latitude=lat, longitude=lon, accuracy_m=accuracy_m)


def make_site(site_id: str, north_m: float = 0.0, east_m: float = 0.0) -> Site:
    lat, lon = offset_point(HQ_LAT, HQ_LON, north_m, east_m)
    return Site(
        site_id=site_id,
        name=f"Site {site_id}",
        location=GeoPoint(latitude=lat, longitude=lon),
    )


# === FIXTURES: Sites ===


@pytest.fixture
def site_a() -> Site:
    return make_site("site_a")


@pytest.fixture
def site_b() -> Site:
    """300m east of site_a."""
    return make_site("site_b", east_m=300.0)


@pytest.fixture
def site_far() -> Site:
    """5km north of site_a, outside any detection radius."""
    return make_site("site_far", north_m=5000.0)


@pytest.fixture
def registry(site_a, site_b, site_far) -> InMemorySiteRegistry:
    return InMemorySiteRegistry([site_a, site_b, site_far])


# === FIXTURES: Sensor inputs ===


@pytest.fixture
def office_wifi() -> WirelessObservation:
    return WirelessObservation(ssid="Site-A Office", bssid="AA:BB:CC:DD:EE:01", signal_strength=-52)


@pytest.fixture
def stale_wifi() -> WirelessObservation:
    return WirelessObservation(
        ssid="Site-A Office",
        bssid="AA:BB:CC:DD:EE:01",
        observed_at=datetime.now(timezone.utc) - timedelta(minutes=10),
    )


# === FIXTURES: Settings ===


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with short timeouts and no .env lookup."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        detection_timeout_s=0.3,
        corroboration_timeout_s=0.1,
        permission_request_timeout_s=0.2,
        result_reuse_window_s=0.0,
        retry_schedule="0,0",
        cache_root=tmp_path / "cache",
    )


# === FIXTURES: Cache ===


@pytest.fixture
def json_store(tmp_path) -> JsonCacheStore:
    return JsonCacheStore(cache_root=tmp_path / "fp_cache")


@pytest.fixture
def fingerprint_cache(json_store) -> FingerprintCache:
    return FingerprintCache(json_store, retention_days=30, max_entries=100)


# === FIXTURES: Helpers ===


@pytest.fixture
def near():
    """Factory: ``near(site, north_m=, east_m=, accuracy_m=) -> Coordinate``."""
    return coordinate_near
