# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
Value objects are frozen: a detection attempt hands them around by value.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, NewType

from pydantic import BaseModel, ConfigDict, Field

FingerprintKey = NewType("FingerprintKey", str)


def utcnow() -> datetime:
    """Timezone-aware current time (UTC)."""
    return datetime.now(timezone.utc)


# === ENUMS ===


class ConfidenceTier(str, Enum):
    """How trustworthy a detected site match is."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


class DetectionMethod(str, Enum):
    """Which signal(s) produced a detection result."""

    WIFI_CACHE = "wifi_cache"
    WIFI_GPS_HYBRID = "wifi_gps_hybrid"
    GPS_ONLY = "gps_only"
    MANUAL = "manual"
    NONE = "none"

    @property
    def base_confidence(self) -> float:
        return _METHOD_CONFIDENCE[self]


_METHOD_CONFIDENCE: dict[DetectionMethod, float] = {
    DetectionMethod.WIFI_CACHE: 0.95,
    DetectionMethod.WIFI_GPS_HYBRID: 0.90,
    DetectionMethod.GPS_ONLY: 0.75,
    DetectionMethod.MANUAL: 1.0,
    DetectionMethod.NONE: 0.0,
}


class ReasonCode(str, Enum):
    """Why a detection attempt ended without (or with degraded) positioning."""

    PERMISSION_DENIED = "permission_denied"
    NO_CANDIDATES_FOUND = "no_candidates_found"
    DETECTION_TIMEOUT = "detection_timeout"
    SENSOR_UNAVAILABLE = "sensor_unavailable"
    CACHE_CORRUPTION = "cache_corruption"


class PermissionStatus(str, Enum):
    """Location permission as reported by the positioning source."""

    GRANTED = "granted"
    DENIED = "denied"
    RESTRICTED = "restricted"
    NOT_DETERMINED = "not_determined"


# === SENSOR INPUTS ===


class Coordinate(BaseModel):
    """Live position fix with its horizontal accuracy radius."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    accuracy_m: float = Field(ge=0.0)
    captured_at: datetime = Field(default_factory=utcnow)


class WirelessObservation(BaseModel):
    """Raw Wi-Fi environment reading. Never persisted unhashed."""

    model_config = ConfigDict(frozen=True)

    ssid: str | None = None
    bssid: str | None = None
    signal_strength: int | None = None
    observed_at: datetime = Field(default_factory=utcnow)

    def __repr__(self) -> str:
        # Keep raw identifiers out of logs and tracebacks.
        return f"WirelessObservation(observed_at={self.observed_at.isoformat()})"

    def __str__(self) -> str:
        return self.__repr__()


# === REFERENCE DATA ===


class GeoPoint(BaseModel):
    """Fixed position of a registered site."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class Site(BaseModel):
    """A registered physical site, owned by the external site registry."""

    model_config = ConfigDict(frozen=True)

    site_id: str
    name: str
    address: str = ""
    location: GeoPoint
    metadata: dict[str, Any] = Field(default_factory=dict)


# === DETECTION OUTPUT ===


class CandidateSite(BaseModel):
    """A site ranked against the current coordinate for one attempt."""

    model_config = ConfigDict(frozen=True)

    site: Site
    distance_m: float
    within_high_confidence: bool

    @property
    def site_id(self) -> str:
        return self.site.site_id


class DetectionResult(BaseModel):
    """Outcome of exactly one detection attempt."""

    model_config = ConfigDict(frozen=True)

    attempt_id: str
    chosen_site: Site | None = None
    candidates: list[CandidateSite] = Field(default_factory=list)
    tier: ConfidenceTier = ConfidenceTier.NONE
    method: DetectionMethod = DetectionMethod.NONE
    elapsed_ms: int = 0
    from_cache: bool = False
    reason: ReasonCode | None = None
    coordinate: Coordinate | None = None
    fingerprint_key: str | None = None
    wifi_observed: bool = False
    completed_at: datetime = Field(default_factory=utcnow)

    @property
    def alternative_site_ids(self) -> list[str]:
        """Candidate ids other than the chosen site, nearest first."""
        chosen = self.chosen_site.site_id if self.chosen_site else None
        return [c.site_id for c in self.candidates if c.site_id != chosen]


# === PERSISTENCE ===


class LocationContextRecord(BaseModel):
    """Location context attached to a reported issue on confirmation.

    Serialized with camelCase aliases (``model_dump(by_alias=True)``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    detected_at: datetime = Field(alias="detectedAt")
    latitude: float | None = None
    longitude: float | None = None
    accuracy: float | None = None
    wifi_fingerprint: str | None = Field(default=None, alias="wifiFingerprint")
    site_id: str = Field(alias="siteId")
    detection_method: DetectionMethod = Field(alias="detectionMethod")
    confidence: float = Field(ge=0.0, le=1.0)
    alternative_site_ids: list[str] = Field(default_factory=list, alias="alternativeSiteIds")
    user_confirmed: bool = Field(alias="userConfirmed")
