# src/detection/errors.py — v1
"""Detection error taxonomy and user-facing recovery hints."""

from __future__ import annotations

from sitesense.core.models import ReasonCode

RECOVERY_HINTS: dict[ReasonCode, str] = {
    ReasonCode.PERMISSION_DENIED: "Please enable location access in Settings",
    ReasonCode.NO_CANDIDATES_FOUND: "Try manual site selection",
    ReasonCode.DETECTION_TIMEOUT: "Try again in a moment",
    ReasonCode.SENSOR_UNAVAILABLE: "Make sure you're outdoors or near a window",
    ReasonCode.CACHE_CORRUPTION: "Clear the location cache and try again",
}

DESCRIPTIONS: dict[ReasonCode, str] = {
    ReasonCode.PERMISSION_DENIED: "Location permission is required for automatic site detection",
    ReasonCode.NO_CANDIDATES_FOUND: "No registered sites found in your area",
    ReasonCode.DETECTION_TIMEOUT: "Location detection timed out",
    ReasonCode.SENSOR_UNAVAILABLE: "Unable to determine your current location",
    ReasonCode.CACHE_CORRUPTION: "Location cache needs to be reset",
}

RETRYABLE_REASONS: frozenset[ReasonCode] = frozenset(
    {ReasonCode.DETECTION_TIMEOUT, ReasonCode.SENSOR_UNAVAILABLE}
)

# Opened by the presentation layer for PERMISSION_DENIED.
SETTINGS_DEEP_LINK = "app-settings:location"


def recovery_hint(reason: ReasonCode | None) -> str | None:
    """Hint shown next to a retry affordance or the manual picker."""
    if reason is None:
        return None
    return RECOVERY_HINTS[reason]


def is_retryable(reason: ReasonCode | None) -> bool:
    return reason in RETRYABLE_REASONS


class LocationDetectionError(Exception):
    """Base class for detection failures that carry a reason code."""

    reason: ReasonCode = ReasonCode.SENSOR_UNAVAILABLE

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or DESCRIPTIONS[self.reason])

    @property
    def recovery_hint(self) -> str:
        return RECOVERY_HINTS[self.reason]


class PermissionDeniedError(LocationDetectionError):
    """Location permission denied or restricted."""

    reason = ReasonCode.PERMISSION_DENIED


class SensorUnavailableError(LocationDetectionError):
    """Positioning hardware could not be acquired or failed mid-stream."""

    reason = ReasonCode.SENSOR_UNAVAILABLE


class DetectionCancelledError(Exception):
    """The in-flight attempt was cancelled; no result is produced."""
