# src/tracking/models.py — v1
"""Tracking domain models: DetectionStats."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, computed_field


class DetectionStats(BaseModel):
    """Aggregated detection counters for one session."""

    total_attempts: int = 0
    successful_detections: int = 0
    wifi_cache_hits: int = 0
    gps_only_detections: int = 0
    manual_selections: int = 0
    timeouts: int = 0
    permission_denials: int = 0
    average_accuracy_m: float | None = None
    last_successful_detection: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.successful_detections / self.total_attempts

    @computed_field  # type: ignore[prop-decorator]
    @property
    def wifi_cache_efficiency(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.wifi_cache_hits / self.total_attempts
