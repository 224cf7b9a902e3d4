# src/tracking/detection_stats.py — v1
"""In-session detection statistics.

An attempt counts as successful when it ends auto-confirmed or awaiting
confirmation, i.e. the engine produced a site without the picker.
"""

from __future__ import annotations

from sitesense.core.models import DetectionMethod, DetectionResult, ReasonCode
from sitesense.detection.outcome import Outcome, OutcomeState
from sitesense.tracking.models import DetectionStats

_SUCCESS_STATES = (OutcomeState.AUTO_CONFIRMED, OutcomeState.AWAITING_CONFIRMATION)


class DetectionStatsTracker:
    """Accumulates per-attempt counters; ``snapshot`` returns a copy."""

    def __init__(self) -> None:
        self._stats = DetectionStats()
        self._accuracy_sum = 0.0
        self._accuracy_count = 0

    def record(self, outcome: Outcome) -> None:
        """Account for one resolved attempt."""
        result: DetectionResult = outcome.result
        s = self._stats
        s.total_attempts += 1

        if outcome.state in _SUCCESS_STATES:
            s.successful_detections += 1
            s.last_successful_detection = result.completed_at
        if result.from_cache:
            s.wifi_cache_hits += 1
        if result.chosen_site is not None and result.method is DetectionMethod.GPS_ONLY:
            s.gps_only_detections += 1
        if result.reason is ReasonCode.DETECTION_TIMEOUT:
            s.timeouts += 1
        if result.reason is ReasonCode.PERMISSION_DENIED:
            s.permission_denials += 1

        if result.coordinate is not None:
            self._accuracy_sum += result.coordinate.accuracy_m
            self._accuracy_count += 1
            s.average_accuracy_m = self._accuracy_sum / self._accuracy_count

    def record_confirmation(self, method: DetectionMethod) -> None:
        """Account for a user confirmation; manual picks are counted."""
        if method is DetectionMethod.MANUAL:
            self._stats.manual_selections += 1

    def snapshot(self) -> DetectionStats:
        return self._stats.model_copy()

    def reset(self) -> None:
        self._stats = DetectionStats()
        self._accuracy_sum = 0.0
        self._accuracy_count = 0
