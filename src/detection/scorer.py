# src/detection/scorer.py — v1
"""Confidence scoring: cache hit + ranked candidates + accuracy -> tier.

Rules, evaluated in order:
  1. Cache hit corroborated inside the high-confidence radius, or cache hit
     with positioning unavailable/degraded -> HIGH (wifi_cache / hybrid).
  2. Nearest candidate inside the high-confidence radius with a strict
     accuracy fix -> HIGH (gps_only / hybrid).
  3. Nearest candidate inside the medium radius -> MEDIUM.
  4. Any candidate -> LOW, nothing pre-selected.
  5. Otherwise -> NONE.

A cache hit that an accurate fix places outside the high-confidence radius
loses to rules 2-5.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sitesense.config.settings import Settings
from sitesense.core.models import CandidateSite, ConfidenceTier, DetectionMethod, Site
from sitesense.detection.ranker import find_candidate, nearest


@dataclass(frozen=True)
class ScoringThresholds:
    """Tunable cut-offs for the decision table (meters)."""

    high_confidence_radius_m: float = 50.0
    medium_confidence_radius_m: float = 150.0
    accuracy_threshold_m: float = 20.0
    min_accuracy_m: float = 100.0

    @classmethod
    def from_settings(cls, settings: Settings) -> ScoringThresholds:
        return cls(
            high_confidence_radius_m=settings.high_confidence_radius_m,
            medium_confidence_radius_m=settings.medium_confidence_radius_m,
            accuracy_threshold_m=settings.accuracy_threshold_m,
            min_accuracy_m=settings.min_accuracy_m,
        )


@dataclass(frozen=True)
class ScoreDecision:
    tier: ConfidenceTier
    method: DetectionMethod
    chosen_site: Site | None = None


_NO_MATCH = ScoreDecision(ConfidenceTier.NONE, DetectionMethod.NONE, None)


def score(
    cache_hit: Site | None,
    ranked: Sequence[CandidateSite],
    accuracy_m: float | None,
    thresholds: ScoringThresholds | None = None,
    wifi_observed: bool = False,
) -> ScoreDecision:
    """Decide tier, method and chosen site for one attempt.

    Pure function of its inputs.

    Args:
        cache_hit: Site resolved from the fingerprint cache, if any.
        ranked: Candidates from ``rank``, nearest first.
        accuracy_m: Accuracy of the fix used for ranking; None when no fix.
        thresholds: Decision cut-offs. Defaults to ScoringThresholds().
        wifi_observed: Whether a Wi-Fi observation existed this attempt.

    Returns:
        ScoreDecision.
    """
    t = thresholds or ScoringThresholds()

    # Rule 1
    if cache_hit is not None:
        corroborating = find_candidate(ranked, cache_hit.site_id)
        corroborated = (
            corroborating is not None
            and corroborating.distance_m <= t.high_confidence_radius_m
        )
        degraded = accuracy_m is None or accuracy_m > t.min_accuracy_m
        if corroborated:
            return ScoreDecision(ConfidenceTier.HIGH, DetectionMethod.WIFI_GPS_HYBRID, cache_hit)
        if degraded:
            return ScoreDecision(ConfidenceTier.HIGH, DetectionMethod.WIFI_CACHE, cache_hit)

    best = nearest(ranked)
    if best is None:
        return _NO_MATCH

    # Rule 2
    if (
        best.distance_m <= t.high_confidence_radius_m
        and accuracy_m is not None
        and accuracy_m <= t.accuracy_threshold_m
    ):
        method = DetectionMethod.WIFI_GPS_HYBRID if wifi_observed else DetectionMethod.GPS_ONLY
        return ScoreDecision(ConfidenceTier.HIGH, method, best.site)

    # Rule 3
    if best.distance_m <= t.medium_confidence_radius_m:
        return ScoreDecision(ConfidenceTier.MEDIUM, DetectionMethod.GPS_ONLY, best.site)

    # Rule 4
    return ScoreDecision(ConfidenceTier.LOW, DetectionMethod.GPS_ONLY, None)
