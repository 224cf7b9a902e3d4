# src/detection/outcome.py — v1
"""Outcome policy: DetectionResult -> user-facing resolution mode.

  HIGH + chosen site      -> AUTO_CONFIRMED (cache written immediately)
  MEDIUM                  -> AWAITING_CONFIRMATION (cache written on confirm)
  LOW / NONE              -> MANUAL_SELECTION_REQUIRED (cache written on pick)
  permission denied       -> ERROR (recovery hint + settings link)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from sitesense.core.models import (
    CandidateSite,
    ConfidenceTier,
    DetectionMethod,
    DetectionResult,
    LocationContextRecord,
    ReasonCode,
    Site,
    utcnow,
)
from sitesense.detection.errors import SETTINGS_DEEP_LINK, is_retryable, recovery_hint

if TYPE_CHECKING:
    from sitesense.cache.fingerprint_cache import FingerprintCache
    from sitesense.config.settings import Settings

logger = logging.getLogger(__name__)

TIER_CONFIDENCE_FACTOR: dict[ConfidenceTier, float] = {
    ConfidenceTier.HIGH: 1.0,
    ConfidenceTier.MEDIUM: 0.7,
    ConfidenceTier.LOW: 0.4,
    ConfidenceTier.NONE: 0.0,
}

_COORDINATE_DECIMALS = 4


class OutcomeState(str, Enum):
    AUTO_CONFIRMED = "auto_confirmed"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    MANUAL_SELECTION_REQUIRED = "manual_selection_required"
    ERROR = "error"


class Outcome(BaseModel):
    """Deterministic resolution handed to the presentation layer."""

    model_config = ConfigDict(frozen=True)

    state: OutcomeState
    result: DetectionResult
    suggested_site: Site | None = None
    options: list[CandidateSite] = Field(default_factory=list)
    reason: ReasonCode | None = None
    recovery_hint: str | None = None
    settings_link: str | None = None
    retryable: bool = False
    record: LocationContextRecord | None = None


def confidence_score(tier: ConfidenceTier, method: DetectionMethod) -> float:
    """Map (tier, method) onto the [0, 1] confidence stored with an issue."""
    if method is DetectionMethod.MANUAL:
        return 1.0
    return round(method.base_confidence * TIER_CONFIDENCE_FACTOR[tier], 4)


class OutcomePolicy:
    """Turns detection results into outcomes and owns cache writes on confirmation.

    Args:
        cache: Fingerprint cache to reinforce. None disables writes.
        anonymize: Round persisted coordinates to 4 decimals (~11m).
    """

    def __init__(self, cache: FingerprintCache | None = None, anonymize: bool = True) -> None:
        self._cache = cache
        self._anonymize = anonymize

    @classmethod
    def from_settings(cls, settings: Settings, cache: FingerprintCache | None = None) -> OutcomePolicy:
        return cls(cache=cache, anonymize=settings.anonymize_location_data)

    async def resolve(self, result: DetectionResult) -> Outcome:
        """Map a result to its outcome state; auto-confirmed sites reinforce the cache."""
        if result.reason is ReasonCode.PERMISSION_DENIED:
            logger.info("Outcome: error (%s)", result.reason.value)
            return Outcome(
                state=OutcomeState.ERROR,
                result=result,
                reason=result.reason,
                recovery_hint=recovery_hint(result.reason),
                settings_link=SETTINGS_DEEP_LINK,
            )

        if result.tier is ConfidenceTier.HIGH and result.chosen_site is not None:
            await self._remember(result.fingerprint_key, result.chosen_site.site_id)
            record = self.build_record(
                result, result.chosen_site, result.method, user_confirmed=False
            )
            logger.info("Outcome: auto_confirmed %s", result.chosen_site.site_id)
            return Outcome(
                state=OutcomeState.AUTO_CONFIRMED,
                result=result,
                suggested_site=result.chosen_site,
                options=result.candidates,
                record=record,
            )

        if result.tier is ConfidenceTier.MEDIUM and result.chosen_site is not None:
            logger.info("Outcome: awaiting_confirmation %s", result.chosen_site.site_id)
            return Outcome(
                state=OutcomeState.AWAITING_CONFIRMATION,
                result=result,
                suggested_site=result.chosen_site,
                options=result.candidates,
            )

        logger.info(
            "Outcome: manual_selection_required (%d options, reason=%s)",
            len(result.candidates),
            result.reason.value if result.reason else None,
        )
        return self._manual(result)

    async def confirm(self, outcome: Outcome, site: Site) -> LocationContextRecord:
        """Record the user's explicit choice and reinforce the cache.

        Accepting the suggested site keeps the detection method; any other
        pick is a manual selection.

        Raises:
            ValueError: If the outcome is an error state.
        """
        if outcome.state is OutcomeState.ERROR:
            raise ValueError("Cannot confirm a site on an error outcome")

        result = outcome.result
        accepted_suggestion = (
            outcome.suggested_site is not None
            and outcome.suggested_site.site_id == site.site_id
        )
        method = result.method if accepted_suggestion else DetectionMethod.MANUAL

        already_cached = outcome.state is OutcomeState.AUTO_CONFIRMED and accepted_suggestion
        if not already_cached:
            await self._remember(result.fingerprint_key, site.site_id)

        logger.info("User confirmed site %s (method=%s)", site.site_id, method.value)
        return self.build_record(result, site, method, user_confirmed=True)

    def decline(self, outcome: Outcome) -> Outcome:
        """User rejected the suggested site: fall back to the pick-list.

        Raises:
            ValueError: If there is no suggestion to decline.
        """
        if outcome.state not in (OutcomeState.AWAITING_CONFIRMATION, OutcomeState.AUTO_CONFIRMED):
            raise ValueError(f"Nothing to decline in state {outcome.state.value!r}")
        return self._manual(outcome.result)

    def build_record(
        self,
        result: DetectionResult,
        site: Site,
        method: DetectionMethod,
        user_confirmed: bool,
    ) -> LocationContextRecord:
        """Persistence record for ``site`` chosen out of ``result``."""
        coordinate = result.coordinate
        latitude = longitude = accuracy = None
        if coordinate is not None:
            latitude, longitude = coordinate.latitude, coordinate.longitude
            if self._anonymize:
                latitude = round(latitude, _COORDINATE_DECIMALS)
                longitude = round(longitude, _COORDINATE_DECIMALS)
            accuracy = coordinate.accuracy_m

        tier = ConfidenceTier.HIGH if method is DetectionMethod.MANUAL else result.tier
        return LocationContextRecord(
            detected_at=utcnow(),
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            wifi_fingerprint=result.fingerprint_key,
            site_id=site.site_id,
            detection_method=method,
            confidence=confidence_score(tier, method),
            alternative_site_ids=[
                c.site_id for c in result.candidates if c.site_id != site.site_id
            ],
            user_confirmed=user_confirmed,
        )

    def _manual(self, result: DetectionResult) -> Outcome:
        return Outcome(
            state=OutcomeState.MANUAL_SELECTION_REQUIRED,
            result=result,
            options=result.candidates,
            reason=result.reason,
            recovery_hint=recovery_hint(result.reason),
            retryable=is_retryable(result.reason),
        )

    async def _remember(self, key: str | None, site_id: str) -> None:
        if self._cache is None or key is None:
            return
        try:
            await self._cache.confirm(key, site_id)
        except Exception:
            # A cache write must never block the reporting flow.
            logger.warning("Failed to cache site %s", site_id, exc_info=True)
