# tests/unit/detection/test_outcome.py — v1
"""Tests for detection/outcome.py."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from sitesense.config.settings import Settings
from sitesense.core.models import (
    CandidateSite,
    ConfidenceTier,
    Coordinate,
    DetectionMethod,
    DetectionResult,
    ReasonCode,
)
from sitesense.detection.errors import SETTINGS_DEEP_LINK
from sitesense.detection.outcome import (
    OutcomePolicy,
    OutcomeState,
    confidence_score,
)

KEY = "wfp1_" + "a" * 64


@pytest.fixture
def coordinate() -> Coordinate:
    return Coordinate(latitude=48.856612345, longitude=2.352198765, accuracy_m=12.0)


@pytest.fixture
def candidates(site_a, site_b):
    return [
        CandidateSite(site=site_a, distance_m=20.0, within_high_confidence=True),
        CandidateSite(site=site_b, distance_m=290.0, within_high_confidence=False),
    ]


def _result(tier, method=DetectionMethod.GPS_ONLY, chosen=None, **fields) -> DetectionResult:
    return DetectionResult(attempt_id="att1", tier=tier, method=method, chosen_site=chosen, **fields)


class TestResolve:
    @pytest.mark.asyncio
    async def test_high_auto_confirms_and_caches(
        self, fingerprint_cache, site_a, candidates, coordinate
    ):
        policy = OutcomePolicy(cache=fingerprint_cache)
        result = _result(
            ConfidenceTier.HIGH, chosen=site_a, candidates=candidates,
            coordinate=coordinate, fingerprint_key=KEY,
        )

        outcome = await policy.resolve(result)

        assert outcome.state is OutcomeState.AUTO_CONFIRMED
        assert outcome.suggested_site == site_a
        assert outcome.record is not None
        assert outcome.record.user_confirmed is False
        assert outcome.record.alternative_site_ids == ["site_b"]
        assert await fingerprint_cache.lookup(KEY) == "site_a"

    @pytest.mark.asyncio
    async def test_medium_awaits_confirmation_without_caching(
        self, fingerprint_cache, site_a, candidates
    ):
        policy = OutcomePolicy(cache=fingerprint_cache)
        result = _result(
            ConfidenceTier.MEDIUM, chosen=site_a, candidates=candidates, fingerprint_key=KEY
        )

        outcome = await policy.resolve(result)

        assert outcome.state is OutcomeState.AWAITING_CONFIRMATION
        assert outcome.suggested_site == site_a
        assert outcome.record is None
        assert await fingerprint_cache.lookup(KEY) is None

    @pytest.mark.asyncio
    async def test_low_requires_manual_selection(self, candidates):
        outcome = await OutcomePolicy().resolve(_result(ConfidenceTier.LOW, candidates=candidates))
        assert outcome.state is OutcomeState.MANUAL_SELECTION_REQUIRED
        assert [c.site_id for c in outcome.options] == ["site_a", "site_b"]
        assert outcome.suggested_site is None

    @pytest.mark.asyncio
    async def test_timeout_is_manual_and_retryable(self):
        result = _result(
            ConfidenceTier.NONE, DetectionMethod.NONE, reason=ReasonCode.DETECTION_TIMEOUT
        )
        outcome = await OutcomePolicy().resolve(result)
        assert outcome.state is OutcomeState.MANUAL_SELECTION_REQUIRED
        assert outcome.retryable is True
        assert outcome.recovery_hint == "Try again in a moment"

    @pytest.mark.asyncio
    async def test_no_candidates_not_retryable(self):
        result = _result(
            ConfidenceTier.NONE, DetectionMethod.NONE, reason=ReasonCode.NO_CANDIDATES_FOUND
        )
        outcome = await OutcomePolicy().resolve(result)
        assert outcome.retryable is False
        assert outcome.recovery_hint == "Try manual site selection"

    @pytest.mark.asyncio
    async def test_permission_denied_is_error(self):
        result = _result(
            ConfidenceTier.NONE, DetectionMethod.NONE, reason=ReasonCode.PERMISSION_DENIED
        )
        outcome = await OutcomePolicy().resolve(result)
        assert outcome.state is OutcomeState.ERROR
        assert outcome.settings_link == SETTINGS_DEEP_LINK
        assert outcome.retryable is False
        assert "Settings" in outcome.recovery_hint

    @pytest.mark.asyncio
    async def test_cache_write_failure_does_not_block(self, site_a):
        cache = AsyncMock()
        cache.confirm.side_effect = OSError("disk full")
        policy = OutcomePolicy(cache=cache)

        outcome = await policy.resolve(
            _result(ConfidenceTier.HIGH, chosen=site_a, fingerprint_key=KEY)
        )
        assert outcome.state is OutcomeState.AUTO_CONFIRMED


class TestConfirmDecline:
    @pytest.mark.asyncio
    async def test_confirm_suggestion_keeps_method(self, fingerprint_cache, site_a, candidates):
        policy = OutcomePolicy(cache=fingerprint_cache)
        outcome = await policy.resolve(
            _result(ConfidenceTier.MEDIUM, chosen=site_a, candidates=candidates, fingerprint_key=KEY)
        )

        record = await policy.confirm(outcome, site_a)

        assert record.detection_method is DetectionMethod.GPS_ONLY
        assert record.user_confirmed is True
        assert record.confidence == pytest.approx(0.75 * 0.7)
        assert await fingerprint_cache.lookup(KEY) == "site_a"

    @pytest.mark.asyncio
    async def test_confirm_other_site_is_manual(self, fingerprint_cache, site_a, site_b, candidates):
        policy = OutcomePolicy(cache=fingerprint_cache)
        outcome = await policy.resolve(
            _result(ConfidenceTier.MEDIUM, chosen=site_a, candidates=candidates, fingerprint_key=KEY)
        )

        record = await policy.confirm(outcome, site_b)

        assert record.detection_method is DetectionMethod.MANUAL
        assert record.confidence == 1.0
        assert record.alternative_site_ids == ["site_a"]
        assert await fingerprint_cache.lookup(KEY) == "site_b"

    @pytest.mark.asyncio
    async def test_confirm_auto_confirmed_does_not_double_count(self, fingerprint_cache, site_a):
        policy = OutcomePolicy(cache=fingerprint_cache)
        outcome = await policy.resolve(
            _result(ConfidenceTier.HIGH, chosen=site_a, fingerprint_key=KEY)
        )
        await policy.confirm(outcome, site_a)

        entry = await fingerprint_cache._store.get(KEY)
        assert entry.hit_count == 1

    @pytest.mark.asyncio
    async def test_confirm_manual_pick(self, fingerprint_cache, site_b, candidates):
        policy = OutcomePolicy(cache=fingerprint_cache)
        outcome = await policy.resolve(
            _result(ConfidenceTier.LOW, candidates=candidates, fingerprint_key=KEY)
        )
        record = await policy.confirm(outcome, site_b)
        assert record.detection_method is DetectionMethod.MANUAL
        assert await fingerprint_cache.lookup(KEY) == "site_b"

    @pytest.mark.asyncio
    async def test_confirm_error_outcome_rejected(self, site_a):
        policy = OutcomePolicy()
        outcome = await policy.resolve(
            _result(ConfidenceTier.NONE, DetectionMethod.NONE, reason=ReasonCode.PERMISSION_DENIED)
        )
        with pytest.raises(ValueError):
            await policy.confirm(outcome, site_a)

    @pytest.mark.asyncio
    async def test_decline_falls_back_to_manual(self, site_a, candidates):
        policy = OutcomePolicy()
        outcome = await policy.resolve(
            _result(ConfidenceTier.MEDIUM, chosen=site_a, candidates=candidates)
        )
        declined = policy.decline(outcome)
        assert declined.state is OutcomeState.MANUAL_SELECTION_REQUIRED
        assert len(declined.options) == 2

    @pytest.mark.asyncio
    async def test_decline_manual_rejected(self, candidates):
        policy = OutcomePolicy()
        outcome = await policy.resolve(_result(ConfidenceTier.LOW, candidates=candidates))
        with pytest.raises(ValueError, match="Nothing to decline"):
            policy.decline(outcome)


class TestRecord:
    def test_anonymized_coordinates(self, site_a, coordinate):
        record = OutcomePolicy(anonymize=True).build_record(
            _result(ConfidenceTier.HIGH, chosen=site_a, coordinate=coordinate),
            site_a, DetectionMethod.GPS_ONLY, user_confirmed=False,
        )
        assert record.latitude == 48.8566
        assert record.longitude == 2.3522
        assert record.accuracy == 12.0

    def test_raw_coordinates(self, site_a, coordinate):
        policy = OutcomePolicy.from_settings(
            Settings(_env_file=None, anonymize_location_data=False)  # type: ignore[call-arg]
        )
        record = policy.build_record(
            _result(ConfidenceTier.HIGH, chosen=site_a, coordinate=coordinate),
            site_a, DetectionMethod.GPS_ONLY, user_confirmed=False,
        )
        assert record.latitude == coordinate.latitude

    def test_record_without_coordinate(self, site_a):
        record = OutcomePolicy().build_record(
            _result(ConfidenceTier.HIGH, DetectionMethod.WIFI_CACHE, chosen=site_a),
            site_a, DetectionMethod.WIFI_CACHE, user_confirmed=False,
        )
        assert record.latitude is None
        assert record.confidence == 0.95


class TestConfidenceScore:
    @pytest.mark.parametrize(
        "tier,method,expected",
        [
            (ConfidenceTier.HIGH, DetectionMethod.WIFI_CACHE, 0.95),
            (ConfidenceTier.HIGH, DetectionMethod.WIFI_GPS_HYBRID, 0.90),
            (ConfidenceTier.HIGH, DetectionMethod.GPS_ONLY, 0.75),
            (ConfidenceTier.MEDIUM, DetectionMethod.GPS_ONLY, 0.525),
            (ConfidenceTier.LOW, DetectionMethod.GPS_ONLY, 0.3),
            (ConfidenceTier.NONE, DetectionMethod.NONE, 0.0),
            (ConfidenceTier.LOW, DetectionMethod.MANUAL, 1.0),
        ],
    )
    def test_mapping(self, tier, method, expected):
        assert confidence_score(tier, method) == pytest.approx(expected)
