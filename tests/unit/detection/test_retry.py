# tests/unit/detection/test_retry.py — v1
"""Tests for detection/retry.py."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from sitesense.config.settings import Settings
from sitesense.core.models import ConfidenceTier, DetectionResult, ReasonCode
from sitesense.detection.errors import DetectionCancelledError
from sitesense.detection.retry import RetryPolicy, detect_with_retry


def _result(reason: ReasonCode | None = None, n: int = 0) -> DetectionResult:
    tier = ConfidenceTier.NONE if reason else ConfidenceTier.HIGH
    return DetectionResult(attempt_id=f"att{n}", tier=tier, reason=reason)


class FakeSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.delays == (1.0, 2.0, 5.0)
        assert policy.max_retries == 3

    def test_from_settings(self):
        s = Settings(_env_file=None, retry_schedule="0.5,1")  # type: ignore[call-arg]
        assert RetryPolicy.from_settings(s).delays == (0.5, 1.0)


class TestDetectWithRetry:
    @pytest.mark.asyncio
    async def test_success_no_retry(self):
        engine = AsyncMock()
        engine.detect.return_value = _result()
        sleep = FakeSleep()

        result = await detect_with_retry(engine, sleep=sleep)

        assert result.reason is None
        assert engine.detect.await_count == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_timeout_then_success(self):
        engine = AsyncMock()
        engine.detect.side_effect = [
            _result(ReasonCode.DETECTION_TIMEOUT, 1),
            _result(ReasonCode.SENSOR_UNAVAILABLE, 2),
            _result(None, 3),
        ]
        sleep = FakeSleep()

        result = await detect_with_retry(engine, sleep=sleep)

        assert result.attempt_id == "att3"
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_schedule(self):
        engine = AsyncMock()
        engine.detect.return_value = _result(ReasonCode.DETECTION_TIMEOUT)
        sleep = FakeSleep()

        result = await detect_with_retry(engine, RetryPolicy(delays=(1.0, 2.0, 5.0)), sleep=sleep)

        assert result.reason is ReasonCode.DETECTION_TIMEOUT
        assert engine.detect.await_count == 4
        assert sleep.delays == [1.0, 2.0, 5.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reason", [ReasonCode.PERMISSION_DENIED, ReasonCode.NO_CANDIDATES_FOUND]
    )
    async def test_non_retryable_returned_immediately(self, reason):
        engine = AsyncMock()
        engine.detect.return_value = _result(reason)
        sleep = FakeSleep()

        result = await detect_with_retry(engine, sleep=sleep)

        assert result.reason is reason
        assert engine.detect.await_count == 1

    @pytest.mark.asyncio
    async def test_empty_schedule_never_retries(self):
        engine = AsyncMock()
        engine.detect.return_value = _result(ReasonCode.DETECTION_TIMEOUT)
        await detect_with_retry(engine, RetryPolicy(delays=()), sleep=FakeSleep())
        assert engine.detect.await_count == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        engine = AsyncMock()
        engine.detect.side_effect = DetectionCancelledError("cancelled")
        with pytest.raises(DetectionCancelledError):
            await detect_with_retry(engine, sleep=FakeSleep())
