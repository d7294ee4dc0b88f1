from __future__ import annotations

import asyncio
import random

import pytest

from signal_hunter.clients.oracle import OracleError, OracleQuotaError
from signal_hunter.services.hunting.retry import (
    RetryPolicy,
    backoff_delays,
    is_quota_error,
    retry_on_quota,
)
from tests.helpers.fake_oracle import SleepRecorder


class FlakyCall:
    def __init__(self, failures: list[Exception], result: str = "ok") -> None:
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (RuntimeError("HTTP 429 Too Many Requests"), True),
        (RuntimeError("RESOURCE_EXHAUSTED: Quota exceeded for metric"), True),
        (OracleQuotaError(), True),
        (RuntimeError("QUOTA"), True),
        (RuntimeError("503 Service Unavailable"), False),
        (ValueError("bad schema"), False),
    ],
)
def test_is_quota_error(exc, expected):
    assert is_quota_error(exc) is expected


def test_quota_retry_succeeds_on_third_attempt_with_increasing_delays(stub_metrics):
    call = FlakyCall([RuntimeError("429 rate limited"), RuntimeError("429 rate limited")], result="grounded")
    sleeper = SleepRecorder()

    result = asyncio.run(retry_on_quota(call, policy=RetryPolicy(), sleep=sleeper, rng=random.Random(3)))

    assert result == "grounded"
    assert call.calls == 3
    assert len(sleeper.delays) == 2
    assert sleeper.delays[0] < sleeper.delays[1]
    assert 1.0 <= sleeper.delays[0] < 2.0
    assert 2.0 <= sleeper.delays[1] < 3.0
    assert len(stub_metrics.increments("oracle.retry")) == 2


def test_quota_retry_reraises_after_last_attempt(stub_metrics):
    call = FlakyCall([OracleQuotaError(), OracleQuotaError(), OracleQuotaError()])
    sleeper = SleepRecorder()

    with pytest.raises(OracleQuotaError):
        asyncio.run(retry_on_quota(call, policy=RetryPolicy(max_attempts=3), sleep=sleeper))

    assert call.calls == 3
    assert len(sleeper.delays) == 2


def test_non_quota_errors_are_not_retried(stub_metrics):
    call = FlakyCall([OracleError("Gemini request failed (500): internal")])
    sleeper = SleepRecorder()

    with pytest.raises(OracleError):
        asyncio.run(retry_on_quota(call, policy=RetryPolicy(), sleep=sleeper))

    assert call.calls == 1
    assert sleeper.delays == []
    assert stub_metrics.increment_calls == []


def test_single_attempt_policy_never_sleeps(stub_metrics):
    call = FlakyCall([RuntimeError("429")])
    sleeper = SleepRecorder()

    with pytest.raises(RuntimeError):
        asyncio.run(retry_on_quota(call, policy=RetryPolicy(max_attempts=1), sleep=sleeper))

    assert sleeper.delays == []


def test_backoff_delays_double_with_bounded_jitter():
    policy = RetryPolicy(max_attempts=4, base_delay=0.5, jitter=0.25)

    delays = list(backoff_delays(policy, rng=random.Random(11)))

    assert [attempt for attempt, _ in delays] == [1, 2, 3, 4]
    for (attempt, delay), floor in zip(delays, [0.5, 1.0, 2.0, 4.0]):
        assert floor <= delay < floor + 0.25, attempt


def test_backoff_without_jitter_is_deterministic():
    policy = RetryPolicy(max_attempts=3, base_delay=1.0, jitter=0.0)

    assert [delay for _, delay in backoff_delays(policy)] == [1.0, 2.0, 4.0]


@pytest.mark.parametrize(
    "kwargs",
    [{"max_attempts": 0}, {"base_delay": -1.0}, {"jitter": -0.1}],
)
def test_retry_policy_validation(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


def test_retry_policy_from_settings(monkeypatch):
    from signal_hunter.services.hunting import retry as retry_module

    monkeypatch.setattr(retry_module.settings, "hunt_retry_attempts", 5)
    monkeypatch.setattr(retry_module.settings, "hunt_backoff_base_seconds", 0.2)
    monkeypatch.setattr(retry_module.settings, "hunt_backoff_jitter_seconds", 0.0)

    assert RetryPolicy.from_settings() == RetryPolicy(max_attempts=5, base_delay=0.2, jitter=0.0)
