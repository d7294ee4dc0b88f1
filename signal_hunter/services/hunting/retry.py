"""Quota-aware exponential backoff for oracle calls."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import TypeVar

from signal_hunter.config import settings
from signal_hunter.observability.metrics import metrics

logger = logging.getLogger(__name__)

_T = TypeVar("_T")
SleepFn = Callable[[float], Awaitable[None]]

_QUOTA_MARKERS = ("quota", "429")


@dataclass(frozen=True)
class RetryPolicy:
    """Attempts and delays used when the oracle reports quota exhaustion."""

    max_attempts: int = 3
    base_delay: float = 1.0
    jitter: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.jitter < 0:
            raise ValueError("jitter must be >= 0")

    @classmethod
    def from_settings(cls) -> RetryPolicy:
        return cls(
            max_attempts=settings.hunt_retry_attempts,
            base_delay=settings.hunt_backoff_base_seconds,
            jitter=settings.hunt_backoff_jitter_seconds,
        )


def is_quota_error(exc: BaseException) -> bool:
    """Return True when the error text looks like a rate-limit or quota failure."""
    message = str(exc).lower()
    return any(marker in message for marker in _QUOTA_MARKERS)


def backoff_delays(policy: RetryPolicy, *, rng: random.Random | None = None) -> Iterator[tuple[int, float]]:
    """Yield ``(attempt, delay_seconds)`` for each attempt that may be followed by a retry.

    The delay after attempt ``n`` (1-based) is ``2**(n-1) * base_delay`` plus up to
    ``jitter`` seconds of noise.
    """
    generator = rng or random.SystemRandom()
    for attempt in range(1, policy.max_attempts + 1):
        jitter_offset = generator.random() * policy.jitter if policy.jitter > 0 else 0.0
        yield attempt, (2 ** (attempt - 1)) * policy.base_delay + jitter_offset


async def retry_on_quota(
    func: Callable[[], Awaitable[_T]],
    *,
    policy: RetryPolicy | None = None,
    sleep: SleepFn | None = None,
    rng: random.Random | None = None,
    operation: str = "oracle",
) -> _T:
    """Await ``func`` and retry it while it fails with quota errors.

    Any other error propagates immediately; once attempts are exhausted the last
    quota error is re-raised.
    """
    resolved = policy or RetryPolicy.from_settings()
    sleeper = sleep or asyncio.sleep
    for attempt, delay in backoff_delays(resolved, rng=rng):
        try:
            return await func()
        except Exception as exc:
            if not is_quota_error(exc) or attempt >= resolved.max_attempts:
                raise
            logger.warning(
                "oracle.retry",
                extra={
                    "operation": operation,
                    "attempt": attempt,
                    "max_attempts": resolved.max_attempts,
                    "delay_ms": round(delay * 1000, 2),
                    "error": str(exc)[:200],
                },
            )
            metrics.increment("oracle.retry", tags={"operation": operation})
            await sleeper(delay)
    raise RuntimeError("retry_on_quota exhausted without an outcome.")  # pragma: no cover
