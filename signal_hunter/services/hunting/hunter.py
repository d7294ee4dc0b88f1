"""Signal hunting orchestrator: plan, fan out, verify."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from datetime import date

from signal_hunter.clients.gemini import GeminiSearchClient
from signal_hunter.clients.oracle import SearchOracle
from signal_hunter.config import settings
from signal_hunter.models.profile import BusinessProfile, SalesTrigger
from signal_hunter.models.signal import MarketSignal
from signal_hunter.observability.metrics import metrics
from signal_hunter.services.hunting.confidence import ConfidenceStrategy, FixedConfidenceStrategy
from signal_hunter.services.hunting.fanout import run_search_tasks
from signal_hunter.services.hunting.matching import DEFAULT_WEIGHTS, MatchWeights
from signal_hunter.services.hunting.retry import RetryPolicy, SleepFn, is_quota_error, retry_on_quota
from signal_hunter.services.hunting.tasks import build_search_plan
from signal_hunter.services.hunting.verifier import verify_claims

logger = logging.getLogger(__name__)


class HuntError(RuntimeError):
    """Base exception raised by the hunt orchestrator."""

    def __init__(self, message: str, code: str = "HUNT_ERROR") -> None:
        super().__init__(message)
        self.code = code


class HuntConfigurationError(HuntError):
    """Raised when a hunt cannot be meaningfully run for the given inputs."""


class SignalHunter:
    """Runs hunts against a search oracle with quota-aware retries."""

    def __init__(
        self,
        *,
        oracle: SearchOracle | None = None,
        policy: RetryPolicy | None = None,
        confidence_strategy: ConfidenceStrategy | None = None,
        weights: MatchWeights = DEFAULT_WEIGHTS,
        site_match_mode: str | None = None,
        recency_days: int | None = None,
        results_per_task: int | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self._oracle = oracle
        self._policy = policy or RetryPolicy.from_settings()
        self._confidence = confidence_strategy or FixedConfidenceStrategy()
        self._weights = weights
        self._site_match_mode = site_match_mode or settings.hunt_site_match_mode
        self._recency_days = settings.hunt_recency_days if recency_days is None else recency_days
        self._results_per_task = settings.hunt_results_per_task if results_per_task is None else results_per_task
        self._sleep = sleep

    @property
    def oracle(self) -> SearchOracle:
        return self._ensure_oracle()

    async def hunt(
        self,
        profile: BusinessProfile,
        triggers: Sequence[SalesTrigger],
        region: str | None = None,
        *,
        today: date | None = None,
    ) -> list[MarketSignal]:
        """Find verified signals for ``profile`` using its approved ``triggers``.

        The whole hunt is retried on quota errors. A hunt that verifies nothing
        returns an empty list; failures after the retries propagate.
        """
        if not profile.is_huntable:
            raise HuntConfigurationError(
                "Business profile needs at least one product and one target group to hunt.",
                code="422_INVALID_PROFILE",
            )
        snapshot = [trigger.model_copy(deep=True) for trigger in triggers]
        start = time.perf_counter()
        status = "success"
        try:
            return await retry_on_quota(
                lambda: self._hunt_once(profile, snapshot, region, today=today),
                policy=self._policy,
                sleep=self._sleep,
                operation="hunt",
            )
        except Exception:
            status = "error"
            metrics.increment("hunt.errors")
            raise
        finally:
            metrics.timing("hunt.latency_ms", (time.perf_counter() - start) * 1000, tags={"status": status})

    async def _hunt_once(
        self,
        profile: BusinessProfile,
        triggers: Sequence[SalesTrigger],
        region: str | None,
        *,
        today: date | None,
    ) -> list[MarketSignal]:
        oracle = self._ensure_oracle()
        plan = build_search_plan(
            profile,
            triggers,
            region,
            today=today,
            recency_days=self._recency_days,
            results_per_task=self._results_per_task,
        )
        outcomes = await run_search_tasks(plan.tasks, oracle, policy=self._policy, sleep=self._sleep)

        errors = [outcome.error for outcome in outcomes if outcome.error is not None]
        if outcomes and len(errors) == len(outcomes):
            # Quota errors take precedence over the first failure.
            error = next((exc for exc in errors if is_quota_error(exc)), errors[0])
            logger.error(
                "hunt.all_tasks_failed",
                extra={"profile": profile.name, "tasks": len(outcomes), "error": str(error)[:200]},
            )
            raise error

        signals = verify_claims(
            outcomes,
            region=plan.region,
            sites_mode=plan.sites_mode,
            site_whitelist=plan.sites,
            site_match_mode=self._site_match_mode,
            confidence_strategy=self._confidence,
            weights=self._weights,
        )
        logger.info(
            "hunt.complete",
            extra={
                "profile": profile.name,
                "region": plan.region,
                "tasks": len(outcomes),
                "failed_tasks": len(errors),
                "claims": sum(len(outcome.claims) for outcome in outcomes),
                "signals": len(signals),
            },
        )
        return signals

    def _ensure_oracle(self) -> SearchOracle:
        if self._oracle is None:
            self._oracle = GeminiSearchClient.from_settings()
        return self._oracle


_HUNTER_INSTANCE: SignalHunter | None = None


def get_signal_hunter() -> SignalHunter:
    """Singleton accessor used by API routes and pipelines."""
    global _HUNTER_INSTANCE  # noqa: PLW0603
    if _HUNTER_INSTANCE is None:
        _HUNTER_INSTANCE = SignalHunter()
    return _HUNTER_INSTANCE


async def hunt(
    profile: BusinessProfile,
    triggers: Sequence[SalesTrigger],
    region: str | None = None,
) -> list[MarketSignal]:
    """Run a hunt with the shared :class:`SignalHunter`."""
    return await get_signal_hunter().hunt(profile, triggers, region)
