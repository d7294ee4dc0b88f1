"""Concurrent execution of a hunt's search tasks."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from signal_hunter.clients.oracle import SearchOracle
from signal_hunter.models.signal import ClaimedSignal, GroundingChunk
from signal_hunter.observability.metrics import metrics
from signal_hunter.services.hunting.retry import RetryPolicy, SleepFn, retry_on_quota
from signal_hunter.services.hunting.tasks import SearchTask

logger = logging.getLogger(__name__)


class ResponseParseError(ValueError):
    """Raised when an oracle answer is not a JSON array of claims."""


@dataclass
class TaskOutcome:
    """Settled result of one search task; failed tasks keep their error."""

    task: SearchTask
    claims: list[ClaimedSignal] = field(default_factory=list)
    chunks: list[GroundingChunk] = field(default_factory=list)
    error: Exception | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped


async def run_search_tasks(
    tasks: Sequence[SearchTask],
    oracle: SearchOracle,
    *,
    policy: RetryPolicy | None = None,
    sleep: SleepFn | None = None,
) -> list[TaskOutcome]:
    """Run every task concurrently and wait for all of them to settle.

    A task that still fails after its retries, or whose answer cannot be parsed,
    is reported in its outcome instead of aborting the batch. Outcomes follow
    task order.
    """
    resolved = policy or RetryPolicy.from_settings()
    start = time.perf_counter()
    outcomes = await asyncio.gather(
        *(_run_task(task, oracle, policy=resolved, sleep=sleep) for task in tasks)
    )
    failed = sum(1 for outcome in outcomes if outcome.error is not None)
    metrics.gauge("hunt.tasks", len(outcomes))
    metrics.increment("hunt.tasks_failed", failed)
    metrics.timing("hunt.fanout_ms", (time.perf_counter() - start) * 1000)
    return list(outcomes)


async def _run_task(
    task: SearchTask,
    oracle: SearchOracle,
    *,
    policy: RetryPolicy,
    sleep: SleepFn | None,
) -> TaskOutcome:
    try:
        response = await retry_on_quota(
            lambda: oracle.search(prompt=task.prompt, response_schema=task.response_schema),
            policy=policy,
            sleep=sleep,
            operation=task.key,
        )
    except Exception as exc:
        logger.warning(
            "hunt.task_failed",
            extra={"task": task.key, "error": str(exc)[:200], "code": getattr(exc, "code", None)},
        )
        return TaskOutcome(task=task, error=exc)

    try:
        claims = parse_claims(response.text)
    except ResponseParseError as exc:
        logger.warning("hunt.task_unparseable", extra={"task": task.key, "error": str(exc)})
        return TaskOutcome(task=task, chunks=list(response.grounding_chunks), skipped=True)

    if claims and not response.grounding_chunks:
        logger.warning(
            "hunt.task_ungrounded",
            extra={"task": task.key, "claims": len(claims)},
        )
    return TaskOutcome(task=task, claims=claims, chunks=list(response.grounding_chunks))


def parse_claims(raw_text: str | None) -> list[ClaimedSignal]:
    """Decode the oracle's JSON array; malformed individual claims are dropped."""
    payload = _decode_json_array(raw_text or "")
    claims: list[ClaimedSignal] = []
    for index, entry in enumerate(payload):
        if not isinstance(entry, dict):
            logger.debug("hunt.claim_invalid", extra={"index": index, "reason": "not_an_object"})
            continue
        try:
            claims.append(ClaimedSignal.model_validate(entry))
        except ValidationError as exc:
            logger.debug("hunt.claim_invalid", extra={"index": index, "reason": str(exc)[:200]})
    return claims


def _decode_json_array(raw_text: str) -> list[Any]:
    candidate = raw_text.strip()
    if not candidate:
        return []
    if candidate.startswith("```"):
        candidate = "\n".join(line for line in candidate.splitlines() if not line.strip().startswith("```")).strip()
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError:
        start = candidate.find("[")
        end = candidate.rfind("]")
        if start == -1 or end <= start:
            raise ResponseParseError("Response did not contain a JSON array.") from None
        try:
            payload = json.loads(candidate[start : end + 1])
        except json.JSONDecodeError as exc:
            raise ResponseParseError(f"Invalid JSON array: {exc}") from exc
    if not isinstance(payload, list):
        raise ResponseParseError("Response JSON is not an array.")
    return payload
