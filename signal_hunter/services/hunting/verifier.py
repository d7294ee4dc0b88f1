"""Grounding verification and deduplication of claimed signals."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from signal_hunter.models.signal import ClaimedSignal, GroundingChunk, MarketSignal
from signal_hunter.observability.metrics import metrics
from signal_hunter.services.hunting.confidence import ConfidenceStrategy, FixedConfidenceStrategy
from signal_hunter.services.hunting.fanout import TaskOutcome
from signal_hunter.services.hunting.matching import (
    DEFAULT_WEIGHTS,
    SITE_MATCH_STRICT,
    MatchWeights,
    canonical_hostname,
    normalize_headline,
    score_match,
    site_matches,
)

logger = logging.getLogger(__name__)

REJECT_DUPLICATE_HOST = "duplicate_host"
REJECT_DUPLICATE_HEADLINE = "duplicate_headline"
REJECT_UNGROUNDED = "ungrounded"
REJECT_OFF_WHITELIST = "off_whitelist"


@dataclass(frozen=True)
class BestMatch:
    chunk: GroundingChunk
    score: int


def pool_chunks(outcomes: Sequence[TaskOutcome]) -> list[GroundingChunk]:
    """Citations from every successful task, in task order."""
    pooled: list[GroundingChunk] = []
    for outcome in outcomes:
        if outcome.ok:
            pooled.extend(outcome.chunks)
    return pooled


def best_match(
    claim: ClaimedSignal,
    chunks: Sequence[GroundingChunk],
    weights: MatchWeights = DEFAULT_WEIGHTS,
) -> BestMatch | None:
    """Highest-scoring chunk for ``claim``; the earliest chunk wins ties."""
    best: BestMatch | None = None
    for chunk in chunks:
        score = score_match(claim, chunk, weights)
        if best is None or score > best.score:
            best = BestMatch(chunk=chunk, score=score)
    return best


def verify_claims(
    outcomes: Sequence[TaskOutcome],
    *,
    region: str,
    sites_mode: bool = False,
    site_whitelist: Sequence[str] = (),
    site_match_mode: str = SITE_MATCH_STRICT,
    confidence_strategy: ConfidenceStrategy | None = None,
    weights: MatchWeights = DEFAULT_WEIGHTS,
    id_factory: Callable[[], str] | None = None,
) -> list[MarketSignal]:
    """Turn claimed signals into verified ones in a single ordered pass.

    Claims are visited in task order, then oracle order. A claim survives only if
    some pooled chunk scores above zero for it, the chunk lies on a whitelisted
    site when sites mode is active, and neither its source domain nor its headline
    was already accepted. Accepted signals carry the chunk's URL and title.
    """
    strategy = confidence_strategy or FixedConfidenceStrategy()
    make_id = id_factory or _signal_id
    chunks = pool_chunks(outcomes)
    enforce_whitelist = sites_mode and bool(site_whitelist)

    seen_hosts: set[str] = set()
    seen_headlines: set[str] = set()
    accepted: list[MarketSignal] = []

    for outcome in outcomes:
        if not outcome.ok:
            continue
        for claim in outcome.claims:
            claimed_host = canonical_hostname(claim.source_url)
            if claimed_host and claimed_host in seen_hosts:
                _reject(claim, REJECT_DUPLICATE_HOST, task=outcome.task.key, host=claimed_host)
                continue

            headline_key = normalize_headline(claim.headline)
            if headline_key in seen_headlines:
                _reject(claim, REJECT_DUPLICATE_HEADLINE, task=outcome.task.key)
                continue

            match = best_match(claim, chunks, weights)
            if match is None or match.score <= 0 or not match.chunk.uri:
                _reject(
                    claim,
                    REJECT_UNGROUNDED,
                    task=outcome.task.key,
                    score=match.score if match else 0,
                )
                continue

            verified_host = canonical_hostname(match.chunk.uri)
            if enforce_whitelist and not site_matches(verified_host, site_whitelist, site_match_mode):
                _reject(claim, REJECT_OFF_WHITELIST, task=outcome.task.key, host=verified_host)
                continue
            if verified_host in seen_hosts:
                _reject(claim, REJECT_DUPLICATE_HOST, task=outcome.task.key, host=verified_host)
                continue

            if claimed_host:
                seen_hosts.add(claimed_host)
            seen_hosts.add(verified_host)
            seen_headlines.add(headline_key)

            confidence = strategy.assess(claim, match.chunk, match.score)
            accepted.append(
                MarketSignal(
                    id=make_id(),
                    headline=claim.headline,
                    summary=claim.summary,
                    importance=claim.importance,
                    matched_products=list(claim.matched_products),
                    decision_maker=claim.decision_maker,
                    score=confidence.total,
                    urgency=claim.urgency,
                    source_url=match.chunk.uri,
                    source_title=match.chunk.title or claim.source_title,
                    region=region,
                    confidence=confidence,
                )
            )
            logger.info(
                "hunt.signal_verified",
                extra={
                    "task": outcome.task.key,
                    "headline": claim.headline[:120],
                    "match_score": match.score,
                    "source_url": match.chunk.uri,
                },
            )

    metrics.increment("hunt.signals_verified", len(accepted))
    return accepted


def _reject(claim: ClaimedSignal, reason: str, **context: object) -> None:
    logger.info(
        "hunt.claim_rejected",
        extra={"reason": reason, "headline": claim.headline[:120], **context},
    )
    metrics.increment("hunt.claims_rejected", tags={"reason": reason})


def _signal_id() -> str:
    return f"sig-{uuid.uuid4().hex}"
