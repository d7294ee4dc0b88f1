"""Confidence scoring strategies for verified signals."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol

from signal_hunter.models.signal import ClaimedSignal, GroundingChunk, SignalConfidence, SignalUrgency


class ConfidenceStrategy(Protocol):
    """Scores a claim that has already been matched to its grounding chunk."""

    def assess(self, claim: ClaimedSignal, chunk: GroundingChunk, match_score: int) -> SignalConfidence:
        ...


@dataclass(frozen=True)
class FixedConfidenceStrategy:
    """Constant sub-scores; only urgency varies with the claim."""

    freshness: int = 90
    proximity: int = 100
    intent_strength: int = 95
    buyer_match: int = 95
    emergency_urgency: int = 100
    default_urgency: int = 80

    def assess(self, claim: ClaimedSignal, chunk: GroundingChunk, match_score: int) -> SignalConfidence:
        del chunk, match_score
        urgency = self.emergency_urgency if claim.urgency is SignalUrgency.EMERGENCY else self.default_urgency
        parts = (self.freshness, self.proximity, self.intent_strength, self.buyer_match, urgency)
        return SignalConfidence(
            freshness=self.freshness,
            proximity=self.proximity,
            intent_strength=self.intent_strength,
            buyer_match=self.buyer_match,
            urgency=urgency,
            total=round_half_up(sum(parts) / len(parts)),
        )


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
