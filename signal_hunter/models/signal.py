"""Claimed, grounded and verified market signals."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, conint, field_validator
from pydantic.alias_generators import to_camel


class SignalUrgency(str, Enum):
    EMERGENCY = "EMERGENCY"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class LeadStatus(str, Enum):
    NEW = "New"
    CONTACTED = "Contacted"
    FOLLOWED_UP = "Followed-up"
    MEETING_BOOKED = "Meeting Booked"
    ARCHIVED = "Archived"


class RelevanceFeedback(str, Enum):
    POSITIVE = "Positive"
    NEGATIVE = "Negative"


class ClaimedSignal(BaseModel):
    """An event asserted by the oracle, not yet checked against its citations."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    headline: str
    summary: str = ""
    importance: str = ""
    matched_products: list[str] = Field(default_factory=list)
    decision_maker: str = ""
    urgency: SignalUrgency = SignalUrgency.MEDIUM
    source_url: str = ""
    source_title: str = ""

    @field_validator("urgency", mode="before")
    @classmethod
    def _coerce_urgency(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("source_url", "source_title", "summary", "importance", "decision_maker", mode="before")
    @classmethod
    def _blank_if_null(cls, value: object) -> object:
        return "" if value is None else value


class WebSource(BaseModel):
    uri: str | None = None
    title: str | None = None


class GroundingChunk(BaseModel):
    """A page the oracle actually retrieved while answering a search task."""

    web: WebSource | None = None

    @property
    def uri(self) -> str:
        return (self.web.uri if self.web else None) or ""

    @property
    def title(self) -> str:
        return (self.web.title if self.web else None) or ""


class SignalConfidence(BaseModel):
    """Weighted sub-scores behind a signal's headline score."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    freshness: conint(ge=0, le=100)  # type: ignore[valid-type]
    proximity: conint(ge=0, le=100)  # type: ignore[valid-type]
    intent_strength: conint(ge=0, le=100)  # type: ignore[valid-type]
    buyer_match: conint(ge=0, le=100)  # type: ignore[valid-type]
    urgency: conint(ge=0, le=100)  # type: ignore[valid-type]
    total: conint(ge=0, le=100)  # type: ignore[valid-type]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MarketSignal(BaseModel):
    """A claim that survived grounding verification.

    ``source_url`` is always the URI of a grounding chunk returned during the hunt,
    never the oracle's own claim, so it is kept as a plain string.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    headline: str
    summary: str = ""
    importance: str = ""
    matched_products: list[str] = Field(default_factory=list)
    decision_maker: str = ""
    score: conint(ge=0, le=100)  # type: ignore[valid-type]
    urgency: SignalUrgency
    source_url: str
    source_title: str = ""
    region: str = ""
    confidence: SignalConfidence
    status: LeadStatus = LeadStatus.NEW
    relevance_feedback: RelevanceFeedback | None = None
    verified_at: datetime = Field(default_factory=_utcnow)
