"""Follow-up material generated for a verified signal."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class OutreachPack(BaseModel):
    """Drafts for the three outreach channels."""

    email: str
    linkedin: str
    call: str


class DossierConfidence(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class BundleItem(BaseModel):
    sku: str = ""
    description: str = ""
    quantity: float = 0


class PricingStrategy(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    logic: str = ""
    discount: float = 0
    estimated_value: float = 0


class Battlecard(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    competitor_weakness: str = ""
    our_edge: str = ""


class DealDossier(BaseModel):
    """Buyer research and selling plan for one signal."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    signal_id: str
    account_name: str
    target_website: str | None = None
    target_linkedin: str | None = None
    key_person_name: str | None = None
    key_person_linkedin: str | None = None
    executive_summary: str
    commercial_opportunity: str
    recommended_bundle: list[BundleItem] = Field(default_factory=list)
    pricing_strategy: PricingStrategy
    battlecard: Battlecard
    call_script: str
    confidence: DossierConfidence = DossierConfidence.MEDIUM
    assumptions: list[str] = Field(default_factory=list)

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().capitalize()
        return value
