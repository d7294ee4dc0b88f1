"""Seller identity and the sales triggers a hunt is driven by."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class TriggerStatus(str, Enum):
    """Approval state of a sales trigger."""

    APPROVED = "Approved"
    REJECTED = "Rejected"
    PENDING = "Pending"


class SearchMode(str, Enum):
    """Where a trigger wants the oracle to look."""

    WEB = "web"
    SITES = "sites"
    BOTH = "both"


class BusinessProfile(BaseModel):
    """The seller a hunt is run for."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str | None = None
    name: str
    industry: str = ""
    products: list[str] = Field(default_factory=list)
    target_groups: list[str] = Field(default_factory=list)
    geography: list[str] = Field(default_factory=list)
    website: str = ""
    is_verified: bool = False

    @property
    def is_huntable(self) -> bool:
        return bool(self.products) and bool(self.target_groups)


class SalesTrigger(BaseModel):
    """A user-approved rule describing which events indicate buying intent."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    product: str = ""
    event: str = ""
    source: str = ""
    logic: str = ""
    limit_to_site: list[str] = Field(
        default_factory=list,
        description="Site domains the trigger is restricted to.",
    )
    search_mode: SearchMode | None = None
    status: TriggerStatus = TriggerStatus.PENDING
    scope: str | None = None
    bundle_name: str | None = None
    target_products: list[str] = Field(default_factory=list)
    trigger_type: str | None = None

    @field_validator("limit_to_site", mode="before")
    @classmethod
    def _coerce_sites(cls, value: object) -> object:
        # Older records store a single domain string.
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return value

    @field_validator("search_mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().lower()
            return normalized or None
        return value

    @property
    def is_approved(self) -> bool:
        return self.status is TriggerStatus.APPROVED

    @property
    def effective_search_mode(self) -> SearchMode:
        """Explicit mode wins; otherwise site-restricted triggers search their sites."""
        if self.search_mode is not None:
            return self.search_mode
        if any(site.strip() for site in self.limit_to_site):
            return SearchMode.SITES
        return SearchMode.WEB
