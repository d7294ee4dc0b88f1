"""API endpoints for oracle-assisted onboarding."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from signal_hunter.api.routes.hunts import map_error_code
from signal_hunter.clients.oracle import OracleError, SearchOracle
from signal_hunter.models.profile import BusinessProfile, SalesTrigger
from signal_hunter.services.hunting.hunter import SignalHunter, get_signal_hunter
from signal_hunter.services.onboarding import OnboardingError, generate_triggers, profile_business

router = APIRouter()
logger = logging.getLogger(__name__)


class ProfileRequest(BaseModel):
    url: str = Field(..., description="Public website of the business to profile.")


class TriggersRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    profile: BusinessProfile
    count: int = Field(default=4, ge=1, le=12)


def get_oracle(hunter: SignalHunter = Depends(get_signal_hunter)) -> SearchOracle:
    try:
        return hunter.oracle
    except OracleError as exc:
        raise HTTPException(status_code=map_error_code(exc.code), detail=str(exc)) from exc


@router.post("/onboarding/profile", response_model=BusinessProfile, response_model_by_alias=True)
async def create_profile(
    payload: ProfileRequest,
    oracle: SearchOracle = Depends(get_oracle),
) -> BusinessProfile:
    """Draft a business profile from a website."""
    try:
        return await profile_business(payload.url, oracle)
    except (OnboardingError, OracleError) as exc:
        logger.error("onboarding.api_error", extra={"url": payload.url, "code": exc.code})
        raise HTTPException(status_code=map_error_code(exc.code), detail=str(exc)) from exc


@router.post("/onboarding/triggers", response_model=list[SalesTrigger], response_model_by_alias=True)
async def create_triggers(
    payload: TriggersRequest,
    oracle: SearchOracle = Depends(get_oracle),
) -> list[SalesTrigger]:
    """Propose pending sales triggers for a profile."""
    try:
        return await generate_triggers(payload.profile, oracle, count=payload.count)
    except (OnboardingError, OracleError) as exc:
        logger.error("onboarding.api_error", extra={"profile": payload.profile.name, "code": exc.code})
        raise HTTPException(status_code=map_error_code(exc.code), detail=str(exc)) from exc
