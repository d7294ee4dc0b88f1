"""API endpoints for running grounded signal hunts."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from signal_hunter.clients.oracle import OracleError
from signal_hunter.models.profile import BusinessProfile, SalesTrigger
from signal_hunter.models.signal import MarketSignal
from signal_hunter.services.hunting.hunter import HuntError, SignalHunter, get_signal_hunter

router = APIRouter()
logger = logging.getLogger(__name__)


class HuntRequest(BaseModel):
    """Request payload for a single hunt."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    profile: BusinessProfile
    triggers: list[SalesTrigger] = Field(default_factory=list)
    region: str | None = Field(default=None, description="Region to hunt in; defaults to the profile's geography.")


@router.post("/hunts", response_model=list[MarketSignal], response_model_by_alias=True)
async def create_hunt(
    payload: HuntRequest,
    hunter: SignalHunter = Depends(get_signal_hunter),
) -> list[MarketSignal]:
    """Run a hunt and return the verified signals."""
    try:
        return await hunter.hunt(payload.profile, payload.triggers, payload.region)
    except (HuntError, OracleError) as exc:
        logger.error("hunt.api_error", extra={"profile": payload.profile.name, "code": exc.code})
        raise HTTPException(status_code=map_error_code(exc.code), detail=str(exc)) from exc


def map_error_code(code: str) -> int:
    if code == "ORACLE_429":
        return status.HTTP_429_TOO_MANY_REQUESTS
    if code == "ORACLE_CONFIG":
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if code.startswith("422_"):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if code.startswith("ORACLE") or code.startswith("502_"):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR
