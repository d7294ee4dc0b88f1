"""API endpoints for follow-up on verified signals."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from signal_hunter.api.routes.hunts import map_error_code
from signal_hunter.api.routes.onboarding import get_oracle
from signal_hunter.clients.oracle import OracleError, SearchOracle
from signal_hunter.models.dossier import DealDossier, OutreachPack
from signal_hunter.models.profile import BusinessProfile
from signal_hunter.models.signal import MarketSignal
from signal_hunter.services.followup import FollowUpError, generate_dossier, generate_outreach

router = APIRouter()
logger = logging.getLogger(__name__)


class FollowUpRequest(BaseModel):
    signal: MarketSignal
    profile: BusinessProfile


@router.post("/signals/outreach", response_model=OutreachPack)
async def create_outreach(
    payload: FollowUpRequest,
    oracle: SearchOracle = Depends(get_oracle),
) -> OutreachPack:
    """Draft outreach copy for a verified signal."""
    try:
        return await generate_outreach(payload.signal, payload.profile, oracle)
    except (FollowUpError, OracleError) as exc:
        logger.error("signals.outreach_error", extra={"signal_id": payload.signal.id, "code": exc.code})
        raise HTTPException(status_code=map_error_code(exc.code), detail=str(exc)) from exc


@router.post("/signals/dossier", response_model=DealDossier, response_model_by_alias=True)
async def create_dossier(
    payload: FollowUpRequest,
    oracle: SearchOracle = Depends(get_oracle),
) -> DealDossier:
    """Build a grounded deal dossier for a verified signal."""
    try:
        return await generate_dossier(payload.signal, payload.profile, oracle)
    except (FollowUpError, OracleError) as exc:
        logger.error("signals.dossier_error", extra={"signal_id": payload.signal.id, "code": exc.code})
        raise HTTPException(status_code=map_error_code(exc.code), detail=str(exc)) from exc
