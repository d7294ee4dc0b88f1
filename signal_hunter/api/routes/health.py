from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from signal_hunter.clients.oracle import OracleConfigError
from signal_hunter.config import settings
from signal_hunter.services.hunting.hunter import SignalHunter, get_signal_hunter

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/ready")
async def readiness_check(hunter: SignalHunter = Depends(get_signal_hunter)):
    """Ready once the search oracle client can be built."""
    try:
        hunter.oracle
    except OracleConfigError as exc:
        logger.warning("health.oracle_unavailable", extra={"code": exc.code})
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return {
        "status": "ready",
        "version": settings.app_version,
        "oracle_model": settings.hunt_model,
        "site_match_mode": settings.hunt_site_match_mode,
    }
