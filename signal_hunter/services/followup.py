"""Outreach drafts and deal dossiers for verified signals."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from pydantic import ValidationError

from signal_hunter.clients.oracle import SearchOracle
from signal_hunter.config import settings
from signal_hunter.models.dossier import DealDossier, OutreachPack
from signal_hunter.models.profile import BusinessProfile
from signal_hunter.models.signal import MarketSignal
from signal_hunter.services.hunting.retry import RetryPolicy, SleepFn, retry_on_quota

logger = logging.getLogger(__name__)

OUTREACH_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "email": {"type": "STRING"},
        "linkedin": {"type": "STRING"},
        "call": {"type": "STRING"},
    },
    "required": ["email", "linkedin", "call"],
}

DOSSIER_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "accountName": {"type": "STRING"},
        "targetWebsite": {"type": "STRING"},
        "targetLinkedin": {"type": "STRING"},
        "keyPersonName": {"type": "STRING"},
        "keyPersonLinkedin": {"type": "STRING"},
        "executiveSummary": {"type": "STRING"},
        "commercialOpportunity": {"type": "STRING"},
        "recommendedBundle": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "sku": {"type": "STRING"},
                    "description": {"type": "STRING"},
                    "quantity": {"type": "NUMBER"},
                },
            },
        },
        "pricingStrategy": {
            "type": "OBJECT",
            "properties": {
                "logic": {"type": "STRING"},
                "discount": {"type": "NUMBER"},
                "estimatedValue": {"type": "NUMBER"},
            },
        },
        "battlecard": {
            "type": "OBJECT",
            "properties": {
                "competitorWeakness": {"type": "STRING"},
                "ourEdge": {"type": "STRING"},
            },
        },
        "callScript": {"type": "STRING"},
        "confidence": {"type": "STRING", "enum": ["Low", "Medium", "High"]},
        "assumptions": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": [
        "accountName",
        "executiveSummary",
        "commercialOpportunity",
        "recommendedBundle",
        "pricingStrategy",
        "battlecard",
        "callScript",
        "confidence",
        "assumptions",
    ],
}


class FollowUpError(RuntimeError):
    """Raised when outreach or dossier output from the oracle is unusable."""

    def __init__(self, message: str, code: str = "502_ORACLE_INVALID_RESPONSE") -> None:
        super().__init__(message)
        self.code = code


async def generate_outreach(
    signal: MarketSignal,
    profile: BusinessProfile,
    oracle: SearchOracle,
    *,
    policy: RetryPolicy | None = None,
    sleep: SleepFn | None = None,
) -> OutreachPack:
    """Draft email, LinkedIn and call copy for ``signal`` on behalf of ``profile``."""
    prompt = (
        f"Generate multi-channel B2B outreach for {profile.name} targeting a "
        f"{signal.decision_maker or 'decision maker'} regarding: \"{signal.headline}\". "
        f"Context: {signal.summary}. Source: {signal.source_url}. "
        "Return JSON with 'email', 'linkedin', and 'call'."
    )
    raw = await retry_on_quota(
        lambda: oracle.generate_json(
            prompt=prompt,
            response_schema=OUTREACH_SCHEMA,
            model=settings.outreach_model,
        ),
        policy=policy,
        sleep=sleep,
        operation="generate_outreach",
    )
    try:
        pack = OutreachPack.model_validate(_loads(raw))
    except ValidationError as exc:
        raise FollowUpError(f"Oracle returned invalid outreach: {exc}") from exc
    logger.info("followup.outreach_generated", extra={"signal_id": signal.id, "profile": profile.name})
    return pack


async def generate_dossier(
    signal: MarketSignal,
    profile: BusinessProfile,
    oracle: SearchOracle,
    *,
    policy: RetryPolicy | None = None,
    sleep: SleepFn | None = None,
) -> DealDossier:
    """Research the buyer behind ``signal`` with live search and plan the deal."""
    prompt = (
        f"Generate a Deal Dossier for {profile.name} regarding the project: \"{signal.headline}\". "
        f"Source Data: {signal.source_url} Region: {signal.region or 'unspecified'} "
        "Focus: 1. Identify the BUYER entity. 2. Provide strategic advice for the SELLER. "
        "3. Return as JSON."
    )
    raw = await retry_on_quota(
        lambda: oracle.generate_json(
            prompt=prompt,
            response_schema=DOSSIER_SCHEMA,
            grounded=True,
            model=settings.dossier_model,
        ),
        policy=policy,
        sleep=sleep,
        operation="generate_dossier",
    )
    payload = _loads(raw)
    try:
        dossier = DealDossier.model_validate(
            {**payload, "id": f"dos-{int(time.time() * 1000)}", "signalId": signal.id}
        )
    except ValidationError as exc:
        raise FollowUpError(f"Oracle returned an invalid dossier: {exc}") from exc
    logger.info(
        "followup.dossier_generated",
        extra={"signal_id": signal.id, "account": dossier.account_name, "confidence": dossier.confidence.value},
    )
    return dossier


def _loads(raw: str) -> dict[str, Any]:
    try:
        payload = json.loads(raw or "{}")
    except json.JSONDecodeError as exc:
        raise FollowUpError("Oracle response was not valid JSON.") from exc
    if not isinstance(payload, dict):
        raise FollowUpError("Oracle response was not a JSON object.")
    return payload
