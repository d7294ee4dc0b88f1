"""Oracle-assisted onboarding: profile a seller and propose sales triggers."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from pydantic import ValidationError

from signal_hunter.clients.oracle import SearchOracle
from signal_hunter.config import settings
from signal_hunter.models.profile import BusinessProfile, SalesTrigger, TriggerStatus
from signal_hunter.services.hunting.retry import RetryPolicy, SleepFn, retry_on_quota

logger = logging.getLogger(__name__)

PROFILE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "name": {"type": "STRING"},
        "industry": {"type": "STRING"},
        "products": {"type": "ARRAY", "items": {"type": "STRING"}},
        "targetGroups": {"type": "ARRAY", "items": {"type": "STRING"}},
        "geography": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": ["name", "industry", "products", "targetGroups", "geography"],
}

TRIGGERS_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "product": {"type": "STRING"},
            "event": {"type": "STRING"},
            "source": {"type": "STRING"},
            "logic": {"type": "STRING"},
        },
        "required": ["product", "event", "source", "logic"],
    },
}


class OnboardingError(RuntimeError):
    """Raised when the oracle's onboarding answer cannot be used."""

    def __init__(self, message: str, code: str = "502_ORACLE_INVALID_RESPONSE") -> None:
        super().__init__(message)
        self.code = code


async def profile_business(
    url: str,
    oracle: SearchOracle,
    *,
    policy: RetryPolicy | None = None,
    sleep: SleepFn | None = None,
) -> BusinessProfile:
    """Ask the oracle to describe the company behind ``url``."""
    if not url or not url.strip():
        raise OnboardingError("A website URL is required to profile a business.", code="422_MISSING_URL")
    website = url.strip()
    prompt = (
        f"Profile the business at this URL: {website}. Identify the actual company name, industry, "
        "core products, target customer groups, and geography. Return as JSON."
    )
    raw = await retry_on_quota(
        lambda: oracle.generate_json(
            prompt=prompt,
            response_schema=PROFILE_SCHEMA,
            model=settings.onboarding_model,
        ),
        policy=policy,
        sleep=sleep,
        operation="profile_business",
    )
    payload = _loads(raw, expected=dict)
    try:
        profile = BusinessProfile.model_validate({**payload, "website": website})
    except ValidationError as exc:
        raise OnboardingError(f"Oracle returned an invalid business profile: {exc}") from exc
    logger.info("onboarding.profiled", extra={"website": website, "profile": profile.name})
    return profile


async def generate_triggers(
    profile: BusinessProfile,
    oracle: SearchOracle,
    *,
    count: int = 4,
    policy: RetryPolicy | None = None,
    sleep: SleepFn | None = None,
) -> list[SalesTrigger]:
    """Propose ``count`` pending sales triggers for ``profile``."""
    if count <= 0:
        raise ValueError("count must be a positive integer.")
    prompt = (
        f"Given these products: {', '.join(profile.products)} and these target groups: "
        f"{', '.join(profile.target_groups)} for the company {profile.name}, what real-world events "
        f'or "sales triggers" create immediate demand? Generate {count} triggers. For each, provide a '
        "specific product, a trigger event, a data source, and the sales logic."
    )
    raw = await retry_on_quota(
        lambda: oracle.generate_json(
            prompt=prompt,
            response_schema=TRIGGERS_SCHEMA,
            model=settings.trigger_model,
        ),
        policy=policy,
        sleep=sleep,
        operation="generate_triggers",
    )
    entries = _loads(raw, expected=list)
    stamp = int(time.time() * 1000)
    triggers: list[SalesTrigger] = []
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict):
            continue
        try:
            trigger = SalesTrigger.model_validate(
                {
                    **entry,
                    "id": f"t-{idx}-{stamp}",
                    "status": TriggerStatus.PENDING,
                    "triggerType": "ai_generated",
                }
            )
        except ValidationError as exc:
            logger.warning("onboarding.trigger_invalid", extra={"index": idx, "error": str(exc)[:200]})
            continue
        triggers.append(trigger)
    logger.info("onboarding.triggers_generated", extra={"profile": profile.name, "count": len(triggers)})
    return triggers


def _loads(raw: str, *, expected: type) -> Any:
    try:
        payload = json.loads(raw or ("{}" if expected is dict else "[]"))
    except json.JSONDecodeError as exc:
        raise OnboardingError("Oracle response was not valid JSON.") from exc
    if not isinstance(payload, expected):
        raise OnboardingError(f"Oracle response was not a JSON {expected.__name__}.")
    return payload
