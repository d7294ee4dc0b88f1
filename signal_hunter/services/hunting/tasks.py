"""Builds the independent search tasks a hunt fans out to the oracle."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from signal_hunter.models.profile import BusinessProfile, SalesTrigger, SearchMode
from signal_hunter.models.signal import SignalUrgency
from signal_hunter.services.hunting.matching import normalize_site

logger = logging.getLogger(__name__)

DEFAULT_RECENCY_DAYS = 14
DEFAULT_RESULTS_PER_TASK = 6

CLAIMED_SIGNAL_FIELDS = (
    "headline",
    "summary",
    "importance",
    "matchedProducts",
    "decisionMaker",
    "urgency",
    "sourceUrl",
    "sourceTitle",
)

CLAIMED_SIGNALS_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "headline": {"type": "STRING"},
            "summary": {"type": "STRING"},
            "importance": {"type": "STRING"},
            "matchedProducts": {"type": "ARRAY", "items": {"type": "STRING"}},
            "decisionMaker": {"type": "STRING"},
            "urgency": {"type": "STRING", "enum": [urgency.value for urgency in SignalUrgency]},
            "sourceUrl": {"type": "STRING"},
            "sourceTitle": {"type": "STRING"},
        },
        "required": list(CLAIMED_SIGNAL_FIELDS),
    },
}


@dataclass(frozen=True)
class SearchTask:
    """One oracle invocation: a prompt, its output schema and an optional bound site."""

    key: str
    prompt: str
    response_schema: dict[str, Any] = field(default_factory=lambda: CLAIMED_SIGNALS_SCHEMA)
    site: str | None = None


@dataclass(frozen=True)
class HuntPlan:
    """Everything the fan-out and verification stages need to know about a hunt."""

    tasks: list[SearchTask]
    region: str
    web_mode: bool
    sites_mode: bool
    sites: list[str]
    window_start: date
    window_end: date


@dataclass(frozen=True)
class _PromptContext:
    profile: BusinessProfile
    triggers: list[SalesTrigger]
    region: str
    window: str
    results: int


def build_search_plan(
    profile: BusinessProfile,
    triggers: Sequence[SalesTrigger],
    region: str | None = None,
    *,
    today: date | None = None,
    recency_days: int = DEFAULT_RECENCY_DAYS,
    results_per_task: int = DEFAULT_RESULTS_PER_TASK,
) -> HuntPlan:
    """Decide the execution modes for a hunt and render its search tasks."""
    region_context = region or ", ".join(profile.geography)
    window_end = today or date.today()
    window_start = window_end - timedelta(days=recency_days)

    approved = [trigger for trigger in triggers if trigger.is_approved]
    sites = collect_sites(approved)
    modes = {trigger.effective_search_mode for trigger in approved}

    web_mode = bool(modes & {SearchMode.WEB, SearchMode.BOTH})
    sites_mode = bool(modes & {SearchMode.SITES, SearchMode.BOTH}) and bool(sites)
    if not web_mode and not sites_mode:
        web_mode = True

    context = _PromptContext(
        profile=profile,
        triggers=approved,
        region=region_context,
        window=_format_window(window_start, window_end),
        results=results_per_task,
    )

    tasks: list[SearchTask] = []
    if web_mode:
        tasks.extend(
            [
                SearchTask(key="web:tenders", prompt=_tender_prompt(context)),
                SearchTask(key="web:projects", prompt=_project_prompt(context)),
                SearchTask(key="web:news", prompt=_news_prompt(context)),
            ]
        )
    if sites_mode:
        tasks.extend(SearchTask(key=f"site:{site}", prompt=_site_prompt(context, site), site=site) for site in sites)

    logger.info(
        "hunt.plan",
        extra={
            "region": region_context,
            "approved_triggers": len(approved),
            "web_mode": web_mode,
            "sites_mode": sites_mode,
            "sites": sites,
            "tasks": len(tasks),
        },
    )
    return HuntPlan(
        tasks=tasks,
        region=region_context,
        web_mode=web_mode,
        sites_mode=sites_mode,
        sites=sites,
        window_start=window_start,
        window_end=window_end,
    )


def collect_sites(triggers: Sequence[SalesTrigger]) -> list[str]:
    """Ordered, deduplicated union of normalized site restrictions."""
    seen: set[str] = set()
    sites: list[str] = []
    for trigger in triggers:
        for raw in trigger.limit_to_site:
            site = normalize_site(raw)
            if not site or site in seen:
                continue
            seen.add(site)
            sites.append(site)
    return sites


def _format_window(start: date, end: date) -> str:
    return f"{start.isoformat()} to {end.isoformat()}"


def _trigger_lines(triggers: Sequence[SalesTrigger]) -> str:
    if not triggers:
        return "- (no specific triggers; use general buying-intent events)"
    return "\n".join(f"- {trigger.event} for {trigger.product}".rstrip() for trigger in triggers)


def _requirements(context: _PromptContext, *, decision_maker: str) -> str:
    return (
        "REQUIREMENTS:\n"
        "1. Use the Google Search tool for every result. Do not answer from memory.\n"
        f"2. Only include events published between {context.window}. Ignore anything older.\n"
        f"3. Return up to {context.results} results.\n"
        "4. Copy the exact sourceUrl and sourceTitle of the page you retrieved. Do not paraphrase them.\n"
        f"5. Identify the {decision_maker} as the decisionMaker.\n"
        "6. If you cannot find enough real results, return fewer or an empty array []. Never invent events."
    )


def _header(context: _PromptContext) -> str:
    profile = context.profile
    return (
        f"Seller: {profile.name}\n"
        f"Industry: {profile.industry}\n"
        f"Products: {', '.join(profile.products)}\n"
        f"Target customers: {', '.join(profile.target_groups)}\n"
        f"Geography: {context.region}\n"
        f"Date range: {context.window}\n"
        f"Triggers:\n{_trigger_lines(context.triggers)}"
    )


def _tender_prompt(context: _PromptContext) -> str:
    return (
        "SEARCH GROUNDING TASK: Find recent tenders and contract awards in "
        f"{context.region} related to {context.profile.industry} or {', '.join(context.profile.products)}.\n\n"
        f"{_header(context)}\n\n"
        'Look for phrases like "awarded to", "contract signed", "winning bidder", "request for tender".\n\n'
        f"{_requirements(context, decision_maker='WINNING COMPANY or issuing buyer')}"
    )


def _project_prompt(context: _PromptContext) -> str:
    return (
        "SEARCH GROUNDING TASK: Find recent project announcements, construction starts or development "
        f"approvals in {context.region} related to {context.profile.industry}.\n\n"
        f"{_header(context)}\n\n"
        'Look for phrases like "groundbreaking", "site establishment", "approved for construction", '
        '"development application approved".\n\n'
        f"{_requirements(context, decision_maker='PROJECT OWNER or DEVELOPER')}"
    )


def _news_prompt(context: _PromptContext) -> str:
    return (
        f"SEARCH GROUNDING TASK: Find current industry news in {context.region} that creates a sales "
        f"opportunity for {context.profile.name}.\n\n"
        f"{_header(context)}\n\n"
        "Every result must correspond to a real news article or government announcement.\n\n"
        f"{_requirements(context, decision_maker='organisation that will buy')}"
    )


def _site_prompt(context: _PromptContext, site: str) -> str:
    return (
        f"SEARCH GROUNDING TASK: Search ONLY site:{site} for recent opportunities relevant to "
        f"{context.profile.name}.\n\n"
        f"{_header(context)}\n\n"
        f"HARD RULE: every query must use the operator site:{site} and every sourceUrl must be on {site}. "
        f"If nothing relevant is found on {site}, return an empty array [].\n\n"
        f"{_requirements(context, decision_maker='buyer or project owner')}"
    )
