"""Keyword and hostname heuristics for matching claims to grounding chunks."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from urllib.parse import urlsplit

from signal_hunter.models.signal import ClaimedSignal, GroundingChunk

# Articles, conjunctions and the industry/geo filler words that appear in almost
# every Australian/NZ tender headline.
STOP_WORDS = frozenset(
    {
        "the",
        "and",
        "for",
        "with",
        "from",
        "this",
        "that",
        "into",
        "under",
        "project",
        "construction",
        "new",
        "nsw",
        "gov",
        "govt",
        "wa",
        "nt",
        "qld",
        "vic",
        "sa",
        "tas",
        "au",
        "nz",
    }
)

_NON_WORD = re.compile(r"[^\w\s]")
_PROTOCOL = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)

SITE_MATCH_STRICT = "strict"
SITE_MATCH_SUBSTRING = "substring"


@dataclass(frozen=True)
class MatchWeights:
    """Tunable weights for the claim/chunk similarity score."""

    source_title_keyword: int = 15
    headline_keyword: int = 10
    hostname_match: int = 40
    government_bonus: int = 20
    news_bonus: int = 10
    aggregator_penalty: int = -5
    government_markers: tuple[str, ...] = (".gov", ".govt")
    news_domains: tuple[str, ...] = ("abc.net.au", "nzherald", "smh.com.au", "theguardian")
    aggregator_domains: tuple[str, ...] = ("tenderlink", "tenders", "bci", "australiantenders")


DEFAULT_WEIGHTS = MatchWeights()


def extract_keywords(text: str | None) -> list[str]:
    """Return the distinct significant lowercase tokens of ``text`` in order."""
    if not text:
        return []
    cleaned = _NON_WORD.sub(" ", text.lower())
    keywords: list[str] = []
    seen: set[str] = set()
    for token in cleaned.split():
        if len(token) <= 2 or token in STOP_WORDS or token in seen:
            continue
        seen.add(token)
        keywords.append(token)
    return keywords


def canonical_hostname(url: str | None) -> str:
    """Collapse a URL (or bare domain) into a lowercase host without ``www.``.

    Unparseable input degrades to the lowercased, trimmed input so that a malformed
    value can still take part in matching.
    """
    if not url:
        return ""
    candidate = url.strip()
    if not candidate:
        return ""
    target = candidate if "://" in candidate else f"https://{candidate}"
    try:
        host = urlsplit(target).hostname
    except ValueError:
        return candidate.lower()
    if not host:
        return candidate.lower()
    host = host.lower()
    while host.startswith("www."):
        host = host[4:]
    return host


def normalize_site(value: str | None) -> str:
    """Normalize a whitelisted site entry (protocol, ``www.`` and trailing slash removed)."""
    if not value:
        return ""
    site = _PROTOCOL.sub("", value.strip().lower())
    while site.startswith("www."):
        site = site[4:]
    return site.rstrip("/")


def normalize_headline(headline: str | None) -> str:
    if not headline:
        return ""
    return " ".join(headline.lower().split())


def score_match(
    claim: ClaimedSignal,
    chunk: GroundingChunk,
    weights: MatchWeights = DEFAULT_WEIGHTS,
) -> int:
    """Score how likely ``chunk`` is the page ``claim`` was drawn from."""
    score = 0
    chunk_keywords = set(extract_keywords(chunk.title))

    if claim.source_title:
        shared = [keyword for keyword in extract_keywords(claim.source_title) if keyword in chunk_keywords]
        score += len(shared) * weights.source_title_keyword

    headline_shared = [keyword for keyword in extract_keywords(claim.headline) if keyword in chunk_keywords]
    score += len(headline_shared) * weights.headline_keyword

    claim_host = canonical_hostname(claim.source_url)
    chunk_host = canonical_hostname(chunk.uri)
    if claim_host and chunk_host and claim_host == chunk_host:
        score += weights.hostname_match

    score += _authority_adjustment(chunk_host, weights)
    return score


def _authority_adjustment(host: str, weights: MatchWeights) -> int:
    if not host:
        return 0
    if _contains_any(host, weights.government_markers):
        return weights.government_bonus
    if _contains_any(host, weights.news_domains):
        return weights.news_bonus
    if _contains_any(host, weights.aggregator_domains):
        return weights.aggregator_penalty
    return 0


def _contains_any(host: str, needles: Iterable[str]) -> bool:
    return any(needle in host for needle in needles)


def site_matches(host: str, whitelist: Sequence[str], mode: str = SITE_MATCH_STRICT) -> bool:
    """Check a verified host against the hunt's site whitelist.

    ``strict`` accepts the site's host itself or any of its subdomains; a path or port
    on the whitelist entry is ignored. ``substring`` keeps the legacy bidirectional
    containment check against the full entry.
    """
    if not host:
        return False
    for site in whitelist:
        if not site:
            continue
        if mode == SITE_MATCH_SUBSTRING:
            if site in host or host in site:
                return True
        else:
            site_host = canonical_hostname(site)
            if site_host and (host == site_host or host.endswith(f".{site_host}")):
                return True
    return False
