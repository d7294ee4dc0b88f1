from __future__ import annotations

import random
import string

import pytest

from signal_hunter.models.signal import ClaimedSignal
from signal_hunter.services.hunting.matching import (
    SITE_MATCH_STRICT,
    SITE_MATCH_SUBSTRING,
    MatchWeights,
    canonical_hostname,
    extract_keywords,
    normalize_headline,
    normalize_site,
    score_match,
    site_matches,
)
from tests.helpers.fake_oracle import chunk

TLDS = ["com", "com.au", "gov.au", "co.nz", "org", "net.au", "io"]


def _random_label(rng: random.Random) -> str:
    return "".join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(rng.randint(3, 10)))


def _random_url(rng: random.Random) -> str:
    scheme = rng.choice(["https://", "http://", ""])
    prefix = rng.choice(["", "www.", "WWW.", "www.www."])
    labels = ".".join(_random_label(rng) for _ in range(rng.randint(1, 3)))
    host = f"{prefix}{labels}.{rng.choice(TLDS)}"
    if rng.random() < 0.5:
        host = host.upper() if rng.random() < 0.5 else host
    port = rng.choice(["", ":8080", ":443"]) if scheme else ""
    path = rng.choice(["", "/", "/news/article-1", "/tenders?id=42#top"])
    return f"{scheme}{host}{port}{path}"


def test_extract_keywords_drops_short_tokens_and_stop_words():
    keywords = extract_keywords("The NSW Government awards new M7 motorway project!")

    assert keywords == ["government", "awards", "motorway"]


def test_extract_keywords_is_distinct_and_ordered():
    assert extract_keywords("Bridge bridge BRIDGE works, bridge-works") == ["bridge", "works"]
    assert extract_keywords(None) == []
    assert extract_keywords("") == []


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("https://WWW.Example.com/path?q=1", "example.com"),
        ("http://www.www.example.com", "example.com"),
        ("example.com/news", "example.com"),
        ("tenders.nsw.gov.au", "tenders.nsw.gov.au"),
        ("https://sub.example.co.nz:8443/x", "sub.example.co.nz"),
        ("  https://example.org  ", "example.org"),
        ("", ""),
        (None, ""),
    ],
)
def test_canonical_hostname(raw, expected):
    assert canonical_hostname(raw) == expected


def test_canonical_hostname_falls_back_to_lowercased_input():
    assert canonical_hostname("HTTP://[Broken") == "http://[broken"


def test_canonical_hostname_is_idempotent_for_random_urls():
    rng = random.Random(20240611)
    for _ in range(500):
        url = _random_url(rng)
        once = canonical_hostname(url)
        assert canonical_hostname(once) == once, url
        assert not once.startswith("www.")
        assert once == once.lower()


def test_normalize_site_strips_protocol_www_and_trailing_slash():
    assert normalize_site("HTTPS://www.Tenders.NSW.gov.au/") == "tenders.nsw.gov.au"
    assert normalize_site("  estimateone.com ") == "estimateone.com"
    assert normalize_site(None) == ""


def test_normalize_headline_collapses_case_and_whitespace():
    assert normalize_headline("  Big   NEWS \n today ") == "big news today"


def test_score_match_combines_keywords_and_hostname():
    claim = ClaimedSignal(
        headline="Sydney Metro awards tunnelling contract",
        source_url="https://www.sydneymetro.info/news/123",
        source_title="Sydney Metro awards tunnelling contract",
    )
    grounding = chunk("https://sydneymetro.info/article", "Sydney Metro awards tunnelling contract | Sydney Metro")

    # 5 shared title keywords * 15 + 5 shared headline keywords * 10 + hostname 40
    assert score_match(claim, grounding) == 165


def test_score_match_without_overlap_is_zero():
    claim = ClaimedSignal(headline="Quarry expansion approved", source_url="https://quarry.example")
    grounding = chunk("https://unrelated.example/page", "Weather forecast for the weekend")

    assert score_match(claim, grounding) == 0


@pytest.mark.parametrize(
    ("uri", "adjustment"),
    [
        ("https://www.planning.nsw.gov.au/x", 20),
        ("https://council.govt.nz/x", 20),
        ("https://www.abc.net.au/news/x", 10),
        ("https://www.nzherald.co.nz/x", 10),
        ("https://www.tenderlink.com/x", -5),
        ("https://tenders.gov.au/x", 20),
        ("https://example.com/x", 0),
    ],
)
def test_authority_adjustment_is_applied_once_by_priority(uri, adjustment):
    claim = ClaimedSignal(headline="Zzz qqq")
    assert score_match(claim, chunk(uri, "")) == adjustment


def test_hostname_agreement_adds_exactly_forty_points():
    rng = random.Random(7)
    words = ["council", "awards", "bridge", "upgrade", "tender", "hospital", "rail", "depot", "water", "pipeline"]
    for index in range(200):
        host = f"{_random_label(rng)}.{rng.choice(TLDS)}"
        title = " ".join(rng.sample(words, rng.randint(0, 5)))
        headline = " ".join(rng.sample(words, rng.randint(1, 5)))
        grounding = chunk(f"https://{host}/{index}", title)
        matching = ClaimedSignal(headline=headline, source_url=f"https://www.{host}/other", source_title=title)
        different = ClaimedSignal(headline=headline, source_url=f"https://elsewhere-{index}.test/", source_title=title)

        assert score_match(matching, grounding) - score_match(different, grounding) == 40


def test_custom_weights_are_respected():
    weights = MatchWeights(hostname_match=5, government_bonus=0)
    claim = ClaimedSignal(headline="Zzz qqq", source_url="https://roads.gov.au/a")

    assert score_match(claim, chunk("https://roads.gov.au/b", ""), weights) == 5


def test_site_matches_strict_accepts_site_and_subdomains_only():
    whitelist = ["tenders.nsw.gov.au"]

    assert site_matches("tenders.nsw.gov.au", whitelist, SITE_MATCH_STRICT)
    assert site_matches("buy.tenders.nsw.gov.au", whitelist, SITE_MATCH_STRICT)
    assert not site_matches("x-tenders.nsw.gov.au.evil.com", whitelist, SITE_MATCH_STRICT)
    assert not site_matches("nsw.gov.au", whitelist, SITE_MATCH_STRICT)
    assert not site_matches("competitor-blog.com", whitelist, SITE_MATCH_STRICT)
    assert not site_matches("", whitelist, SITE_MATCH_STRICT)


def test_site_matches_substring_mode_keeps_bidirectional_containment():
    whitelist = ["tenders.nsw.gov.au"]

    assert site_matches("x-tenders.nsw.gov.au.evil.com", whitelist, SITE_MATCH_SUBSTRING)
    assert site_matches("nsw.gov.au", whitelist, SITE_MATCH_SUBSTRING)
    assert not site_matches("competitor-blog.com", whitelist, SITE_MATCH_SUBSTRING)


def test_site_matches_strict_ignores_path_and_port_on_whitelist_entries():
    assert site_matches("tenders.nsw.gov.au", ["tenders.nsw.gov.au/rft"], SITE_MATCH_STRICT)
    assert site_matches("buy.tenders.nsw.gov.au", ["tenders.nsw.gov.au:443/rft"], SITE_MATCH_STRICT)
    assert not site_matches("evil.example", ["tenders.nsw.gov.au/rft"], SITE_MATCH_STRICT)
