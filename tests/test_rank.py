"""Tests for claim scoring and ordering."""

from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest

from rivalscope.evidence.claims import build_claim
from rivalscope.evidence.rank import rank_claims, score_claim
from rivalscope.models.category import EvidenceCategory

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _claim(text: str, *, url: str = "https://compare.io/acme", category=EvidenceCategory.DOCS, **kw):
    return build_claim(url=url, category=category, text=text, **kw)


def test_recent_claims_outrank_old_ones() -> None:
    """A 10-day-old claim scores above a 200-day-old claim, all else equal."""

    fresh = _claim("fresh", published_at="2024-05-22T00:00:00Z")
    stale = _claim("stale", published_at="2023-11-14T00:00:00Z")

    assert score_claim(fresh, now=NOW) == pytest.approx(1.0)
    assert score_claim(stale, now=NOW) == pytest.approx(0.7)
    assert [c.claim_text for c in rank_claims([stale, fresh], now=NOW)] == ["fresh", "stale"]


def test_first_party_claims_get_a_boost() -> None:
    """Claims on the competitor's own domain are multiplied by 1.2."""

    own = _claim("own", url="https://docs.acme.com/start")
    third = _claim("third", url="https://blog.example.org/acme")

    assert score_claim(own, ["acme.com"], now=NOW) == pytest.approx(0.9)
    assert score_claim(third, ["acme.com"], now=NOW) == pytest.approx(0.75)
    assert rank_claims([third, own], ["acme.com"], now=NOW)[0].claim_text == "own"


def test_category_and_confidence_weights() -> None:
    """Weights multiply the recency base."""

    low_pricing = _claim("p", category=EvidenceCategory.PRICING, confidence="low", published_at="2024-05-30")
    other = _claim("o", category=EvidenceCategory.OTHER, published_at="2024-05-30")

    assert score_claim(low_pricing, now=NOW) == pytest.approx(0.5)
    assert score_claim(other, now=NOW) == pytest.approx(0.3)


def test_ranking_is_independent_of_input_order() -> None:
    """Shuffled inputs always produce the same order, including exact score ties."""

    claims = [
        _claim("b tie", retrieved_at="2024-05-01T00:00:00+00:00"),
        _claim("a tie", retrieved_at="2024-05-01T00:00:00+00:00"),
        _claim("a tie", url="https://other.io/x", retrieved_at="2024-05-01T00:00:00+00:00"),
        _claim("newer", retrieved_at="2024-05-20T00:00:00+00:00"),
        _claim("undated"),
        _claim("pricing", category=EvidenceCategory.PRICING),
    ]
    expected = [(c.claim_text, c.canonical_url) for c in rank_claims(claims, now=NOW)]

    for seed in range(5):
        shuffled = list(claims)
        random.Random(seed).shuffle(shuffled)
        assert [(c.claim_text, c.canonical_url) for c in rank_claims(shuffled, now=NOW)] == expected

    assert expected[:2] == [("newer", "https://compare.io/acme"), ("a tie", "https://compare.io/acme")]


def test_rank_returns_scored_copies() -> None:
    """Input claims are left untouched; ranked copies carry their score."""

    claim = _claim("x")
    ranked = rank_claims([claim], now=NOW)
    assert claim.score is None
    assert ranked[0].score == pytest.approx(0.75)
