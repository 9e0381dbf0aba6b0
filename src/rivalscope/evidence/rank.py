"""Deterministic claim ranking.

score = (0.5 + 0.5 * recency_bonus) * first_party_multiplier * category_weight * confidence_weight

Each score depends only on the claim itself (plus competitor domains and `now`). Ordering is
score descending, then most recent timestamp (retrieved_at, then published_at, compared as
ISO-8601 strings), then claim text ascending. Canonical URL and fingerprint settle exact text
ties so input order never leaks into the result.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Sequence

from rivalscope.config import RankConfig
from rivalscope.evidence.normalize import is_first_party
from rivalscope.models.cache import utcnow
from rivalscope.models.claim import EvidenceClaim

_SECONDS_PER_DAY = 86_400.0


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC. Returns None when unusable."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def age_days(value: str | datetime | None, now: datetime) -> float | None:
    dt = parse_timestamp(value)
    if dt is None:
        return None
    return (now - dt).total_seconds() / _SECONDS_PER_DAY


def recency_bonus(claim: EvidenceClaim, now: datetime, *, undated: float = 0.5) -> float:
    age = age_days(claim.published_at, now)
    if age is None:
        age = age_days(claim.retrieved_at, now)
    if age is None:
        return undated
    if age <= 30:
        return 1.0
    if age <= 90:
        return 0.8
    if age <= 180:
        return 0.6
    return 0.4


def score_claim(
    claim: EvidenceClaim,
    competitor_domains: Sequence[str] = (),
    *,
    now: datetime | None = None,
    config: RankConfig | None = None,
) -> float:
    cfg = config or RankConfig()
    ts = now or utcnow()

    score = 0.5 + 0.5 * recency_bonus(claim, ts, undated=cfg.undated_recency_bonus)
    if is_first_party(claim.domain, competitor_domains):
        score *= cfg.first_party_multiplier
    score *= cfg.category_weights.get(claim.category.value, cfg.category_weights.get("other", 0.3))
    if claim.confidence:
        score *= cfg.confidence_weights.get(claim.confidence, 1.0)
    return score


def rank_claims(
    claims: Iterable[EvidenceClaim],
    competitor_domains: Sequence[str] = (),
    *,
    now: datetime | None = None,
    config: RankConfig | None = None,
) -> list[EvidenceClaim]:
    """Score every claim and return a new, totally ordered list."""

    ts = now or utcnow()
    scored = [
        c.model_copy(update={"score": score_claim(c, competitor_domains, now=ts, config=config)})
        for c in claims
    ]
    # Stable sorts, least significant key first.
    scored.sort(key=lambda c: (c.claim_text, c.canonical_url, c.fingerprint, c.id))
    scored.sort(key=lambda c: c.retrieved_at or c.published_at or "", reverse=True)
    scored.sort(key=lambda c: c.score or 0.0, reverse=True)
    return scored
