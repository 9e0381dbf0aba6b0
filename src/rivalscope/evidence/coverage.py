"""Evidence coverage and confidence scoring.

`compute_coverage` is a pure function of the claim set (plus competitor domains and `now`):
the same claims always produce the same coverage, which keeps status displays stable and makes
the confidence label safe to use as a gate for downstream generation.

Two minimum-viable-coverage (MVC) rules exist in the product and have not been reconciled, so
both sit behind `MvcRule`:

- ``core`` (default): pricing, docs and reviews must all be present.
- ``breadth``: at least 3 of pricing/reviews/changelog/jobs/docs, including pricing or reviews.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Sequence

from rivalscope.config import CoverageConfig, DedupConfig
from rivalscope.evidence.claims import claims_from_rows
from rivalscope.evidence.dedup import dedupe_claims
from rivalscope.evidence.normalize import is_first_party
from rivalscope.evidence.rank import age_days, parse_timestamp
from rivalscope.models.cache import utcnow
from rivalscope.models.category import ALL_CATEGORIES, EvidenceCategory, normalize_category
from rivalscope.models.claim import EvidenceClaim
from rivalscope.models.coverage import ConfidenceLabel, CoverageGap, EvidenceCoverage

SIMPLIFIED_MAX_GAPS = 3

SECONDARY_CATEGORIES: tuple[EvidenceCategory, ...] = (
    EvidenceCategory.JOBS,
    EvidenceCategory.CHANGELOG,
    EvidenceCategory.BLOG,
    EvidenceCategory.COMMUNITY,
    EvidenceCategory.SECURITY,
)

GAP_SUGGESTIONS: dict[EvidenceCategory, str] = {
    EvidenceCategory.PRICING: 'Try searching for "/pricing" or "/plans" pages',
    EvidenceCategory.DOCS: 'Try searching for "/docs" or the documentation site',
    EvidenceCategory.REVIEWS: "Try searching for product reviews on G2, Capterra, or Trustpilot",
    EvidenceCategory.CHANGELOG: "Try adding /changelog, /releases, or product update posts",
    EvidenceCategory.JOBS: "Try searching for job postings on the careers page, Greenhouse, or Lever",
    EvidenceCategory.SECURITY: "Try searching for security, trust center, or compliance pages",
    EvidenceCategory.COMMUNITY: "Try searching for community forums, Reddit threads, or Discord servers",
    EvidenceCategory.BLOG: "Try searching for the company blog or newsroom",
    EvidenceCategory.OTHER: "Try broadening search terms",
}


@dataclass(frozen=True)
class MvcRule:
    """Minimum viable coverage rule."""

    name: str
    categories: tuple[EvidenceCategory, ...]
    min_present: int
    requires_any: tuple[EvidenceCategory, ...] = ()

    def present(self, present: set[EvidenceCategory]) -> int:
        return sum(1 for c in self.categories if c in present)

    def is_met(self, present: set[EvidenceCategory]) -> bool:
        if self.present(present) < self.min_present:
            return False
        return not self.requires_any or any(c in present for c in self.requires_any)

    def progress(self, present: set[EvidenceCategory]) -> float:
        """Fraction of the way to meeting the rule, in [0, 1]."""

        count = min(self.present(present), self.min_present)
        if count >= self.min_present and not self.is_met(present):
            count = self.min_present - 1
        return count / self.min_present


CORE_MVC = MvcRule(
    name="core",
    categories=(EvidenceCategory.PRICING, EvidenceCategory.DOCS, EvidenceCategory.REVIEWS),
    min_present=3,
)
BREADTH_MVC = MvcRule(
    name="breadth",
    categories=(
        EvidenceCategory.PRICING,
        EvidenceCategory.REVIEWS,
        EvidenceCategory.CHANGELOG,
        EvidenceCategory.JOBS,
        EvidenceCategory.DOCS,
    ),
    min_present=3,
    requires_any=(EvidenceCategory.PRICING, EvidenceCategory.REVIEWS),
)
MVC_RULES: dict[str, MvcRule] = {CORE_MVC.name: CORE_MVC, BREADTH_MVC.name: BREADTH_MVC}


def recency_score(claims: Sequence[EvidenceClaim], now: datetime) -> tuple[float, str | None]:
    """Score from the most recent usable date across all claims."""

    if not claims:
        return 0.0, None

    newest: datetime | None = None
    newest_raw: str | None = None
    for claim in claims:
        for raw in (claim.published_at, claim.retrieved_at):
            dt = parse_timestamp(raw)
            if dt is None:
                continue
            if newest is None or dt > newest:
                newest, newest_raw = dt, raw
            break

    if newest is None:
        return 0.3, None

    age = age_days(newest, now) or 0.0
    if age <= 30:
        return 1.0, newest_raw
    if age <= 90:
        return 0.7, newest_raw
    if age <= 180:
        return 0.4, newest_raw
    return 0.1, newest_raw


def confidence_label(*, total: int, meets_mvc: bool, coverage: float, recency: float, first_party: float) -> ConfidenceLabel:
    if total == 0 or not meets_mvc:
        return "Insufficient"
    if recency >= 0.7 and first_party >= 0.5:
        return "High"
    if coverage >= 0.6 or (recency >= 0.5 and first_party >= 0.3):
        return "Medium"
    return "Low"


def coverage_gaps(present: set[EvidenceCategory], rule: MvcRule) -> list[CoverageGap]:
    """Missing MVC categories first, then missing secondary categories."""

    gaps: list[CoverageGap] = []
    listed: set[EvidenceCategory] = set()
    for category in rule.categories:
        if category not in present:
            gaps.append(
                CoverageGap(
                    category=category,
                    reason=f"No {category.value} evidence found",
                    suggestion=GAP_SUGGESTIONS[category],
                    required=True,
                )
            )
            listed.add(category)
    for category in SECONDARY_CATEGORIES:
        if category not in present and category not in listed:
            gaps.append(
                CoverageGap(
                    category=category,
                    reason=f"No {category.value} evidence found",
                    suggestion=GAP_SUGGESTIONS[category],
                )
            )
    return gaps


def _as_claim_list(claims: Mapping[Any, Iterable[EvidenceClaim]] | Iterable[EvidenceClaim]) -> list[tuple[EvidenceCategory, EvidenceClaim]]:
    if isinstance(claims, Mapping):
        return [(normalize_category(key), c) for key, group in claims.items() for c in group]
    return [(c.category, c) for c in claims]


def compute_coverage(
    claims: Mapping[Any, Iterable[EvidenceClaim]] | Iterable[EvidenceClaim],
    competitor_domains: Sequence[str] = (),
    *,
    now: datetime | None = None,
    config: CoverageConfig | None = None,
) -> EvidenceCoverage:
    """Aggregate (ranked) claims into the coverage model."""

    cfg = config or CoverageConfig()
    ts = now or utcnow()
    rule = MVC_RULES[cfg.mvc_rule]

    pairs = _as_claim_list(claims)
    all_claims = [c for _, c in pairs]
    counts = {c: 0 for c in ALL_CATEGORIES}
    for category, _ in pairs:
        counts[category] += 1

    present_list = [c for c in ALL_CATEGORIES if counts[c] > 0]
    present = set(present_list)
    total = len(all_claims)

    first_party = sum(1 for c in all_claims if is_first_party(c.domain, competitor_domains))
    first_party_ratio = first_party / total if total else 0.0
    recency, newest_at = recency_score(all_claims, ts)

    meets_mvc = total > 0 and rule.is_met(present)
    if meets_mvc:
        secondary = sum(1 for c in SECONDARY_CATEGORIES if c in present)
        score = 0.6 + 0.4 * secondary / len(SECONDARY_CATEGORIES)
        if present_list and total / len(present_list) >= cfg.density_threshold:
            score += cfg.density_boost
        score = min(1.0, score)
    else:
        score = min(0.4, 0.4 * rule.progress(present))

    gaps = coverage_gaps(present, rule)
    if cfg.max_gaps is not None:
        gaps = gaps[: cfg.max_gaps]

    return EvidenceCoverage(
        counts_by_category=counts,
        categories_present=present_list,
        total_claims=total,
        first_party_ratio=round(first_party_ratio, 4),
        recency_score=recency,
        coverage_score=round(score, 4),
        meets_mvc=meets_mvc,
        confidence_label=confidence_label(
            total=total,
            meets_mvc=meets_mvc,
            coverage=score,
            recency=recency,
            first_party=first_party_ratio,
        ),
        gaps=gaps,
        newest_at=newest_at,
    )


def coverage_from_rows(
    rows: Iterable[Mapping[str, Any]],
    competitor_domains: Sequence[str] = (),
    *,
    now: datetime | None = None,
    config: CoverageConfig | None = None,
) -> EvidenceCoverage:
    """Simplified path over persisted evidence rows; gap list capped at three entries."""

    cfg = (config or CoverageConfig()).model_copy(update={"max_gaps": SIMPLIFIED_MAX_GAPS})
    claims = dedupe_claims(claims_from_rows(rows), DedupConfig())
    return compute_coverage(claims, competitor_domains, now=now, config=cfg)
