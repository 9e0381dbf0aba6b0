"""Evidence category partitions.

Two partitions exist: the 10-way harvest partition used for query packs and persisted bundles,
and the canonical 9-way claim partition used by ranking and coverage. The mapping between them
is lossy in one direction (harvest -> claim).
"""

from __future__ import annotations

from enum import Enum


class EvidenceCategory(str, Enum):
    """Canonical claim category."""

    PRICING = "pricing"
    DOCS = "docs"
    REVIEWS = "reviews"
    JOBS = "jobs"
    CHANGELOG = "changelog"
    BLOG = "blog"
    COMMUNITY = "community"
    SECURITY = "security"
    OTHER = "other"


class HarvestCategory(str, Enum):
    """Harvest-side category, one query pack per value."""

    OFFICIAL_SITE = "official_site"
    PRICING = "pricing"
    DOCS = "docs"
    CHANGELOG = "changelog"
    STATUS = "status"
    REVIEWS = "reviews"
    JOBS = "jobs"
    INTEGRATIONS = "integrations"
    SECURITY_TRUST = "security_trust"
    COMMUNITY = "community"


ALL_CATEGORIES: tuple[EvidenceCategory, ...] = tuple(EvidenceCategory)
ALL_HARVEST_CATEGORIES: tuple[HarvestCategory, ...] = tuple(HarvestCategory)

_HARVEST_TO_CLAIM: dict[HarvestCategory, EvidenceCategory] = {
    HarvestCategory.OFFICIAL_SITE: EvidenceCategory.DOCS,
    HarvestCategory.PRICING: EvidenceCategory.PRICING,
    HarvestCategory.DOCS: EvidenceCategory.DOCS,
    HarvestCategory.CHANGELOG: EvidenceCategory.CHANGELOG,
    HarvestCategory.STATUS: EvidenceCategory.CHANGELOG,
    HarvestCategory.REVIEWS: EvidenceCategory.REVIEWS,
    HarvestCategory.JOBS: EvidenceCategory.JOBS,
    HarvestCategory.INTEGRATIONS: EvidenceCategory.DOCS,
    HarvestCategory.SECURITY_TRUST: EvidenceCategory.SECURITY,
    HarvestCategory.COMMUNITY: EvidenceCategory.COMMUNITY,
}

_ALIASES: dict[str, EvidenceCategory] = {
    "documentation": EvidenceCategory.DOCS,
    "doc": EvidenceCategory.DOCS,
    "official_site": EvidenceCategory.DOCS,
    "integrations": EvidenceCategory.DOCS,
    "review": EvidenceCategory.REVIEWS,
    "job": EvidenceCategory.JOBS,
    "careers": EvidenceCategory.JOBS,
    "hiring": EvidenceCategory.JOBS,
    "release_notes": EvidenceCategory.CHANGELOG,
    "releases": EvidenceCategory.CHANGELOG,
    "status": EvidenceCategory.CHANGELOG,
    "news": EvidenceCategory.BLOG,
    "security_trust": EvidenceCategory.SECURITY,
    "trust": EvidenceCategory.SECURITY,
    "compliance": EvidenceCategory.SECURITY,
    "forum": EvidenceCategory.COMMUNITY,
}


def _key(value: object) -> str:
    if isinstance(value, Enum):
        value = value.value
    return str(value or "").strip().lower().replace("-", "_").replace(" ", "_")


def normalize_category(value: object) -> EvidenceCategory:
    """Normalize any category-ish input to the canonical claim set; unknown -> other."""

    key = _key(value)
    try:
        return EvidenceCategory(key)
    except ValueError:
        return _ALIASES.get(key, EvidenceCategory.OTHER)


def harvest_to_claim_category(value: HarvestCategory | str) -> EvidenceCategory:
    """Map a harvest category to the claim partition (lossy)."""

    key = _key(value)
    try:
        return _HARVEST_TO_CLAIM[HarvestCategory(key)]
    except ValueError:
        return normalize_category(key)


def normalize_triage_category(value: object) -> str:
    """Triage keeps harvest granularity (e.g. `status`) so shortlist quotas can address it."""

    key = _key(value)
    known = {c.value for c in EvidenceCategory} | {c.value for c in HarvestCategory}
    return key if key in known else EvidenceCategory.OTHER.value
