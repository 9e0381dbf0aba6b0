"""Query packs: deterministic search queries per harvest category.

Identical context always yields identical packs, which keeps re-harvests reproducible and
cache-friendly. No randomness and no clock reads here.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from rivalscope.evidence.normalize import collapse_whitespace, extract_domain
from rivalscope.models.category import ALL_HARVEST_CATEGORIES, HarvestCategory

_CONTEXT_MAX_WORDS = 8


class HarvestContext(BaseModel):
    """What we know about the competitor before harvesting."""

    company: str = Field(min_length=1)
    url: str | None = None
    context: str | None = None
    categories: list[HarvestCategory] | None = None
    limit_per_category: int | None = Field(default=None, ge=1, le=50)

    @property
    def primary_domain(self) -> str | None:
        return extract_domain(self.url) or None if self.url else None


@dataclass(frozen=True)
class QueryPack:
    """Resolved queries for one harvest category."""

    category: HarvestCategory
    queries: tuple[str, ...]
    preferred_domains: tuple[str, ...] = field(default_factory=tuple)


def _context_phrase(context: str | None) -> str:
    words = collapse_whitespace(context).split(" ")
    return " ".join(w for w in words[:_CONTEXT_MAX_WORDS] if w)


def build_queries_for_category(category: HarvestCategory, ctx: HarvestContext) -> list[str]:
    """Build the ordered query list for one category."""

    company = collapse_whitespace(ctx.company)
    domain = ctx.primary_domain
    queries: list[str] = []

    if category == HarvestCategory.OFFICIAL_SITE:
        queries += [f"{company} official site", f"{company} product features"]
        phrase = _context_phrase(ctx.context)
        if phrase:
            queries.append(f"{company} {phrase}")
        if domain:
            queries += [f"site:{domain} product", f"site:{domain} about"]

    elif category == HarvestCategory.PRICING:
        queries += [f"{company} pricing", f"{company} plans pricing tiers"]
        if domain:
            queries += [f"site:{domain} pricing", f"site:{domain} plans"]

    elif category == HarvestCategory.DOCS:
        queries += [f"{company} documentation", f"{company} API documentation"]
        if domain:
            queries += [f"site:{domain} docs", f"site:{domain} documentation"]

    elif category == HarvestCategory.CHANGELOG:
        queries += [f"{company} changelog", f"{company} release notes"]
        if domain:
            queries += [f"site:{domain} changelog OR releases OR updates", f"site:{domain} what's new"]

    elif category == HarvestCategory.STATUS:
        queries += [f"{company} status page", f"{company} system status"]
        if domain:
            queries += [f"site:status.{domain}", f"site:{domain} status"]

    elif category == HarvestCategory.REVIEWS:
        queries += [
            f"{company} reviews G2",
            f"{company} reviews Capterra",
            f"{company} reviews TrustRadius",
        ]

    elif category == HarvestCategory.JOBS:
        queries += [
            f'site:boards.greenhouse.io "{company}"',
            f'site:lever.co "{company}"',
            f"{company} hiring engineering",
        ]
        if domain:
            queries.append(f"site:{domain} careers")

    elif category == HarvestCategory.INTEGRATIONS:
        queries += [f"{company} integrations", f"{company} integrations Zapier"]
        if domain:
            queries += [f"site:{domain} integrations", f"site:{domain} apps integrations"]

    elif category == HarvestCategory.SECURITY_TRUST:
        queries += [f"{company} SOC 2", f"{company} security", f"{company} compliance"]
        if domain:
            queries += [f"site:{domain} security OR trust OR compliance", f"site:{domain} security policy"]

    elif category == HarvestCategory.COMMUNITY:
        queries += [f"{company} community", f"{company} forum", f"{company} reddit experiences"]

    # dict.fromkeys keeps first-seen order
    return list(dict.fromkeys(q for q in queries if q.strip()))


def build_query_packs(ctx: HarvestContext) -> list[QueryPack]:
    """Build one pack per requested category (all categories by default)."""

    categories = ctx.categories or list(ALL_HARVEST_CATEGORIES)
    domain = ctx.primary_domain
    preferred = (domain,) if domain else ()

    packs: list[QueryPack] = []
    for category in dict.fromkeys(categories):
        packs.append(
            QueryPack(
                category=category,
                queries=tuple(build_queries_for_category(category, ctx)),
                preferred_domains=preferred,
            )
        )
    return packs
