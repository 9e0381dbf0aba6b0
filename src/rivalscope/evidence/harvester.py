"""Evidence harvesting.

Runs every query of every pack through the search capability with bounded concurrency,
normalizes hits immediately, then dedups each category by canonical URL and truncates it to the
per-category limit. A failing query degrades to zero results; the batch always completes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from rivalscope.config import HarvestConfig
from rivalscope.core.concurrency import bounded_gather, call_maybe_async
from rivalscope.evidence.normalize import canonicalize_url, extract_domain, is_first_party, trim_excerpt
from rivalscope.evidence.packs import HarvestContext, QueryPack, build_query_packs
from rivalscope.logging import get_logger
from rivalscope.models.bundle import (
    BundleGroup,
    BundleMeta,
    BundleSource,
    BundleTotals,
    EvidenceBundle,
    GroupStats,
)
from rivalscope.models.cache import utcnow
from rivalscope.models.category import ALL_HARVEST_CATEGORIES
from rivalscope.models.search import NormalizedResult, RawSearchResult
from rivalscope.tools.web_search import SearchProvider

logger = get_logger(__name__)


def normalize_results(results: list[RawSearchResult], *, max_excerpt_chars: int = 400) -> list[NormalizedResult]:
    """Canonicalize URLs, extract domains and trim excerpts; title falls back to domain/url."""

    out: list[NormalizedResult] = []
    for r in results:
        url = (r.url or "").strip()
        if not url:
            continue
        domain = extract_domain(url)
        out.append(
            NormalizedResult(
                title=(r.title or "").strip() or domain or url,
                url=url,
                canonical_url=canonicalize_url(url),
                domain=domain,
                excerpt=trim_excerpt(r.content, max_excerpt_chars),
                published_date=r.published_date or None,
                score=r.score,
            )
        )
    return out


def dedupe_sources(sources: list[BundleSource], preferred_domains: tuple[str, ...] = ()) -> list[BundleSource]:
    """Dedup by canonical URL, first-seen wins unless a later copy comes from a preferred domain."""

    by_url: dict[str, BundleSource] = {}
    for source in sources:
        key = canonicalize_url(source.url)
        existing = by_url.get(key)
        if existing is None:
            by_url[key] = source
            continue
        if preferred_domains and is_first_party(source.domain, preferred_domains) and not is_first_party(
            existing.domain, preferred_domains
        ):
            by_url[key] = source
    return list(by_url.values())


@dataclass(frozen=True)
class _QueryOutcome:
    pack: QueryPack
    query: str
    sources: list[BundleSource]


@dataclass
class Harvester:
    """Execute query packs against a search provider and emit an immutable bundle."""

    search: SearchProvider
    config: HarvestConfig = field(default_factory=HarvestConfig)
    clock: Callable[[], datetime] = utcnow

    async def harvest(self, ctx: HarvestContext) -> EvidenceBundle:
        limit = ctx.limit_per_category or self.config.limit_per_category
        packs = build_query_packs(ctx)
        jobs = [(pack, query) for pack in packs for query in pack.queries]

        logger.info(
            "Harvest started",
            extra={"company": ctx.company, "packs": len(packs), "queries": len(jobs)},
        )

        max_results = limit * self.config.results_per_query_multiplier

        async def _run(job: tuple[QueryPack, str]) -> _QueryOutcome:
            pack, query = job
            return _QueryOutcome(pack, query, await self._run_query(query, max_results=max_results))

        outcomes = await bounded_gather(jobs, _run, limit=self.config.concurrency)

        groups = [self._build_group(pack, [o for o in outcomes if o.pack is pack], limit) for pack in packs]
        bundle = EvidenceBundle(
            meta=BundleMeta(
                company=ctx.company,
                url=ctx.url,
                context=ctx.context,
                harvested_at=self.clock(),
                limit_per_category=limit,
            ),
            groups=tuple(groups),
            totals=_totals(groups),
        )

        logger.info(
            "Harvest completed",
            extra={
                "company": ctx.company,
                "sources": bundle.totals.sources,
                "unique_urls": bundle.totals.unique_urls,
                "unique_domains": bundle.totals.unique_domains,
            },
        )
        return bundle

    async def _run_query(self, query: str, *, max_results: int) -> list[BundleSource]:
        try:
            call = call_maybe_async(self.search.search, query, max_results=max_results)
            if self.config.query_timeout_s is not None:
                raw = await asyncio.wait_for(call, timeout=self.config.query_timeout_s)
            else:
                raw = await call
        except Exception as e:
            logger.warning("Search query failed; continuing with empty results", extra={"query": query, "error": str(e)})
            return []

        return [
            BundleSource(
                title=n.title,
                url=n.url,
                domain=n.domain,
                published_date=n.published_date,
                snippet=n.excerpt or None,
                source_type=r.source,
            )
            for r, n in _paired(raw or [], self.config.max_excerpt_chars)
        ]

    @staticmethod
    def _build_group(pack: QueryPack, outcomes: list[_QueryOutcome], limit: int) -> BundleGroup:
        pooled: list[BundleSource] = []
        for o in outcomes:
            pooled.extend(o.sources)

        deduped = dedupe_sources(pooled, pack.preferred_domains)
        kept = deduped[:limit]
        return BundleGroup(
            category=pack.category,
            queries=pack.queries,
            sources=tuple(kept),
            stats=GroupStats(
                requested=len(outcomes),
                returned=len(pooled),
                kept=len(kept),
                deduped=len(pooled) - len(deduped),
                unique_domains=len({s.domain.lower() for s in kept}),
            ),
        )


def _paired(raw: list[RawSearchResult], max_excerpt_chars: int) -> list[tuple[RawSearchResult, NormalizedResult]]:
    usable = [r for r in raw if (r.url or "").strip()]
    return list(zip(usable, normalize_results(usable, max_excerpt_chars=max_excerpt_chars)))


def _totals(groups: list[BundleGroup]) -> BundleTotals:
    all_sources = [s for g in groups for s in g.sources]
    by_category = {c.value: 0 for c in ALL_HARVEST_CATEGORIES}
    for g in groups:
        by_category[g.category.value] = len(g.sources)
    return BundleTotals(
        sources=len(all_sources),
        unique_urls=len({canonicalize_url(s.url) for s in all_sources}),
        unique_domains=len({s.domain.lower() for s in all_sources}),
        by_category=by_category,
    )
