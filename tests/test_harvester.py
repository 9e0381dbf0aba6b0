"""Tests for the harvester."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from fakes import FakeSearch, SlowSearch, hit
from rivalscope.config import HarvestConfig
from rivalscope.evidence.harvester import Harvester, dedupe_sources
from rivalscope.evidence.packs import HarvestContext
from rivalscope.models.bundle import BundleSource, EvidenceBundle
from rivalscope.models.category import HarvestCategory

HARVESTED_AT = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _route(query: str) -> list:
    if "pricing" in query:
        return [
            hit("https://www.acme.com/pricing?utm_source=x", "Acme Pricing", "Plans from $10"),
            hit("https://acme.com/pricing/", "Acme Pricing (dup)"),
            hit("https://compare.io/acme-pricing", "Acme pricing compared"),
            hit("https://blog.other.com/acme-pricing-review", None, "A  long\n look at pricing"),
        ]
    return []


def _harvest(search, ctx: HarvestContext, **config) -> EvidenceBundle:
    harvester = Harvester(search=search, config=HarvestConfig(**config), clock=lambda: HARVESTED_AT)
    return asyncio.run(harvester.harvest(ctx))


def test_harvest_dedups_truncates_and_counts() -> None:
    """Each group is deduped by canonical URL, cut to the limit, and described by its stats."""

    ctx = HarvestContext(
        company="Acme",
        url="https://acme.com",
        categories=[HarvestCategory.PRICING],
        limit_per_category=2,
    )
    search = FakeSearch(_route)
    bundle = _harvest(search, ctx)

    group = bundle.group(HarvestCategory.PRICING)
    assert group is not None
    assert [s.url for s in group.sources] == [
        "https://www.acme.com/pricing?utm_source=x",
        "https://compare.io/acme-pricing",
    ]
    assert group.sources[0].snippet == "Plans from $10"
    assert group.stats.requested == 4
    assert group.stats.returned == 12
    assert group.stats.kept == 2
    assert group.stats.deduped == 9
    assert group.stats.unique_domains == 2
    assert all(max_results == 4 for _, max_results in search.calls)


def test_failed_queries_degrade_to_empty_groups() -> None:
    """A failing query yields no results; the batch still completes with zero-filled totals."""

    ctx = HarvestContext(
        company="Acme",
        categories=[HarvestCategory.PRICING, HarvestCategory.REVIEWS],
        limit_per_category=3,
    )
    bundle = _harvest(FakeSearch(_route, fail_on=("reviews",)), ctx)

    reviews = bundle.group(HarvestCategory.REVIEWS)
    assert reviews is not None and reviews.sources == ()
    assert reviews.stats.requested == 3
    assert bundle.totals.sources == 3
    assert bundle.totals.by_category["pricing"] == 3
    assert bundle.totals.by_category["reviews"] == 0
    assert len(bundle.totals.by_category) == 10


def test_harvest_with_no_results() -> None:
    """Zero results everywhere still yields a complete, empty bundle."""

    bundle = _harvest(FakeSearch(), HarvestContext(company="Nobody"))
    assert len(bundle.groups) == 10
    assert bundle.totals.sources == 0
    assert bundle.totals.unique_domains == 0
    assert bundle.meta.harvested_at == HARVESTED_AT
    assert bundle.meta.limit_per_category == 5


def test_query_timeout_counts_as_failure() -> None:
    """A query slower than the per-query timeout contributes nothing."""

    ctx = HarvestContext(company="Acme", categories=[HarvestCategory.STATUS])
    bundle = _harvest(SlowSearch(delay_s=1.0), ctx, query_timeout_s=0.05)
    assert bundle.totals.sources == 0


def test_bundle_payload_uses_camel_case_and_round_trips() -> None:
    """The persisted payload is camelCase and reads back into an equal bundle."""

    ctx = HarvestContext(company="Acme", categories=[HarvestCategory.PRICING], limit_per_category=2)
    bundle = _harvest(FakeSearch(_route), ctx)
    payload = bundle.to_payload()

    assert payload["schemaVersion"] == 1
    assert payload["meta"]["limitPerCategory"] == 2
    assert "uniqueDomains" in payload["totals"]
    assert "publishedDate" in payload["groups"][0]["sources"][0]
    assert EvidenceBundle.from_payload(payload) == bundle


def test_dedupe_sources_first_seen_wins() -> None:
    """Without a preferred domain, the first copy of a URL is kept."""

    first = BundleSource(title="a", url="https://acme.com/x/", domain="acme.com")
    second = BundleSource(title="b", url="https://www.acme.com/x", domain="acme.com")
    assert dedupe_sources([first, second]) == [first]
