"""Tests for Pass A triage and quota-based shortlisting."""

from __future__ import annotations

import asyncio

from fakes import ScriptedLLM, summary_json
from rivalscope.config import DEFAULT_SHORTLIST_MAX_TOTAL, ShortlistQuota
from rivalscope.evidence.cache import EvidenceCache
from rivalscope.evidence.shortlist import PageTriager, perform_shortlist, select_shortlist
from rivalscope.models.page import ExtractedPage, FetchedPage, FetchErrorKind, PageSummary, TriagedPage
from rivalscope.prompts import PAGE_SUMMARY_REPAIR_PROMPT
from rivalscope.storage.cache_store import MemoryCacheStore


def _triaged(url: str, category: str, score: float) -> TriagedPage:
    return TriagedPage(
        url=url,
        normalized_url=url,
        summary=PageSummary(category=category, coverage_score=score),
    )


def _fetched(url: str, text: str = "page text") -> FetchedPage:
    return FetchedPage(url=url, normalized_url=url, extracted=ExtractedPage(url=url, text=text))


def test_quota_takes_the_best_pages_per_category() -> None:
    """Five pricing pages with a pricing quota of two keep the two best."""

    pages = [_triaged(f"https://acme.com/p{i}", "pricing", s) for i, s in enumerate([0.7, 0.9, 0.5, 0.8, 0.6])]
    selected = select_shortlist(pages, ShortlistQuota(per_category={"pricing": 2}))
    assert [p.summary.coverage_score for p in selected] == [0.9, 0.8]


def test_backfill_fills_open_slots_with_best_remaining() -> None:
    """Unfilled category slots are backfilled from the best unselected pages."""

    pages = [
        _triaged("https://acme.com/p1", "pricing", 0.9),
        _triaged("https://acme.com/p2", "pricing", 0.7),
        _triaged("https://acme.com/d1", "docs", 0.4),
        _triaged("https://acme.com/x", "other", 0.2),
    ]
    selected = select_shortlist(pages, ShortlistQuota(per_category={"pricing": 1, "docs": 2}))
    assert [p.url for p in selected] == ["https://acme.com/p1", "https://acme.com/d1", "https://acme.com/p2"]

    capped = select_shortlist(pages, ShortlistQuota(per_category={"pricing": 1, "docs": 2}, max_total=1))
    assert [p.url for p in capped] == ["https://acme.com/p1"]


def test_default_quota_backfills_up_to_the_global_cap() -> None:
    """With default quotas, open slots take the remaining pricing pages; the cap bounds the total."""

    scores = [0.9, 0.8, 0.7, 0.6, 0.5]
    pages = [_triaged(f"https://acme.com/p{i}", "pricing", s) for i, s in enumerate(scores)]
    quota = ShortlistQuota()
    assert quota.max_total == DEFAULT_SHORTLIST_MAX_TOTAL
    assert [p.summary.coverage_score for p in select_shortlist(pages, quota)] == scores

    capped = select_shortlist(pages, ShortlistQuota(max_total=3))
    assert [p.summary.coverage_score for p in capped] == [0.9, 0.8, 0.7]


def test_status_quota_uses_triage_granularity() -> None:
    """A status page fills the status slot instead of being folded into changelog."""

    pages = [_triaged("https://status.acme.com/", "status", 0.3), _triaged("https://acme.com/changelog", "changelog", 0.9)]
    selected = select_shortlist(pages, ShortlistQuota(per_category={"changelog": 1, "status": 1}))
    assert [p.summary.category for p in selected] == ["changelog", "status"]


def test_malformed_summary_is_repaired_once() -> None:
    """Malformed output gets exactly one repair call; a good repair keeps the page."""

    llm = ScriptedLLM(["sorry, I cannot do JSON", summary_json("pricing", 0.8)])
    result = asyncio.run(perform_shortlist([_fetched("https://acme.com/pricing")], PageTriager(llm=llm)))

    assert len(llm.calls) == 2
    assert llm.calls[1][-1].content == PAGE_SUMMARY_REPAIR_PROMPT
    assert llm.calls[1][-2].content == "sorry, I cannot do JSON"
    assert result.summaries[0].summary.category == "pricing"
    assert result.stats.summaries_generated == 1
    assert result.stats.shortlisted == 1


def test_unrepairable_summary_drops_the_page() -> None:
    """Two malformed outputs drop the page without failing the batch."""

    llm = ScriptedLLM(["nope", '{"category": "pricing", "coverage_score": 7}'])
    result = asyncio.run(perform_shortlist([_fetched("https://acme.com/pricing")], PageTriager(llm=llm)))

    assert len(llm.calls) == 2
    assert result.summaries == []
    assert result.shortlisted == []
    assert result.stats.summaries_dropped == 1


def test_failed_fetches_are_not_triaged_and_summaries_are_cached() -> None:
    """Only fetched pages are summarized; a second run reuses the cached summary."""

    llm = ScriptedLLM(responder=lambda messages: summary_json("docs", 0.6))
    cache = EvidenceCache(MemoryCacheStore())
    pages = [
        _fetched("https://acme.com/docs", "Docs body"),
        FetchedPage(url="https://acme.com/x", normalized_url="https://acme.com/x", error="404", error_kind=FetchErrorKind.ERROR),
    ]
    triager = PageTriager(llm=llm, cache=cache)

    first = asyncio.run(perform_shortlist(pages, triager))
    second = asyncio.run(perform_shortlist(pages, triager))

    assert first.stats.total_fetched == 2
    assert first.stats.summaries_generated == 1
    assert second.stats.summaries_from_cache == 1
    assert second.stats.summaries_generated == 0
    assert len(llm.calls) == 1
    assert second.shortlisted[0].extracted.text == "Docs body"


def test_other_category_is_detected_from_the_page() -> None:
    """A summary without a useful category is classified from the URL."""

    llm = ScriptedLLM([summary_json("other", 0.5)])
    result = asyncio.run(perform_shortlist([_fetched("https://acme.com/pricing")], PageTriager(llm=llm)))
    assert result.summaries[0].summary.category == "pricing"
