"""Bounded-concurrency fetch and extraction over a URL list.

Every input URL yields exactly one `FetchedPage`. Per-URL failures become typed error fields;
nothing is raised out of :meth:`ParallelFetcher.fetch_all`.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from pydantic import ValidationError

from rivalscope.config import FetchConfig
from rivalscope.core.concurrency import bounded_gather, call_maybe_async
from rivalscope.evidence.cache import EvidenceCache
from rivalscope.evidence.normalize import canonicalize_url
from rivalscope.logging import get_logger
from rivalscope.models.cache import CacheEntry, utcnow
from rivalscope.models.page import ExtractedPage, FetchBatch, FetchedPage, FetchErrorKind, FetchStats
from rivalscope.tools.page_fetcher import ContentExtractor

logger = get_logger(__name__)


def _from_cache(url: str, entry: CacheEntry) -> FetchedPage | None:
    extracted: ExtractedPage | None = None
    if entry.extracted:
        try:
            extracted = ExtractedPage.model_validate(entry.extracted)
        except ValidationError:
            extracted = None
    if extracted is None and entry.raw_text:
        extracted = ExtractedPage(url=entry.final_url or url, title=entry.title, text=entry.raw_text)
    if extracted is None:
        return None
    return FetchedPage(
        url=url,
        normalized_url=entry.normalized_url,
        extracted=extracted,
        from_cache=True,
        title=entry.title or extracted.title,
        fetched_at=entry.fetched_at.isoformat(),
    )


def _failure(url: str, kind: FetchErrorKind, message: str) -> FetchedPage:
    return FetchedPage(url=url, normalized_url=canonicalize_url(url), error=message, error_kind=kind)


def summarize_results(results: Sequence[FetchedPage], elapsed_ms: int) -> FetchStats:
    stats = FetchStats(total=len(results), elapsed_ms=elapsed_ms)
    for r in results:
        if r.from_cache:
            stats.cache_hits += 1
        else:
            stats.cache_misses += 1
        if r.ok:
            stats.successes += 1
        else:
            stats.failures += 1
        if r.error_kind == FetchErrorKind.TIMEOUT:
            stats.timeouts += 1
        elif r.error_kind == FetchErrorKind.BUDGET_EXCEEDED:
            stats.budget_exceeded += 1
    return stats


@dataclass
class ParallelFetcher:
    """Fetch + extract many URLs with a concurrency cap, a per-URL timeout and a batch budget.

    The budget is checked when a URL gets a slot: once `elapsed >= budget_s`, URLs that have
    not started are reported as budget-exceeded without being attempted. A timed-out URL is
    reported immediately; the underlying call may still finish in the background and its
    result is discarded.
    """

    extractor: ContentExtractor
    cache: EvidenceCache | None = None
    config: FetchConfig = field(default_factory=FetchConfig)
    timer: Callable[[], float] = time.monotonic

    async def fetch_all(self, urls: Sequence[str]) -> FetchBatch:
        started = self.timer()
        budget = self.config.budget_s

        async def _slot(url: str) -> FetchedPage:
            if budget is not None and self.timer() - started >= budget:
                return _failure(url, FetchErrorKind.BUDGET_EXCEEDED, "Fetch budget exceeded")
            try:
                return await asyncio.wait_for(self._fetch_one(url), timeout=self.config.timeout_s)
            except asyncio.TimeoutError:
                logger.warning("Fetch timed out", extra={"url": url, "timeout_s": self.config.timeout_s})
                return _failure(url, FetchErrorKind.TIMEOUT, f"Timeout after {self.config.timeout_s:g}s")

        results = await bounded_gather(list(urls), _slot, limit=self.config.concurrency)
        stats = summarize_results(results, int((self.timer() - started) * 1000))

        logger.info(
            "Parallel fetch completed",
            extra={
                "total": stats.total,
                "cache_hits": stats.cache_hits,
                "cache_misses": stats.cache_misses,
                "successes": stats.successes,
                "failures": stats.failures,
                "timeouts": stats.timeouts,
                "budget_exceeded": stats.budget_exceeded,
                "elapsed_ms": stats.elapsed_ms,
            },
        )
        return FetchBatch(results=results, stats=stats)

    async def _fetch_one(self, url: str) -> FetchedPage:
        if self.cache is not None:
            entry = await asyncio.to_thread(self.cache.get_fresh, url)
            if entry is not None:
                hit = _from_cache(url, entry)
                if hit is not None:
                    return hit

        try:
            extracted = await call_maybe_async(self.extractor.extract, url)
        except Exception as e:
            logger.warning("Fetch failed", extra={"url": url, "error": str(e)})
            return _failure(url, FetchErrorKind.ERROR, str(e) or type(e).__name__)

        if extracted is None or not (extracted.text or "").strip():
            return _failure(url, FetchErrorKind.EXTRACT_FAILED, "Failed to extract content")

        fetched_at = utcnow().isoformat()
        if self.cache is not None:
            entry = await asyncio.to_thread(
                self.cache.get_or_create,
                url,
                extracted.text,
                title=extracted.title,
                final_url=extracted.url,
                extracted=extracted.model_dump(mode="json"),
            )
            fetched_at = entry.fetched_at.isoformat()

        return FetchedPage(
            url=url,
            normalized_url=canonicalize_url(url),
            extracted=extracted,
            title=extracted.title,
            fetched_at=fetched_at,
        )
