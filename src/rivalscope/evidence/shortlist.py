"""Two-pass shortlisting of fetched pages.

Pass A triages every successfully fetched page with a cheap structured summary. The shortlist
then takes a per-category quota of the best pages and backfills open slots from the best of the
rest. Only the shortlist goes on to the expensive deep read (Pass B, see `deep_read`).
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Sequence

from pydantic import ValidationError

from rivalscope.config import ShortlistQuota, TriageConfig
from rivalscope.errors import SummaryParseError
from rivalscope.core.concurrency import bounded_gather, call_maybe_async
from rivalscope.evidence.cache import EvidenceCache
from rivalscope.evidence.detect import detect_category
from rivalscope.evidence.normalize import hash_content
from rivalscope.llm.client import ChatCompleter, ChatMessage
from rivalscope.logging import get_logger
from rivalscope.models.page import (
    FetchedPage,
    PageSummary,
    ShortlistedPage,
    ShortlistResult,
    ShortlistStats,
    TriagedPage,
)
from rivalscope.prompts import PAGE_SUMMARY_REPAIR_PROMPT, PAGE_SUMMARY_SYSTEM_PROMPT
from rivalscope.utils.tags import extract_json_object

logger = get_logger(__name__)


def parse_page_summary(raw: str) -> PageSummary:
    data = extract_json_object(raw)
    if data is None:
        raise SummaryParseError("no JSON object in summary output")
    try:
        return PageSummary.model_validate(data)
    except ValidationError as e:
        raise SummaryParseError(f"summary does not match schema: {e.error_count()} errors") from e


@dataclass
class _Triage:
    page: TriagedPage | None
    from_cache: bool = False


@dataclass
class PageTriager:
    """Pass A: one structured summary per page, cached by content hash and summary version."""

    llm: ChatCompleter
    cache: EvidenceCache | None = None
    config: TriageConfig = field(default_factory=TriageConfig)

    async def triage(self, pages: Sequence[FetchedPage]) -> list[_Triage]:
        usable = [p for p in pages if p.ok]
        return await bounded_gather(usable, self._triage_one, limit=self.config.concurrency)

    async def _triage_one(self, page: FetchedPage) -> _Triage:
        if page.extracted is None:
            return _Triage(None)
        text = page.extracted.text
        content_hash = hash_content(text)

        if self.cache is not None:
            cached = await asyncio.to_thread(
                self.cache.read_summary,
                page.url,
                content_hash=content_hash,
                version=self.config.summary_version,
            )
            if cached is not None:
                try:
                    summary = PageSummary.model_validate(cached)
                    return _Triage(self._triaged(page, summary, from_cache=True), from_cache=True)
                except ValidationError:
                    logger.debug("Ignoring invalid cached summary", extra={"url": page.url})

        try:
            summary = await self._summarize(page, text)
        except Exception as e:
            logger.warning("Page triage failed; dropping page", extra={"url": page.url, "error": str(e)})
            return _Triage(None)

        if summary is None:
            logger.warning("Page summary unparseable after repair; dropping page", extra={"url": page.url})
            return _Triage(None)

        if self.cache is not None:
            await asyncio.to_thread(
                self.cache.attach_summary,
                page.url,
                content=text,
                summary=summary.model_dump(mode="json"),
                version=self.config.summary_version,
            )
        return _Triage(self._triaged(page, summary, from_cache=False))

    async def _summarize(self, page: FetchedPage, text: str) -> PageSummary | None:
        """Ask for a summary; on malformed output, make exactly one repair attempt."""

        title = page.title or (page.extracted.title if page.extracted else None) or ""
        messages = [
            ChatMessage(role="system", content=PAGE_SUMMARY_SYSTEM_PROMPT),
            ChatMessage(
                role="user",
                content=(
                    f"URL: {page.url}\n"
                    f"Title: {title}\n\n"
                    "Page:\n"
                    f"{text[: self.config.max_text_chars]}"
                ),
            ),
        ]
        raw = await call_maybe_async(self.llm.complete, messages, temperature=0.1)
        try:
            return parse_page_summary(raw)
        except SummaryParseError as e:
            logger.info("Repairing page summary output", extra={"url": page.url, "error": str(e)})

        repair = [
            *messages,
            ChatMessage(role="assistant", content=raw),
            ChatMessage(role="user", content=PAGE_SUMMARY_REPAIR_PROMPT),
        ]
        raw = await call_maybe_async(self.llm.complete, repair, temperature=0.0)
        try:
            return parse_page_summary(raw)
        except SummaryParseError:
            return None

    @staticmethod
    def _triaged(page: FetchedPage, summary: PageSummary, *, from_cache: bool) -> TriagedPage:
        if summary.category == "other" and page.extracted is not None:
            detected = detect_category(page.url, page.title or page.extracted.title, page.extracted.text[:500])
            summary = summary.model_copy(update={"category": detected.value})
        return TriagedPage(
            url=page.url,
            normalized_url=page.normalized_url,
            summary=summary,
            from_cache=from_cache,
        )


def _best_first(page: TriagedPage) -> tuple[float, str, str]:
    return (-page.summary.coverage_score, page.normalized_url, page.url)


def select_shortlist(triaged: Sequence[TriagedPage], quota: ShortlistQuota | None = None) -> list[TriagedPage]:
    """Quota pass per category (best coverage first), then backfill open slots up to the global cap."""

    q = quota or ShortlistQuota()
    target = q.target_total
    ranked = sorted(triaged, key=_best_first)

    selected: list[TriagedPage] = []
    taken: set[int] = set()
    for category, n in q.per_category.items():
        if len(selected) >= target:
            break
        picked = 0
        for i, page in enumerate(ranked):
            if picked >= n or len(selected) >= target:
                break
            if i in taken or page.summary.category != category:
                continue
            selected.append(page)
            taken.add(i)
            picked += 1

    for i, page in enumerate(ranked):
        if len(selected) >= target:
            break
        if i not in taken:
            selected.append(page)
            taken.add(i)

    return selected


async def perform_shortlist(
    pages: Sequence[FetchedPage],
    triager: PageTriager,
    quota: ShortlistQuota | None = None,
) -> ShortlistResult:
    """Run Pass A over fetched pages and select the deep-read shortlist."""

    started = time.monotonic()
    outcomes = await triager.triage(pages)
    pass_a_ms = int((time.monotonic() - started) * 1000)

    summaries = [o.page for o in outcomes if o.page is not None]
    by_url = {p.url: p for p in pages if p.ok}
    shortlisted: list[ShortlistedPage] = []
    for item in select_shortlist(summaries, quota):
        fetched = by_url.get(item.url)
        if fetched is None or fetched.extracted is None:
            continue
        shortlisted.append(
            ShortlistedPage(
                url=item.url,
                normalized_url=item.normalized_url,
                summary=item.summary,
                extracted=fetched.extracted,
                title=fetched.title,
                fetched_at=fetched.fetched_at,
            )
        )

    stats = ShortlistStats(
        total_fetched=len(pages),
        summaries_generated=sum(1 for o in outcomes if o.page is not None and not o.from_cache),
        summaries_from_cache=sum(1 for o in outcomes if o.from_cache),
        summaries_dropped=sum(1 for o in outcomes if o.page is None),
        shortlisted=len(shortlisted),
        pass_a_ms=pass_a_ms,
    )
    logger.info(
        "Shortlist completed",
        extra={
            "total_fetched": stats.total_fetched,
            "summaries_generated": stats.summaries_generated,
            "summaries_from_cache": stats.summaries_from_cache,
            "summaries_dropped": stats.summaries_dropped,
            "shortlisted": stats.shortlisted,
            "pass_a_ms": stats.pass_a_ms,
        },
    )
    return ShortlistResult(shortlisted=shortlisted, summaries=summaries, stats=stats)
