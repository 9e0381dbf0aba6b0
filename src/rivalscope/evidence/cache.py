"""Cache-aware access to fetched pages and their triage summaries.

The cache is a pure optimization: read failures count as misses and write failures are logged
as warnings, never raised to the fetch or triage batches.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from rivalscope.evidence.normalize import canonicalize_url, hash_content
from rivalscope.logging import get_logger
from rivalscope.models.cache import CacheEntry, utcnow
from rivalscope.storage.cache_store import CacheStore

logger = get_logger(__name__)


def is_fresh(entry: CacheEntry, now: datetime | None = None) -> bool:
    """True while `now < fetched_at + stale_after_days`."""

    ts = now or utcnow()
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts < entry.stale_at()


@dataclass
class EvidenceCache:
    """Page cache keyed by normalized URL."""

    store: CacheStore
    stale_after_days: int = 7
    clock: Callable[[], datetime] = utcnow

    def get(self, url: str) -> CacheEntry | None:
        key = canonicalize_url(url)
        try:
            return self.store.get(key)
        except Exception as e:
            logger.warning("Cache read failed; treating as miss", extra={"url": key, "error": str(e)})
            return None

    def get_fresh(self, url: str) -> CacheEntry | None:
        entry = self.get(url)
        if entry is None or not is_fresh(entry, self.clock()):
            return None
        return entry

    def upsert(self, entry: CacheEntry) -> bool:
        """Write an entry; returns False (after a warning) when the store rejects it."""

        try:
            self.store.upsert(entry)
        except Exception as e:
            logger.warning(
                "Cache write failed; continuing without caching",
                extra={"url": entry.normalized_url, "error": str(e)},
            )
            return False
        return True

    def get_or_create(
        self,
        url: str,
        content: str,
        *,
        title: str | None = None,
        final_url: str | None = None,
        extracted: dict[str, Any] | None = None,
    ) -> CacheEntry:
        """Reuse a fresh entry with the same content hash, otherwise write a new one.

        A replaced entry drops its summary: the summary belonged to the old content.

        The lookup and the write are not one transaction. Concurrent callers for the same URL may
        both write, but `CacheStore.upsert` replaces the whole entry under one key, so the store
        holds exactly one entry afterwards (last write wins) and its hash always matches its text.
        """

        key = canonicalize_url(url)
        content_hash = hash_content(content)
        existing = self.get(key)
        if existing is not None and existing.content_hash == content_hash and is_fresh(existing, self.clock()):
            return existing

        entry = CacheEntry(
            normalized_url=key,
            content_hash=content_hash,
            raw_text=content,
            title=title,
            final_url=final_url or key,
            extracted=extracted,
            stale_after_days=self.stale_after_days,
            fetched_at=self.clock(),
        )
        self.upsert(entry)
        return entry

    def read_summary(self, url: str, *, content_hash: str, version: str) -> dict[str, Any] | None:
        """Cached summary payload, only if fresh, same content and same summary version."""

        entry = self.get_fresh(url)
        if entry is None or entry.summary is None:
            return None
        if entry.content_hash != content_hash or entry.summary_version != version:
            return None
        return entry.summary

    def attach_summary(self, url: str, *, content: str, summary: dict[str, Any], version: str) -> CacheEntry:
        entry = self.get_or_create(url, content)
        updated = entry.model_copy(update={"summary": summary, "summary_version": version})
        self.upsert(updated)
        return updated
