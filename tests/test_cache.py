"""Tests for the evidence cache."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest
import redis

from rivalscope.errors import CacheError
from rivalscope.evidence.cache import EvidenceCache, is_fresh
from rivalscope.evidence.normalize import hash_content
from rivalscope.models.cache import CacheEntry
from rivalscope.storage.cache_store import MemoryCacheStore, RedisCacheStore

T0 = datetime(2024, 5, 1, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class BrokenStore:
    def get(self, key: str) -> CacheEntry | None:
        raise ConnectionError("store unavailable")

    def upsert(self, entry: CacheEntry) -> None:
        raise ConnectionError("store unavailable")


def test_freshness_window() -> None:
    """An entry is fresh strictly before fetched_at + stale_after_days."""

    entry = CacheEntry(normalized_url="https://acme.com/", content_hash="h", fetched_at=T0, stale_after_days=7)
    assert is_fresh(entry, T0 + timedelta(days=6, hours=23))
    assert not is_fresh(entry, T0 + timedelta(days=7))


def test_get_or_create_reuses_fresh_matching_entries() -> None:
    """Same content within the window is reused; changed content or staleness rewrites it."""

    clock = Clock(T0)
    cache = EvidenceCache(MemoryCacheStore(), clock=clock)

    first = cache.get_or_create("https://www.acme.com/pricing/?utm_source=x", "Plans from $10")
    assert first.normalized_url == "https://acme.com/pricing"

    clock.now = T0 + timedelta(days=1)
    assert cache.get_or_create("https://acme.com/pricing", "Plans from $10") == first

    changed = cache.get_or_create("https://acme.com/pricing", "Plans from $12")
    assert changed.content_hash != first.content_hash
    assert changed.fetched_at == clock.now

    clock.now = T0 + timedelta(days=30)
    assert cache.get_fresh("https://acme.com/pricing") is None
    refreshed = cache.get_or_create("https://acme.com/pricing", "Plans from $12")
    assert refreshed.fetched_at == clock.now


class StaleReadStore(MemoryCacheStore):
    """Every lookup misses, as when two writers both read before either wrote."""

    def get(self, key: str) -> CacheEntry | None:
        return None


def test_racing_writers_leave_one_consistent_entry() -> None:
    """Two get_or_create calls that both miss leave exactly one whole entry for the URL."""

    store = StaleReadStore()
    a = EvidenceCache(store, clock=Clock(T0))
    b = EvidenceCache(store, clock=Clock(T0 + timedelta(seconds=1)))

    a.get_or_create("https://acme.com/pricing", "Plans from $10")
    written = b.get_or_create("https://acme.com/pricing/", "Plans from $12")

    assert list(store._entries) == ["https://acme.com/pricing"]
    stored = store._entries["https://acme.com/pricing"]
    assert stored == written
    assert stored.content_hash == hash_content(stored.raw_text)


def test_summary_is_keyed_by_content_and_version() -> None:
    """A cached summary is only returned for the same content hash and summary version."""

    cache = EvidenceCache(MemoryCacheStore(), clock=Clock(T0))
    entry = cache.attach_summary("https://acme.com/docs", content="Docs", summary={"coverage_score": 0.5}, version="v1")

    assert cache.read_summary("https://acme.com/docs", content_hash=entry.content_hash, version="v1") == {
        "coverage_score": 0.5
    }
    assert cache.read_summary("https://acme.com/docs", content_hash=entry.content_hash, version="v2") is None
    assert cache.read_summary("https://acme.com/docs", content_hash="other", version="v1") is None


def test_store_failures_are_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    """Reads count as misses and writes only log a warning when the store is down."""

    cache = EvidenceCache(BrokenStore(), clock=Clock(T0))
    with caplog.at_level(logging.WARNING, logger="rivalscope.evidence.cache"):
        entry = cache.get_or_create("https://acme.com/", "Home")

    assert entry.raw_text == "Home"
    assert cache.get("https://acme.com/") is None
    assert any("Cache write failed" in r.getMessage() for r in caplog.records)


class DictRedis:
    def __init__(self, fail: bool = False) -> None:
        self.data: dict[str, str] = {}
        self.fail = fail

    def get(self, key: str) -> str | None:
        if self.fail:
            raise redis.ConnectionError("connection refused")
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail:
            raise redis.ConnectionError("connection refused")
        self.data[key] = value


def test_redis_store_round_trips_entries() -> None:
    """Entries are stored as JSON under the key prefix and redis errors become CacheError."""

    store = RedisCacheStore(redis_url="redis://localhost:6379/0", key_prefix="test")
    store._client = DictRedis()
    entry = CacheEntry(normalized_url="https://acme.com/", content_hash="h", raw_text="Home", fetched_at=T0)

    store.upsert(entry)
    assert list(store._client.data) == ["test:page:https://acme.com/"]
    assert store.get("https://acme.com/") == entry
    assert store.get("https://acme.com/other") is None

    store._client = DictRedis(fail=True)
    with pytest.raises(CacheError):
        store.get("https://acme.com/")
