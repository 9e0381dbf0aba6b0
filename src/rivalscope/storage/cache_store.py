"""Page cache backends.

Entries are keyed by normalized URL. `upsert` replaces the whole entry in one write, so readers
never observe a half-written record.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Protocol

import redis

from rivalscope.config import Settings
from rivalscope.errors import CacheError
from rivalscope.models.cache import CacheEntry


class CacheStore(Protocol):
    def get(self, key: str) -> CacheEntry | None:
        ...

    def upsert(self, entry: CacheEntry) -> None:
        ...


@dataclass
class MemoryCacheStore:
    """Process-local store, used by default and in tests."""

    _entries: dict[str, CacheEntry] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def upsert(self, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[entry.normalized_url] = entry


@dataclass
class RedisCacheStore:
    """Shared store keeping one JSON document per normalized URL."""

    redis_url: str
    key_prefix: str

    def __post_init__(self) -> None:
        self._client = redis.Redis.from_url(self.redis_url, decode_responses=True)

    def _key(self, normalized_url: str) -> str:
        return f"{self.key_prefix}:page:{normalized_url}"

    def get(self, key: str) -> CacheEntry | None:
        try:
            raw = self._client.get(self._key(key))
        except redis.RedisError as e:
            raise CacheError(f"Redis read failed: {e}") from e
        if not raw:
            return None
        return CacheEntry.model_validate_json(raw)

    def upsert(self, entry: CacheEntry) -> None:
        try:
            self._client.set(self._key(entry.normalized_url), entry.model_dump_json())
        except redis.RedisError as e:
            raise CacheError(f"Redis write failed: {e}") from e


def get_cache_store(settings: Settings) -> CacheStore:
    if settings.redis_enabled:
        return RedisCacheStore(redis_url=settings.redis_url, key_prefix=settings.redis_key_prefix)
    return MemoryCacheStore()
