"""Cache entry model."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheEntry(BaseModel):
    """Fetched page content and derived payloads keyed by normalized URL.

    Staleness is logical: an entry is stale once `now >= fetched_at + stale_after_days`. Nothing
    in this package deletes entries.
    """

    normalized_url: str
    content_hash: str
    raw_text: str | None = None
    title: str | None = None
    final_url: str | None = None
    extracted: dict[str, Any] | None = None
    summary: dict[str, Any] | None = None
    summary_version: str | None = None
    stale_after_days: int = 7
    fetched_at: datetime = Field(default_factory=utcnow)

    def stale_at(self) -> datetime:
        fetched = self.fetched_at
        if fetched.tzinfo is None:
            fetched = fetched.replace(tzinfo=timezone.utc)
        return fetched + timedelta(days=self.stale_after_days)
