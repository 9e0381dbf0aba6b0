"""Search-related models."""

from __future__ import annotations

from pydantic import BaseModel


class RawSearchResult(BaseModel):
    """A single web search hit as returned by a search provider."""

    title: str | None = None
    url: str
    content: str | None = None
    published_date: str | None = None
    score: float | None = None
    source: str = "search"
    rank: int = 0


class NormalizedResult(BaseModel):
    """A search hit after URL canonicalization and excerpt trimming."""

    title: str
    url: str
    canonical_url: str
    domain: str
    excerpt: str
    published_date: str | None = None
    score: float | None = None
