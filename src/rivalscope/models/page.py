"""Fetched-page, triage and shortlist models."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from rivalscope.models.category import normalize_triage_category
from rivalscope.models.claim import EvidenceClaim


class ExtractedPage(BaseModel):
    """Readable content pulled from a URL by a content extractor."""

    url: str
    title: str | None = None
    text: str
    truncated: bool = False


class FetchErrorKind(str, Enum):
    TIMEOUT = "timeout"
    BUDGET_EXCEEDED = "budget_exceeded"
    EXTRACT_FAILED = "extract_failed"
    ERROR = "error"


class FetchedPage(BaseModel):
    """Exactly one of these is produced per input URL."""

    url: str
    normalized_url: str
    extracted: ExtractedPage | None = None
    error: str | None = None
    error_kind: FetchErrorKind | None = None
    from_cache: bool = False
    title: str | None = None
    fetched_at: str | None = None

    @property
    def ok(self) -> bool:
        return self.extracted is not None and self.error is None


class FetchStats(BaseModel):
    total: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    successes: int = 0
    failures: int = 0
    timeouts: int = 0
    budget_exceeded: int = 0
    elapsed_ms: int = 0


class FetchBatch(BaseModel):
    results: list[FetchedPage] = Field(default_factory=list)
    stats: FetchStats = Field(default_factory=FetchStats)


RecencyHint = Literal["last_30_days", "last_90_days", "last_year", "older", "unknown"]
CredibilityHint = Literal["official", "third_party", "community"]


class PageSummary(BaseModel):
    """Cheap structured triage output for one page (Pass A)."""

    category: str = "other"
    signals: list[str] = Field(default_factory=list, max_length=12)
    coverage_score: float = Field(ge=0.0, le=1.0)
    recency_hint: RecencyHint = "unknown"
    credibility_hint: CredibilityHint = "third_party"
    recommended_for_deep_read: bool = False

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: object) -> str:
        return normalize_triage_category(value)


class TriagedPage(BaseModel):
    url: str
    normalized_url: str
    summary: PageSummary
    from_cache: bool = False


class ShortlistedPage(BaseModel):
    url: str
    normalized_url: str
    summary: PageSummary
    extracted: ExtractedPage
    title: str | None = None
    fetched_at: str | None = None


class ShortlistStats(BaseModel):
    total_fetched: int = 0
    summaries_generated: int = 0
    summaries_from_cache: int = 0
    summaries_dropped: int = 0
    shortlisted: int = 0
    pass_a_ms: int = 0


class ShortlistResult(BaseModel):
    shortlisted: list[ShortlistedPage] = Field(default_factory=list)
    summaries: list[TriagedPage] = Field(default_factory=list)
    stats: ShortlistStats = Field(default_factory=ShortlistStats)


class DeepHarvestResult(BaseModel):
    """Outcome of fetch, Pass A triage, shortlist and Pass B deep extraction."""

    fetch: FetchStats
    shortlist: ShortlistResult
    claims: list[EvidenceClaim] = Field(default_factory=list)
