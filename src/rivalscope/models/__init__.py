"""Pydantic models used across the project."""

from __future__ import annotations

from rivalscope.models.bundle import (
    BundleGroup,
    BundleMeta,
    BundleSource,
    BundleTotals,
    EvidenceBundle,
    GroupStats,
)
from rivalscope.models.cache import CacheEntry
from rivalscope.models.category import EvidenceCategory, HarvestCategory, normalize_category
from rivalscope.models.claim import EvidenceClaim
from rivalscope.models.coverage import CoverageGap, EvidenceCoverage
from rivalscope.models.page import (
    ExtractedPage,
    FetchedPage,
    FetchErrorKind,
    FetchStats,
    PageSummary,
    ShortlistedPage,
    ShortlistResult,
)
from rivalscope.models.search import NormalizedResult, RawSearchResult

__all__ = [
    "BundleGroup",
    "BundleMeta",
    "BundleSource",
    "BundleTotals",
    "CacheEntry",
    "CoverageGap",
    "EvidenceBundle",
    "EvidenceCategory",
    "EvidenceClaim",
    "EvidenceCoverage",
    "ExtractedPage",
    "FetchedPage",
    "FetchErrorKind",
    "FetchStats",
    "GroupStats",
    "HarvestCategory",
    "NormalizedResult",
    "PageSummary",
    "RawSearchResult",
    "ShortlistedPage",
    "ShortlistResult",
    "normalize_category",
]
