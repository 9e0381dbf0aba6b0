"""Coverage model (derived, never persisted on its own)."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from rivalscope.models.category import EvidenceCategory
from rivalscope.models.claim import EvidenceClaim

ConfidenceLabel = Literal["High", "Medium", "Low", "Insufficient"]


class CoverageGap(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: EvidenceCategory
    reason: str
    suggestion: str
    required: bool = False


class EvidenceCoverage(BaseModel):
    """Per-project evidence coverage and the confidence label gating downstream generation."""

    model_config = ConfigDict(frozen=True)

    counts_by_category: dict[EvidenceCategory, int]
    categories_present: list[EvidenceCategory] = Field(default_factory=list)
    total_claims: int = 0
    first_party_ratio: float = 0.0
    recency_score: float = 0.0
    coverage_score: float = 0.0
    meets_mvc: bool = False
    confidence_label: ConfidenceLabel = "Insufficient"
    gaps: list[CoverageGap] = Field(default_factory=list)
    newest_at: str | None = None


class EvidenceReport(BaseModel):
    """Ranked claims grouped by category plus the coverage computed from them."""

    project_id: str
    claims_by_category: dict[EvidenceCategory, list[EvidenceClaim]]
    coverage: EvidenceCoverage
    bundle_harvested_at: str | None = None
