"""Evidence claim model."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from rivalscope.models.category import EvidenceCategory

ConfidenceLevel = Literal["low", "med", "high"]


class EvidenceClaim(BaseModel):
    """A single evidence snippet tied to a source URL.

    `fingerprint` is derived from the normalized identity fields, so two claims built from the
    same text, URL, category and excerpt always share it. `score` is only set by the ranker.
    Timestamps are kept as ISO-8601 strings so tie-breaks can compare them lexicographically.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    id: str
    claim_text: str
    category: EvidenceCategory
    url: str
    canonical_url: str
    domain: str
    fingerprint: str
    title: str | None = None
    excerpt: str | None = None
    published_at: str | None = None
    retrieved_at: str | None = None
    confidence: ConfidenceLevel | None = None
    score: float | None = Field(default=None)


ClaimsByCategory = dict[EvidenceCategory, list[EvidenceClaim]]
