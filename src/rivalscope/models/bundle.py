"""Evidence bundle models.

A bundle is an immutable snapshot of one harvest. A new harvest creates a new bundle; nothing
mutates an existing one. The persisted JSON uses camelCase keys (see `to_payload`).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rivalscope.models.category import HarvestCategory

BUNDLE_SCHEMA_VERSION = 1
BUNDLE_ARTIFACT_KIND = "evidence_bundle_v1"


class _Frozen(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class BundleSource(_Frozen):
    """One harvested source kept in a category group."""

    title: str
    url: str
    domain: str
    published_date: str | None = None
    snippet: str | None = None
    source_type: str = "search"


class GroupStats(_Frozen):
    requested: int = 0
    returned: int = 0
    kept: int = 0
    deduped: int = 0
    unique_domains: int = 0


class BundleGroup(_Frozen):
    category: HarvestCategory
    queries: tuple[str, ...] = ()
    sources: tuple[BundleSource, ...] = ()
    stats: GroupStats = Field(default_factory=GroupStats)


class BundleMeta(_Frozen):
    company: str
    url: str | None = None
    context: str | None = None
    harvested_at: datetime
    limit_per_category: int


class BundleTotals(_Frozen):
    sources: int = 0
    unique_urls: int = 0
    unique_domains: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)


class EvidenceBundle(_Frozen):
    """Immutable, versioned harvest snapshot grouped by harvest category."""

    schema_version: int = BUNDLE_SCHEMA_VERSION
    meta: BundleMeta
    groups: tuple[BundleGroup, ...] = ()
    totals: BundleTotals = Field(default_factory=BundleTotals)

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready payload in the persisted (camelCase) shape."""

        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "EvidenceBundle":
        return cls.model_validate(payload)

    def group(self, category: HarvestCategory | str) -> BundleGroup | None:
        key = HarvestCategory(category)
        for g in self.groups:
            if g.category == key:
                return g
        return None
