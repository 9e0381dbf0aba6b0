"""Claim loading: bundle sources or persisted evidence rows -> `EvidenceClaim` records."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping

from rivalscope.evidence.detect import detect_category
from rivalscope.evidence.normalize import (
    canonicalize_url,
    compute_fingerprint,
    extract_domain,
    normalize_claim_text,
)
from rivalscope.logging import get_logger
from rivalscope.models.bundle import EvidenceBundle
from rivalscope.models.category import (
    ALL_CATEGORIES,
    EvidenceCategory,
    harvest_to_claim_category,
    normalize_category,
)
from rivalscope.models.claim import ClaimsByCategory, ConfidenceLevel, EvidenceClaim

logger = get_logger(__name__)

_CONFIDENCE_ALIASES: dict[str, ConfidenceLevel] = {
    "low": "low",
    "med": "med",
    "medium": "med",
    "moderate": "med",
    "high": "high",
}


def _iso(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _confidence(value: Any) -> ConfidenceLevel | None:
    if value is None:
        return None
    return _CONFIDENCE_ALIASES.get(str(value).strip().lower())


def build_claim(
    *,
    url: str,
    category: EvidenceCategory,
    text: str | None = None,
    title: str | None = None,
    excerpt: str | None = None,
    domain: str | None = None,
    published_at: Any = None,
    retrieved_at: Any = None,
    confidence: Any = None,
    claim_id: str | None = None,
    index: int = 0,
) -> EvidenceClaim:
    """Build one claim. Claim text falls back from text to excerpt, title, then URL."""

    raw_text = text or excerpt or title or url
    canonical = canonicalize_url(url)
    fingerprint = compute_fingerprint(raw_text, canonical, category, excerpt)
    return EvidenceClaim(
        id=claim_id or f"claim-{fingerprint[:12]}-{index}",
        claim_text=normalize_claim_text(raw_text),
        category=category,
        url=url,
        canonical_url=canonical,
        domain=domain or extract_domain(url),
        fingerprint=fingerprint,
        title=title or None,
        excerpt=excerpt or None,
        published_at=_iso(published_at),
        retrieved_at=_iso(retrieved_at),
        confidence=_confidence(confidence),
    )


def claims_from_bundle(bundle: EvidenceBundle) -> list[EvidenceClaim]:
    """Convert every bundle source into a claim (harvest categories map to the claim set)."""

    retrieved_at = bundle.meta.harvested_at
    claims: list[EvidenceClaim] = []
    index = 0
    for group in bundle.groups:
        category = harvest_to_claim_category(group.category)
        for source in group.sources:
            claims.append(
                build_claim(
                    url=source.url,
                    category=category,
                    title=source.title,
                    excerpt=source.snippet,
                    domain=source.domain,
                    published_at=source.published_date,
                    retrieved_at=retrieved_at,
                    index=index,
                )
            )
            index += 1
    return claims


def _first(row: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        v = row.get(k)
        if v not in (None, ""):
            return v
    return None


def claims_from_rows(rows: Iterable[Mapping[str, Any]]) -> list[EvidenceClaim]:
    """Convert persisted evidence rows (loosely shaped dicts) into claims.

    Rows without a URL are skipped. Rows whose category is missing or unknown are classified
    from their URL, title and snippet.
    """

    claims: list[EvidenceClaim] = []
    for index, row in enumerate(rows):
        url = _first(row, "url", "source_url")
        if not url:
            logger.debug("Skipping evidence row without url", extra={"index": index})
            continue
        title = _first(row, "title")
        excerpt = _first(row, "snippet", "excerpt", "content")
        raw_category = _first(row, "category", "evidence_type", "source_type", "type")
        category = normalize_category(raw_category)
        if category == EvidenceCategory.OTHER:
            category = detect_category(str(url), title, excerpt)
        claims.append(
            build_claim(
                url=str(url),
                category=category,
                text=_first(row, "claim_text", "claim"),
                title=title,
                excerpt=excerpt,
                domain=_first(row, "domain"),
                published_at=_first(row, "published_at", "publishedAt", "published_date"),
                retrieved_at=_first(row, "retrieved_at", "retrievedAt", "extracted_at", "extractedAt"),
                confidence=_first(row, "confidence"),
                claim_id=_first(row, "id"),
                index=index,
            )
        )
    return claims


def group_claims(claims: Iterable[EvidenceClaim]) -> ClaimsByCategory:
    """Group claims by category; every canonical category is present as a key."""

    grouped: ClaimsByCategory = {c: [] for c in ALL_CATEGORIES}
    for claim in claims:
        grouped.setdefault(claim.category, []).append(claim)
    return grouped

