"""Tests for loading claims from bundles and persisted rows."""

from __future__ import annotations

from datetime import datetime, timezone

from rivalscope.evidence.claims import build_claim, claims_from_bundle, claims_from_rows, group_claims
from rivalscope.models.bundle import BundleGroup, BundleMeta, BundleSource, EvidenceBundle
from rivalscope.models.category import ALL_CATEGORIES, EvidenceCategory, HarvestCategory


def _bundle() -> EvidenceBundle:
    def group(category: HarvestCategory, url: str) -> BundleGroup:
        return BundleGroup(
            category=category,
            sources=(
                BundleSource(
                    title=f"{category.value} page",
                    url=url,
                    domain="acme.com",
                    published_date="2024-04-01",
                    snippet="Some snippet",
                ),
            ),
        )

    return EvidenceBundle(
        meta=BundleMeta(
            company="Acme",
            harvested_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
            limit_per_category=5,
        ),
        groups=(
            group(HarvestCategory.STATUS, "https://status.acme.com/"),
            group(HarvestCategory.OFFICIAL_SITE, "https://acme.com/"),
            group(HarvestCategory.SECURITY_TRUST, "https://acme.com/trust"),
        ),
    )


def test_claims_from_bundle_maps_categories_and_timestamps() -> None:
    """Harvest categories fold into the claim set; retrieval time is the harvest time."""

    claims = claims_from_bundle(_bundle())
    assert [c.category for c in claims] == [
        EvidenceCategory.CHANGELOG,
        EvidenceCategory.DOCS,
        EvidenceCategory.SECURITY,
    ]
    assert all(c.retrieved_at == "2024-05-01T00:00:00+00:00" for c in claims)
    assert claims[0].published_at == "2024-04-01"
    assert claims[0].claim_text == "Some snippet"
    assert claims[0].canonical_url == "https://status.acme.com/"


def test_identical_inputs_share_a_fingerprint() -> None:
    """Fingerprints depend only on normalized text, canonical URL, category and excerpt."""

    a = build_claim(url="https://acme.com/pricing?utm_source=x", category=EvidenceCategory.PRICING, text="Pro  is $20")
    b = build_claim(url="https://www.acme.com/pricing/", category=EvidenceCategory.PRICING, text="Pro is\n$20")
    c = build_claim(url="https://acme.com/pricing", category=EvidenceCategory.PRICING, text="Pro is $25")

    assert a.fingerprint == b.fingerprint
    assert a.fingerprint != c.fingerprint
    assert a.claim_text == "Pro is $20"


def test_claims_from_rows_accepts_loose_shapes() -> None:
    """Rows without URL are skipped; unknown categories are detected; aliases normalize."""

    rows = [
        {"title": "no url"},
        {"url": "https://acme.com/pricing", "category": "whatever", "snippet": "From $10"},
        {"source_url": "https://www.g2.com/acme", "evidence_type": "review", "confidence": "Medium", "id": "row-3"},
    ]
    claims = claims_from_rows(rows)

    assert len(claims) == 2
    assert claims[0].category == EvidenceCategory.PRICING
    assert claims[1].category == EvidenceCategory.REVIEWS
    assert claims[1].confidence == "med"
    assert claims[1].id == "row-3"
    assert claims[1].domain == "g2.com"


def test_group_claims_has_every_category() -> None:
    """Grouped claims expose every canonical category, empty or not."""

    grouped = group_claims(claims_from_bundle(_bundle()))
    assert set(grouped) == set(ALL_CATEGORIES)
    assert len(grouped[EvidenceCategory.DOCS]) == 1
    assert grouped[EvidenceCategory.PRICING] == []
