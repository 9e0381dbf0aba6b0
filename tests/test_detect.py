"""Tests for category detection."""

from __future__ import annotations

from rivalscope.evidence.detect import detect_category
from rivalscope.models.category import (
    EvidenceCategory,
    HarvestCategory,
    harvest_to_claim_category,
    normalize_category,
    normalize_triage_category,
)


def test_detect_category_from_url_signals() -> None:
    """URL path and host rules win before any keyword matching."""

    assert detect_category("https://acme.com/pricing") == EvidenceCategory.PRICING
    assert detect_category("https://www.g2.com/products/acme/reviews") == EvidenceCategory.REVIEWS
    assert detect_category("https://status.acme.com/") == EvidenceCategory.CHANGELOG
    assert detect_category("https://boards.greenhouse.io/acme") == EvidenceCategory.JOBS
    assert detect_category("https://acme.com/blog/launch") == EvidenceCategory.BLOG


def test_detect_category_falls_back_to_keywords() -> None:
    """Title and snippet keywords apply when the URL says nothing."""

    assert detect_category("https://acme.com/x", "Acme SOC 2 report") == EvidenceCategory.SECURITY
    assert detect_category("https://acme.com/x") == EvidenceCategory.OTHER


def test_category_mappings() -> None:
    """Harvest categories fold into the claim set; triage keeps status."""

    assert harvest_to_claim_category(HarvestCategory.STATUS) == EvidenceCategory.CHANGELOG
    assert harvest_to_claim_category("official_site") == EvidenceCategory.DOCS
    assert harvest_to_claim_category("security_trust") == EvidenceCategory.SECURITY
    assert normalize_category("Documentation") == EvidenceCategory.DOCS
    assert normalize_category("something else") == EvidenceCategory.OTHER
    assert normalize_triage_category("Status") == "status"
    assert normalize_triage_category("landing") == "other"
