"""Tests for Pass B deep extraction."""

from __future__ import annotations

import asyncio

from fakes import ScriptedLLM
from rivalscope.config import DeepReadConfig
from rivalscope.evidence.deep_read import DeepReader
from rivalscope.models.category import EvidenceCategory
from rivalscope.models.page import ExtractedPage, PageSummary, ShortlistedPage


def _page(url: str, category: str) -> ShortlistedPage:
    return ShortlistedPage(
        url=url,
        normalized_url=url,
        summary=PageSummary(category=category, coverage_score=0.7),
        extracted=ExtractedPage(url=url, title="Page", text="All systems operational. Incident on May 2."),
        fetched_at="2024-05-01T00:00:00+00:00",
    )


def test_claims_inherit_page_category_and_fetch_time() -> None:
    """Extracted claims map the triage category into the claim set."""

    llm = ScriptedLLM(
        [
            '```json\n{"claims": [{"text": "Incident on May 2", "confidence": "high"},'
            ' {"text": "All systems operational", "confidence": "medium"}]}\n```'
        ]
    )
    claims = asyncio.run(DeepReader(llm=llm).read([_page("https://status.acme.com/", "status")]))

    assert [c.claim_text for c in claims] == ["Incident on May 2", "All systems operational"]
    assert all(c.category == EvidenceCategory.CHANGELOG for c in claims)
    assert [c.confidence for c in claims] == ["high", "med"]
    assert claims[0].retrieved_at == "2024-05-01T00:00:00+00:00"


def test_bad_output_yields_no_claims_and_cap_applies() -> None:
    """Unparseable pages produce nothing; the per-page cap trims long lists."""

    def respond(messages):
        if "broken" in messages[-1].content:
            return "no json here"
        return '{"claims": [{"text": "a"}, {"text": "b"}, {"text": "c"}]}'

    reader = DeepReader(llm=ScriptedLLM(responder=respond), config=DeepReadConfig(max_claims_per_page=2))
    claims = asyncio.run(reader.read([_page("https://acme.com/broken", "docs"), _page("https://acme.com/docs", "docs")]))

    assert [c.claim_text for c in claims] == ["a", "b"]
    assert all(c.url == "https://acme.com/docs" for c in claims)
