"""Deep extraction (Pass B).

Runs only over the shortlist. Each page yields verifiable claims that flow through the same
dedup, ranking and coverage path as harvested sources.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from pydantic import BaseModel, Field, ValidationError

from rivalscope.config import DeepReadConfig
from rivalscope.core.concurrency import bounded_gather, call_maybe_async
from rivalscope.evidence.claims import build_claim
from rivalscope.evidence.detect import detect_category
from rivalscope.llm.client import ChatCompleter, ChatMessage
from rivalscope.logging import get_logger
from rivalscope.models.category import EvidenceCategory, normalize_category
from rivalscope.models.claim import EvidenceClaim
from rivalscope.models.page import ShortlistedPage
from rivalscope.prompts import DEEP_EXTRACT_SYSTEM_PROMPT
from rivalscope.utils.tags import extract_json_object

logger = get_logger(__name__)


class ExtractedClaim(BaseModel):
    text: str = Field(min_length=1)
    confidence: str | None = None


class DeepExtractionOutput(BaseModel):
    """Structured extraction output."""

    claims: list[ExtractedClaim] = Field(default_factory=list)


def page_category(page: ShortlistedPage) -> EvidenceCategory:
    category = normalize_category(page.summary.category)
    if category == EvidenceCategory.OTHER:
        category = detect_category(page.url, page.title or page.extracted.title, page.extracted.text[:500])
    return category


@dataclass
class DeepReader:
    """Extract claims from shortlisted pages."""

    llm: ChatCompleter
    config: DeepReadConfig = field(default_factory=DeepReadConfig)

    async def read(self, pages: Sequence[ShortlistedPage]) -> list[EvidenceClaim]:
        per_page = await bounded_gather(list(pages), self._read_one, limit=self.config.concurrency)
        claims = [c for page_claims in per_page for c in page_claims]
        logger.info("Deep read completed", extra={"pages": len(pages), "claims": len(claims)})
        return claims

    async def _read_one(self, page: ShortlistedPage) -> list[EvidenceClaim]:
        messages = [
            ChatMessage(role="system", content=DEEP_EXTRACT_SYSTEM_PROMPT),
            ChatMessage(
                role="user",
                content=(
                    f"URL: {page.url}\n"
                    f"Title: {page.title or page.extracted.title or ''}\n\n"
                    "Page:\n"
                    f"{page.extracted.text[: self.config.max_text_chars]}\n\n"
                    f"Extract up to {self.config.max_claims_per_page} claims."
                ),
            ),
        ]
        try:
            raw = await call_maybe_async(self.llm.complete, messages, temperature=0.1)
        except Exception as e:
            logger.warning("Deep read failed; skipping page", extra={"url": page.url, "error": str(e)})
            return []

        data = extract_json_object(raw)
        if data is None:
            logger.warning("Failed to parse deep read output; skipping page", extra={"url": page.url, "raw": raw[:400]})
            return []
        try:
            parsed = DeepExtractionOutput.model_validate(data)
        except ValidationError:
            logger.warning("Failed to validate deep read JSON; skipping page", extra={"url": page.url, "raw": raw[:400]})
            return []

        category = page_category(page)
        return [
            build_claim(
                url=page.url,
                category=category,
                text=item.text,
                title=page.title or page.extracted.title,
                retrieved_at=page.fetched_at,
                confidence=item.confidence,
                index=i,
            )
            for i, item in enumerate(parsed.claims[: self.config.max_claims_per_page])
        ]
