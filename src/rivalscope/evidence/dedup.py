"""Claim deduplication.

Stage 1 drops exact duplicates by fingerprint. Stage 2 drops near-duplicates, comparing claims
only within the same canonical URL (token-set Jaccard on normalized text). Cross-URL textual
duplicates are kept. Both stages are first-occurrence-wins and preserve input order, so running
the deduplicator on its own output removes nothing further.
"""

from __future__ import annotations

import re
from typing import Iterable

from rivalscope.config import DedupConfig
from rivalscope.evidence.normalize import normalize_claim_text
from rivalscope.logging import get_logger
from rivalscope.models.claim import EvidenceClaim

logger = get_logger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def tokenize(text: str | None) -> frozenset[str]:
    return frozenset(_TOKEN_RE.findall(normalize_claim_text(text).lower()))


def jaccard_similarity(a: frozenset[str], b: frozenset[str]) -> float:
    if not a and not b:
        return 1.0
    union = len(a | b)
    return len(a & b) / union if union else 0.0


def dedupe_exact(claims: Iterable[EvidenceClaim]) -> list[EvidenceClaim]:
    seen: set[str] = set()
    out: list[EvidenceClaim] = []
    for claim in claims:
        if claim.fingerprint in seen:
            continue
        seen.add(claim.fingerprint)
        out.append(claim)
    return out


def dedupe_near(claims: Iterable[EvidenceClaim], *, threshold: float = 0.85) -> list[EvidenceClaim]:
    """Drop a claim whose similarity with an accepted same-URL claim is strictly above `threshold`."""

    accepted_by_url: dict[str, list[frozenset[str]]] = {}
    out: list[EvidenceClaim] = []
    for claim in claims:
        tokens = tokenize(claim.claim_text)
        accepted = accepted_by_url.setdefault(claim.canonical_url, [])
        if any(jaccard_similarity(tokens, other) > threshold for other in accepted):
            continue
        accepted.append(tokens)
        out.append(claim)
    return out


def dedupe_claims(claims: Iterable[EvidenceClaim], config: DedupConfig | None = None) -> list[EvidenceClaim]:
    cfg = config or DedupConfig()
    items = list(claims)
    exact = dedupe_exact(items)
    near = dedupe_near(exact, threshold=cfg.similarity_threshold)
    if len(near) != len(items):
        logger.debug(
            "Claims deduplicated",
            extra={"input": len(items), "exact_removed": len(items) - len(exact), "near_removed": len(exact) - len(near)},
        )
    return near
