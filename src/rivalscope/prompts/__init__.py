from __future__ import annotations

PAGE_SUMMARY_SYSTEM_PROMPT = (
    "You triage web pages about a competitor for a market analyst. Read the page and classify "
    "what kind of evidence it holds. "
    "You MUST output ONLY raw JSON without markdown code fences, with keys: "
    "category (one of official_site, pricing, docs, changelog, status, reviews, jobs, "
    "integrations, security_trust, community, other), "
    "signals (up to 12 short strings naming concrete facts on the page), "
    "coverage_score (number 0-1, how much useful competitive evidence the page holds), "
    "recency_hint (last_30_days|last_90_days|last_year|older|unknown), "
    "credibility_hint (official|third_party|community), "
    "recommended_for_deep_read (boolean)."
)

PAGE_SUMMARY_REPAIR_PROMPT = (
    "The previous output was not valid for the required schema. "
    "Return ONLY the corrected raw JSON object with keys category, signals, coverage_score, "
    "recency_hint, credibility_hint, recommended_for_deep_read. No commentary."
)

DEEP_EXTRACT_SYSTEM_PROMPT = (
    "You extract verifiable competitive evidence from a single web page. "
    "Each claim must be a short factual statement supported by the page text, as close to the "
    "original wording as possible. Do not speculate. "
    "Output ONLY raw JSON (no markdown code fences): "
    "{\"claims\": [{\"text\": string, \"confidence\": \"low|med|high\"}]}."
)

__all__ = [
    "PAGE_SUMMARY_SYSTEM_PROMPT",
    "PAGE_SUMMARY_REPAIR_PROMPT",
    "DEEP_EXTRACT_SYSTEM_PROMPT",
]
