"""Deterministic evidence category detection from URL, title and snippet.

URL path and host signals are checked first (most reliable), then title/snippet keywords.
First match wins.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from rivalscope.models.category import EvidenceCategory

_PATH_RULES: tuple[tuple[EvidenceCategory, tuple[str, ...]], ...] = (
    (EvidenceCategory.PRICING, ("/pricing", "/plans", "/billing", "/price")),
    (EvidenceCategory.DOCS, ("/docs", "/documentation", "/api", "/guide", "/guides")),
    (
        EvidenceCategory.CHANGELOG,
        ("/changelog", "/release-notes", "/releases", "/updates", "/whats-new", "/what-s-new"),
    ),
)

_REVIEW_HOSTS = ("g2.com", "capterra.com", "trustpilot.com", "trustradius.com")
_COMMUNITY_HOSTS = ("reddit.com", "producthunt.com", "news.ycombinator.com")
_JOB_HOSTS = ("greenhouse.io", "lever.co", "workable.com", "ashbyhq.com")

_SECURITY_PATHS = ("/security", "/trust", "/compliance", "/soc-2", "/soc2", "/gdpr", "/privacy-policy")
_JOB_PATHS = ("/careers", "/jobs", "/hiring", "/openings")
_BLOG_PATHS = ("/blog", "/news", "/press")

_KEYWORD_RULES: tuple[tuple[EvidenceCategory, tuple[str, ...]], ...] = (
    (EvidenceCategory.PRICING, ("pricing", "plans", "price", "cost", "tier", "subscription")),
    (EvidenceCategory.DOCS, ("documentation", "how to", "guide", "tutorial", "getting started", "api")),
    (EvidenceCategory.CHANGELOG, ("what's new", "changelog", "release", "update", "announcement")),
    (EvidenceCategory.REVIEWS, ("review", "rating", "testimonial", "feedback")),
    (EvidenceCategory.COMMUNITY, ("forum", "community", "discussion", "thread", "discord", "slack")),
    (EvidenceCategory.SECURITY, ("security", "compliance", "soc 2", "gdpr", "encryption")),
    (EvidenceCategory.JOBS, ("careers", "hiring", "job opening", "we are hiring")),
    (EvidenceCategory.BLOG, ("blog", "press release", "newsroom")),
)


def _split(url: str) -> tuple[str, str]:
    raw = url.strip()
    if not raw.startswith(("http://", "https://")):
        raw = f"https://{raw}"
    try:
        parts = urlsplit(raw)
        return (parts.hostname or "").lower(), parts.path.lower()
    except ValueError:
        return "", ""


def _host_matches(host: str, suffixes: tuple[str, ...]) -> bool:
    return any(host == s or host.endswith(f".{s}") for s in suffixes)


def detect_category(url: str, title: str | None = None, snippet: str | None = None) -> EvidenceCategory:
    """Classify a source into the canonical claim category set."""

    host, path = _split(url or "")

    for category, needles in _PATH_RULES:
        if any(n in path for n in needles):
            return category

    if _host_matches(host, _REVIEW_HOSTS):
        return EvidenceCategory.REVIEWS
    if _host_matches(host, _COMMUNITY_HOSTS):
        return EvidenceCategory.COMMUNITY
    if any(n in path for n in _SECURITY_PATHS):
        return EvidenceCategory.SECURITY
    if any(n in path for n in _JOB_PATHS) or _host_matches(host, _JOB_HOSTS):
        return EvidenceCategory.JOBS
    if host.startswith("status."):
        return EvidenceCategory.CHANGELOG
    if any(n in path for n in _BLOG_PATHS):
        return EvidenceCategory.BLOG

    text = f"{title or ''} {snippet or ''}".lower().strip()
    if text:
        for category, needles in _KEYWORD_RULES:
            if any(n in text for n in needles):
                return category

    return EvidenceCategory.OTHER
