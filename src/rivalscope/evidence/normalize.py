"""URL, domain, excerpt and claim-text normalization.

Canonical URLs are the identity key for dedup and caching, so `canonicalize_url` must be
idempotent: canonicalizing a canonical URL returns it unchanged.
"""

from __future__ import annotations

import hashlib
import re
from typing import Iterable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from rivalscope.models.category import EvidenceCategory

TRACKING_PARAMS: frozenset[str] = frozenset(
    {"gclid", "fbclid", "mc_cid", "mc_eid", "ref", "_ga", "_gid"}
)
ELLIPSIS = "..."

_WS_RE = re.compile(r"\s+")
_DOMAIN_FALLBACK_RE = re.compile(r"(?:[a-z][a-z0-9+.-]*://)?(?:www\.)?([^/\s?#:]+)", re.IGNORECASE)
_DEFAULT_PORTS = {80, 443}


def _is_tracking_param(name: str) -> bool:
    key = name.lower()
    return key.startswith("utm_") or key in TRACKING_PARAMS


def _strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def canonicalize_url(url: str) -> str:
    """Return the canonical form of `url`.

    Lowercases the host, strips a leading ``www.``, forces https, drops the fragment and
    tracking parameters, removes trailing path slashes (root excepted) and sorts the
    remaining query parameters. Unparseable input is returned unchanged.
    """

    if not url or not isinstance(url, str):
        return url

    raw = url.strip()
    if "://" not in raw:
        raw = f"https://{raw}"

    try:
        parts = urlsplit(raw)
        host = (parts.hostname or "").lower()
        port = parts.port
    except ValueError:
        return url
    if not host:
        return url

    netloc = _strip_www(host)
    if port is not None and port not in _DEFAULT_PORTS:
        netloc = f"{netloc}:{port}"

    path = parts.path or "/"
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/") or "/"

    params = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if not _is_tracking_param(k)
    ]
    params.sort()
    query = urlencode(params)

    return urlunsplit(("https", netloc, path, query, ""))


def extract_domain(url: str) -> str:
    """Extract a lowercase, www-stripped hostname. Never raises; returns "" when hopeless."""

    if not url or not isinstance(url, str):
        return ""

    canonical = canonicalize_url(url)
    try:
        host = urlsplit(canonical).hostname or ""
    except ValueError:
        host = ""
    if host:
        return _strip_www(host.lower())

    m = _DOMAIN_FALLBACK_RE.match(url.strip())
    if m and m.group(1):
        return _strip_www(m.group(1).lower())
    return ""


def collapse_whitespace(text: str | None) -> str:
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def trim_excerpt(text: str | None, max_chars: int = 280) -> str:
    """Collapse whitespace and cap length, breaking at the last whitespace before the cutoff."""

    collapsed = collapse_whitespace(text)
    if len(collapsed) <= max_chars:
        return collapsed

    cut = collapsed[:max_chars]
    last_space = cut.rfind(" ")
    if last_space > 0:
        cut = cut[:last_space]
    return cut.rstrip() + ELLIPSIS


def normalize_claim_text(text: str | None) -> str:
    """Trim and collapse whitespace/newlines; applied before fingerprinting and similarity."""

    return collapse_whitespace(text)


def compute_fingerprint(
    claim_text: str,
    canonical_url: str,
    category: EvidenceCategory | str,
    excerpt: str | None = None,
) -> str:
    """Deterministic hash over a claim's normalized identity fields."""

    cat = category.value if isinstance(category, EvidenceCategory) else str(category)
    fields = [
        normalize_claim_text(claim_text),
        canonical_url or "",
        cat,
        normalize_claim_text(excerpt),
    ]
    h = hashlib.sha256()
    h.update("\x1f".join(fields).encode("utf-8"))
    return h.hexdigest()[:32]


def hash_content(text: str) -> str:
    """Content hash used by the cache to detect page changes."""

    return hashlib.sha256((text or "").encode("utf-8")).hexdigest()


def is_first_party(domain: str, competitor_domains: Iterable[str]) -> bool:
    """True when `domain` equals or is a subdomain of any competitor domain."""

    claim_domain = _strip_www((domain or "").strip().lower())
    if not claim_domain:
        return False
    for comp in competitor_domains:
        normalized = extract_domain(comp)
        if not normalized:
            continue
        if claim_domain == normalized or claim_domain.endswith(f".{normalized}"):
            return True
    return False
