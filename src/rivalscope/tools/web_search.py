"""Web search providers.

Each provider exposes one method, ``search(query, *, max_results)``, returning raw hits. The
harvester owns per-query failure handling; providers raise on failure.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol

import httpx
from duckduckgo_search import DDGS

from rivalscope.config import Settings
from rivalscope.errors import ConfigError, SearchError, TavilySearchError
from rivalscope.logging import get_logger
from rivalscope.models.search import RawSearchResult

logger = get_logger(__name__)

_TRANSIENT_STATUS = {429, 500, 502, 503, 504}


class SearchProvider(Protocol):
    """Search capability. Implementations may be sync or async."""

    def search(self, query: str, *, max_results: int) -> list[RawSearchResult]:
        """Search the web."""


@dataclass(frozen=True)
class TavilySearchProvider:
    """Tavily API search provider.

    Notes:
        - API key must be provided via settings (`RIVALSCOPE_TAVILY_API_KEY`).
        - Only title/url/content/published date are requested; page bodies are fetched later
          by the content extractor.
    """

    api_key: str
    base_url: str = "https://api.tavily.com"
    search_depth: str = "basic"
    timeout_s: float = 30.0
    max_retries: int = 2
    retry_backoff_s: float = 0.75
    retry_max_backoff_s: float = 8.0
    source_name: str = "tavily"

    def search(self, query: str, *, max_results: int) -> list[RawSearchResult]:
        """Search using Tavily.

        Args:
            query: Search query.
            max_results: Maximum number of results.

        Returns:
            List of raw results in provider rank order.
        """

        url = f"{self.base_url.rstrip('/')}/search"
        payload = {
            "api_key": self.api_key,
            "query": query,
            "max_results": max_results,
            "search_depth": self.search_depth,
            "include_answer": False,
            "include_raw_content": False,
            "include_images": False,
        }

        last_err: Exception | None = None
        started = time.monotonic()

        with httpx.Client(timeout=httpx.Timeout(self.timeout_s), follow_redirects=True) as client:
            for attempt in range(self.max_retries + 1):
                status_code: int | None = None
                try:
                    resp = client.post(url, json=payload)
                    status_code = resp.status_code
                    if status_code in _TRANSIENT_STATUS:
                        raise httpx.HTTPStatusError(
                            f"tavily transient status={status_code}",
                            request=resp.request,
                            response=resp,
                        )
                    resp.raise_for_status()
                    results = self._parse(resp.json())
                    logger.info(
                        "Tavily search ok",
                        extra={
                            "query_len": len(query),
                            "attempt": attempt,
                            "result_count": len(results),
                            "latency_ms": int((time.monotonic() - started) * 1000),
                        },
                    )
                    return results
                except (httpx.HTTPError, TavilySearchError, ValueError) as e:
                    last_err = e

                if attempt >= self.max_retries:
                    break

                sleep_s = self._retry_after(last_err)
                if sleep_s is None:
                    sleep_s = min(self.retry_max_backoff_s, self.retry_backoff_s * (2**attempt))
                logger.warning(
                    "Tavily search retry",
                    extra={"attempt": attempt, "status_code": status_code, "sleep_s": sleep_s},
                )
                time.sleep(sleep_s)

        raise TavilySearchError(f"Tavily search failed: {last_err}") from last_err

    def _parse(self, data: object) -> list[RawSearchResult]:
        if not isinstance(data, dict):
            raise TavilySearchError("tavily response not a JSON object")
        raw_results = data.get("results")
        if not isinstance(raw_results, list):
            raise TavilySearchError("tavily response missing results list")

        results: list[RawSearchResult] = []
        for i, item in enumerate(raw_results, start=1):
            if not isinstance(item, dict) or not item.get("url"):
                continue
            score = item.get("score")
            results.append(
                RawSearchResult(
                    title=item.get("title"),
                    url=str(item["url"]),
                    content=item.get("content") or item.get("raw_content"),
                    published_date=item.get("published_date"),
                    score=float(score) if isinstance(score, (int, float)) else None,
                    source=self.source_name,
                    rank=i,
                )
            )
        return results

    @staticmethod
    def _retry_after(err: Exception | None) -> float | None:
        if not isinstance(err, httpx.HTTPStatusError) or err.response.status_code != 429:
            return None
        ra = err.response.headers.get("retry-after")
        try:
            return float(ra) if ra is not None else None
        except ValueError:
            return None


@dataclass(frozen=True)
class DuckDuckGoSearchProvider:
    """DuckDuckGo search provider (no API key; no published dates)."""

    source_name: str = "duckduckgo"

    def search(self, query: str, *, max_results: int) -> list[RawSearchResult]:
        results: list[RawSearchResult] = []
        try:
            with DDGS() as ddgs:
                hits = list(ddgs.text(query, max_results=max_results))
        except Exception as e:
            raise SearchError(f"DuckDuckGo search failed: {e}") from e

        for i, r in enumerate(hits, start=1):
            url = r.get("href") or r.get("url")
            if not url:
                continue
            results.append(
                RawSearchResult(
                    title=r.get("title"),
                    url=url,
                    content=r.get("body") or r.get("snippet"),
                    source=self.source_name,
                    rank=i,
                )
            )
        return results


def get_search_provider(settings: Settings) -> SearchProvider:
    """Factory to create a search provider based on settings."""

    if settings.search_provider == "tavily":
        if not settings.tavily_api_key:
            raise ConfigError(
                "Missing RIVALSCOPE_TAVILY_API_KEY while search_provider=tavily. "
                "Set it in environment variables or .env."
            )
        return TavilySearchProvider(
            api_key=settings.tavily_api_key,
            base_url=settings.tavily_api_base_url,
            search_depth=settings.tavily_search_depth,
            timeout_s=settings.tavily_timeout_s,
            max_retries=settings.tavily_max_retries,
            retry_backoff_s=settings.tavily_retry_backoff_s,
            retry_max_backoff_s=settings.tavily_retry_max_backoff_s,
        )

    return DuckDuckGoSearchProvider()
