"""Page fetching and readable-text extraction."""

from __future__ import annotations

from typing import Protocol

import httpx
from bs4 import BeautifulSoup
from readability import Document

from rivalscope.config import Settings
from rivalscope.errors import ExtractionError
from rivalscope.logging import get_logger
from rivalscope.models.page import ExtractedPage

logger = get_logger(__name__)


class ContentExtractor(Protocol):
    """Fetch a URL and reduce it to readable text. Sync or async implementations are accepted."""

    def extract(self, url: str) -> ExtractedPage:
        ...


class HttpContentExtractor:
    """Fetch pages over HTTP and extract the main content with readability."""

    def __init__(self, settings: Settings) -> None:
        self._max_chars = settings.page_max_chars
        self._client = httpx.Client(
            timeout=httpx.Timeout(settings.http_timeout_s),
            headers={"User-Agent": settings.http_user_agent},
            follow_redirects=True,
        )

    def extract(self, url: str) -> ExtractedPage:
        try:
            resp = self._client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ExtractionError(f"Fetch failed for {url}: {e}") from e

        content_type = resp.headers.get("content-type") or ""
        if content_type and "html" not in content_type and "text" not in content_type:
            raise ExtractionError(f"Unsupported content type {content_type!r} for {url}")

        title, text = self.parse_html(url, resp.text)
        if not text:
            raise ExtractionError(f"No readable text extracted from {url}")

        truncated = len(text) > self._max_chars
        if truncated:
            text = text[: self._max_chars]
        return ExtractedPage(url=str(resp.url), title=title, text=text, truncated=truncated)

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def parse_html(url: str, html: str) -> tuple[str | None, str]:
        """Return (title, text); falls back to the whole document when readability fails."""

        try:
            doc = Document(html)
            title = doc.short_title() or None
            soup = BeautifulSoup(doc.summary(html_partial=True), "lxml")
            text = soup.get_text("\n", strip=True)
        except Exception as e:
            logger.warning("Readability failed; using full page text", extra={"url": url, "error": str(e)})
            soup = BeautifulSoup(html, "lxml")
            title = soup.title.get_text(strip=True) if soup.title else None
            text = soup.get_text("\n", strip=True)

        return title, "\n".join(line.strip() for line in text.splitlines() if line.strip())
