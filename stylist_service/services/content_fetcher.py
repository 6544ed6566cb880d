"""
Content Fetcher (v1.0.0)
Browser-like page retrieval with lightweight HTML cleaning.

JSON responses (e.g. search provider payloads) pass through as JSON text;
HTML is parsed with BeautifulSoup and reduced to its visible text (no
scripts, styles, SVGs, comments or markup), then truncated to keep
classification prompts small.
"""
import re
import json
import logging
from typing import Optional

import httpx
from bs4 import BeautifulSoup, Comment

from stylist_service.config.settings import Settings, get_settings
from stylist_service.core.errors import FetchError

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

NON_CONTENT_TAGS = ("script", "style", "svg", "noscript", "template", "iframe")

_WHITESPACE_RE = re.compile(r"\s+")


def clean_html(html: str, max_chars: int = 20000) -> str:
    """Visible page text with whitespace collapsed, truncated to max_chars."""
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup.find_all(list(NON_CONTENT_TAGS)):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    text = _WHITESPACE_RE.sub(" ", soup.get_text(" ", strip=True)).strip()
    return text[:max_chars]


class ContentFetcher:
    """
    Fetches a single URL and returns cleaned text.

    Usage:
        fetcher = ContentFetcher(timeout=8.0)
        text = await fetcher.fetch("https://shop.example.com/item")
    """

    def __init__(
        self,
        timeout: float = 8.0,
        max_chars: int = 20000,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.timeout = timeout
        self.max_chars = max_chars
        self._client = client

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ContentFetcher":
        settings = settings or get_settings()
        return cls(timeout=settings.fetch_timeout_seconds, max_chars=settings.fetch_max_chars)

    async def fetch(self, url: str) -> str:
        """
        Retrieve a URL.

        Returns:
            JSON text for JSON responses, cleaned page text otherwise

        Raises:
            FetchError: On non-2xx status or transport failure
        """
        if not url:
            raise FetchError("Missing URL")

        try:
            if self._client is not None:
                response = await self._client.get(url, headers=BROWSER_HEADERS, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url, headers=BROWSER_HEADERS)
        except httpx.HTTPError as e:
            raise FetchError(f"Fetch failed for {url}: {e}")

        if not response.is_success:
            raise FetchError(f"Target URL returned status {response.status_code}", status_code=response.status_code)

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return json.dumps(response.json())
            except ValueError as e:
                raise FetchError(f"Invalid JSON from {url}: {e}")

        return clean_html(response.text, self.max_chars)

    async def aclose(self):
        """Close an injected client."""
        if self._client is not None:
            await self._client.aclose()
