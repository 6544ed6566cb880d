"""
Search Provider (v1.0.0)
SerpApi Google Shopping search returning raw product candidates.

The provider payload is retrieved through the content fetcher and
re-parsed from its text response.
"""
import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from stylist_service.config.settings import Settings, get_settings
from stylist_service.core.errors import FetchError, SearchError
from stylist_service.core.models import Candidate
from stylist_service.services.content_fetcher import ContentFetcher

logger = logging.getLogger(__name__)

# Reported by the provider as an error, but it is a valid empty outcome
NO_RESULTS_MARKER = "hasn't returned any results"

RESULT_KEYS = ("shopping_results", "inline_shopping_results", "organic_results")


def candidate_from_result(row: Dict[str, Any], rank: int) -> Optional[Candidate]:
    """Map one provider result row; None if it has no title or link."""
    link = row.get("link") or row.get("product_link") or row.get("url")
    title = row.get("title")
    if not link or not title:
        return None

    price = row.get("price")
    if price is None and row.get("extracted_price") is not None:
        price = f"${row['extracted_price']}"

    return Candidate(
        name=str(title).strip(),
        link=str(link).strip(),
        snippet=str(row.get("snippet") or row.get("source") or "").strip(),
        price=str(price or "").strip(),
        image=row.get("thumbnail") or row.get("image"),
        brand=str(row.get("source") or row.get("seller") or "").strip(),
        rank=rank,
    )


class SerpApiSearchProvider:
    """
    Free-text product search.

    Usage:
        provider = SerpApiSearchProvider(settings, fetcher)
        if provider.is_configured():
            candidates = await provider.search("Women's Black Dress buy online")
    """

    def __init__(self, settings: Optional[Settings] = None, fetcher: Optional[ContentFetcher] = None):
        self.settings = settings or get_settings()
        self.fetcher = fetcher or ContentFetcher.from_settings(self.settings)

    def is_configured(self) -> bool:
        """Check if the provider API key is set."""
        return self.settings.has_search()

    def build_url(self, query: str) -> str:
        params = {
            "engine": self.settings.search_engine,
            "q": query,
            "api_key": self.settings.serpapi_api_key,
            "gl": self.settings.search_country,
            "hl": self.settings.search_language,
            "num": self.settings.search_num_results,
        }
        return f"{self.settings.search_base_url}?{urlencode(params)}"

    async def search(self, query: str) -> List[Candidate]:
        """
        Search for products, preserving provider order in Candidate.rank.

        Raises:
            SearchError: If the provider cannot be reached or reports an error
        """
        if not self.is_configured():
            raise SearchError("SERPAPI_API_KEY not set")

        try:
            text = await self.fetcher.fetch(self.build_url(query))
        except FetchError as e:
            raise SearchError(f"Search request failed: {e}")

        try:
            payload = json.loads(text)
        except (json.JSONDecodeError, ValueError) as e:
            raise SearchError(f"Search response is not JSON: {e}")

        if not isinstance(payload, dict):
            raise SearchError("Invalid search response payload")
        error = payload.get("error")
        if error and NO_RESULTS_MARKER in str(error).lower():
            return []
        if error:
            raise SearchError(f"SerpApi error: {payload.get('error')}")

        rows: List[Dict[str, Any]] = []
        for key in RESULT_KEYS:
            values = payload.get(key)
            if isinstance(values, list) and values:
                rows = [v for v in values if isinstance(v, dict)]
                break

        candidates = []
        for row in rows:
            candidate = candidate_from_result(row, rank=len(candidates) + 1)
            if candidate:
                candidates.append(candidate)

        logger.info(f"Search returned {len(candidates)} candidates for '{query}'")
        return candidates
