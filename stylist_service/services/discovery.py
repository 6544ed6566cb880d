"""
Category Discovery (v1.0.0)
Builds a shopping query for one category and collects raw candidates.

Provider failures and zero-result searches are valid empty outcomes:
they are reported as diagnostic notes and never raised.
"""
import logging
from typing import List, Optional

from stylist_service.config.settings import Settings, get_settings
from stylist_service.core.errors import SearchError
from stylist_service.core.models import Candidate, DiscoveryResult, SearchContext, StyleBracket

logger = logging.getLogger(__name__)

PURCHASE_INTENT = "buy online"
EXCLUSION_SUFFIX = "-pinterest -lyst -polyvore"

GENDER_TERMS = {
    "female": "Women's",
    "woman": "Women's",
    "women": "Women's",
    "male": "Men's",
    "man": "Men's",
    "men": "Men's",
    "non-binary": "Unisex",
    "nonbinary": "Unisex",
}

# Search result pages and video sites, not product pages
NON_PRODUCT_MARKERS = ("google.com", "search?", "youtube.com")


def gender_term(gender: Optional[str]) -> str:
    """Map a profile gender to its query term; unknown values pass through."""
    text = (gender or "").strip()
    return GENDER_TERMS.get(text.lower(), text)


def sanitize_colors(category: str, bracket: Optional[StyleBracket], fallback: str) -> List[str]:
    """
    Color terms relevant to one category.

    Bracket colors tagged "<category>: <color>" are kept only when the tag
    fuzzily matches the category; untagged colors apply everywhere. With
    nothing left, the generic color preference is used.
    """
    target = category.strip().lower()
    colors: List[str] = []

    for entry in (bracket.colors if bracket else ()):
        entry = (entry or "").strip()
        if not entry:
            continue
        if ":" in entry:
            tag, _, color = entry.partition(":")
            tag = tag.strip().lower()
            if tag and (tag in target or target in tag) and color.strip():
                colors.append(color.strip())
        else:
            colors.append(entry)

    if not colors and fallback and fallback.strip():
        colors = [c.strip() for c in fallback.split(",") if c.strip()]

    return colors


def filter_candidates(candidates: List[Candidate]) -> List[Candidate]:
    """Drop duplicate links and obvious non-product links, keeping order."""
    seen = set()
    kept = []
    for candidate in candidates:
        key = candidate.link.strip().lower()
        if not key or key in seen:
            continue
        if any(marker in key for marker in NON_PRODUCT_MARKERS):
            continue
        seen.add(key)
        kept.append(candidate)
    return kept


class CategoryDiscovery:
    """
    Search-provider front end for one category at a time.

    Usage:
        discovery = CategoryDiscovery(provider, settings)
        result = await discovery.discover("Dress", context)
    """

    def __init__(self, provider, settings: Optional[Settings] = None):
        self.provider = provider
        self.settings = settings or get_settings()

    def build_query(self, category: str, context: SearchContext) -> str:
        """
        Query terms in fixed order: style, colors, gender, category, then
        the purchase-intent keyword and the exclusion suffix.
        """
        parts = [
            context.style_for(category),
            " ".join(sanitize_colors(category, context.bracket, context.preferences.colors)),
            gender_term(context.profile.gender),
            category,
        ]
        terms = " ".join(p.strip() for p in parts if p and p.strip())
        return f"{terms} {PURCHASE_INTENT} {EXCLUSION_SUFFIX}".strip()

    def finalize_query(self, query: str) -> str:
        """Append the purchase-intent keyword and exclusion suffix when missing."""
        query = " ".join(query.split())
        if PURCHASE_INTENT not in query.lower():
            query = f"{query} {PURCHASE_INTENT}"
        for token in EXCLUSION_SUFFIX.split():
            if token not in query.split():
                query = f"{query} {token}"
        return query

    def resolve_query(self, category: str, context: SearchContext, query: Optional[str] = None) -> str:
        """The exact query discover() will send for a category."""
        if query and query.strip():
            return self.finalize_query(query)
        return self.build_query(category, context)

    async def discover(self, category: str, context: SearchContext, query: Optional[str] = None) -> DiscoveryResult:
        """
        Run one category search.

        Args:
            category: Requested category
            context: Request context
            query: Pre-computed query terms; built from the context when absent

        Returns:
            DiscoveryResult; candidates are empty on missing credentials,
            provider failure or zero results, each with its own note
        """
        query = self.resolve_query(category, context, query)
        notes = [f"[{category}] Search query: {query}"]

        if not self.provider.is_configured():
            notes.append(f"[{category}] Search provider credentials missing; skipping search")
            logger.warning(f"[{category}] Search provider not configured")
            return DiscoveryResult(category=category, candidates=[], query=query, notes=notes)

        try:
            raw = await self.provider.search(query)
        except SearchError as e:
            notes.append(f"[{category}] Search provider failed: {e}")
            logger.error(f"[{category}] Search failed: {e}")
            return DiscoveryResult(category=category, candidates=[], query=query, notes=notes)

        if not raw:
            notes.append(f"[{category}] Zero results from search provider for this query")
            logger.warning(f"[{category}] No results for '{query}'")
            return DiscoveryResult(category=category, candidates=[], query=query, notes=notes)

        candidates = filter_candidates(raw)
        dropped = len(raw) - len(candidates)
        notes.append(f"[{category}] Found {len(raw)} results; {len(candidates)} unique product candidates")
        if dropped:
            notes.append(f"[{category}] Dropped {dropped} duplicate or non-product links")

        logger.info(f"[{category}] Discovery found {len(candidates)} candidates")
        return DiscoveryResult(
            category=category,
            candidates=candidates,
            query=query,
            notes=notes,
            initial_count=len(candidates),
        )
