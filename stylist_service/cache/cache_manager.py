"""
Cache Manager (v1.0.0)
Manages cache key generation and high-level cache operations.

Two layers share one store:
- exact: every request input, including the user profile and a signature
  of any reference payload
- search: only the inputs that shape the provider queries (and the queries
  themselves), so requests that search the same way share results
"""
import json
import hashlib
import logging
from typing import Dict, Any, Optional, List

from stylist_service.cache.cache_store import CacheStore
from stylist_service.config.settings import Settings, get_settings
from stylist_service.core.models import SearchContext

logger = logging.getLogger(__name__)

CACHE_LAYERS = ("exact", "search")

# Inputs shorter than this are hashed whole
FAST_HASH_THRESHOLD = 1000
FAST_HASH_SAMPLE = 200


def _sorted_terms(values) -> str:
    """Comma-separated, trimmed, lower-cased, sorted terms."""
    if isinstance(values, str):
        values = values.split(",")
    terms = [str(v).strip().lower() for v in values or []]
    return ",".join(sorted(t for t in terms if t))


def fast_hash(payload: Optional[str]) -> str:
    """
    Signature of a potentially large payload (e.g. a base64 photo).

    Large payloads are sampled at head, middle and tail plus their length
    instead of hashing megabytes of data.
    """
    if not payload:
        return "no_data"

    length = len(payload)
    if length < FAST_HASH_THRESHOLD:
        sample = payload
    else:
        middle = length // 2
        sample = (
            payload[:FAST_HASH_SAMPLE]
            + payload[middle:middle + FAST_HASH_SAMPLE]
            + payload[-FAST_HASH_SAMPLE:]
            + str(length)
        )

    return hashlib.sha256(sample.encode("utf-8")).hexdigest()[:16]


class CacheManager:
    """High-level cache management for search requests."""

    def __init__(self, store: Optional[CacheStore] = None, enabled: bool = True):
        self._store = store or CacheStore()
        self._enabled = enabled

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CacheManager":
        settings = settings or get_settings()
        return cls(CacheStore(ttl_seconds=settings.cache_ttl_seconds), enabled=settings.cache_enabled)

    @property
    def enabled(self) -> bool:
        """Check if caching is enabled."""
        return self._enabled

    def generate_cache_key(
        self,
        layer: str,
        context: SearchContext,
        photo: Optional[str] = None,
        queries: Optional[Dict[str, str]] = None
    ) -> str:
        """
        Generate a deterministic cache key from the relevant request inputs.

        Args:
            layer: "exact" or "search"
            context: Request context
            photo: Optional reference payload (signed, never hashed in full)
            queries: Category -> query actually sent to the search provider

        Returns:
            "<layer>_<16 hex chars>"
        """
        if layer not in CACHE_LAYERS:
            raise ValueError(f"Unknown cache layer: {layer}")

        prefs = context.preferences
        key_data: Dict[str, Any] = {
            "categories": _sorted_terms(prefs.categories),
            "style": prefs.style.strip().lower(),
            "colors": _sorted_terms(prefs.colors),
            "price_range": prefs.price_range.strip(),
            "size": context.profile.size.strip().lower(),
            "category_styles": {k.lower(): v.strip().lower() for k, v in context.category_styles.items()},
        }

        if layer == "exact":
            key_data["gender"] = context.profile.gender.strip().lower()
            key_data["occasion"] = prefs.occasion.strip().lower()
            key_data["photo"] = fast_hash(photo or context.reference_payload)
            if context.bracket:
                key_data["bracket"] = self._normalize_bracket(context.bracket.to_dict())
        else:
            # Everything that shapes a search query
            key_data["gender"] = context.profile.gender.strip().lower()
            if context.bracket:
                key_data["style_fingerprint"] = _sorted_terms(list(context.bracket.keywords)[:5])
                key_data["bracket_colors"] = _sorted_terms(context.bracket.colors)
            if queries:
                key_data["queries"] = {k.strip().lower(): " ".join(v.lower().split()) for k, v in queries.items()}

        key_string = json.dumps(key_data, sort_keys=True)
        return f"{layer}_{hashlib.sha256(key_string.encode()).hexdigest()[:16]}"

    def _normalize_bracket(self, bracket: Dict[str, Any]) -> Dict[str, Any]:
        """Order-insensitive bracket representation."""
        details: Dict[str, List[str]] = bracket.get("details", {})
        return {
            "vibes": _sorted_terms(bracket.get("vibes")),
            "keywords": _sorted_terms(bracket.get("keywords")),
            "colors": _sorted_terms(bracket.get("colors")),
            "details": {k.lower(): _sorted_terms(v) for k, v in details.items()},
        }

    def get(self, cache_key: str) -> Optional[Dict[str, Any]]:
        """Get cached response."""
        if not self.enabled:
            return None
        return self._store.get(cache_key)

    def set(self, cache_key: str, response: Dict[str, Any], ttl_seconds: Optional[int] = None):
        """Cache a response."""
        if not self.enabled:
            return
        self._store.set(cache_key, response, ttl_seconds)

    def get_status(self) -> Dict[str, Any]:
        """Get cache status for health endpoint."""
        stats = self._store.get_stats()
        return {
            "enabled": self.enabled,
            "type": "memory",
            "ttl_seconds": stats.get("ttl_seconds"),
            "entries": stats.get("entries", 0),
            "hits": stats.get("hits", 0),
            "misses": stats.get("misses", 0),
        }
