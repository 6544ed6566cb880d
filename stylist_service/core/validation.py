"""
Input Validation Module (v1.0.0)
Local heuristic filtering of verified items and request-level validation.

Nothing in this module calls a remote service.
"""
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from stylist_service.config.settings import Settings, get_settings
from stylist_service.core.errors import ValidationError
from stylist_service.core.models import SearchContext, StockStatus, ValidatedItem, ValidationOutcome
from stylist_service.core.pricing import fallback_search_link, parse_price, price_cap

logger = logging.getLogger(__name__)

# Low-trust marketplaces and aggregators
EXTENDED_BLACKLIST = ("lyst", "shopstyle", "temu", "shein")

VALIDATION_NOTE = "Passed basic validation"


def link_host(link: str) -> str:
    """Lower-cased host of a link; the whole link if it has no host."""
    text = (link or "").strip().lower()
    try:
        host = urlparse(text).hostname
    except ValueError:
        host = None
    return host or text


def host_matches(link: str, blacklist: Tuple[str, ...]) -> bool:
    """True if the link's host contains any blacklisted domain token."""
    host = link_host(link)
    return any(token in host for token in blacklist)


class HeuristicValidator:
    """
    Pure, local filter applied after batch verification. Input items are
    never modified; kept items are annotated copies.

    RISK (uncertain stock) items are retained; only an explicit
    UNAVAILABLE status rejects on stock grounds.
    """

    def __init__(self, settings: Optional[Settings] = None, blacklist: Tuple[str, ...] = EXTENDED_BLACKLIST):
        self.settings = settings or get_settings()
        self.blacklist = blacklist

    def validate(self, items: List[ValidatedItem], context: SearchContext) -> ValidationOutcome:
        """
        Filter items by link, domain, price cap and stock status.

        Args:
            items: Verified items for one or more categories
            context: Request context (price range)

        Returns:
            ValidationOutcome with kept items and a reason per discard
        """
        cap = price_cap(
            context.preferences.price_range,
            self.settings.price_cap_buffer,
            self.settings.default_budget_ceiling,
        )

        kept: List[ValidatedItem] = []
        discarded: List[str] = []

        for item in items:
            reason = self._rejection_reason(item, cap)
            if reason:
                discarded.append(f"{item.name or 'Unknown'}: {reason}")
                continue

            kept.append(replace(
                item,
                fallback_search_link=item.fallback_search_link or fallback_search_link(item.brand, item.name),
                validation_note=VALIDATION_NOTE,
            ))

        if discarded:
            logger.info(f"Heuristic validation discarded {len(discarded)} of {len(items)} items")

        return ValidationOutcome(kept=kept, discarded_reasons=discarded)

    def _rejection_reason(self, item: ValidatedItem, cap: float) -> Optional[str]:
        link = (item.link or "").strip()

        if len(link) < self.settings.min_link_length:
            return "No URL"

        if host_matches(link, self.blacklist):
            return "Blacklisted domain"

        price = parse_price(item.price)
        if price > 0 and price > cap:
            return f"Over budget (${price:.2f} > ${cap:.2f})"

        if item.stock_status == StockStatus.UNAVAILABLE:
            return "Explicitly unavailable"

        return None


# ==================== REQUEST VALIDATION ====================

MAX_CATEGORIES = 8


def validate_search_request(
    context: SearchContext,
    category_queries: Optional[Dict[str, str]] = None,
    refresh_categories: Optional[List[str]] = None
) -> SearchContext:
    """
    Validate a search request before any stage runs.

    Args:
        context: Request context
        category_queries: Pre-computed queries; keys must be requested categories
        refresh_categories: Categories to re-search; must be requested categories

    Raises:
        ValidationError: If the request cannot be searched
    """
    errors = []

    categories = [c for c in context.preferences.categories if c and c.strip()]
    if len(categories) > MAX_CATEGORIES:
        errors.append(f"at most {MAX_CATEGORIES} categories may be requested")

    requested = {c.strip().lower() for c in categories}
    if len(requested) != len(categories):
        errors.append("categories must be unique")

    price_range = context.preferences.price_range
    if price_range and "-" in price_range:
        low, _, high = price_range.replace("$", "").partition("-")
        low_value, high_value = parse_price(low), parse_price(high)
        if high_value and low_value > high_value:
            errors.append("price_range minimum exceeds maximum")

    unknown = set(context.category_styles) - set(categories)
    if categories and unknown:
        errors.append(f"category overrides for unrequested categories: {', '.join(sorted(unknown))}")

    for label, names in (("queries", category_queries or {}), ("re-search", refresh_categories or [])):
        unknown = sorted(n for n in names if n.strip().lower() not in requested)
        if categories and unknown:
            errors.append(f"{label} for unrequested categories: {', '.join(unknown)}")

    if errors:
        raise ValidationError("; ".join(errors), status_code=400)

    return context
