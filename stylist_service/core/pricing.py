"""
Price and Budget Helpers (v1.0.0)
Price-string parsing, budget ranges and the cross-category feasibility check.
"""
import re
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote_plus

from stylist_service.core.models import ValidatedItem

logger = logging.getLogger(__name__)

_NON_PRICE_RE = re.compile(r"[^0-9.]")

FALLBACK_SEARCH_URL = "https://www.google.com/search?tbm=shop&q="


def parse_price(price: Optional[str]) -> float:
    """
    Parse a display price by stripping everything but digits and dots.

    Returns:
        Numeric price, or 0.0 when the price is unknown or unparseable
    """
    cleaned = _NON_PRICE_RE.sub("", str(price or ""))
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def parse_budget_max(price_range: Optional[str]) -> Optional[float]:
    """
    Parse the maximum of a "min-max" price range ("$50 - $200", "200").

    Returns:
        Maximum budget, or None if the range cannot be parsed
    """
    parts = str(price_range or "").replace("$", "").split("-")
    raw = parts[1] if len(parts) > 1 and parts[1].strip() else parts[0]
    value = parse_price(raw)
    return value if value > 0 else None


def price_cap(price_range: Optional[str], buffer: float, default_ceiling: float) -> float:
    """Highest acceptable single-item price for a request."""
    max_budget = parse_budget_max(price_range)
    if max_budget is None:
        max_budget = default_ceiling
    # Rounded so an item priced exactly at the cap is never lost to float error
    return round(max_budget * buffer, 6)


def fallback_search_link(brand: str, name: str) -> str:
    """Shopping search link used when a primary product link breaks."""
    return FALLBACK_SEARCH_URL + quote_plus(f"{brand or ''} {name or ''}".strip())


# ==================== BUDGET FEASIBILITY ====================

@dataclass
class BudgetCheck:
    """Outcome of the cross-category budget check."""
    max_budget: Optional[float]
    cheapest_total: float = 0.0
    resorted: bool = False
    notes: List[str] = field(default_factory=list)


def sort_by_price(items: List[ValidatedItem]) -> List[ValidatedItem]:
    """Ascending by price; items with unknown price go last."""
    def key(item: ValidatedItem) -> Tuple[int, float]:
        price = parse_price(item.price)
        return (1, 0.0) if price <= 0 else (0, price)
    return sorted(items, key=key)


def check_budget_feasibility(
    picks: Dict[str, List[ValidatedItem]],
    price_range: Optional[str],
    threshold: float
) -> Tuple[Dict[str, List[ValidatedItem]], BudgetCheck]:
    """
    Check whether the cheapest one-per-category combination fits the budget.

    The cheapest total sums the minimum known price of every category
    with results. If it exceeds max_budget * threshold, every category is
    re-sorted by ascending price so affordable options surface first.

    Args:
        picks: Category -> ranked items
        price_range: User's "min-max" price range
        threshold: Tolerance multiplier on the maximum budget

    Returns:
        (possibly re-sorted picks, check outcome)
    """
    max_budget = parse_budget_max(price_range)
    check = BudgetCheck(max_budget=max_budget)

    if max_budget is None:
        check.notes.append("[BudgetCheck] No parseable budget; skipping feasibility check")
        return picks, check

    populated = {cat: items for cat, items in picks.items() if items}
    for items in populated.values():
        prices = [p for p in (parse_price(i.price) for i in items) if p > 0]
        if prices:
            check.cheapest_total += min(prices)

    check.notes.append(
        f"[BudgetCheck] Budget max: ${max_budget:.2f} | Cheapest combo total: "
        f"${check.cheapest_total:.2f} across {len(populated)} categories"
    )

    if check.cheapest_total > max_budget * threshold:
        check.resorted = True
        check.notes.append("[BudgetCheck] Over budget - re-sorting items by price (ascending)")
        picks = {cat: sort_by_price(items) for cat, items in picks.items()}
    else:
        check.notes.append("[BudgetCheck] Within budget - no re-sorting needed")

    if len(populated) > 1:
        check.notes.append(
            f"[BudgetCheck] Suggested per-category budget: ~${max_budget / len(populated):.0f}"
        )

    return picks, check
