"""
Link Reconciliation (v1.0.0)
Restores trustworthy product links on composed bundles.

The remote composer is known to rewrite or invent purchase links and
prices, so every component link and price is replaced from the original
inventory item matched by name. When nothing matches, the link is left empty.
"""
import logging
from typing import Dict, List, Optional

from stylist_service.core.models import OutfitBundle, OutfitComponent, ScoredItem

logger = logging.getLogger(__name__)


def normalize_name(name: Optional[str]) -> str:
    """Lower-case and trim a product name for lookup."""
    return (name or "").strip().lower()


def build_link_index(items: List[ScoredItem]) -> Dict[str, ScoredItem]:
    """
    Build a normalized-name -> inventory item lookup.

    When two inventory items share a name, the first one wins.
    """
    index: Dict[str, ScoredItem] = {}
    for scored in items:
        key = normalize_name(scored.item.name)
        if key and key not in index:
            index[key] = scored
    return index


def match_inventory_item(name: Optional[str], index: Dict[str, ScoredItem]) -> Optional[ScoredItem]:
    """
    Find the inventory item a component name refers to.

    Exact normalized match first. Otherwise the first key that contains
    the name, or is contained by it, in longest-key-first then
    alphabetical order.
    """
    key = normalize_name(name)
    if not key:
        return None

    if key in index:
        return index[key]

    for candidate in sorted(index, key=lambda k: (-len(k), k)):
        if candidate in key or key in candidate:
            return index[candidate]

    return None


def reconcile_component(component: OutfitComponent, index: Dict[str, ScoredItem]) -> OutfitComponent:
    """Overwrite a component's link (and provenance fields) from inventory."""
    match = match_inventory_item(component.name, index)

    if match is None:
        if component.link:
            logger.warning(f"Dropping unverifiable composer link for '{component.name}'")
        component.link = ""
        component.validation_note = "No inventory match; link removed"
        return component

    item = match.item
    component.link = item.link
    component.fallback_search_link = item.fallback_search_link
    component.image = item.image or component.image
    component.brand = component.brand or item.brand
    component.price = item.price or component.price
    component.visual_match_score = match.visual_match_score
    component.validation_note = f"Verified ({item.stock_status.label})"
    return component


def reconcile_bundles(bundles: List[OutfitBundle], inventory: List[ScoredItem]) -> List[OutfitBundle]:
    """Apply link reconciliation to every component of every bundle."""
    index = build_link_index(inventory)
    for bundle in bundles:
        for component in bundle.components:
            reconcile_component(component, index)
    return bundles
