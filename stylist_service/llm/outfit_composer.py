"""
Outfit Composer (v1.0.0)
Composes complete looks from scored inventory.

Composer output is never trusted for links: every bundle is reconciled
against the inventory before it is returned.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from stylist_service.config.settings import Settings, get_settings
from stylist_service.core.errors import ParseError, RemoteFailure
from stylist_service.core.models import (
    CompositionResult,
    OutfitBundle,
    OutfitComponent,
    ScoredItem,
    SearchContext,
)
from stylist_service.core.pricing import parse_price
from stylist_service.core.reconcile import reconcile_bundles

logger = logging.getLogger(__name__)

INSUFFICIENT_INVENTORY_NOTE = "Verification & Scoring filtered out too many items. Please broaden criteria."
COMPOSER_ERROR_NOTE = "Composer error"


COMPOSE_PROMPT = """You are an outfit composer for an online stylist.

Create exactly {bundle_count} distinct looks from the scored inventory below.

Inventory (scored, grouped by category):
{inventory}

Constraints:
- Each look MUST contain one item from each available category: {categories}.
- Budget: the total price of a look must be within {price_range}.
- Cohesion: items in a look must work together visually (color and style).
- Priority: prefer items with a higher visualMatchScore.
- Use item names exactly as listed. Never invent items, links or placeholder URLs.

Respond with ONLY this JSON:
{{
    "recommendations": [
        {{
            "name": "Look 1: <creative name>",
            "description": "<why this works>",
            "totalPrice": "$<total>",
            "components": [
                {{"category": "...", "name": "...", "brand": "...", "price": "...", "purchaseUrl": "..."}}
            ]
        }}
    ],
    "reflectionNotes": "<summary of how the looks were composed>"
}}

Return ONLY valid JSON."""


def computed_total(bundle: OutfitBundle) -> float:
    """Sum of the parsed component prices; unknown prices count as zero."""
    return round(sum(parse_price(c.price) for c in bundle.components), 2)


def parse_bundles(data: Dict[str, Any]) -> List[OutfitBundle]:
    """
    Raises:
        ParseError: If the response has no recommendation list
    """
    recommendations = data.get("recommendations")
    if not isinstance(recommendations, list):
        raise ParseError("Response has no 'recommendations' list")

    bundles = []
    for rec in recommendations:
        if not isinstance(rec, dict):
            raise ParseError("Recommendation must be an object")
        components = rec.get("components")
        if not isinstance(components, list):
            raise ParseError(f"Recommendation '{rec.get('name')}' has no components list")

        bundle = OutfitBundle(
            name=str(rec.get("name") or f"Look {len(bundles) + 1}"),
            description=str(rec.get("description") or ""),
            total_price=str(rec.get("totalPrice") or ""),
        )
        for comp in components:
            if not isinstance(comp, dict):
                raise ParseError("Component must be an object")
            bundle.components.append(OutfitComponent(
                category=str(comp.get("category") or ""),
                name=str(comp.get("name") or ""),
                brand=str(comp.get("brand") or ""),
                price=str(comp.get("price") or ""),
                link=str(comp.get("purchaseUrl") or comp.get("link") or ""),
            ))
        bundles.append(bundle)
    return bundles


class OutfitComposer:
    """
    Usage:
        composer = OutfitComposer(composer_client, settings)
        result = await composer.compose(scored_by_category, context)
    """

    def __init__(self, llm, settings: Optional[Settings] = None):
        self.llm = llm
        self.settings = settings or get_settings()

    async def compose(
        self,
        scored_by_category: Dict[str, List[ScoredItem]],
        context: SearchContext,
        images: Optional[List[Any]] = None
    ) -> CompositionResult:
        """
        Compose bundles and reconcile their links against the inventory.

        Returns:
            CompositionResult; bundles are empty when the inventory is too
            small or the composer fails, with an explanatory note
        """
        inventory = [s for items in scored_by_category.values() for s in items]

        if len(inventory) < self.settings.min_compose_items:
            logger.info(f"Skipping composition: only {len(inventory)} item(s) available")
            return CompositionResult(bundles=[], notes=[INSUFFICIENT_INVENTORY_NOTE])

        available = [c for c, items in scored_by_category.items() if items]
        listing = {
            category: [self._inventory_entry(s) for s in items]
            for category, items in scored_by_category.items() if items
        }
        prompt = COMPOSE_PROMPT.format(
            bundle_count=self.settings.bundle_count,
            inventory=json.dumps(listing, indent=2),
            categories=", ".join(available),
            price_range=context.preferences.price_range or "the user's budget",
        )

        try:
            data = await self.llm.generate_json(prompt, images=images)
            bundles = parse_bundles(data)
        except (RemoteFailure, ParseError) as e:
            logger.error(f"Composer failed: {e}")
            return CompositionResult(bundles=[], notes=[f"{COMPOSER_ERROR_NOTE}: {e}"])

        reconcile_bundles(bundles, inventory)
        for bundle in bundles:
            bundle.computed_total = computed_total(bundle)

        notes = []
        reflection = data.get("reflectionNotes")
        if isinstance(reflection, str) and reflection.strip():
            notes.append(reflection.strip())

        logger.info(f"Composed {len(bundles)} looks from {len(inventory)} items")
        return CompositionResult(bundles=bundles, notes=notes)

    def _inventory_entry(self, scored: ScoredItem) -> Dict[str, Any]:
        item = scored.item
        return {
            "name": item.name,
            "brand": item.brand,
            "price": item.price,
            "stockStatus": item.stock_status.label,
            "visualMatchScore": scored.visual_match_score,
        }
