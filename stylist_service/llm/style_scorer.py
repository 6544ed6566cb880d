"""
Style Scorer (v1.0.0)
Scores validated items 0-100 for style fit.

Scoring never fails the pipeline: on any remote or parse failure the
input items come back unscored.
"""
import json
import logging
from typing import Dict, List, Optional

from stylist_service.core.errors import ParseError, RemoteFailure
from stylist_service.core.models import ScoredItem, SearchContext, StyleBracket, ValidatedItem

logger = logging.getLogger(__name__)


SCORE_PROMPT = """You are a fashion stylist scoring product listings for style fit.

{method}

Items to score:
{items}

For EACH item calculate a "visualMatchScore" (0-100):
- 90-100: perfect match to the style signals
- 70-89: good match
- below 60: poor match (mismatched style, wrong color)

Respond with ONLY this JSON:
{{
    "scores": [
        {{"id": "<item id>", "visualMatchScore": <0-100>, "scoreReason": "<short reason>"}}
    ]
}}

Return ONLY valid JSON."""


def build_scoring_method(context: SearchContext, bracket: Optional[StyleBracket] = None) -> str:
    """
    Scoring instructions from the strongest style signal available:
    vibe + detail bracket, then flat keyword bracket, then plain keywords.
    """
    bracket = bracket or context.bracket

    if bracket and bracket.has_vibe_detail():
        details = "\n".join(
            f"- {category}: {', '.join(values)}" for category, values in sorted(bracket.details.items()) if values
        )
        return (
            "Scoring method: style bracket (vibe + details).\n"
            f"Acceptable vibes (ANY of): {', '.join(bracket.vibes)}\n"
            f"Acceptable structural details per category (ANY of):\n{details}\n"
            "Matching is OR: an item matching ANY listed vibe or ANY listed detail scores well. "
            "Never penalize an item for lacking one feature when it matches a different listed feature."
        )

    if bracket and bracket.has_keywords():
        keywords = list(bracket.keywords) + [v for v in bracket.vibes if v not in bracket.keywords]
        return (
            "Scoring method: keyword bracket.\n"
            f"Acceptable keywords (ANY of): {', '.join(keywords)}\n"
            "Matching is OR: an item matching ANY keyword scores well. "
            "Never penalize an item for lacking one keyword when it matches another."
        )

    prefs = context.preferences
    keywords = [k for k in (prefs.style, prefs.colors, prefs.occasion) if k and k.strip()]
    return (
        "Scoring method: text-based style matching.\n"
        f"Keywords: {', '.join(keywords) or 'none'}"
    )


class StyleScorer:
    """
    Adds a visual match score to every validated item.

    Usage:
        scorer = StyleScorer(scorer_client)
        scored = await scorer.score({"Dress": items}, context)
    """

    def __init__(self, llm):
        self.llm = llm

    async def score(
        self,
        items_by_category: Dict[str, List[ValidatedItem]],
        context: SearchContext,
        bracket: Optional[StyleBracket] = None
    ) -> Dict[str, List[ScoredItem]]:
        """
        Score items across categories with one remote call.

        Returns:
            Same categories and items, each wrapped in a ScoredItem; scores
            are None when scoring was unavailable
        """
        unscored = {
            category: [ScoredItem(item=item) for item in items]
            for category, items in items_by_category.items()
        }

        all_items = [item for items in items_by_category.values() for item in items]
        if not all_items:
            return unscored

        listing = "\n".join(json.dumps({
            "id": item.id,
            "category": item.category,
            "name": item.name,
            "brand": item.brand,
            "price": item.price,
            "description": item.rationale or item.snippet,
        }) for item in all_items)
        prompt = SCORE_PROMPT.format(method=build_scoring_method(context, bracket), items=listing)

        try:
            data = await self.llm.generate_json(prompt)
            scores = self._parse_scores(data)
        except (RemoteFailure, ParseError) as e:
            logger.error(f"Style scoring failed, returning unscored items: {e}")
            return unscored

        for scored_items in unscored.values():
            for scored in scored_items:
                entry = scores.get(scored.item.id)
                if entry:
                    scored.visual_match_score, scored.score_reason = entry

        logger.info(f"Scored {len(scores)} of {len(all_items)} items")
        return unscored

    def _parse_scores(self, data: Dict) -> Dict[str, tuple]:
        """
        Raises:
            ParseError: If the response has no score list
        """
        raw_scores = data.get("scores")
        if not isinstance(raw_scores, list):
            raise ParseError("Response has no 'scores' list")

        scores = {}
        for entry in raw_scores:
            if not isinstance(entry, dict):
                continue
            item_id = entry.get("id")
            value = entry.get("visualMatchScore")
            if not isinstance(item_id, str) or isinstance(value, bool) or not isinstance(value, (int, float)):
                continue
            if item_id not in scores:
                scores[item_id] = (int(max(0, min(100, round(value)))), str(entry.get("scoreReason") or ""))
        return scores
