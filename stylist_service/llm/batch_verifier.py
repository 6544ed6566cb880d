"""
Batch Verifier (v1.0.0)
Enriches candidates with live page content and classifies them in batches.

Batches run strictly one after another; page fetches inside a batch run
concurrently. One classification call is made per batch.
"""
import asyncio
import json
import logging
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from stylist_service.config.settings import Settings, get_settings
from stylist_service.core.errors import ParseError, RemoteFailure
from stylist_service.core.models import (
    Candidate,
    ContentSource,
    EnrichedCandidate,
    SearchContext,
    StockStatus,
    ValidatedItem,
    VerdictStock,
    Verdict,
    VerificationResult,
)
from stylist_service.core.pricing import fallback_search_link

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")
# Social and image-sharing sites never host a purchasable product page
SOCIAL_BLACKLIST = ("pinterest.", "instagram.")

DEFAULT_MATCH_SCORE = 50


VERIFY_PROMPT = """You are a product page auditor for an online fashion stylist.

Category requested: {category}
Style: {style}

For EACH candidate below decide whether the page is a real, purchasable
product page for the requested category.

Rules:
- stockStatus "UNAVAILABLE" if the page says "sold out" or "out of stock".
- stockStatus "LIKELY_AVAILABLE" if "add to cart" or a price is visible.
- stockStatus "UNCERTAIN" if unclear.
- matchScore is 0-100 for how well the product fits the category and style.

Candidates:
{candidates}

Respond with ONLY this JSON:
{{
    "verdicts": [
        {{
            "index": <candidate index>,
            "isValidProductPage": <true|false>,
            "detectedCategory": "<category>",
            "stockStatus": "UNAVAILABLE" | "LIKELY_AVAILABLE" | "UNCERTAIN",
            "price": "<price as shown, or empty>",
            "matchScore": <0-100>,
            "reason": "<short rationale>"
        }}
    ]
}}

Return ONLY valid JSON."""


def link_prefilter_reason(link: str) -> Optional[str]:
    """Local link check; returns a rejection reason or None."""
    text = (link or "").strip()
    parsed = urlparse(text)
    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.netloc:
        return "malformed link"
    host = parsed.netloc.lower()
    if any(token in host for token in SOCIAL_BLACKLIST):
        return "social/image-sharing domain"
    return None


def parse_verdicts(data: Dict, batch_size: int) -> Dict[int, object]:
    """
    Index the raw verdict objects of one batch response.

    Returns:
        candidate index -> raw verdict (first occurrence wins)

    Raises:
        ParseError: If the response has no verdict list
    """
    verdicts = data.get("verdicts")
    if not isinstance(verdicts, list):
        raise ParseError("Response has no 'verdicts' list")

    indexed: Dict[int, object] = {}
    for position, raw in enumerate(verdicts):
        index = raw.get("index", position) if isinstance(raw, dict) else position
        if isinstance(index, bool) or not isinstance(index, int):
            continue
        if 0 <= index < batch_size and index not in indexed:
            indexed[index] = raw
    return indexed


class BatchVerifier:
    """
    Verifies discovered candidates for one category.

    Usage:
        verifier = BatchVerifier(classifier_client, fetcher, settings)
        result = await verifier.verify(candidates, "Dress", context)
    """

    def __init__(self, llm, fetcher, settings: Optional[Settings] = None):
        self.llm = llm
        self.fetcher = fetcher
        self.settings = settings or get_settings()

    def prefilter(self, candidates: List[Candidate], category: str) -> Tuple[List[Candidate], List[str]]:
        """Drop malformed and blacklisted links without any remote call."""
        kept, logs = [], []
        for candidate in candidates:
            reason = link_prefilter_reason(candidate.link)
            if reason:
                logs.append(f"[{category}] Pre-filter rejected '{candidate.name}': {reason}")
            else:
                kept.append(candidate)
        return kept, logs

    async def verify(self, candidates: List[Candidate], category: str, context: SearchContext) -> VerificationResult:
        """
        Pre-filter, enrich, classify and rank candidates.

        Returns:
            VerificationResult with at most max_items_per_category items,
            sorted by match score descending
        """
        live, logs = self.prefilter(candidates, category)
        accepted: List[ValidatedItem] = []
        size = max(1, self.settings.batch_size)

        for start in range(0, len(live), size):
            batch = live[start:start + size]
            batch_number = start // size + 1
            enriched = await asyncio.gather(*(self._enrich(c) for c in batch))
            await self._classify_batch(list(enriched), category, context, batch_number, accepted, logs)

        # Stable sort keeps acceptance order among equal scores
        ranked = sorted(accepted, key=lambda item: -item.match_score)
        final = ranked[:self.settings.max_items_per_category]

        logs.append(
            f"[{category}] Verification kept {len(accepted)} of {len(candidates)} candidates; "
            f"returning top {len(final)}"
        )
        logger.info(f"[{category}] Verified {len(final)} items")
        return VerificationResult(items=final, logs=logs)

    async def _enrich(self, candidate: Candidate) -> EnrichedCandidate:
        """Fetch live page content; degrade to the snippet on any failure."""
        try:
            content = await self.fetcher.fetch(candidate.link)
        except Exception as e:
            logger.debug(f"Fetch failed for {candidate.link}: {e}")
            content = ""

        if content and content.strip():
            return EnrichedCandidate(candidate, content, ContentSource.LIVE)
        return EnrichedCandidate(candidate, candidate.snippet or "", ContentSource.SNIPPET)

    def build_prompt(self, batch: List[EnrichedCandidate], category: str, context: SearchContext) -> str:
        sample_chars = self.settings.content_sample_chars
        lines = []
        for index, entry in enumerate(batch):
            lines.append(json.dumps({
                "index": index,
                "name": entry.candidate.name,
                "link": entry.candidate.link,
                "listedPrice": entry.candidate.price,
                "contentSource": entry.content_source.value,
                "contentSample": entry.content[:sample_chars],
            }))
        return VERIFY_PROMPT.format(
            category=category,
            style=context.style_for(category) or "any",
            candidates="\n".join(lines),
        )

    async def _classify_batch(
        self,
        batch: List[EnrichedCandidate],
        category: str,
        context: SearchContext,
        batch_number: int,
        accepted: List[ValidatedItem],
        logs: List[str]
    ):
        try:
            data = await self.llm.generate_json(self.build_prompt(batch, category, context))
            indexed = parse_verdicts(data, len(batch))
        except (RemoteFailure, ParseError) as e:
            logs.append(f"[{category}] Batch {batch_number} discarded ({len(batch)} candidates): {e}")
            logger.error(f"[{category}] Batch {batch_number} classification failed: {e}")
            return

        for index, entry in enumerate(batch):
            name = entry.candidate.name
            if index not in indexed:
                logs.append(f"[{category}] Rejected '{name}': no verdict returned")
                continue

            try:
                verdict = Verdict.from_dict(indexed[index])
            except ParseError as e:
                logs.append(f"[{category}] Rejected '{name}': malformed verdict ({e})")
                continue

            if not verdict.is_valid_page:
                logs.append(f"[{category}] Rejected '{name}': not a product page ({verdict.reason})")
                continue
            if verdict.stock_status == VerdictStock.UNAVAILABLE:
                logs.append(f"[{category}] Rejected '{name}': unavailable ({verdict.reason})")
                continue

            accepted.append(self._build_item(entry, verdict, category, len(accepted) + 1))

    def _build_item(self, entry: EnrichedCandidate, verdict: Verdict, category: str, ordinal: int) -> ValidatedItem:
        candidate = entry.candidate
        brand = candidate.brand or (candidate.name.split()[0] if candidate.name.split() else "")
        return ValidatedItem(
            id=f"{category}_{ordinal}",
            category=category,
            name=candidate.name,
            link=candidate.link,
            brand=brand,
            price=verdict.price or candidate.price,
            image=candidate.image,
            snippet=candidate.snippet,
            stock_status=StockStatus.from_verdict(verdict.stock_status),
            match_score=verdict.match_score if verdict.match_score is not None else DEFAULT_MATCH_SCORE,
            rationale=verdict.reason or candidate.snippet,
            content_source=entry.content_source.value,
            fallback_search_link=fallback_search_link(brand, candidate.name),
            rank=candidate.rank,
        )
