"""
Pipeline Orchestrator (v1.0.0)
Per-request coordination of the search pipeline.

Modes:
- full: Discovery -> BatchVerifier -> StyleScorer per category, then
  OutfitComposer with link reconciliation over the joined inventory
- simplified: Discovery -> BatchVerifier -> HeuristicValidator per
  category, provider-order top picks and a budget feasibility check
- refresh: simplified pipeline for a subset of categories

Category tasks run in parallel under a bounded semaphore and are fully
joined before aggregation. A failing category degrades to an empty result
and never cancels its siblings.
"""
import time
import uuid
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from stylist_service.cache.cache_manager import CacheManager
from stylist_service.config.settings import Settings, get_settings
from stylist_service.core.errors import ValidationError
from stylist_service.core.models import (
    CategoryResult,
    OutfitBundle,
    OutfitComponent,
    ScoredItem,
    SearchContext,
    SearchResponse,
    ValidatedItem,
)
from stylist_service.core.pricing import check_budget_feasibility
from stylist_service.core.validation import HeuristicValidator, validate_search_request
from stylist_service.observability import increment_request, is_logging_enabled, log_request, record_category

logger = logging.getLogger(__name__)

MODE_FULL = "full"
MODE_SIMPLIFIED = "simplified"
MODE_REFRESH = "refresh"

# on_category_complete(category, items, completed_count, total_count)
CategoryCallback = Callable[[str, List[ScoredItem], int, int], Any]


def top_picks_bundle(category: str, items: List[ValidatedItem], description: str) -> OutfitBundle:
    """Group one category's picks as a "Top Picks" bundle."""
    return OutfitBundle(
        name=f"Top Picks: {category}",
        description=description,
        components=[
            OutfitComponent(
                category=category,
                name=item.name,
                brand=item.brand or "Unknown",
                price=item.price or "Check Site",
                link=item.link,
                image=item.image,
                fallback_search_link=item.fallback_search_link,
                validation_note=f"Verified ({item.stock_status.label})",
            )
            for item in items
        ],
    )


def telemetry_block(title: str, results: List[CategoryResult], total_ms: int) -> List[str]:
    lines = ["", f"--- {title} ---"]
    lines.extend(f"Pipeline ({r.category}): {r.elapsed_ms}ms" for r in results)
    lines.append(f"Total Latency: {total_ms}ms")
    return lines


class StylistOrchestrator:
    """
    Coordinates the pipeline stages for one request at a time.

    All collaborators are injected; build_orchestrator() wires the
    production ones.
    """

    def __init__(
        self,
        discovery,
        verifier,
        validator: Optional[HeuristicValidator],
        scorer,
        composer,
        cache: Optional[CacheManager] = None,
        settings: Optional[Settings] = None
    ):
        self.discovery = discovery
        self.verifier = verifier
        self.settings = settings or get_settings()
        self.validator = validator or HeuristicValidator(self.settings)
        self.scorer = scorer
        self.composer = composer
        self.cache = cache or CacheManager(enabled=False)

    # ==================== FAN-OUT ====================

    async def _fan_out(
        self,
        categories: List[str],
        worker: Callable[[str], Awaitable[CategoryResult]],
        on_category_complete: Optional[CategoryCallback] = None
    ) -> List[CategoryResult]:
        """Run one worker per category; results come back in category order."""
        semaphore = asyncio.Semaphore(max(1, self.settings.max_parallel_categories))
        total = len(categories)
        completed = 0

        async def run(category: str) -> CategoryResult:
            nonlocal completed
            start = time.time()
            async with semaphore:
                try:
                    result = await worker(category)
                except Exception as e:
                    logger.error(f"[{category}] Category pipeline failed: {e}")
                    result = CategoryResult(category=category, logs=[f"[{category}] Pipeline failed: {e}"])

            result.elapsed_ms = int((time.time() - start) * 1000)
            record_category(
                discovered=result.initial_candidate_count,
                kept=len(result.items),
                discarded=max(0, result.initial_candidate_count - len(result.items)),
            )

            completed += 1
            if on_category_complete:
                try:
                    on_category_complete(category, result.items, completed, total)
                except Exception as e:
                    logger.warning(f"[{category}] Progress callback failed: {e}")
            return result

        return list(await asyncio.gather(*(run(c) for c in categories)))

    # ==================== FULL MODE ====================

    async def _full_category(self, category: str, context: SearchContext) -> CategoryResult:
        discovery = await self.discovery.discover(category, context)
        result = CategoryResult(
            category=category,
            initial_candidate_count=discovery.initial_count,
            query=discovery.query,
            logs=list(discovery.notes),
        )
        if not discovery.candidates:
            return result

        verification = await self.verifier.verify(discovery.candidates, category, context)
        result.logs.extend(verification.logs)

        scored = await self.scorer.score({category: verification.items}, context, context.bracket)
        result.items = scored.get(category, [])
        scored_count = sum(1 for s in result.items if s.visual_match_score is not None)
        result.logs.append(f"[{category}] Scoring: {len(result.items)} items, {scored_count} scored")
        return result

    async def run_full(
        self,
        context: SearchContext,
        images: Optional[List[Any]] = None,
        on_category_complete: Optional[CategoryCallback] = None
    ) -> SearchResponse:
        """
        Full pipeline: per-category search, verification and scoring, then
        bundle composition with link reconciliation.
        """
        request_id = uuid.uuid4().hex[:12]
        start = time.time()
        validate_search_request(context)

        cache_key = self.cache.generate_cache_key("exact", context)
        cached = self.cache.get(cache_key)
        if cached:
            return self._cached_response(cached, MODE_FULL, request_id, start, context)

        try:
            categories = context.categories
            logger.info(f"[{request_id}] Full pipeline for {len(categories)} categories: {categories}")

            results = await self._fan_out(
                categories,
                lambda category: self._full_category(category, context),
                on_category_complete,
            )

            inventory = {r.category: r.items for r in results}
            composition = await self.composer.compose(inventory, context, images=images)

            notes = [self._criteria_note(context)]
            for r in results:
                notes.extend(r.logs)
            notes.extend(composition.notes)

            latency_ms = int((time.time() - start) * 1000)
            notes.extend(telemetry_block("PIPELINE TELEMETRY", results, latency_ms))

            response = SearchResponse(
                mode=MODE_FULL,
                bundles=composition.bundles,
                category_results=results,
                notes=notes,
                latency_ms=latency_ms,
            )
        except Exception as e:
            self._record(request_id, MODE_FULL, False, start, "fail", context, error=str(e))
            raise

        self._store(cache_key, response)
        self._record(request_id, MODE_FULL, False, start, "success", context, items=self._item_count(results))
        return response

    # ==================== SIMPLIFIED MODE ====================

    async def _simplified_category(
        self,
        category: str,
        context: SearchContext,
        query: Optional[str],
        label: str = "Search"
    ) -> CategoryResult:
        discovery = await self.discovery.discover(category, context, query=query)
        result = CategoryResult(
            category=category,
            initial_candidate_count=discovery.initial_count,
            query=discovery.query,
            logs=list(discovery.notes),
        )
        if not discovery.candidates:
            return result

        verification = await self.verifier.verify(discovery.candidates, category, context)
        result.logs.extend(verification.logs)

        outcome = self.validator.validate(verification.items, context)
        result.logs.extend(f"[{category}] Discarded {reason}" for reason in outcome.discarded_reasons)

        ranked = sorted(outcome.kept, key=lambda item: item.rank)
        picks = ranked[:self.settings.top_picks_per_category]
        result.items = [ScoredItem(item=item) for item in picks]
        result.logs.append(
            f"[{category}] {label}: {discovery.initial_count} found -> {len(verification.items)} verified "
            f"-> {len(outcome.kept)} passed validation -> {len(picks)} selected"
        )
        return result

    async def run_simplified(
        self,
        context: SearchContext,
        category_queries: Optional[Dict[str, str]] = None,
        on_category_complete: Optional[CategoryCallback] = None
    ) -> SearchResponse:
        """
        Simplified pipeline for pre-computed per-category queries: no
        scoring, no composition; top picks per category in provider order.
        """
        request_id = uuid.uuid4().hex[:12]
        start = time.time()
        category_queries = dict(category_queries or {})
        validate_search_request(context, category_queries)

        categories = list(category_queries) or context.categories
        queries = {c: self.discovery.resolve_query(c, context, category_queries.get(c)) for c in categories}
        cache_key = self.cache.generate_cache_key("search", context, queries=queries)
        cached = self.cache.get(cache_key)
        if cached:
            return self._cached_response(cached, MODE_SIMPLIFIED, request_id, start, context)

        try:
            logger.info(f"[{request_id}] Simplified pipeline for {len(categories)} categories: {categories}")

            results = await self._fan_out(
                categories,
                lambda category: self._simplified_category(category, context, category_queries.get(category)),
                on_category_complete,
            )

            picks = {r.category: [s.item for s in r.items] for r in results}
            picks, budget = check_budget_feasibility(
                picks,
                context.preferences.price_range,
                self.settings.budget_resort_threshold,
            )
            for r in results:
                r.items = [ScoredItem(item=item) for item in picks.get(r.category, [])]

            notes = [self._criteria_note(context)]
            notes.extend(budget.notes)
            for r in results:
                notes.extend(r.logs)

            latency_ms = int((time.time() - start) * 1000)
            notes.extend(telemetry_block("SEARCH PIPELINE TELEMETRY", results, latency_ms))

            response = SearchResponse(
                mode=MODE_SIMPLIFIED,
                bundles=[
                    top_picks_bundle(r.category, [s.item for s in r.items], "Best matches from shopping search.")
                    for r in results if r.items
                ],
                category_results=results,
                notes=notes,
                latency_ms=latency_ms,
            )
        except Exception as e:
            self._record(request_id, MODE_SIMPLIFIED, False, start, "fail", context, error=str(e))
            raise

        self._store(cache_key, response)
        self._record(request_id, MODE_SIMPLIFIED, False, start, "success", context, items=self._item_count(results))
        return response

    async def refresh_categories(
        self,
        context: SearchContext,
        category_queries: Optional[Dict[str, str]],
        categories: List[str]
    ) -> SearchResponse:
        """
        Re-run the simplified pipeline for only the named categories, so
        results for unchanged categories can be kept by the caller.

        Raises:
            ValidationError: If no category is named or the request is invalid
        """
        request_id = uuid.uuid4().hex[:12]
        start = time.time()
        categories = [c.strip() for c in categories if c and c.strip()]
        if not categories:
            raise ValidationError("at least one category must be named for a refresh", status_code=400)
        category_queries = dict(category_queries or {})
        validate_search_request(context, category_queries, categories)

        try:
            logger.info(f"[{request_id}] Partial re-search for: {categories}")
            results = await self._fan_out(
                categories,
                lambda category: self._simplified_category(
                    category, context, category_queries.get(category), label="Re-search"
                ),
            )

            notes = []
            for r in results:
                notes.extend(r.logs)
            latency_ms = int((time.time() - start) * 1000)
            notes.extend(telemetry_block("RE-SEARCH TELEMETRY", results, latency_ms))

            response = SearchResponse(
                mode=MODE_REFRESH,
                bundles=[
                    top_picks_bundle(r.category, [s.item for s in r.items], "Updated results from re-search.")
                    for r in results if r.items
                ],
                category_results=results,
                notes=notes,
                latency_ms=latency_ms,
            )
        except Exception as e:
            self._record(request_id, MODE_REFRESH, False, start, "fail", context, error=str(e))
            raise

        self._record(request_id, MODE_REFRESH, False, start, "success", context, items=self._item_count(results))
        return response

    # ==================== HELPERS ====================

    def _criteria_note(self, context: SearchContext) -> str:
        prefs = context.preferences
        return (
            f"Search criteria: style='{prefs.style}', colors='{prefs.colors}', "
            f"price_range='{prefs.price_range}', occasion='{prefs.occasion}', "
            f"categories={context.categories}"
        )

    def _cached_response(
        self,
        cached: Dict[str, Any],
        mode: str,
        request_id: str,
        start: float,
        context: SearchContext
    ) -> SearchResponse:
        response = SearchResponse.from_dict(cached)
        response.cache_hit = True
        response.latency_ms = int((time.time() - start) * 1000)
        logger.info(f"[{request_id}] Returning cached {mode} response")
        self._record(
            request_id, mode, True, start, "success", context,
            items=self._item_count(response.category_results),
        )
        return response

    def _store(self, cache_key: str, response: SearchResponse):
        """Cache only responses that found something."""
        if self._item_count(response.category_results) > 0:
            self.cache.set(cache_key, response.to_dict(), self.settings.cache_ttl_seconds)

    def _item_count(self, results: List[CategoryResult]) -> int:
        return sum(len(r.items) for r in results)

    def _record(
        self,
        request_id: str,
        mode: str,
        cache_hit: bool,
        start: float,
        status: str,
        context: SearchContext,
        items: int = 0,
        error: Optional[str] = None
    ):
        latency_ms = int((time.time() - start) * 1000)
        increment_request(mode=mode, cache_hit=cache_hit, error=status != "success")
        if is_logging_enabled():
            log_request(
                request_id=request_id,
                mode=mode,
                cache_hit=cache_hit,
                latency_ms=latency_ms,
                status=status,
                categories=context.categories,
                items=items,
                error=error,
            )


def build_orchestrator(settings: Optional[Settings] = None) -> StylistOrchestrator:
    """Wire the production collaborators from settings."""
    from stylist_service.config.llm_config import LLMRole
    from stylist_service.llm.batch_verifier import BatchVerifier
    from stylist_service.llm.llm_adapter import build_llm_clients
    from stylist_service.llm.outfit_composer import OutfitComposer
    from stylist_service.llm.style_scorer import StyleScorer
    from stylist_service.services.content_fetcher import ContentFetcher
    from stylist_service.services.discovery import CategoryDiscovery
    from stylist_service.services.search_provider import SerpApiSearchProvider

    settings = settings or get_settings()
    clients = build_llm_clients(settings)
    fetcher = ContentFetcher.from_settings(settings)

    return StylistOrchestrator(
        discovery=CategoryDiscovery(SerpApiSearchProvider(settings, fetcher), settings),
        verifier=BatchVerifier(clients[LLMRole.CLASSIFIER], fetcher, settings),
        validator=HeuristicValidator(settings),
        scorer=StyleScorer(clients[LLMRole.SCORER]),
        composer=OutfitComposer(clients[LLMRole.COMPOSER], settings),
        cache=CacheManager.from_settings(settings),
        settings=settings,
    )
