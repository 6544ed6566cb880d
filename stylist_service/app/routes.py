"""
API Routes for the Stylist Search Service v1.0.0
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from stylist_service import __version__
from stylist_service.app.schemas import CategorySearchRequest, RefreshRequest, SearchRequest
from stylist_service.config import get_all_configs_dict, get_provider_status, get_settings
from stylist_service.core.errors import ValidationError
from stylist_service.core.orchestrator import StylistOrchestrator, build_orchestrator
from stylist_service.observability import get_metrics, is_logging_enabled

logger = logging.getLogger(__name__)

router = APIRouter()

_orchestrator: Optional[StylistOrchestrator] = None


def get_orchestrator() -> StylistOrchestrator:
    """Process-wide orchestrator; overridden in tests."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator(get_settings())
    return _orchestrator


# ==================== PUBLIC ENDPOINTS ====================

@router.get("/health")
async def health_check(orchestrator: StylistOrchestrator = Depends(get_orchestrator)):
    """Health check with observability info."""
    metrics = get_metrics()
    return {
        "status": "ok",
        "version": __version__,
        "providers": get_provider_status(),
        "llm_config": get_all_configs_dict(),
        "cache": orchestrator.cache.get_status(),
        "settings": get_settings().to_dict(),
        "observability": {
            "logging_enabled": is_logging_enabled(),
            "total_requests": metrics["total_requests"],
            "cache_hit_ratio": metrics["cache_hit_ratio"],
        },
    }


@router.get("/metrics")
async def metrics_endpoint():
    """Metrics snapshot."""
    return JSONResponse(content=get_metrics())


# ==================== SEARCH ====================

@router.post("/search/outfits")
async def search_outfits(request: SearchRequest, orchestrator: StylistOrchestrator = Depends(get_orchestrator)):
    """Full mode: verified, scored inventory composed into looks."""
    try:
        response = await orchestrator.run_full(request.to_context())
    except ValidationError as ve:
        raise HTTPException(status_code=ve.status_code, detail=ve.message)
    return JSONResponse(content=response.to_dict())


@router.post("/search/categories")
async def search_categories(
    request: CategorySearchRequest,
    orchestrator: StylistOrchestrator = Depends(get_orchestrator)
):
    """Simplified mode: top picks per category from pre-computed queries."""
    try:
        response = await orchestrator.run_simplified(request.to_context(), request.category_queries)
    except ValidationError as ve:
        raise HTTPException(status_code=ve.status_code, detail=ve.message)
    return JSONResponse(content=response.to_dict())


@router.post("/search/categories/refresh")
async def refresh_categories(request: RefreshRequest, orchestrator: StylistOrchestrator = Depends(get_orchestrator)):
    """Re-search only the named categories."""
    try:
        response = await orchestrator.refresh_categories(
            request.to_context(), request.category_queries, request.categories
        )
    except ValidationError as ve:
        raise HTTPException(status_code=ve.status_code, detail=ve.message)
    return JSONResponse(content=response.to_dict())
