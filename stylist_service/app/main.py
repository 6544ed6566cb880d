"""
Stylist Search Service v1.0.0
Category product search, verification and outfit composition over HTTP.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stylist_service import __version__
from stylist_service.app.routes import router
from stylist_service.config import get_settings, get_provider_status
from stylist_service.observability import is_logging_enabled

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("=" * 50)
    logger.info(f"Stylist Search Service v{__version__} Starting...")
    logger.info("=" * 50)

    settings = get_settings()
    provider_status = get_provider_status()
    logger.info(f"Providers: {provider_status['availability']}")
    if provider_status["role_problems"]:
        logger.warning(f"LLM roles without credentials: {provider_status['role_problems']}")

    logger.info(f"Cache: {'enabled' if settings.cache_enabled else 'disabled'} (TTL {settings.cache_ttl_seconds}s)")
    logger.info(f"Logging: {'enabled' if is_logging_enabled() else 'disabled'}")
    logger.info("✓ Service ready! http://localhost:8000")
    logger.info("✓ Metrics available at /metrics")
    logger.info("=" * 50)

    yield

    logger.info("Service shutting down...")


app = FastAPI(
    title="Stylist Search Service",
    description="Verified product search and outfit composition",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors (400)."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


app.include_router(router)


if __name__ == "__main__":
    import os
    import uvicorn

    uvicorn.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=int(os.environ.get("PORT", "8000")))
