"""
Request Logger (v1.0.0)
Structured JSON-line logging of pipeline requests.
"""
import json
import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import List, Optional

from stylist_service.config.settings import get_settings

REQUEST_LOG_NAME = "requests.log"

# Dedicated request logger; never propagates to the root logger
request_logger = logging.getLogger("stylist.requests")
request_logger.setLevel(logging.INFO)
request_logger.propagate = False


def _ensure_handler():
    """Attach the file handler on first use, inside the configured log dir."""
    if request_logger.handlers:
        return

    logs_dir = Path(get_settings().log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(logs_dir / REQUEST_LOG_NAME, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter("%(message)s"))
    request_logger.addHandler(file_handler)


def log_request(
    request_id: str,
    mode: str,
    cache_hit: bool,
    latency_ms: int,
    status: str,
    categories: Optional[List[str]] = None,
    items: int = 0,
    error: Optional[str] = None
):
    """
    Log a structured request entry.

    Args:
        request_id: Unique request identifier
        mode: Pipeline mode (full/simplified/refresh)
        cache_hit: Whether response was from cache
        latency_ms: Request latency in milliseconds
        status: success or fail
        categories: Categories searched
        items: Number of items returned across categories
        error: Error message if failed
    """
    if not is_logging_enabled():
        return

    _ensure_handler()

    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "mode": mode,
        "cache_hit": cache_hit,
        "latency_ms": latency_ms,
        "status": status,
        "categories": list(categories or []),
        "items": items,
    }

    if error:
        entry["error"] = error

    request_logger.info(json.dumps(entry))


def is_logging_enabled() -> bool:
    """Check if request logging is enabled."""
    return get_settings().logging_enabled
