"""
Metrics Module (v1.0.0)
Track request counts, cache performance, per-stage item counts and remote retries.
"""
import threading
from typing import Dict, Any


def _empty_metrics() -> Dict[str, Any]:
    return {
        "total_requests": 0,
        "cache_hits": 0,
        "cache_misses": 0,
        "requests_by_mode": {},
        "errors_by_mode": {},
        "categories_searched": 0,
        "candidates_discovered": 0,
        "items_kept": 0,
        "items_discarded": 0,
        "remote_calls": 0,
        "remote_retries": 0,
        "remote_failures": 0,
    }


# Thread-safe metrics storage
_lock = threading.Lock()
_metrics = _empty_metrics()


def increment_request(mode: str, cache_hit: bool, error: bool = False):
    """
    Record a pipeline request in metrics.

    Args:
        mode: Pipeline mode (full/simplified/refresh)
        cache_hit: Whether the response came from cache
        error: Whether the request failed
    """
    with _lock:
        _metrics["total_requests"] += 1

        if cache_hit:
            _metrics["cache_hits"] += 1
        else:
            _metrics["cache_misses"] += 1

        if mode:
            by_mode = _metrics["requests_by_mode"]
            by_mode[mode] = by_mode.get(mode, 0) + 1

        if error:
            errors = _metrics["errors_by_mode"]
            errors[mode] = errors.get(mode, 0) + 1


def record_category(discovered: int, kept: int, discarded: int):
    """Record the item counts of one completed category task."""
    with _lock:
        _metrics["categories_searched"] += 1
        _metrics["candidates_discovered"] += discovered
        _metrics["items_kept"] += kept
        _metrics["items_discarded"] += discarded


def record_remote_call(retries: int, failed: bool):
    """Record one invoked remote call and the retries it took."""
    with _lock:
        _metrics["remote_calls"] += 1
        _metrics["remote_retries"] += retries
        if failed:
            _metrics["remote_failures"] += 1


def get_metrics() -> Dict[str, Any]:
    """Get current metrics snapshot."""
    with _lock:
        total = _metrics["total_requests"]
        hits = _metrics["cache_hits"]

        return {
            "total_requests": total,
            "cache_hits": hits,
            "cache_misses": _metrics["cache_misses"],
            "cache_hit_ratio": round(hits / total, 3) if total > 0 else 0.0,
            "requests_by_mode": dict(_metrics["requests_by_mode"]),
            "errors_by_mode": dict(_metrics["errors_by_mode"]),
            "categories_searched": _metrics["categories_searched"],
            "candidates_discovered": _metrics["candidates_discovered"],
            "items_kept": _metrics["items_kept"],
            "items_discarded": _metrics["items_discarded"],
            "remote_calls": _metrics["remote_calls"],
            "remote_retries": _metrics["remote_retries"],
            "remote_failures": _metrics["remote_failures"],
        }


def reset_metrics():
    """Reset all metrics (for testing)."""
    global _metrics
    with _lock:
        _metrics = _empty_metrics()
