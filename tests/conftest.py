"""
Shared fixtures and test doubles for the stylist service tests.

Remote collaborators (search provider, content fetcher, LLM clients) are
replaced by in-memory fakes injected through constructors.
"""
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from stylist_service.config.settings import Settings, reload_settings
from stylist_service.config.llm_config import reset_llm_config
from stylist_service.core.errors import FetchError, SearchError
from stylist_service.core.models import (
    Candidate,
    Preferences,
    SearchContext,
    StockStatus,
    UserProfile,
    ValidatedItem,
)
from stylist_service.observability.metrics import reset_metrics


# ==================== FAKES ====================

class FakeLLM:
    """
    Scripted LLM client.

    Each call consumes the next response; a response may be a dict, an
    exception instance (raised) or a callable taking the prompt.
    """

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.prompts: List[str] = []
        self.images: List[Any] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate_json(self, prompt: str, images=None) -> Dict[str, Any]:
        self.prompts.append(prompt)
        self.images.append(images)
        if not self.responses:
            raise AssertionError("FakeLLM called more times than scripted")
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(prompt)
        return response


def prompt_candidates(prompt: str) -> List[Dict[str, Any]]:
    """Candidate entries embedded in a verification prompt."""
    return [json.loads(line) for line in prompt.splitlines() if line.startswith('{"index"')]


def classifier(overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Callable[[str], Dict[str, Any]]:
    """
    Verdict generator answering every candidate in a batch prompt.

    Candidates are valid and LIKELY_AVAILABLE unless overridden by name.
    """
    overrides = overrides or {}

    def respond(prompt: str) -> Dict[str, Any]:
        verdicts = []
        for entry in prompt_candidates(prompt):
            verdict = {
                "index": entry["index"],
                "isValidProductPage": True,
                "detectedCategory": "Dress",
                "stockStatus": "LIKELY_AVAILABLE",
                "price": entry.get("listedPrice") or "",
                "matchScore": 70,
                "reason": "Looks like a product page",
            }
            verdict.update(overrides.get(entry["name"], {}))
            verdicts.append(verdict)
        return {"verdicts": verdicts}

    return respond


class FakeFetcher:
    """Page fetcher backed by a url -> text (or exception) mapping."""

    def __init__(self, pages: Optional[Dict[str, Union[str, Exception]]] = None):
        self.pages = pages or {}
        self.fetched: List[str] = []

    async def fetch(self, url: str) -> str:
        self.fetched.append(url)
        page = self.pages.get(url)
        if page is None:
            raise FetchError(f"Target URL returned status 404", status_code=404)
        if isinstance(page, Exception):
            raise page
        return page


class FakeSearchProvider:
    """Search provider returning canned candidates per category keyword."""

    def __init__(self, results: Optional[Dict[str, List[Candidate]]] = None, configured: bool = True,
                 error: Optional[Exception] = None):
        self.results = results or {}
        self.configured = configured
        self.error = error
        self.queries: List[str] = []

    def is_configured(self) -> bool:
        return self.configured

    async def search(self, query: str) -> List[Candidate]:
        self.queries.append(query)
        if self.error:
            raise self.error
        for keyword, candidates in self.results.items():
            if keyword.lower() in query.lower():
                return list(candidates)
        return []


# ==================== BUILDERS ====================

def make_candidate(n: int, category: str = "dress", price: str = "$50.00", **kwargs) -> Candidate:
    fields = dict(
        name=f"{category.title()} Item {n}",
        link=f"https://shop.example.com/{category}/item-{n}",
        snippet=f"A lovely {category} number {n}",
        price=price,
        brand="Acme",
        rank=n,
    )
    fields.update(kwargs)
    return Candidate(**fields)


def make_item(n: int, category: str = "Dress", price: str = "$50.00", **kwargs) -> ValidatedItem:
    fields = dict(
        id=f"{category}_{n}",
        category=category,
        name=f"{category} Item {n}",
        link=f"https://shop.example.com/{category.lower()}/item-{n}",
        brand="Acme",
        price=price,
        stock_status=StockStatus.AVAILABLE,
        rank=n,
    )
    fields.update(kwargs)
    return ValidatedItem(**fields)


def make_context(categories=("Dress",), price_range: str = "$0-$200", gender: str = "female",
                 style: str = "", colors: str = "Black", occasion: str = "dinner", **kwargs) -> SearchContext:
    return SearchContext(
        profile=UserProfile(gender=gender, size="M"),
        preferences=Preferences(
            style=style,
            colors=colors,
            price_range=price_range,
            occasion=occasion,
            categories=tuple(categories),
        ),
        **kwargs
    )


# ==================== FIXTURES ====================

@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep request logs out of the working tree and reset global state."""
    monkeypatch.setenv("STYLIST_LOGGING_ENABLED", "false")
    monkeypatch.setenv("STYLIST_LOG_DIR", str(tmp_path / "logs"))
    for key in ("GEMINI_API_KEY", "OPENAI_API_KEY", "SERPAPI_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    reload_settings()
    reset_llm_config()
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def settings():
    """Pipeline settings with instant retries and no cache."""
    return Settings(retry_base_delay=0.0, cache_enabled=False, logging_enabled=False)


@pytest.fixture
def context():
    return make_context()
