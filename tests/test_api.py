"""
API Tests for the Stylist Search Service v1.0.0
Endpoints are exercised with TestClient over an orchestrator built from fakes.
"""
import pytest
from fastapi.testclient import TestClient

from conftest import FakeFetcher, FakeLLM, FakeSearchProvider, classifier, make_candidate
from stylist_service import __version__
from stylist_service.cache import CacheManager
from stylist_service.core.orchestrator import StylistOrchestrator
from stylist_service.core.validation import HeuristicValidator
from stylist_service.llm.batch_verifier import BatchVerifier
from stylist_service.llm.outfit_composer import OutfitComposer
from stylist_service.llm.style_scorer import StyleScorer
from stylist_service.services.discovery import CategoryDiscovery


@pytest.fixture
def orchestrator(settings):
    provider = FakeSearchProvider({
        "dress": [make_candidate(i, "dress") for i in (1, 2)],
        "shoes": [make_candidate(1, "shoes")],
    })
    return StylistOrchestrator(
        discovery=CategoryDiscovery(provider, settings),
        verifier=BatchVerifier(FakeLLM([classifier()]), FakeFetcher(), settings),
        validator=HeuristicValidator(settings),
        scorer=StyleScorer(FakeLLM([{"scores": []}])),
        composer=OutfitComposer(FakeLLM([{"recommendations": [], "reflectionNotes": ""}]), settings),
        cache=CacheManager(enabled=False),
        settings=settings,
    )


@pytest.fixture
def client(orchestrator):
    """Create test client with the fake orchestrator injected."""
    from stylist_service.app.main import app
    from stylist_service.app.routes import get_orchestrator

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


def body(categories=("Dress", "Shoes"), refresh=None):
    payload = {
        "profile": {"gender": "female", "size": "M"},
        "preferences": {
            "style": "minimal",
            "colors": "Black",
            "price_range": "$0-$200",
            "occasion": "dinner",
            "categories": list(categories),
        },
    }
    if refresh is not None:
        payload["categories"] = list(refresh)
    return payload


# ==================== HEALTH / METRICS ====================

class TestHealthEndpoint:
    """Tests for /health and /metrics."""

    def test_health_returns_ok(self, client):
        """Health endpoint should report status and version."""
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == __version__
        assert data["cache"]["enabled"] is False
        assert "providers" in data and "llm_config" in data

    def test_metrics_count_requests(self, client):
        """Metrics should reflect completed searches."""
        client.post("/search/categories", json=body())
        data = client.get("/metrics").json()

        assert data["total_requests"] == 1
        assert data["requests_by_mode"]["simplified"] == 1


# ==================== SEARCH ====================

class TestSearchEndpoints:
    """Tests for the three search modes."""

    def test_full_search(self, client):
        """Full mode returns per-category results and notes."""
        response = client.post("/search/outfits", json=body())
        assert response.status_code == 200

        data = response.json()
        assert data["mode"] == "full"
        assert [c["category"] for c in data["categories"]] == ["Dress", "Shoes"]
        assert len(data["categories"][0]["items"]) == 2
        assert "PIPELINE TELEMETRY" in data["reflection_notes"]

    def test_category_search(self, client):
        """Simplified mode groups picks into Top Picks bundles."""
        response = client.post("/search/categories", json=body())
        assert response.status_code == 200

        names = [b["name"] for b in response.json()["bundles"]]
        assert names == ["Top Picks: Dress", "Top Picks: Shoes"]

    def test_refresh(self, client):
        """Refresh only re-searches the named categories."""
        response = client.post("/search/categories/refresh", json=body(refresh=["Shoes"]))
        assert response.status_code == 200

        data = response.json()
        assert data["mode"] == "refresh"
        assert [c["category"] for c in data["categories"]] == ["Shoes"]


# ==================== INPUT VALIDATION ====================

class TestInputValidation:
    """Malformed or unsearchable requests are rejected with 400."""

    def test_duplicate_categories(self, client):
        response = client.post("/search/outfits", json=body(categories=("Dress", "dress")))
        assert response.status_code == 400
        assert "unique" in response.json()["detail"]

    def test_inverted_price_range(self, client):
        payload = body()
        payload["preferences"]["price_range"] = "$300-$100"
        response = client.post("/search/categories", json=payload)
        assert response.status_code == 400

    def test_refresh_without_categories(self, client):
        response = client.post("/search/categories/refresh", json=body(refresh=[]))
        assert response.status_code == 400

    def test_wrong_field_type(self, client):
        payload = body()
        payload["preferences"]["categories"] = "Dress"
        response = client.post("/search/outfits", json=payload)
        assert response.status_code == 400
