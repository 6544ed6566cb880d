"""
Pipeline Data Model (v1.0.0)
Request context, candidates, verdicts and composed bundles.

The request context is immutable for the lifetime of a request. Stage
outputs are plain dataclasses passed by value between stages; each exposes
to_dict() for API responses and cache payloads.
"""
from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Tuple

from stylist_service.core.errors import ParseError


SEARCH_PROVIDER_SOURCE = "search-provider"


# ==================== REQUEST CONTEXT ====================

@dataclass(frozen=True)
class UserProfile:
    """User attributes used for query construction and cache keys."""
    gender: str = ""
    size: str = ""


@dataclass(frozen=True)
class Preferences:
    """User shopping preferences."""
    style: str = ""
    colors: str = ""
    price_range: str = ""
    occasion: str = ""
    categories: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StyleBracket:
    """
    Aggregated style features extracted from reference inputs.

    Every list is matched with OR semantics: an item that shows ANY listed
    value is a match. Colors may be tagged "<category>: <color>".
    """
    vibes: Tuple[str, ...] = ()
    details: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    keywords: Tuple[str, ...] = ()
    colors: Tuple[str, ...] = ()

    def has_vibe_detail(self) -> bool:
        return bool(self.vibes) and any(self.details.values())

    def has_keywords(self) -> bool:
        return bool(self.keywords or self.vibes)

    def to_dict(self) -> dict:
        return {
            "vibes": list(self.vibes),
            "details": {k: list(v) for k, v in self.details.items()},
            "keywords": list(self.keywords),
            "colors": list(self.colors),
        }


@dataclass(frozen=True)
class SearchContext:
    """Per-request search context; read-only throughout the pipeline."""
    profile: UserProfile = field(default_factory=UserProfile)
    preferences: Preferences = field(default_factory=Preferences)
    bracket: Optional[StyleBracket] = None
    category_styles: Dict[str, str] = field(default_factory=dict)
    reference_payload: Optional[str] = None

    @property
    def categories(self) -> List[str]:
        cats = [c.strip() for c in self.preferences.categories if c and c.strip()]
        return cats or ["Outfit"]

    def style_for(self, category: str) -> str:
        """Style text for a category, honoring per-category overrides."""
        return self.category_styles.get(category) or self.preferences.style


# ==================== DISCOVERY ====================

@dataclass
class Candidate:
    """Raw, unverified product listing from the search provider."""
    name: str
    link: str
    snippet: str = ""
    price: str = ""
    image: Optional[str] = None
    brand: str = ""
    rank: int = 0
    source: str = SEARCH_PROVIDER_SOURCE

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "link": self.link,
            "snippet": self.snippet,
            "price": self.price,
            "image": self.image,
            "brand": self.brand,
            "rank": self.rank,
            "source": self.source,
        }


class ContentSource(Enum):
    """Where the verification content came from."""
    LIVE = "live"
    SNIPPET = "snippet"


@dataclass
class EnrichedCandidate:
    """Candidate plus fetched page content (or its snippet)."""
    candidate: Candidate
    content: str
    content_source: ContentSource


# ==================== VERDICTS ====================

class VerdictStock(Enum):
    """Stock status reported by the classification service."""
    UNAVAILABLE = "UNAVAILABLE"
    LIKELY_AVAILABLE = "LIKELY_AVAILABLE"
    UNCERTAIN = "UNCERTAIN"


class StockStatus(Enum):
    """Stock status carried by validated items."""
    AVAILABLE = "AVAILABLE"
    UNCERTAIN = "UNCERTAIN"
    UNAVAILABLE = "UNAVAILABLE"

    @property
    def label(self) -> str:
        return _STOCK_LABELS[self]

    @classmethod
    def from_verdict(cls, stock: VerdictStock) -> "StockStatus":
        if stock == VerdictStock.LIKELY_AVAILABLE:
            return cls.AVAILABLE
        if stock == VerdictStock.UNAVAILABLE:
            return cls.UNAVAILABLE
        return cls.UNCERTAIN

    @classmethod
    def parse(cls, value: Any) -> "StockStatus":
        """Accept enum values or the display labels used in responses."""
        text = str(value or "").strip().upper()
        for status, label in _STOCK_LABELS.items():
            if text in (status.value, label):
                return status
        if text == VerdictStock.LIKELY_AVAILABLE.value:
            return cls.AVAILABLE
        return cls.UNCERTAIN


_STOCK_LABELS = {
    StockStatus.AVAILABLE: "IN STOCK",
    StockStatus.UNCERTAIN: "RISK",
    StockStatus.UNAVAILABLE: "UNAVAILABLE",
}


@dataclass
class Verdict:
    """Per-candidate verdict from the classification service."""
    is_valid_page: bool
    detected_category: str
    stock_status: VerdictStock
    price: str
    match_score: Optional[int]
    reason: str

    @classmethod
    def from_dict(cls, data: Any) -> "Verdict":
        """
        Validate one verdict object.

        Raises:
            ParseError: If any field has the wrong shape
        """
        if not isinstance(data, dict):
            raise ParseError(f"Verdict must be an object, got {type(data).__name__}")

        valid = data.get("isValidProductPage")
        if not isinstance(valid, bool):
            raise ParseError("isValidProductPage must be a boolean")

        stock_raw = data.get("stockStatus")
        try:
            stock = VerdictStock(str(stock_raw).strip().upper())
        except ValueError:
            raise ParseError(f"Unknown stockStatus: {stock_raw!r}")

        score = data.get("matchScore")
        if score is not None:
            if isinstance(score, bool) or not isinstance(score, (int, float)):
                raise ParseError(f"matchScore must be a number, got {score!r}")
            score = int(max(0, min(100, round(score))))

        category = data.get("detectedCategory") or ""
        price = data.get("price")
        reason = data.get("reason") or ""
        if not isinstance(category, str) or not isinstance(reason, str):
            raise ParseError("detectedCategory and reason must be strings")
        if price is not None and not isinstance(price, (str, int, float)):
            raise ParseError("price must be a string")

        return cls(
            is_valid_page=valid,
            detected_category=category.strip(),
            stock_status=stock,
            price=str(price).strip() if price is not None else "",
            match_score=score,
            reason=reason.strip(),
        )


# ==================== VALIDATED / SCORED ITEMS ====================

@dataclass
class ValidatedItem:
    """Verified product listing that survived the accept policy."""
    id: str
    category: str
    name: str
    link: str
    brand: str = ""
    price: str = ""
    image: Optional[str] = None
    snippet: str = ""
    stock_status: StockStatus = StockStatus.UNCERTAIN
    match_score: int = 50
    rationale: str = ""
    content_source: str = ContentSource.SNIPPET.value
    fallback_search_link: str = ""
    validation_note: str = ""
    rank: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "name": self.name,
            "link": self.link,
            "brand": self.brand,
            "price": self.price,
            "image": self.image,
            "snippet": self.snippet,
            "stock_status": self.stock_status.label,
            "match_score": self.match_score,
            "rationale": self.rationale,
            "content_source": self.content_source,
            "fallback_search_link": self.fallback_search_link,
            "validation_note": self.validation_note,
            "rank": self.rank,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidatedItem":
        return cls(
            id=str(data.get("id", "")),
            category=str(data.get("category", "")),
            name=str(data.get("name", "")),
            link=str(data.get("link") or ""),
            brand=str(data.get("brand") or ""),
            price=str(data.get("price") or ""),
            image=data.get("image"),
            snippet=str(data.get("snippet") or ""),
            stock_status=StockStatus.parse(data.get("stock_status")),
            match_score=int(data["match_score"]) if data.get("match_score") is not None else 50,
            rationale=str(data.get("rationale") or ""),
            content_source=str(data.get("content_source") or ContentSource.SNIPPET.value),
            fallback_search_link=str(data.get("fallback_search_link") or ""),
            validation_note=str(data.get("validation_note") or ""),
            rank=int(data["rank"]) if data.get("rank") is not None else 0,
        )


@dataclass
class ScoredItem:
    """
    Validated item with a visual style score.

    visual_match_score (style fit) is independent of item.match_score
    (listing quality); None means scoring was unavailable.
    """
    item: ValidatedItem
    visual_match_score: Optional[int] = None
    score_reason: str = ""

    def to_dict(self) -> dict:
        data = self.item.to_dict()
        data["visual_match_score"] = self.visual_match_score
        data["score_reason"] = self.score_reason
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoredItem":
        score = data.get("visual_match_score")
        return cls(
            item=ValidatedItem.from_dict(data),
            visual_match_score=int(score) if score is not None else None,
            score_reason=str(data.get("score_reason") or ""),
        )


# ==================== BUNDLES ====================

@dataclass
class OutfitComponent:
    """One item inside a composed bundle."""
    category: str
    name: str
    brand: str = ""
    price: str = ""
    link: str = ""
    image: Optional[str] = None
    fallback_search_link: str = ""
    visual_match_score: Optional[int] = None
    validation_note: str = ""

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "name": self.name,
            "brand": self.brand,
            "price": self.price,
            "link": self.link,
            "image": self.image,
            "fallback_search_link": self.fallback_search_link,
            "visual_match_score": self.visual_match_score,
            "validation_note": self.validation_note,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutfitComponent":
        return cls(
            category=str(data.get("category") or ""),
            name=str(data.get("name") or ""),
            brand=str(data.get("brand") or ""),
            price=str(data.get("price") or ""),
            link=str(data.get("link") or ""),
            image=data.get("image"),
            fallback_search_link=str(data.get("fallback_search_link") or ""),
            visual_match_score=data.get("visual_match_score"),
            validation_note=str(data.get("validation_note") or ""),
        )


@dataclass
class OutfitBundle:
    """A named set of items, normally one per requested category."""
    name: str
    description: str = ""
    total_price: str = ""
    components: List[OutfitComponent] = field(default_factory=list)
    computed_total: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "total_price": self.total_price,
            "computed_total": self.computed_total,
            "components": [c.to_dict() for c in self.components],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutfitBundle":
        return cls(
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            total_price=str(data.get("total_price") or ""),
            components=[OutfitComponent.from_dict(c) for c in data.get("components") or []],
            computed_total=data.get("computed_total"),
        )


# ==================== STAGE RESULTS ====================

@dataclass
class DiscoveryResult:
    """Output of one category search."""
    category: str
    candidates: List[Candidate]
    query: str
    notes: List[str] = field(default_factory=list)
    initial_count: int = 0


@dataclass
class VerificationResult:
    """Output of batch verification for one category."""
    items: List[ValidatedItem]
    logs: List[str] = field(default_factory=list)


@dataclass
class ValidationOutcome:
    """Output of the local heuristic validator."""
    kept: List[ValidatedItem]
    discarded_reasons: List[str] = field(default_factory=list)


@dataclass
class CompositionResult:
    """Output of outfit composition after link reconciliation."""
    bundles: List[OutfitBundle]
    notes: List[str] = field(default_factory=list)


@dataclass
class CategoryResult:
    """Aggregated per-category outcome returned to callers."""
    category: str
    items: List[ScoredItem] = field(default_factory=list)
    initial_candidate_count: int = 0
    query: str = ""
    logs: List[str] = field(default_factory=list)
    elapsed_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "items": [i.to_dict() for i in self.items],
            "initial_candidate_count": self.initial_candidate_count,
            "query": self.query,
            "logs": list(self.logs),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryResult":
        return cls(
            category=str(data.get("category") or ""),
            items=[ScoredItem.from_dict(i) for i in data.get("items") or []],
            initial_candidate_count=int(data.get("initial_candidate_count") or 0),
            query=str(data.get("query") or ""),
            logs=list(data.get("logs") or []),
        )


@dataclass
class SearchResponse:
    """Final response of a pipeline run."""
    mode: str
    bundles: List[OutfitBundle] = field(default_factory=list)
    category_results: List[CategoryResult] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    cache_hit: bool = False
    latency_ms: int = 0

    @property
    def reflection_notes(self) -> str:
        return "\n".join(self.notes)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "bundles": [b.to_dict() for b in self.bundles],
            "categories": [c.to_dict() for c in self.category_results],
            "reflection_notes": self.reflection_notes,
            "cache_hit": self.cache_hit,
            "latency_ms": self.latency_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchResponse":
        notes = data.get("reflection_notes") or ""
        return cls(
            mode=str(data.get("mode") or ""),
            bundles=[OutfitBundle.from_dict(b) for b in data.get("bundles") or []],
            category_results=[CategoryResult.from_dict(c) for c in data.get("categories") or []],
            notes=notes.split("\n") if notes else [],
            cache_hit=bool(data.get("cache_hit")),
            latency_ms=int(data.get("latency_ms") or 0),
        )
