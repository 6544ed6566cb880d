"""
Pydantic request models for the search API.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from stylist_service.core.models import Preferences, SearchContext, StyleBracket, UserProfile


class ProfileModel(BaseModel):
    """User attributes used for query construction."""
    gender: str = Field("", max_length=40, description="female, male, non-binary or free text")
    size: str = Field("", max_length=40)


class PreferencesModel(BaseModel):
    """Shopping preferences."""
    style: str = Field("", max_length=300)
    colors: str = Field("", max_length=300, description="Comma-separated colors")
    price_range: str = Field("", max_length=40, description='"min-max", e.g. "$50-$200"')
    occasion: str = Field("", max_length=200)
    categories: List[str] = Field(default_factory=list, description="Categories to search; defaults to Outfit")


class StyleBracketModel(BaseModel):
    """Aggregated style features (matched with OR semantics)."""
    vibes: List[str] = Field(default_factory=list)
    details: Dict[str, List[str]] = Field(default_factory=dict, description="Category -> acceptable features")
    keywords: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list, description='Optionally tagged "<category>: <color>"')


class SearchRequest(BaseModel):
    """Request body for a search run."""
    profile: ProfileModel = Field(default_factory=ProfileModel)
    preferences: PreferencesModel = Field(default_factory=PreferencesModel)
    bracket: Optional[StyleBracketModel] = None
    category_styles: Dict[str, str] = Field(default_factory=dict, description="Per-category style overrides")
    reference_image: Optional[str] = Field(None, description="Base64 reference photo (used for cache keys only)")

    def to_context(self) -> SearchContext:
        bracket = None
        if self.bracket:
            bracket = StyleBracket(
                vibes=tuple(self.bracket.vibes),
                details={k: tuple(v) for k, v in self.bracket.details.items()},
                keywords=tuple(self.bracket.keywords),
                colors=tuple(self.bracket.colors),
            )
        return SearchContext(
            profile=UserProfile(gender=self.profile.gender, size=self.profile.size),
            preferences=Preferences(
                style=self.preferences.style,
                colors=self.preferences.colors,
                price_range=self.preferences.price_range,
                occasion=self.preferences.occasion,
                categories=tuple(self.preferences.categories),
            ),
            bracket=bracket,
            category_styles=dict(self.category_styles),
            reference_payload=self.reference_image,
        )


class CategorySearchRequest(SearchRequest):
    """Simplified-mode request with optional pre-computed per-category queries."""
    category_queries: Dict[str, str] = Field(default_factory=dict)


class RefreshRequest(CategorySearchRequest):
    """Partial re-search of a subset of categories."""
    categories: List[str] = Field(..., min_length=1, description="Categories to re-search")
