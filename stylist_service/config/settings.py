"""
Settings Module (v1.0.0)
Centralized configuration from environment variables.
"""
import os
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """Application settings from environment variables."""
    
    # API Keys
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    serpapi_api_key: Optional[str] = None
    
    # Search Provider
    search_base_url: str = "https://serpapi.com/search.json"
    search_engine: str = "google_shopping"
    search_country: str = "us"
    search_language: str = "en"
    search_num_results: int = 10
    
    # Content Fetching
    fetch_timeout_seconds: float = 8.0
    fetch_max_chars: int = 20000
    content_sample_chars: int = 1500
    
    # Pipeline Shape
    batch_size: int = 5
    max_items_per_category: int = 7
    top_picks_per_category: int = 3
    bundle_count: int = 3
    min_compose_items: int = 2
    max_parallel_categories: int = 4
    
    # Budget Policy
    price_cap_buffer: float = 1.3
    budget_resort_threshold: float = 1.1
    default_budget_ceiling: float = 2000.0
    min_link_length: int = 15
    
    # Remote Call Retry
    retry_count: int = 3
    retry_base_delay: float = 1.0
    
    # Cache
    cache_enabled: bool = True
    cache_ttl_seconds: int = 21600  # 6 hours
    
    # Observability
    logging_enabled: bool = True
    log_dir: str = "logs"
    
    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            # API Keys
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            serpapi_api_key=os.getenv("SERPAPI_API_KEY"),
            
            # Search Provider
            search_base_url=os.getenv("STYLIST_SEARCH_BASE_URL", "https://serpapi.com/search.json"),
            search_engine=os.getenv("STYLIST_SEARCH_ENGINE", "google_shopping"),
            search_country=os.getenv("STYLIST_SEARCH_COUNTRY", "us"),
            search_language=os.getenv("STYLIST_SEARCH_LANGUAGE", "en"),
            search_num_results=int(os.getenv("STYLIST_SEARCH_NUM_RESULTS", "10")),
            
            # Content Fetching
            fetch_timeout_seconds=float(os.getenv("STYLIST_FETCH_TIMEOUT_SECONDS", "8")),
            fetch_max_chars=int(os.getenv("STYLIST_FETCH_MAX_CHARS", "20000")),
            content_sample_chars=int(os.getenv("STYLIST_CONTENT_SAMPLE_CHARS", "1500")),
            
            # Pipeline Shape
            batch_size=int(os.getenv("STYLIST_BATCH_SIZE", "5")),
            max_items_per_category=int(os.getenv("STYLIST_MAX_ITEMS_PER_CATEGORY", "7")),
            top_picks_per_category=int(os.getenv("STYLIST_TOP_PICKS_PER_CATEGORY", "3")),
            bundle_count=int(os.getenv("STYLIST_BUNDLE_COUNT", "3")),
            min_compose_items=int(os.getenv("STYLIST_MIN_COMPOSE_ITEMS", "2")),
            max_parallel_categories=int(os.getenv("STYLIST_MAX_PARALLEL_CATEGORIES", "4")),
            
            # Budget Policy
            price_cap_buffer=float(os.getenv("STYLIST_PRICE_CAP_BUFFER", "1.3")),
            budget_resort_threshold=float(os.getenv("STYLIST_BUDGET_RESORT_THRESHOLD", "1.1")),
            default_budget_ceiling=float(os.getenv("STYLIST_DEFAULT_BUDGET_CEILING", "2000")),
            min_link_length=int(os.getenv("STYLIST_MIN_LINK_LENGTH", "15")),
            
            # Remote Call Retry
            retry_count=int(os.getenv("STYLIST_RETRY_COUNT", "3")),
            retry_base_delay=float(os.getenv("STYLIST_RETRY_BASE_DELAY", "1.0")),
            
            # Cache
            cache_enabled=_env_bool("STYLIST_CACHE_ENABLED", "true"),
            cache_ttl_seconds=int(os.getenv("STYLIST_CACHE_TTL_SECONDS", "21600")),
            
            # Observability
            logging_enabled=_env_bool("STYLIST_LOGGING_ENABLED", "true"),
            log_dir=os.getenv("STYLIST_LOG_DIR", "logs"),
        )
    
    def has_gemini(self) -> bool:
        """Check if Gemini API key is configured."""
        return bool(self.gemini_api_key)
    
    def has_openai(self) -> bool:
        """Check if OpenAI API key is configured."""
        return bool(self.openai_api_key)
    
    def has_search(self) -> bool:
        """Check if the search provider key is configured."""
        return bool(self.serpapi_api_key)
    
    def to_dict(self) -> dict:
        """Export settings as dict (without sensitive keys)."""
        return {
            "gemini_configured": self.has_gemini(),
            "openai_configured": self.has_openai(),
            "search_configured": self.has_search(),
            "search_engine": self.search_engine,
            "batch_size": self.batch_size,
            "max_items_per_category": self.max_items_per_category,
            "price_cap_buffer": self.price_cap_buffer,
            "budget_resort_threshold": self.budget_resort_threshold,
            "retry_count": self.retry_count,
            "cache_enabled": self.cache_enabled,
            "cache_ttl_seconds": self.cache_ttl_seconds,
        }


def get_settings() -> Settings:
    """Get application settings (cached singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
        logger.info(f"Settings loaded: {_settings.to_dict()}")
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from environment."""
    global _settings
    _settings = Settings.from_env()
    logger.info(f"Settings reloaded: {_settings.to_dict()}")
    return _settings


# Singleton instance
_settings: Optional[Settings] = None
