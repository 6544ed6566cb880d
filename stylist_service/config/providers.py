"""
Providers Module (v1.0.0)
Remote provider availability for the search pipeline.
"""
import logging
from typing import Dict, Any

from stylist_service.config.settings import get_settings
from stylist_service.config.llm_config import LLMRole, get_llm_config

logger = logging.getLogger(__name__)


SUPPORTED_LLM_PROVIDERS = ["gemini", "openai"]


def get_provider_availability() -> Dict[str, bool]:
    """Get availability status for each remote provider."""
    settings = get_settings()
    return {
        "gemini": settings.has_gemini(),
        "openai": settings.has_openai(),
        "serpapi": settings.has_search(),
    }


def validate_provider_config() -> Dict[str, str]:
    """
    Check that every LLM role points at a provider with credentials.
    
    Returns:
        Dict of role -> problem description (empty when all roles are usable)
    """
    availability = get_provider_availability()
    problems = {}
    
    for role in LLMRole:
        provider = get_llm_config(role).provider.value
        if not availability.get(provider):
            problems[role.value] = f"{provider} API key not set"
    
    if problems:
        logger.warning(f"LLM roles without credentials: {problems}")
    
    return problems


def get_provider_status() -> Dict[str, Any]:
    """Get full provider status for the health endpoint."""
    availability = get_provider_availability()
    return {
        "availability": availability,
        "search_enabled": availability["serpapi"],
        "role_problems": validate_provider_config(),
    }
