"""
LLM Configuration Layer (v1.0.0)
Model-agnostic config for the Classifier (batch verification), Scorer
(style scoring) and Composer (outfit composition).

Environment Variables (ROLE = CLASSIFIER | SCORER | COMPOSER):
    - STYLIST_<ROLE>_PROVIDER: "gemini" | "openai" (default: gemini)
    - STYLIST_<ROLE>_MODEL: Override default model (optional)
    - STYLIST_<ROLE>_FALLBACK_MODEL: Override fallback model (optional)
    - STYLIST_LLM_TEMPERATURE / STYLIST_LLM_MAX_TOKENS
"""
import os
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)


# ==================== ENUMS ====================

class LLMProvider(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    GEMINI = "gemini"


class LLMRole(Enum):
    """LLM usage role."""
    CLASSIFIER = "classifier"  # Batch page verification
    SCORER = "scorer"          # Visual style scoring
    COMPOSER = "composer"      # Outfit bundle composition


# ==================== PROVIDER CONFIGS ====================

@dataclass
class OpenAIConfig:
    """OpenAI model configuration."""
    default_model: str = "gpt-4o-mini"
    reasoning_model: str = "gpt-4o"
    fallback_model: str = "gpt-4o-mini"
    temperature: float = 0.2
    max_tokens: int = 4096


@dataclass
class GeminiConfig:
    """Gemini model configuration."""
    default_model: str = "gemini-2.0-flash"
    reasoning_model: str = "gemini-1.5-pro"
    fallback_model: str = "gemini-1.5-flash"
    temperature: float = 0.2
    max_tokens: int = 8192


# ==================== ACTIVE CONFIG ====================

@dataclass
class ActiveLLMConfig:
    """Active LLM configuration for a specific role."""
    role: LLMRole
    provider: LLMProvider
    model: str
    fallback_model: str
    temperature: float
    max_tokens: int
    
    @classmethod
    def from_env(cls, role: LLMRole = LLMRole.CLASSIFIER) -> "ActiveLLMConfig":
        """Resolve configuration from environment variables."""
        prefix = f"STYLIST_{role.name}"
        provider_str = os.getenv(f"{prefix}_PROVIDER", "gemini").lower()
        
        if provider_str == "openai":
            provider = LLMProvider.OPENAI
            defaults = OpenAIConfig()
        else:
            provider = LLMProvider.GEMINI
            defaults = GeminiConfig()
        
        # Composition is the only multi-constraint reasoning step
        if role == LLMRole.COMPOSER:
            default_model = defaults.reasoning_model
        else:
            default_model = defaults.default_model
        
        model = os.getenv(f"{prefix}_MODEL", default_model)
        fallback = os.getenv(f"{prefix}_FALLBACK_MODEL", defaults.fallback_model)
        temperature = float(os.getenv("STYLIST_LLM_TEMPERATURE", str(defaults.temperature)))
        max_tokens = int(os.getenv("STYLIST_LLM_MAX_TOKENS", str(defaults.max_tokens)))
        
        config = cls(
            role=role,
            provider=provider,
            model=model,
            fallback_model=fallback,
            temperature=temperature,
            max_tokens=max_tokens
        )
        
        logger.info(f"LLM Config [{role.value}]: provider={provider.value}, model={model}")
        return config
    
    def resolve_model(self, use_fallback: bool = False) -> str:
        return self.fallback_model if use_fallback else self.model
    
    def is_openai(self) -> bool:
        return self.provider == LLMProvider.OPENAI
    
    def is_gemini(self) -> bool:
        return self.provider == LLMProvider.GEMINI
    
    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "provider": self.provider.value,
            "model": self.model,
            "fallback_model": self.fallback_model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens
        }


# ==================== CACHED INSTANCES ====================

_configs: Dict[LLMRole, ActiveLLMConfig] = {}


def get_llm_config(role: LLMRole) -> ActiveLLMConfig:
    """Get active LLM configuration for a role."""
    config: Optional[ActiveLLMConfig] = _configs.get(role)
    if config is None:
        config = ActiveLLMConfig.from_env(role)
        _configs[role] = config
    return config


def reset_llm_config():
    """Reset all configs (for testing)."""
    _configs.clear()


def get_all_configs_dict() -> dict:
    """Get all configs as dict for /health endpoint."""
    return {role.value: get_llm_config(role).to_dict() for role in LLMRole}
