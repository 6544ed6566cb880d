"""
LLM Initialization Adapter (v1.0.0)
Unified JSON-generation client for Gemini and OpenAI.

Clients are constructed explicitly and injected into each pipeline stage,
so stages can be exercised with test doubles.
"""
import os
import json
import logging
from typing import Optional, Any, Dict, List

from stylist_service.config.llm_config import ActiveLLMConfig, LLMRole, get_llm_config
from stylist_service.config.settings import Settings, get_settings
from stylist_service.core.errors import ParseError, RemoteFailure
from stylist_service.llm.retry import RetryingInvoker

logger = logging.getLogger(__name__)


def parse_json_object(text: Optional[str]) -> Dict[str, Any]:
    """
    Parse a JSON object from model output, handling markdown code blocks.

    Raises:
        ParseError: If the text is not a JSON object
    """
    text = (text or "").strip()

    # Remove markdown code blocks
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0]
    elif "```" in text:
        text = text.split("```")[1].split("```")[0]

    try:
        data = json.loads(text.strip())
    except (json.JSONDecodeError, ValueError) as e:
        raise ParseError(f"Response is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")

    return data


class LLMClient:
    """
    JSON-mode LLM client for one pipeline role.

    Usage:
        client = LLMClient(get_llm_config(LLMRole.CLASSIFIER), invoker)
        data = await client.generate_json(prompt)
    """

    def __init__(self, config: ActiveLLMConfig, invoker: Optional[RetryingInvoker] = None):
        self.config = config
        self.role = config.role
        self.invoker = invoker or RetryingInvoker(label=config.role.value)
        self._openai_client = None
        self._gemini_model = None
        self._current_model = None
        self._fallback_used = False
        self._initialized = False

    def initialize(self, use_fallback: bool = False):
        """Initialize the provider SDK based on configuration."""
        model = self.config.resolve_model(use_fallback)
        self._fallback_used = use_fallback
        self._current_model = model

        if self.config.is_openai():
            self._init_openai(model)
        elif self.config.is_gemini():
            self._init_gemini(model)

        self._initialized = True

    def _init_openai(self, model: str):
        """Initialize OpenAI client."""
        from openai import AsyncOpenAI

        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise RemoteFailure("OPENAI_API_KEY not set")

        self._openai_client = AsyncOpenAI(api_key=api_key)
        logger.info(f"OpenAI [{self.role.value}]: model={model}")

    def _init_gemini(self, model: str):
        """Initialize Gemini client."""
        import google.generativeai as genai

        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise RemoteFailure("GEMINI_API_KEY not set")

        genai.configure(api_key=api_key)
        self._gemini_model = genai.GenerativeModel(model)
        logger.info(f"Gemini [{self.role.value}]: model={model}")

    async def generate_json(self, prompt: str, images: Optional[List[Any]] = None) -> Dict[str, Any]:
        """
        Generate a structured JSON response.

        Raises:
            RemoteFailure: If the call fails after retries
            ParseError: If the output is not a JSON object
        """
        if not self._initialized:
            self.initialize()

        result = await self.invoker.invoke(self._generate_impl, prompt, images or [])
        if not result.ok and self._can_fall_back():
            logger.warning(
                f"[{self.role.value}] Primary model {self._current_model} failed ({result.error}), "
                f"trying fallback {self.config.fallback_model}..."
            )
            self.initialize(use_fallback=True)
            result = await self.invoker.invoke(self._generate_impl, prompt, images or [])
        return parse_json_object(result.unwrap())

    def _can_fall_back(self) -> bool:
        return not self._fallback_used and self.config.fallback_model not in ("", self.config.model)

    async def _generate_impl(self, prompt: str, images: List[Any]) -> str:
        """Internal generation implementation."""
        if self.config.is_openai():
            return await self._generate_openai(prompt, images)
        return await self._generate_gemini(prompt, images)

    async def _generate_openai(self, prompt: str, images: List[Any]) -> str:
        """Generate using OpenAI (text only)."""
        if images:
            logger.debug(f"OpenAI [{self.role.value}] ignoring {len(images)} reference image(s)")

        response = await self._openai_client.chat.completions.create(
            model=self._current_model,
            messages=[
                {"role": "system", "content": "Respond with a single valid JSON object."},
                {"role": "user", "content": prompt}
            ],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            response_format={"type": "json_object"}
        )
        return response.choices[0].message.content

    async def _generate_gemini(self, prompt: str, images: List[Any]) -> str:
        """Generate using Gemini, optionally with reference images."""
        content = list(images) + [prompt]
        response = await self._gemini_model.generate_content_async(
            content,
            generation_config={
                "response_mime_type": "application/json",
                "temperature": self.config.temperature,
                "max_output_tokens": self.config.max_tokens,
            }
        )
        return response.text

    def get_status(self) -> dict:
        """Get current client status."""
        return {
            "role": self.role.value,
            "provider": self.config.provider.value,
            "model": self._current_model or self.config.model,
            "fallback_used": self._fallback_used,
            "initialized": self._initialized
        }


def build_llm_clients(settings: Optional[Settings] = None) -> Dict[LLMRole, LLMClient]:
    """Construct one client per role, sharing the configured retry policy."""
    settings = settings or get_settings()
    clients = {}
    for role in LLMRole:
        invoker = RetryingInvoker(
            retries=settings.retry_count,
            base_delay=settings.retry_base_delay,
            label=role.value
        )
        clients[role] = LLMClient(get_llm_config(role), invoker)
    return clients
