# LLM module (v1.0.0)
from stylist_service.llm.retry import RetryingInvoker, InvokeResult, is_transient_error
from stylist_service.llm.llm_adapter import LLMClient, build_llm_clients, parse_json_object
from stylist_service.llm.batch_verifier import BatchVerifier
from stylist_service.llm.style_scorer import StyleScorer
from stylist_service.llm.outfit_composer import OutfitComposer
