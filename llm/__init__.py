"""
LLM Integration Module - Provider-agnostic LLM client
"""

from .client import (
    LLMClient,
    LLMProvider,
    GeminiClient,
    OpenAIClient,
    AnthropicClient,
    OllamaClient,
    get_llm_client,
    validate_llm_client,
    LLMValidationResult,
    ValidationStatus,
)
from .prompts import PromptTemplates
from .schemas import ANALYSIS_SCHEMA, PREPARATION_PLAN_SCHEMA

__all__ = [
    "LLMClient",
    "LLMProvider",
    "GeminiClient",
    "OpenAIClient",
    "AnthropicClient",
    "OllamaClient",
    "get_llm_client",
    "validate_llm_client",
    "LLMValidationResult",
    "ValidationStatus",
    "PromptTemplates",
    "ANALYSIS_SCHEMA",
    "PREPARATION_PLAN_SCHEMA",
]
