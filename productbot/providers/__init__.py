"""LLM provider abstraction module."""

from productbot.providers.base import LLMProvider, LLMResponse
from productbot.providers.litellm_provider import LiteLLMProvider, ModelHealth

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "LiteLLMProvider",
    "ModelHealth",
]
