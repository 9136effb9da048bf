"""Base LLM provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from productbot.errors import CompletionApiError, NoContentGenerated


@dataclass
class LLMResponse:
    """Response from an LLM provider."""
    content: str | None
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)
    model: str = ""
    error: str = ""

    @property
    def is_error(self) -> bool:
        return self.finish_reason == "error"


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Implementations handle the specifics of each provider's API while
    exposing a single chat interface.
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model identifier (provider-specific).
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature.

        Returns:
            LLMResponse with content. Failures are reported with
            finish_reason="error" rather than raised.
        """
        pass

    async def complete(
        self,
        system_prompt: str,
        user_text: str,
        model: str | None = None,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> str:
        """
        Single-turn completion: one system prompt, one user message.

        Raises:
            CompletionApiError: The provider failed.
            NoContentGenerated: The provider answered with nothing.
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_text},
        ]

        try:
            response = await self.chat(
                messages,
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except CompletionApiError:
            raise
        except Exception as e:
            raise CompletionApiError(f"Completion API error: {e}") from e

        if response.is_error:
            raise CompletionApiError(response.error or "Completion API error")

        if not response.content or not response.content.strip():
            raise NoContentGenerated("No response generated from AI")

        return response.content
