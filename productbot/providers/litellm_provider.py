"""
Completion client backed by LiteLLM.

OpenAI models work out of the box; any provider LiteLLM understands can be
selected through the model name (e.g. 'anthropic/claude-3-5-haiku').
A model that errors is benched for a cooldown and the next fallback model
is tried instead.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable

import litellm
from litellm import acompletion
from loguru import logger

from productbot.providers.base import LLMProvider, LLMResponse


@dataclass
class ModelHealth:
    """Failure bookkeeping for one model."""
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    failure_count: int = 0
    benched_until: float = 0.0
    last_error: str = ""

    @property
    def healthy(self) -> bool:
        return self.failure_count == 0

    def record_failure(self, error: str, cooldown_seconds: float) -> None:
        self.failure_count += 1
        self.last_error = error
        self.benched_until = self.clock() + cooldown_seconds

    def record_success(self) -> None:
        self.failure_count = 0
        self.last_error = ""
        self.benched_until = 0.0

    def is_available(self) -> bool:
        """A benched model becomes available again once its cooldown ends."""
        return self.healthy or self.clock() >= self.benched_until


class LiteLLMProvider(LLMProvider):
    """Chat completions through LiteLLM with model failover and usage totals."""

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gpt-4o-mini",
        fallback_models: list[str] | None = None,
        cooldown_seconds: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.fallback_models = fallback_models or []
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock

        self._health: dict[str, ModelHealth] = {}
        self._usage = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
        self._request_count = 0

        litellm.suppress_debug_info = True

    def _health_for(self, model: str) -> ModelHealth:
        return self._health.setdefault(model, ModelHealth(clock=self._clock))

    def _candidates(self, model: str) -> list[str]:
        """Requested model first, then fallbacks, without duplicates."""
        return [model] + [m for m in self.fallback_models if m != model]

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        Send a chat completion request, failing over between models.

        Returns an error LLMResponse (never raises) when every model failed
        or is still benched.
        """
        last_error = ""

        for candidate in self._candidates(model or self.default_model):
            health = self._health_for(candidate)
            if not health.is_available():
                logger.debug(f"Skipping benched model {candidate}")
                continue

            try:
                response = await self._call_model(candidate, messages, max_tokens, temperature)
            except Exception as e:
                last_error = str(e)
                logger.warning(f"Model {candidate} failed: {last_error}")
                health.record_failure(last_error, self.cooldown_seconds)
                continue

            health.record_success()
            self._record_usage(response.usage)
            return response

        return LLMResponse(
            content=None,
            finish_reason="error",
            error=f"All models failed. Last error: {last_error or 'no model available'}",
        )

    async def _call_model(
        self,
        model: str,
        messages: list[dict[str, Any]],
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        response = await acompletion(**kwargs)
        return self._parse_response(response, model)

    def _parse_response(self, response: Any, model: str) -> LLMResponse:
        """Convert a LiteLLM ModelResponse into an LLMResponse."""
        choice = response.choices[0]
        usage = getattr(response, "usage", None)

        return LLMResponse(
            content=choice.message.content,
            finish_reason=choice.finish_reason or "stop",
            usage={key: getattr(usage, key, 0) or 0 for key in self._usage} if usage else {},
            model=model,
        )

    def _record_usage(self, usage: dict[str, int]) -> None:
        self._request_count += 1
        for key in self._usage:
            self._usage[key] += usage.get(key, 0)

    def get_usage_stats(self) -> dict[str, Any]:
        """Token totals and per-model health."""
        return {
            **self._usage,
            "request_count": self._request_count,
            "model_health": {
                model: {
                    "healthy": health.healthy,
                    "failure_count": health.failure_count,
                    "last_error": health.last_error,
                }
                for model, health in self._health.items()
            },
        }
