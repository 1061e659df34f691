"""Completion client abstraction with retry logic.

Every provider takes an ordered list of chat messages plus generation
options and returns a ``CompletionResult``. Pipeline code talks to the
``CompletionClient`` protocol and only ever sees text or ``UpstreamError``.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol, Sequence, runtime_checkable

from ..core.errors import UpstreamError
from ..models.provider import ChatMessage, CompletionOptions, CompletionResult
from ..utils.sanitize import sanitize_error

RETRYABLE_MARKERS = ("429", "500", "502", "503", "504", "timeout", "timed out")
FATAL_MARKERS = ("400", "401", "403", "404")


@runtime_checkable
class CompletionClient(Protocol):
    """Stateless request/response text generation."""

    name: str

    async def complete_text(
        self,
        messages: Sequence[ChatMessage],
        options: Optional[CompletionOptions] = None,
    ) -> str: ...


class BaseProvider:
    """Base class with shared retry logic and config handling."""

    name: str = "base"

    def __init__(self, provider_config: dict, common_config: dict):
        self.config = provider_config
        self.common = common_config
        self.max_attempts = common_config.get("retry_attempts", 3)
        self.retry_delay = common_config.get("retry_delay_seconds", 5)

    def _resolve_model(self, options: CompletionOptions, default: str) -> str:
        return options.model or self.config.get("model", default)

    def _resolve_temperature(self, options: CompletionOptions) -> float:
        if options.temperature is not None:
            return options.temperature
        return self.common.get("temperature", 0.7)

    def _resolve_max_tokens(self, options: CompletionOptions, default: int) -> int:
        return options.max_output_tokens or self.config.get("max_tokens", default)

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        options: CompletionOptions,
    ) -> CompletionResult:
        raise NotImplementedError

    async def complete_with_retry(
        self,
        messages: Sequence[ChatMessage],
        options: Optional[CompletionOptions] = None,
    ) -> CompletionResult:
        """Wrap complete() with retry logic including rate-limit handling."""
        options = options or CompletionOptions()
        rate_limit_max = max(self.max_attempts, 5)
        last_result: Optional[CompletionResult] = None

        for attempt in range(1, rate_limit_max + 1):
            result = await self.complete(messages, options)
            last_result = result

            if result.success:
                return result

            error_msg = result.error or ""
            is_rate_limit = "429" in error_msg
            is_retryable = any(m in error_msg for m in RETRYABLE_MARKERS) and not any(
                m in error_msg for m in FATAL_MARKERS
            )

            effective_max = rate_limit_max if is_rate_limit else self.max_attempts
            if not is_retryable or attempt >= effective_max:
                result.error = sanitize_error(error_msg)
                return result

            # Rate limits back off harder than transient server errors.
            base_delay = 30 if is_rate_limit else self.retry_delay
            await asyncio.sleep(base_delay * min(attempt, 3))

        return last_result or CompletionResult(success=False, error="Max retries exceeded")

    async def complete_text(
        self,
        messages: Sequence[ChatMessage],
        options: Optional[CompletionOptions] = None,
    ) -> str:
        """Return the completion text or raise ``UpstreamError``."""
        result = await self.complete_with_retry(messages, options)
        if not result.success:
            raise UpstreamError(
                f"{self.name} completion failed: {result.error or 'unknown error'}",
                source=self.name,
            )
        if not result.content:
            raise UpstreamError(f"{self.name} returned an empty completion", source=self.name)
        return result.content


def get_ai_provider(
    config: dict,
    provider_override: Optional[str] = None,
    model_override: Optional[str] = None,
    endpoint_override: Optional[str] = None,
) -> BaseProvider:
    """Factory function to create the configured completion provider."""
    ai_config = config.get("ai", {})
    provider_name = provider_override or ai_config.get("provider", "openai")

    provider_config = dict(ai_config.get(provider_name, {}))

    if model_override:
        provider_config["model"] = model_override
    if endpoint_override:
        provider_config["endpoint"] = endpoint_override

    # Common config is the ai section minus the provider sub-configs
    common_config = {
        k: v
        for k, v in ai_config.items()
        if k not in ("openai", "anthropic", "ollama")
    }

    if provider_name == "openai":
        from .openai_provider import OpenAIProvider
        return OpenAIProvider(provider_config, common_config)
    elif provider_name == "anthropic":
        from .anthropic import AnthropicProvider
        return AnthropicProvider(provider_config, common_config)
    elif provider_name == "ollama":
        from .ollama import OllamaProvider
        return OllamaProvider(provider_config, common_config)
    else:
        raise ValueError(f"Unknown AI provider: {provider_name}")
