"""OpenAI chat completions provider."""

from __future__ import annotations

import os
from typing import Optional, Sequence

import httpx

from ..models.provider import ChatMessage, CompletionOptions, CompletionResult
from .base import BaseProvider


class OpenAIProvider(BaseProvider):
    name = "openai"
    API_URL = "https://api.openai.com/v1/chat/completions"

    def __init__(
        self,
        provider_config: dict,
        common_config: dict,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(provider_config, common_config)
        self.transport = transport

    def _get_api_key(self) -> Optional[str]:
        if self.config.get("api_key"):
            return self.config["api_key"]
        env_var = self.config.get("api_key_env", "OPENAI_API_KEY")
        return os.environ.get(env_var)

    def _api_url(self) -> str:
        endpoint = self.config.get("endpoint")
        if endpoint:
            return f"{endpoint.rstrip('/')}/v1/chat/completions"
        return self.API_URL

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        options: CompletionOptions,
    ) -> CompletionResult:
        api_key = self._get_api_key()
        if not api_key:
            env_var = self.config.get("api_key_env", "OPENAI_API_KEY")
            return CompletionResult(
                success=False,
                error=f"API key not found in environment variable: {env_var}",
            )

        body = {
            "model": self._resolve_model(options, "gpt-3.5-turbo"),
            "max_tokens": self._resolve_max_tokens(options, 1000),
            "temperature": self._resolve_temperature(options),
            "messages": [m.model_dump() for m in messages],
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        timeout = self.common.get("timeout_seconds", 120)

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
                response = await client.post(self._api_url(), json=body, headers=headers)
                response.raise_for_status()
                data = response.json()

            content = data["choices"][0]["message"]["content"]
            usage = data.get("usage", {})
            tokens = {
                "input": usage.get("prompt_tokens", 0),
                "output": usage.get("completion_tokens", 0),
            }
            return CompletionResult(success=True, content=content, tokens_used=tokens)
        except httpx.HTTPStatusError as e:
            return CompletionResult(
                success=False,
                error=f"{e.response.status_code} | {e.response.text}",
            )
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            return CompletionResult(success=False, error=str(e) or type(e).__name__)
