"""Ollama local inference provider."""

from __future__ import annotations

from typing import Optional, Sequence

import httpx

from ..models.provider import ChatMessage, CompletionOptions, CompletionResult
from .base import BaseProvider


class OllamaProvider(BaseProvider):
    name = "ollama"

    def __init__(
        self,
        provider_config: dict,
        common_config: dict,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(provider_config, common_config)
        self.transport = transport

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        options: CompletionOptions,
    ) -> CompletionResult:
        endpoint = self.config.get("endpoint", "http://localhost:11434")
        timeout = self.common.get("timeout_seconds", 120)

        body = {
            "model": self._resolve_model(options, "llama3.1:8b"),
            "messages": [m.model_dump() for m in messages],
            "stream": False,
            "options": {
                "temperature": self._resolve_temperature(options),
                "num_predict": self._resolve_max_tokens(options, 1000),
            },
        }

        try:
            url = f"{endpoint.rstrip('/')}/api/chat"
            async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
                response = await client.post(url, json=body)
                response.raise_for_status()
                data = response.json()

            return CompletionResult(
                success=True,
                content=data.get("message", {}).get("content", ""),
                tokens_used=None,
            )
        except httpx.HTTPStatusError as e:
            return CompletionResult(
                success=False,
                error=f"{e.response.status_code} | {e.response.text}",
            )
        except (httpx.HTTPError, ValueError) as e:
            return CompletionResult(success=False, error=str(e) or type(e).__name__)
