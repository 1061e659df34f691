"""Web search tool backed by the DuckDuckGo instant-answer API."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from ..core.errors import UpstreamError
from ..models.provider import ChatMessage, CompletionOptions
from ..models.task import RunContext
from ..providers.base import CompletionClient
from ..utils.timestamps import now_iso
from .base import BaseTool

SYNTHESIS_PROMPT = (
    "You are a research assistant. Synthesize the search results to provide a "
    "comprehensive answer to the user's query. Be accurate, cite sources when "
    "possible, and provide a clear, well-structured response."
)


def parse_instant_answer(data: dict, max_results: int) -> list[dict[str, str]]:
    """Flatten an instant-answer payload into result records."""
    results: list[dict[str, str]] = []

    if data.get("Answer"):
        results.append({
            "title": "Instant Answer",
            "snippet": str(data["Answer"]),
            "url": data.get("AbstractURL") or "",
            "source": "DuckDuckGo Instant Answer",
        })

    if data.get("Abstract"):
        results.append({
            "title": data.get("AbstractSource") or "Abstract",
            "snippet": data["Abstract"],
            "url": data.get("AbstractURL") or "",
            "source": data.get("AbstractSource") or "DuckDuckGo",
        })

    for topic in data.get("RelatedTopics") or []:
        if len(results) >= max_results:
            break
        # Grouped topics nest their entries one level down
        entries = topic.get("Topics") if "Topics" in topic else [topic]
        for entry in entries:
            if len(results) >= max_results:
                break
            text = entry.get("Text")
            url = entry.get("FirstURL")
            if text and url:
                results.append({
                    "title": text.split(" - ")[0] or "Related Topic",
                    "snippet": text,
                    "url": url,
                    "source": "DuckDuckGo Related",
                })

    return results[:max_results]


class WebSearchTool(BaseTool):
    name = "web_search"
    description = "Search the internet and summarize the latest information"
    capabilities = ["web_search", "content_extraction", "information_synthesis"]

    def __init__(
        self,
        config: Optional[dict] = None,
        client: Optional[CompletionClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config)
        self.client = client
        self.transport = transport

    async def search(self, query: str, max_results: int) -> list[dict[str, str]]:
        endpoint = self.config.get("endpoint", "https://api.duckduckgo.com/")
        timeout = self.config.get("timeout_seconds", 10)
        params = {"q": query, "format": "json", "no_html": "1", "skip_disambig": "1"}

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as http:
                response = await http.get(endpoint, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"Search request failed: {e.response.status_code}", source=self.name
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamError(f"Search request failed: {e}", source=self.name) from e

        return parse_instant_answer(data, max_results)

    async def synthesize(self, query: str, results: list[dict[str, str]]) -> dict[str, Any]:
        if self.client is None or not results:
            return {"answer": "", "sourcesUsed": 0, "confidence": "none"}

        listing = "\n".join(
            f"{i}. {r['title']}\n   {r['snippet']}\n   Source: {r['url']}"
            for i, r in enumerate(results, start=1)
        )
        messages = [
            ChatMessage(role="system", content=SYNTHESIS_PROMPT),
            ChatMessage(
                role="user",
                content=(
                    f'Query: "{query}"\n\nSearch Results:\n{listing}\n\n'
                    f"Please provide a comprehensive answer based on these search results."
                ),
            ),
        ]
        try:
            answer = await self.client.complete_text(
                messages, CompletionOptions(temperature=0.3, max_output_tokens=1000)
            )
        except UpstreamError as e:
            return {
                "answer": "Unable to synthesize information at this time.",
                "sourcesUsed": 0,
                "confidence": "low",
                "error": str(e),
            }
        return {"answer": answer, "sourcesUsed": len(results), "confidence": "high"}

    async def run(self, context: RunContext) -> dict[str, Any]:
        self.require(context, "query")
        max_results = context.max_results or self.config.get("max_results", 5)

        results = await self.search(context.query, max_results)
        payload: dict[str, Any] = {
            "success": True,
            "query": context.query,
            "provider": "duckduckgo",
            "results": results,
            "timestamp": now_iso(),
        }
        if self.config.get("synthesize", True):
            payload["synthesis"] = await self.synthesize(context.query, results)
        return payload
