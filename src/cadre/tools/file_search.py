"""File search tool: literal text search inside text-like documents."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Optional

from ..core.errors import UpstreamError, ValidationError
from ..models.provider import ChatMessage, CompletionOptions
from ..models.task import RunContext
from ..providers.base import CompletionClient
from ..utils.timestamps import now_iso
from .base import BaseTool

DEFAULT_SUFFIXES = [".txt", ".md", ".csv", ".json", ".log"]


def read_document(path: Path, suffixes: list[str]) -> str:
    """Read a supported document as text."""
    if not path.exists() or not path.is_file():
        raise ValidationError(f"File not found: {path.name}")

    suffix = path.suffix.lower()
    if suffix not in suffixes:
        raise ValidationError(f"Unsupported file format: {suffix or '(none)'}")

    content = path.read_text(encoding="utf-8-sig", errors="replace")
    if suffix == ".json":
        try:
            content = json.dumps(json.loads(content), indent=2, ensure_ascii=False)
        except ValueError:
            pass
    return content


def search_text(
    content: str,
    query: str,
    case_sensitive: bool = False,
    whole_word: bool = False,
    max_results: int = 10,
    context_length: int = 100,
) -> dict[str, Any]:
    """Find occurrences of ``query`` with surrounding context and line numbers."""
    escaped = re.escape(query)
    pattern = rf"\b{escaped}\b" if whole_word else escaped
    flags = 0 if case_sensitive else re.IGNORECASE

    matches = []
    for m in re.finditer(pattern, content, flags):
        if len(matches) >= max_results:
            break
        start = max(0, m.start() - context_length)
        end = min(len(content), m.end() + context_length)
        matches.append({
            "match": m.group(0),
            "position": m.start(),
            "context": content[start:end],
            "lineNumber": content.count("\n", 0, m.start()) + 1,
        })

    return {"totalMatches": len(matches), "matches": matches}


class FileSearchTool(BaseTool):
    name = "file_search"
    description = "Read and search inside text documents"
    capabilities = ["file_reading", "content_extraction", "file_search"]

    def __init__(self, config: Optional[dict] = None, client: Optional[CompletionClient] = None):
        super().__init__(config)
        self.client = client

    async def answer(self, query: str, file_name: str, search: dict[str, Any]) -> Optional[str]:
        if self.client is None or not search["matches"]:
            return None
        excerpts = "\n\n".join(
            f"[line {m['lineNumber']}] ...{m['context']}..." for m in search["matches"]
        )
        messages = [
            ChatMessage(
                role="system",
                content="You answer questions about a document using only the excerpts provided.",
            ),
            ChatMessage(
                role="user",
                content=f'Document: {file_name}\nQuestion: "{query}"\n\nExcerpts:\n{excerpts}',
            ),
        ]
        try:
            return await self.client.complete_text(
                messages, CompletionOptions(temperature=0.3, max_output_tokens=800)
            )
        except UpstreamError:
            return None

    async def run(self, context: RunContext) -> dict[str, Any]:
        self.require(context, "file_path", "query")
        options = context.parameters or {}
        path = Path(context.file_path).expanduser()

        content = read_document(path, self.config.get("suffixes", DEFAULT_SUFFIXES))
        search = search_text(
            content,
            context.query,
            case_sensitive=bool(options.get("caseSensitive", options.get("case_sensitive", False))),
            whole_word=bool(options.get("wholeWord", options.get("whole_word", False))),
            max_results=int(options.get("maxResults", self.config.get("max_results", 10))),
            context_length=int(options.get("contextLength", self.config.get("context_length", 100))),
        )

        payload: dict[str, Any] = {
            "success": True,
            "file": {"name": path.name, "path": str(path), "size": path.stat().st_size},
            "query": context.query,
            "search": search,
            "preview": content[: self.config.get("preview_chars", 10000)],
            "timestamp": now_iso(),
        }
        if self.config.get("answer", True):
            answer = await self.answer(context.query, path.name, search)
            if answer:
                payload["answer"] = answer
        return payload
