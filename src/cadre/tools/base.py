"""Tool capability contract and the registry the pipeline dispatches through."""

from __future__ import annotations

import threading
from typing import Any, Optional, Protocol, runtime_checkable

from ..core.errors import ToolContextError
from ..models.task import RunContext
from ..utils.sanitize import sanitize_error
from ..utils.timestamps import now_iso


@runtime_checkable
class Tool(Protocol):
    """A capability the Execute stage can invoke by name."""

    name: str

    async def invoke(self, context: RunContext) -> dict[str, Any]: ...


class BaseTool:
    """Shared error boundary: ``invoke`` never raises.

    Subclasses implement ``run`` and raise ``ToolContextError`` when the
    context lacks a field they need.
    """

    name: str = "tool"
    description: str = ""
    capabilities: list[str] = []

    def __init__(self, config: Optional[dict] = None):
        self.config = config or {}

    async def run(self, context: RunContext) -> dict[str, Any]:
        raise NotImplementedError

    async def invoke(self, context: RunContext) -> dict[str, Any]:
        try:
            result = await self.run(context)
        except Exception as e:
            return failure(self.name, e)
        result.setdefault("success", True)
        return result

    def require(self, context: RunContext, *fields: str) -> None:
        missing = [f for f in fields if not getattr(context, f, None)]
        if missing:
            raise ToolContextError(
                f"Tool {self.name} requires additional context: {', '.join(missing)}"
            )


def failure(tool_name: str, error: BaseException | str) -> dict[str, Any]:
    """Result record for a failed tool invocation."""
    message = error if isinstance(error, str) else (str(error) or type(error).__name__)
    return {
        "success": False,
        "error": sanitize_error(message),
        "tool": tool_name,
        "timestamp": now_iso(),
    }


class ToolRegistry:
    """Maps stable tool names to capabilities."""

    def __init__(self):
        self._tools: dict[str, Tool] = {}
        self._lock = threading.Lock()

    def register(self, tool: Tool, name: Optional[str] = None) -> None:
        key = name or tool.name
        with self._lock:
            self._tools[key] = tool

    def unregister(self, name: str) -> None:
        with self._lock:
            self._tools.pop(name, None)

    def get(self, name: str) -> Optional[Tool]:
        with self._lock:
            return self._tools.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return list(self._tools.keys())

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tools

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)

    async def dispatch(self, name: str, context: RunContext) -> dict[str, Any]:
        """Invoke a tool by name. Always returns a result record."""
        tool = self.get(name)
        if tool is None:
            return failure(name, f"Tool not found: {name}")
        try:
            result = await tool.invoke(context)
        except Exception as e:
            return failure(name, e)
        if not isinstance(result, dict):
            return {"success": True, "tool": name, "output": result}
        return result
