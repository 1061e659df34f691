"""Shared fixtures for cadre tests."""

from __future__ import annotations

from typing import Any, Callable, Optional

import pytest

from cadre.core.conversations import ConversationStore
from cadre.core.errors import UpstreamError
from cadre.core.pipeline import TaskPipeline
from cadre.core.registry import AgentRegistry
from cadre.models.task import RunContext
from cadre.tools.base import BaseTool, ToolRegistry


class FakeCompletionClient:
    """Scripted completion client.

    Each call pops the next scripted item: a string is returned, an exception
    is raised. Calls past the end of the script raise ``UpstreamError``.
    """

    name = "fake"

    def __init__(self, responses: Optional[list] = None, error: Optional[Exception] = None):
        self.responses = list(responses or [])
        self.error = error
        self.calls: list[tuple[list, Any]] = []

    async def complete_text(self, messages, options=None) -> str:
        self.calls.append((list(messages), options))
        if self.error is not None:
            raise self.error
        if not self.responses:
            raise UpstreamError("no scripted response left")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class EchoTool(BaseTool):
    """Returns the query it was given."""

    name = "echo"

    def __init__(self):
        super().__init__()
        self.seen: list[RunContext] = []

    async def run(self, context: RunContext) -> dict[str, Any]:
        self.seen.append(context)
        self.require(context, "query")
        return {"success": True, "echo": context.query}


class ExplodingTool(BaseTool):
    name = "exploding"

    async def run(self, context: RunContext) -> dict[str, Any]:
        raise RuntimeError("boom")

@pytest.fixture
def tool_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(EchoTool())
    registry.register(ExplodingTool())
    return registry


@pytest.fixture
def agent_registry(tool_registry: ToolRegistry) -> AgentRegistry:
    return AgentRegistry(
        defaults={"personality": "helpful", "max_tokens": 2000, "temperature": 0.7},
        tool_names=tool_registry.names,
    )


@pytest.fixture
def conversation_store() -> ConversationStore:
    return ConversationStore()


@pytest.fixture
def make_pipeline(
    agent_registry: AgentRegistry,
    tool_registry: ToolRegistry,
    conversation_store: ConversationStore,
) -> Callable[..., tuple[TaskPipeline, FakeCompletionClient]]:
    def _make(responses: Optional[list] = None, error: Optional[Exception] = None, **settings):
        client = FakeCompletionClient(responses, error)
        pipeline = TaskPipeline(
            agents=agent_registry,
            tools=tool_registry,
            client=client,
            conversations=conversation_store,
            settings=settings,
        )
        return pipeline, client

    return _make


@pytest.fixture
def researcher(agent_registry: AgentRegistry):
    return agent_registry.create({
        "name": "Researcher",
        "description": "Finds things out.",
        "capabilities": ["research"],
        "tools": ["echo"],
        "temperature": 0.2,
        "maxTokens": 321,
    })


@pytest.fixture
def make_client() -> Callable[..., FakeCompletionClient]:
    return FakeCompletionClient
