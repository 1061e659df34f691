"""Wires registries, tools, provider, pipeline and tutor service together."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..providers.base import CompletionClient, get_ai_provider
from ..tools.base import ToolRegistry
from ..tools.computer_use import ComputerUseTool
from ..tools.file_search import FileSearchTool
from ..tools.web_search import WebSearchTool
from .conversations import ConversationStore
from .fallback import FallbackLatch
from .pipeline import TaskPipeline
from .registry import AgentRegistry
from .tutors import TutorService


@dataclass
class Runtime:
    config: dict
    client: CompletionClient
    tools: ToolRegistry
    agents: AgentRegistry
    conversations: ConversationStore
    pipeline: TaskPipeline
    tutors: TutorService


def build_tool_registry(config: dict, client: Optional[CompletionClient] = None) -> ToolRegistry:
    """Registry with the built-in web_search, file_search and computer_use tools."""
    tool_config = config.get("tools", {})
    registry = ToolRegistry()
    registry.register(WebSearchTool(tool_config.get("web_search", {}), client=client))
    registry.register(FileSearchTool(tool_config.get("file_search", {}), client=client))
    registry.register(ComputerUseTool(tool_config.get("computer_use", {})))
    return registry


def build_runtime(
    config: dict,
    client: Optional[CompletionClient] = None,
    tools: Optional[ToolRegistry] = None,
    latch: Optional[FallbackLatch] = None,
    provider_override: Optional[str] = None,
    model_override: Optional[str] = None,
) -> Runtime:
    if client is None:
        client = get_ai_provider(
            config, provider_override=provider_override, model_override=model_override
        )
    if tools is None:
        tools = build_tool_registry(config, client)

    agents = AgentRegistry(defaults=config.get("agents", {}), tool_names=tools.names)
    conversations = ConversationStore()
    pipeline = TaskPipeline(
        agents=agents,
        tools=tools,
        client=client,
        conversations=conversations,
        settings=config.get("pipeline", {}),
    )
    tutors = TutorService(client, fallback_settings=config.get("fallback", {}), latch=latch)

    return Runtime(
        config=config,
        client=client,
        tools=tools,
        agents=agents,
        conversations=conversations,
        pipeline=pipeline,
        tutors=tutors,
    )
