"""In-memory agent registry.

Mutations on one agent are serialized by a per-agent lock; operations on
different agents never wait on each other.
"""

from __future__ import annotations

import threading
import uuid
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..models.agent import Agent, AgentDefinition, AgentListing
from ..utils.timestamps import now_iso
from .errors import NotFoundError, ValidationError
from .prompts import default_system_prompt

# Update key (either spelling) -> Agent attribute
UPDATABLE_FIELDS: dict[str, str] = {
    "description": "description",
    "capabilities": "capabilities",
    "systemPrompt": "system_prompt",
    "system_prompt": "system_prompt",
    "tools": "tools",
    "personality": "personality",
    "maxTokens": "max_tokens",
    "max_tokens": "max_tokens",
    "temperature": "temperature",
}


class AgentRegistry:
    def __init__(
        self,
        defaults: Optional[dict] = None,
        tool_names: Optional[Callable[[], list[str]]] = None,
    ):
        self.defaults = defaults or {}
        self._tool_names = tool_names or (lambda: [])
        self._agents: dict[str, Agent] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, agent_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(agent_id)
            if lock is None:
                lock = self._locks[agent_id] = threading.Lock()
            return lock

    def create(self, definition: Union[AgentDefinition, Mapping[str, Any]]) -> Agent:
        """Register a new agent and return it."""
        if not isinstance(definition, AgentDefinition):
            try:
                definition = AgentDefinition.model_validate(dict(definition))
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid agent definition: {e}") from e

        name = (definition.name or "").strip()
        if not name:
            raise ValidationError("Agent name is required")

        created = now_iso()
        agent = Agent(
            id=uuid.uuid4().hex,
            name=name,
            description=definition.description,
            capabilities=list(definition.capabilities),
            system_prompt=definition.system_prompt
            or default_system_prompt(name, definition.description, definition.capabilities),
            tools=list(definition.tools),
            personality=definition.personality or self.defaults.get("personality", "helpful"),
            memory=definition.memory,
            max_tokens=definition.max_tokens or self.defaults.get("max_tokens", 2000),
            temperature=(
                definition.temperature
                if definition.temperature is not None
                else self.defaults.get("temperature", 0.7)
            ),
            status="active",
            created=created,
        )

        with self._guard:
            self._agents[agent.id] = agent
        return agent

    def get(self, agent_id: str) -> Agent:
        with self._guard:
            agent = self._agents.get(agent_id)
        if agent is None:
            raise NotFoundError(f"Agent not found: {agent_id}")
        return agent

    def exists(self, agent_id: str) -> bool:
        with self._guard:
            return agent_id in self._agents

    def update(self, agent_id: str, fields: Mapping[str, Any]) -> str:
        """Apply allow-listed fields; returns the new ``updated`` timestamp.

        Keys outside the allow-list (``id``, ``created``, ``name``, ...) are ignored.
        """
        with self._lock_for(agent_id):
            current = self.get(agent_id)
            changes = {
                UPDATABLE_FIELDS[key]: value
                for key, value in fields.items()
                if key in UPDATABLE_FIELDS
            }
            data = current.model_dump()
            data.update(changes)
            data["updated"] = now_iso()
            try:
                updated = Agent.model_validate(data)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid agent update: {e}") from e
            with self._guard:
                if agent_id not in self._agents:
                    raise NotFoundError(f"Agent not found: {agent_id}")
                self._agents[agent_id] = updated
            return updated.updated or ""

    def delete(self, agent_id: str) -> str:
        """Remove an agent. Conversations it took part in are left in place."""
        with self._lock_for(agent_id):
            with self._guard:
                agent = self._agents.pop(agent_id, None)
                self._locks.pop(agent_id, None)
            if agent is None:
                raise NotFoundError(f"Agent not found: {agent_id}")
            return f"Agent {agent.name} deleted successfully"

    def record_conversation(self, agent_id: str, conversation_id: str) -> None:
        with self._lock_for(agent_id):
            with self._guard:
                agent = self._agents.get(agent_id)
                if agent is None:
                    return
                if conversation_id not in agent.conversations:
                    agent.conversations.append(conversation_id)

    def list(self) -> AgentListing:
        with self._guard:
            agents = [a.summary() for a in self._agents.values()]
        return AgentListing(
            agents=agents,
            total=len(agents),
            available_tools=list(self._tool_names()),
        )

    def __len__(self) -> int:
        with self._guard:
            return len(self._agents)
