"""Tutor agents: the primary handoff runner and the service that falls back.

Predefined agents are ``history``, ``math`` and ``triage`` (which hands off to
the other two). Custom agents get ``custom-<n>`` ids. ``TutorService.run``
uses the primary runner until it fails once, then routes every later call
through ``RoutingFallback``.
"""

from __future__ import annotations

import itertools
import json
import threading
from typing import Any, Optional

from rich.console import Console

from ..models.provider import ChatMessage, CompletionOptions
from ..models.tutor import TutorAgent, TutorOutcome, TutorRunFailure, TutorRunResult
from ..providers.base import CompletionClient
from ..utils.sanitize import sanitize_error
from . import prompts
from .errors import NotFoundError, ParseError, ValidationError
from .fallback import FallbackLatch, RoutingFallback

console = Console(stderr=True)


def default_tutor_agents() -> dict[str, TutorAgent]:
    return {
        "history": TutorAgent(key="history", name="History Tutor", instructions=prompts.HISTORY_TUTOR),
        "math": TutorAgent(key="math", name="Math Tutor", instructions=prompts.MATH_TUTOR),
        "triage": TutorAgent(
            key="triage",
            name="Triage Agent",
            instructions=prompts.TRIAGE_AGENT,
            handoffs=["history", "math"],
        ),
    }


class HandoffRunner:
    """Primary path. Any failure propagates to the caller."""

    def __init__(self, client: CompletionClient, agents: dict[str, TutorAgent]):
        self.client = client
        self.agents = agents

    async def choose_handoff(self, agent: TutorAgent, user_input: str) -> Optional[TutorAgent]:
        targets = {key: self.agents[key].name for key in agent.handoffs if key in self.agents}
        messages = [
            ChatMessage(role="system", content=agent.instructions),
            ChatMessage(role="user", content=prompts.handoff_user(user_input, targets)),
        ]
        raw = await self.client.complete_text(
            messages, CompletionOptions(model=agent.model, temperature=0.0, max_output_tokens=50)
        )

        start, end = raw.find("{"), raw.rfind("}")
        if start == -1 or end <= start:
            raise ParseError(f"{agent.name} returned no handoff decision")
        try:
            decision = json.loads(raw[start : end + 1])
        except ValueError as e:
            raise ParseError(f"{agent.name} returned an invalid handoff decision: {e}") from e

        choice = decision.get("handoff") if isinstance(decision, dict) else None
        if choice in (None, "", "none"):
            return None
        if choice not in targets:
            raise ParseError(f"{agent.name} chose an unknown handoff target: {choice}")
        return self.agents[choice]

    async def run(self, agent: TutorAgent, user_input: str) -> TutorRunResult:
        handoffs: list[str] = []
        final = agent
        if agent.handoffs:
            target = await self.choose_handoff(agent, user_input)
            if target is not None:
                handoffs.append(target.name)
                final = target

        messages = [
            ChatMessage(role="system", content=final.instructions),
            ChatMessage(role="user", content=user_input),
        ]
        output = await self.client.complete_text(messages, CompletionOptions(model=final.model))
        return TutorRunResult(output=output, final_agent=final.name, handoffs=handoffs, tools_used=[])


class TutorService:
    def __init__(
        self,
        client: CompletionClient,
        fallback_settings: Optional[dict] = None,
        latch: Optional[FallbackLatch] = None,
    ):
        self.agents = default_tutor_agents()
        self._custom_ids = itertools.count()
        self._lock = threading.Lock()
        self.latch = latch if latch is not None else FallbackLatch()
        self.runner = HandoffRunner(client, self.agents)
        self.fallback = RoutingFallback(client, fallback_settings)

    def resolve(self, agent_type: str) -> TutorAgent:
        with self._lock:
            agent = self.agents.get(agent_type)
        if agent is None:
            raise NotFoundError(f"Agent type '{agent_type}' not found")
        return agent

    def create_custom_agent(self, name: str, instructions: str, model: Optional[str] = None) -> TutorAgent:
        if not name or not name.strip():
            raise ValidationError("Agent name is required")
        if not instructions or not instructions.strip():
            raise ValidationError("Agent instructions are required")
        with self._lock:
            key = f"custom-{next(self._custom_ids)}"
            agent = TutorAgent(
                key=key, name=name.strip(), instructions=instructions, model=model, kind="custom"
            )
            self.agents[key] = agent
        console.print(f"  [green]OK[/green] Created custom agent: {agent.name} ({key})")
        return agent

    def available_agents(self) -> list[dict[str, Any]]:
        with self._lock:
            return [{"id": a.key, "name": a.name, "type": a.kind} for a in self.agents.values()]

    async def run(self, agent_type: str, user_input: str) -> TutorOutcome:
        if not user_input or not user_input.strip():
            return TutorRunFailure(error="Input is required")

        if self.latch.is_set:
            return await self.fallback.run(agent_type, user_input)

        try:
            agent = self.resolve(agent_type)
            result = await self.runner.run(agent, user_input)
        except Exception as e:
            message = sanitize_error(str(e)) or type(e).__name__
            console.print(f"  [yellow]WARN[/yellow] Primary agent path failed: {message}")
            if self.latch.trip(message):
                console.print("  [yellow]WARN[/yellow] Switching to fallback routing for this process")
            return await self.fallback.run(agent_type, user_input)

        console.print(f"  [green]OK[/green] {agent.name} completed via {result.final_agent}")
        return result
