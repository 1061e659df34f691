"""Routing fallback: keyword triage plus a single completion call.

Used once the primary tutor path has failed. ``FallbackLatch`` is the
sticky switch: it starts unset, trips on the first primary failure and
stays tripped for the life of the process. Tests reset it explicitly.
"""

from __future__ import annotations

import re
import threading
from enum import Enum
from typing import NamedTuple, Optional

from rich.console import Console

from ..models.provider import ChatMessage, CompletionOptions
from ..models.tutor import TutorOutcome, TutorRunFailure, TutorRunResult
from ..providers.base import CompletionClient
from ..utils.sanitize import sanitize_error
from . import prompts

console = Console(stderr=True)

HISTORY_PATTERN = re.compile(
    r"\b(history|historical|when|where|who|date|year|century|war|empire|civilization|"
    r"ancient|medieval|renaissance|revolution|battle|king|queen|president|capital|"
    r"country|nation)\b",
    re.IGNORECASE,
)

MATH_PATTERN = re.compile(
    r"\b(solve|calculate|equation|math|algebra|geometry|trigonometry|calculus|\+|-|\*|/|=|"
    r"x|y|formula|theorem|proof|derivative|integral|matrix|vector)\b",
    re.IGNORECASE,
)


class TriageRoute(str, Enum):
    HISTORY = "history"
    MATH = "math"
    GENERAL = "general"


def classify_triage(text: str) -> TriageRoute:
    """Three-way keyword decision. Double matches and no matches both go to GENERAL."""
    is_history = bool(HISTORY_PATTERN.search(text))
    is_math = bool(MATH_PATTERN.search(text))
    if is_history and not is_math:
        return TriageRoute.HISTORY
    if is_math and not is_history:
        return TriageRoute.MATH
    return TriageRoute.GENERAL


class FallbackRoute(NamedTuple):
    agent_name: str
    system_prompt: str
    handoffs: list[str]


_TRIAGE_ROUTES = {
    TriageRoute.HISTORY: ("History Tutor (via Triage)", prompts.TRIAGED_HISTORY),
    TriageRoute.MATH: ("Math Tutor (via Triage)", prompts.TRIAGED_MATH),
    TriageRoute.GENERAL: ("General Assistant (via Triage)", prompts.TRIAGED_GENERAL),
}


def select_route(agent_type: str, text: str) -> FallbackRoute:
    """Pick the persona the fallback answers with."""
    if agent_type == "history":
        return FallbackRoute("History Tutor", prompts.FALLBACK_HISTORY, [])
    if agent_type == "math":
        return FallbackRoute("Math Tutor", prompts.FALLBACK_MATH, [])
    if agent_type == "triage":
        name, prompt = _TRIAGE_ROUTES[classify_triage(text)]
        return FallbackRoute(name, prompt, [name])
    return FallbackRoute("Custom Agent", prompts.GENERIC_ASSISTANT, [])


class FallbackLatch:
    """Process-wide switch from the primary tutor path to the fallback."""

    def __init__(self):
        self._set = False
        self._reason: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def is_set(self) -> bool:
        with self._lock:
            return self._set

    @property
    def reason(self) -> Optional[str]:
        with self._lock:
            return self._reason

    def trip(self, reason: str = "") -> bool:
        """Set the latch. Returns True only for the call that flipped it."""
        with self._lock:
            if self._set:
                return False
            self._set = True
            self._reason = reason
            return True

    def reset(self) -> None:
        with self._lock:
            self._set = False
            self._reason = None


class RoutingFallback:
    def __init__(self, client: CompletionClient, settings: Optional[dict] = None):
        self.client = client
        self.settings = settings or {}

    async def run(self, agent_type: str, user_input: str) -> TutorOutcome:
        route = select_route(agent_type, user_input)
        console.print(f"  [cyan]Fallback[/cyan] {agent_type} -> {route.agent_name}")

        messages = [
            ChatMessage(role="system", content=route.system_prompt),
            ChatMessage(role="user", content=user_input),
        ]
        options = CompletionOptions(
            model=self.settings.get("model"),
            temperature=self.settings.get("temperature", 0.7),
            max_output_tokens=self.settings.get("max_tokens", 1000),
        )

        try:
            output = await self.client.complete_text(messages, options)
        except Exception as e:
            message = sanitize_error(str(e)) or type(e).__name__
            console.print(f"  [red]FAILED[/red] Fallback agent: {message}")
            return TutorRunFailure(error=f"Fallback agent failed: {message}")

        return TutorRunResult(
            output=output,
            final_agent=route.agent_name,
            handoffs=list(route.handoffs),
            tools_used=[],
        )
