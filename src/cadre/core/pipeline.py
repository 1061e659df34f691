"""Task pipeline: Analyze -> Plan -> Execute -> Respond.

Stage failures are recovered in place with deterministic substitutes, so a
run that resolves its agent always completes. Only lookup/validation
failures, deadline expiry and unexpected faults surface, and those come back
as ``TaskRunFailure`` records rather than exceptions.
"""

from __future__ import annotations

import asyncio
import json
import re
import time
from typing import Any, Mapping, Optional, Union

from rich.console import Console

from ..models.agent import Agent
from ..models.provider import ChatMessage, CompletionOptions
from ..models.task import (
    Complexity,
    Execution,
    ExecutionStatus,
    FallbackAnalysis,
    MessageExchange,
    MessageFailure,
    ParsedAnalysis,
    Plan,
    RunContext,
    RunOutcome,
    TaskRunFailure,
    TaskRunResult,
    ToolCall,
)
from ..providers.base import CompletionClient
from ..tools.base import ToolRegistry
from ..utils.sanitize import sanitize_error
from ..utils.timestamps import now_iso
from . import prompts
from .conversations import ConversationStore
from .errors import CadreError, ParseError, RunTimeoutError, ValidationError, error_type
from .registry import AgentRegistry

console = Console(stderr=True)

FALLBACK_STEPS = ["Analyze task", "Execute", "Respond"]

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def coerce_context(context: Union[RunContext, Mapping[str, Any], None]) -> RunContext:
    """Copy the caller's context into a fresh ``RunContext``."""
    if context is None:
        return RunContext()
    if isinstance(context, RunContext):
        return context.model_copy(deep=True)
    return RunContext.model_validate(dict(context))


def _extract_json_object(text: str) -> dict:
    candidate = text.strip()
    fenced = _FENCE.search(candidate)
    if fenced:
        candidate = fenced.group(1).strip()
    start, end = candidate.find("{"), candidate.rfind("}")
    if start == -1 or end <= start:
        raise ParseError("No JSON object in completion output")
    try:
        data = json.loads(candidate[start : end + 1])
    except ValueError as e:
        raise ParseError(f"Invalid JSON in completion output: {e}") from e
    if not isinstance(data, dict):
        raise ParseError("Completion output is not a JSON object")
    return data


def _step_text(step: Any) -> str:
    if isinstance(step, str):
        return step
    if isinstance(step, dict):
        for key in ("description", "step", "action", "name"):
            if isinstance(step.get(key), str):
                return step[key]
    return json.dumps(step, default=str)


def parse_analysis(text: str) -> ParsedAnalysis:
    """Decode an analysis completion. Raises ``ParseError`` on any mismatch."""
    data = _extract_json_object(text)

    task_type = data.get("taskType")
    if not isinstance(task_type, str) or not task_type.strip():
        raise ParseError("Analysis is missing taskType")

    tools = data.get("requiredTools")
    if not isinstance(tools, list) or not all(isinstance(t, str) for t in tools):
        raise ParseError("Analysis requiredTools must be a list of tool names")

    complexity = str(data.get("complexity", "medium")).strip().lower()
    if complexity not in {c.value for c in Complexity}:
        raise ParseError(f"Unknown complexity label: {complexity}")

    steps = data.get("estimatedSteps") or []
    if not isinstance(steps, list):
        raise ParseError("Analysis estimatedSteps must be a list")

    return ParsedAnalysis(
        task_type=task_type.strip(),
        required_tools=tools,
        complexity=complexity,
        estimated_steps=[_step_text(s) for s in steps],
    )


def fallback_analysis(agent: Agent, reason: str, raw: Optional[str] = None) -> FallbackAnalysis:
    return FallbackAnalysis(
        task_type="general",
        required_tools=list(agent.tools),
        complexity=Complexity.MEDIUM,
        estimated_steps=list(FALLBACK_STEPS),
        raw_analysis=raw,
        reason=reason,
    )


def _as_text(value: Any) -> str:
    """Caller-supplied id or task text, made safe for a failure record."""
    if isinstance(value, str):
        return value
    return "" if value is None else str(value)


def render_results(results: list[Any]) -> str:
    """Join tool results into one excerpt for the Respond stage."""
    return "\n\n".join(
        json.dumps(r, indent=2, default=str, ensure_ascii=False)
        if isinstance(r, (dict, list))
        else str(r)
        for r in results
    )


class TaskPipeline:
    def __init__(
        self,
        agents: AgentRegistry,
        tools: ToolRegistry,
        client: CompletionClient,
        conversations: ConversationStore,
        settings: Optional[dict] = None,
    ):
        self.agents = agents
        self.tools = tools
        self.client = client
        self.conversations = conversations
        self.settings = settings or {}

    # -- stages --------------------------------------------------------------

    async def analyze(
        self, agent: Agent, task: str, context: RunContext
    ) -> Union[ParsedAnalysis, FallbackAnalysis]:
        messages = [
            ChatMessage(role="system", content=prompts.analysis_system(agent.system_prompt, agent.tools)),
            ChatMessage(role="user", content=prompts.analysis_user(task, context.serialize())),
        ]
        options = CompletionOptions(
            temperature=self.settings.get("analysis_temperature", 0.3),
            max_output_tokens=self.settings.get("analysis_max_tokens", 500),
        )

        try:
            raw = await self.client.complete_text(messages, options)
        except Exception as e:
            return fallback_analysis(agent, reason=sanitize_error(str(e)) or type(e).__name__)

        try:
            return parse_analysis(raw)
        except ParseError as e:
            return fallback_analysis(agent, reason=str(e), raw=raw)

    async def plan(
        self,
        agent: Agent,
        task: str,
        analysis: Union[ParsedAnalysis, FallbackAnalysis],
    ) -> Plan:
        summary = analysis.model_dump(
            by_alias=True, include={"task_type", "required_tools", "complexity", "estimated_steps"}
        )
        messages = [
            ChatMessage(role="system", content=prompts.plan_system(agent.system_prompt)),
            ChatMessage(role="user", content=prompts.plan_user(task, summary)),
        ]
        options = CompletionOptions(
            temperature=self.settings.get("plan_temperature", 0.3),
            max_output_tokens=self.settings.get("plan_max_tokens", 800),
        )

        try:
            steps = await self.client.complete_text(messages, options)
        except Exception as e:
            return Plan(
                steps=prompts.fallback_plan(task),
                required_tools=list(analysis.required_tools),
                complexity=analysis.complexity,
                fallback=True,
                error=sanitize_error(str(e)) or type(e).__name__,
            )

        return Plan(
            steps=steps,
            required_tools=list(analysis.required_tools),
            complexity=analysis.complexity,
        )

    async def execute(self, plan: Plan, context: RunContext) -> Execution:
        """Dispatch the plan's tools one after another.

        Names with no registered capability are skipped. A tool that reports
        failure is still a completed dispatch.
        """
        try:
            results: list[Any] = []
            tool_calls: list[ToolCall] = []
            for name in plan.required_tools:
                if name not in self.tools:
                    continue
                result = await self.tools.dispatch(name, context)
                results.append(result)
                tool_calls.append(ToolCall(tool=name, result=result))
        except Exception as e:
            return Execution(
                results=[],
                tool_calls=[],
                status=ExecutionStatus.FAILED,
                error=str(e) or type(e).__name__,
            )
        return Execution(results=results, tool_calls=tool_calls, status=ExecutionStatus.COMPLETED)

    async def respond(self, agent: Agent, task: str, execution: Execution) -> str:
        messages = [
            ChatMessage(role="system", content=prompts.response_system(agent.system_prompt)),
            ChatMessage(role="user", content=prompts.response_user(task, render_results(execution.results))),
        ]
        options = CompletionOptions(temperature=agent.temperature, max_output_tokens=agent.max_tokens)

        try:
            text = await self.client.complete_text(messages, options)
        except Exception as e:
            return prompts.apology(task, sanitize_error(str(e)) or type(e).__name__)
        return text if text.strip() else prompts.apology(task, "empty response")

    async def process(self, agent: Agent, task: str, context: RunContext) -> TaskRunResult:
        analysis = await self.analyze(agent, task, context)
        if isinstance(analysis, FallbackAnalysis):
            console.print(f"  [yellow]WARN[/yellow] {agent.name}: analysis fallback ({analysis.reason})")

        plan = await self.plan(agent, task, analysis)
        if plan.fallback:
            console.print(f"  [yellow]WARN[/yellow] {agent.name}: plan fallback ({plan.error})")

        execution = await self.execute(plan, context)
        response = await self.respond(agent, task, execution)

        return TaskRunResult(
            agent_id=agent.id,
            agent_name=agent.name,
            task=task,
            conversation_id=context.conversation_id or "",
            analysis=analysis,
            plan=plan,
            execution=execution,
            response=response,
            tool_calls=execution.tool_calls,
            timestamp=now_iso(),
        )

    # -- entry points --------------------------------------------------------

    def _deadline(self, timeout: Optional[float]) -> Optional[float]:
        value = timeout if timeout is not None else self.settings.get("run_timeout_seconds")
        if value is None or value <= 0:
            return None
        return float(value)

    async def run(
        self,
        agent_id: str,
        task: str,
        context: Union[RunContext, Mapping[str, Any], None] = None,
        timeout: Optional[float] = None,
    ) -> RunOutcome:
        """Run ``task`` through an agent. Never raises."""
        try:
            agent = self.agents.get(agent_id)
            if not isinstance(task, str) or not task.strip():
                raise ValidationError("Task text is required")
            ctx = coerce_context(context)
        except CadreError as e:
            console.print(f"  [red]FAILED[/red] {e}")
            return TaskRunFailure(
                error=str(e), error_type=e.code, agent_id=_as_text(agent_id), task=_as_text(task)
            )
        except Exception as e:
            console.print(f"  [red]FAILED[/red] Invalid run context: {e}")
            return TaskRunFailure(
                error=f"Invalid run context: {e}",
                error_type="ValidationError",
                agent_id=_as_text(agent_id),
                task=_as_text(task),
            )

        conversation = self.conversations.resolve(ctx.conversation_id, agent.id)
        ctx.conversation_id = conversation.id
        self.agents.record_conversation(agent.id, conversation.id)

        console.print(f"  [cyan]Running {agent.name}...[/cyan]")
        start = time.time()
        deadline = self._deadline(timeout)

        try:
            result = await asyncio.wait_for(self.process(agent, task, ctx), timeout=deadline)
        except asyncio.TimeoutError:
            err: Exception = RunTimeoutError(f"Run exceeded its {deadline:g}s deadline")
        except Exception as e:
            err = e
        else:
            self.conversations.append_exchange(conversation.id, task, result.response, result.tool_calls)
            console.print(
                f"  [green]OK[/green] {agent.name}: {len(result.tool_calls)} tool calls "
                f"in {round(time.time() - start, 1)}s"
            )
            return result

        message = sanitize_error(str(err)) or type(err).__name__
        self.conversations.append_exchange(conversation.id, task, f"Error: {message}", [])
        console.print(f"  [red]FAILED[/red] {agent.name}: {message}")
        return TaskRunFailure(error=message, error_type=error_type(err), agent_id=agent.id, task=task)

    async def communicate(
        self,
        from_agent_id: str,
        to_agent_id: str,
        message: str,
        context: Union[RunContext, Mapping[str, Any], None] = None,
    ) -> Union[MessageExchange, MessageFailure]:
        """Send ``message`` from one agent to another and return the reply."""
        try:
            sender = self.agents.get(from_agent_id)
            recipient = self.agents.get(to_agent_id)
            ctx = coerce_context(context)
        except CadreError as e:
            return MessageFailure(
                error=str(e),
                error_type=e.code,
                from_agent_id=_as_text(from_agent_id),
                to_agent_id=_as_text(to_agent_id),
            )
        except Exception as e:
            return MessageFailure(
                error=f"Invalid message context: {e}",
                error_type="ValidationError",
                from_agent_id=_as_text(from_agent_id),
                to_agent_id=_as_text(to_agent_id),
            )

        console.print(f"  [cyan]{sender.name} -> {recipient.name}[/cyan]")
        ctx.from_agent = sender.name
        ctx.communication_type = "agent-to-agent"

        outcome = await self.run(recipient.id, message, ctx)
        if not outcome.success:
            return MessageFailure(
                error=outcome.error,
                error_type=outcome.error_type,
                from_agent_id=sender.id,
                to_agent_id=recipient.id,
            )
        return MessageExchange(
            sender=sender.name,
            recipient=recipient.name,
            message=message,
            response=outcome.response,
            conversation_id=outcome.conversation_id,
            timestamp=now_iso(),
        )

    def status(self) -> dict[str, Any]:
        return {
            "name": "cadre",
            "agentCount": len(self.agents),
            "conversationCount": len(self.conversations),
            "availableTools": self.tools.names(),
            "features": [
                "Custom agent creation",
                "Task analysis and planning",
                "Tool integration",
                "Agent-to-agent communication",
                "Conversation management",
            ],
        }
