"""Prompt templates for agents and the pipeline stages."""

from __future__ import annotations

import json
from typing import Any


def default_system_prompt(name: str, description: str, capabilities: list[str]) -> str:
    """System prompt for agents created without one."""
    intro = description or "You are designed to be helpful and efficient."
    caps = ", ".join(capabilities) if capabilities else "general assistance"
    return (
        f"You are {name}, an AI agent. {intro}\n"
        f"\n"
        f"Your capabilities include: {caps}.\n"
        f"\n"
        f"You should:\n"
        f"1. Think step by step about each task\n"
        f"2. Use available tools when appropriate\n"
        f"3. Provide clear, helpful responses\n"
        f"4. Be accurate and reliable\n"
        f"5. Ask for clarification when needed\n"
        f"\n"
        f"Always maintain a professional and helpful demeanor while completing tasks efficiently."
    )


def analysis_system(system_prompt: str, tools: list[str]) -> str:
    available = ", ".join(tools) if tools else "none"
    return (
        f"{system_prompt}\n\n"
        f"You are analyzing a task to determine what actions are needed. "
        f"Available tools: {available}"
    )


def analysis_user(task: str, context: dict[str, Any]) -> str:
    return (
        f'Analyze this task and determine what tools or actions are needed: "{task}"\n\n'
        f"Context: {json.dumps(context, default=str)}\n\n"
        f"Respond with only a JSON object containing: "
        f'{{ "taskType": "...", "requiredTools": [...], '
        f'"complexity": "low/medium/high", "estimatedSteps": [...] }}'
    )


def plan_system(system_prompt: str) -> str:
    return (
        f"{system_prompt}\n\n"
        f"You are creating an execution plan. Break down the task into clear, actionable steps."
    )


def plan_user(task: str, analysis: dict[str, Any]) -> str:
    return (
        f'Create an execution plan for: "{task}"\n\n'
        f"Task Analysis: {json.dumps(analysis, default=str)}\n\n"
        f"Create a step-by-step plan with specific actions and tools to use."
    )


def fallback_plan(task: str) -> str:
    return f'1. Analyze the task: "{task}"\n2. Execute appropriate actions\n3. Provide results'


def response_system(system_prompt: str) -> str:
    return (
        f"{system_prompt}\n\n"
        f"You are providing a final response based on the execution results. "
        f"Be helpful, accurate, and concise."
    )


def response_user(task: str, excerpt: str) -> str:
    return (
        f'Task: "{task}"\n\n'
        f"Execution Results:\n{excerpt or '(no tool results)'}\n\n"
        f"Provide a comprehensive response to the user based on these results."
    )


def apology(task: str, reason: str) -> str:
    return (
        f'I completed the task "{task}" but encountered an error generating '
        f"the response: {reason}"
    )


# ---------------------------------------------------------------------------
# Tutor agents
# ---------------------------------------------------------------------------

HISTORY_TUTOR = (
    "You provide assistance with historical queries. Explain important events and "
    "context clearly. You have access to a wealth of historical knowledge and can "
    "provide interesting historical facts."
)

MATH_TUTOR = (
    "You provide help with math problems. Explain your reasoning at each step and "
    "include examples. You can perform calculations and help solve mathematical problems."
)

TRIAGE_AGENT = (
    "You determine which agent to use based on the user's question. Route history "
    "questions to the History Tutor and math questions to the Math Tutor. For general "
    "questions, provide a direct response."
)


def handoff_user(user_input: str, targets: dict[str, str]) -> str:
    options = "\n".join(f"- {key}: {name}" for key, name in targets.items())
    return (
        f"Question: {user_input}\n\n"
        f"Available specialists:\n{options}\n\n"
        f'Respond with only a JSON object: {{"handoff": "<specialist key or none>"}}'
    )


FALLBACK_HISTORY = (
    "You are an expert History Tutor. Provide detailed, accurate information about "
    "historical events, dates, people, and context. Explain things clearly and include "
    "interesting historical facts when relevant."
)

FALLBACK_MATH = (
    "You are an expert Math Tutor. Help solve math problems step by step. Show your "
    "work clearly, explain your reasoning, and provide examples when helpful. You can "
    "handle algebra, geometry, calculus, and other mathematical topics."
)

TRIAGED_HISTORY = (
    "You are a History Tutor. The Triage Agent has routed this history question to you. "
    "Provide detailed, accurate information about historical events, dates, people, and context."
)

TRIAGED_MATH = (
    "You are a Math Tutor. The Triage Agent has routed this math question to you. Help "
    "solve the problem step by step, show your work clearly, and explain your reasoning."
)

TRIAGED_GENERAL = (
    "You are a helpful general assistant. The Triage Agent determined this question "
    "doesn't clearly fit history or math categories, so provide a helpful general "
    "response. If the question seems to relate to history or math, mention that and "
    "provide appropriate guidance."
)

GENERIC_ASSISTANT = (
    "You are a helpful AI assistant. Provide accurate, detailed responses to user questions."
)
