"""Tutor agent data models (primary handoff runner and routing fallback)."""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TutorAgent(BaseModel):
    key: str
    name: str
    instructions: str
    model: Optional[str] = None
    handoffs: list[str] = []
    kind: Literal["predefined", "custom"] = "predefined"


class TutorRunResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: Literal[True] = True
    output: str
    final_agent: str = Field(alias="finalAgent")
    handoffs: list[str] = []
    tools_used: list[str] = Field(default=[], alias="toolsUsed")


class TutorRunFailure(BaseModel):
    success: Literal[False] = False
    error: str


TutorOutcome = Union[TutorRunResult, TutorRunFailure]
