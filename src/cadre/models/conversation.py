"""Conversation data models."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .task import ToolCall


class UserTurn(BaseModel):
    role: Literal["user"] = "user"
    content: str
    timestamp: str


class AssistantTurn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: Literal["assistant"] = "assistant"
    content: str
    tool_calls: list[ToolCall] = Field(default=[], alias="toolCalls")
    timestamp: str


Turn = Annotated[Union[UserTurn, AssistantTurn], Field(discriminator="role")]


class Conversation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    agent_id: str = Field(alias="agentId")
    created: str
    turns: list[Turn] = []
