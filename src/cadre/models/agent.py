"""Agent data models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AgentDefinition(BaseModel):
    """Caller-supplied input to ``AgentRegistry.create``."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    description: str = ""
    capabilities: list[str] = []
    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")
    tools: list[str] = []
    personality: Optional[str] = None
    memory: bool = True
    max_tokens: Optional[int] = Field(default=None, alias="maxTokens")
    temperature: Optional[float] = None


class Agent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    capabilities: list[str] = []
    system_prompt: str = Field(alias="systemPrompt")
    tools: list[str] = []
    personality: str = "helpful"
    memory: bool = True
    max_tokens: int = Field(default=2000, alias="maxTokens")
    temperature: float = 0.7
    status: str = "active"
    created: str
    updated: Optional[str] = None
    conversations: list[str] = []

    def summary(self) -> "AgentSummary":
        return AgentSummary(
            id=self.id,
            name=self.name,
            description=self.description,
            capabilities=list(self.capabilities),
            tools=list(self.tools),
            status=self.status,
            created=self.created,
            updated=self.updated,
            conversation_count=len(self.conversations),
        )


class AgentSummary(BaseModel):
    """Public agent record; omits the prompt and generation parameters."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    capabilities: list[str] = []
    tools: list[str] = []
    status: str = "active"
    created: str
    updated: Optional[str] = None
    conversation_count: int = Field(default=0, alias="conversationCount")


class AgentListing(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    agents: list[AgentSummary] = []
    total: int = 0
    available_tools: list[str] = Field(default=[], alias="availableTools")
