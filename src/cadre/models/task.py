"""Task run data models: context, analysis, plan, execution and run results."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Complexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ExecutionStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class RunContext(BaseModel):
    """Context bag shared by every pipeline stage and every tool.

    Unknown keys are kept so new tools can read fields this model
    does not name yet.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    query: Optional[str] = None
    file_path: Optional[str] = Field(default=None, alias="filePath")
    action: Optional[str] = None
    command: Optional[str] = None
    max_results: Optional[int] = Field(default=None, alias="maxResults")
    parameters: dict[str, Any] = {}
    from_agent: Optional[str] = Field(default=None, alias="fromAgent")
    communication_type: Optional[str] = Field(default=None, alias="communicationType")

    def serialize(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, exclude_defaults=True)


class Analysis(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    task_type: str = Field(alias="taskType")
    required_tools: list[str] = Field(default=[], alias="requiredTools")
    complexity: Complexity = Complexity.MEDIUM
    estimated_steps: list[str] = Field(default=[], alias="estimatedSteps")


class ParsedAnalysis(Analysis):
    """Analysis decoded from the completion output."""

    kind: Literal["parsed"] = "parsed"


class FallbackAnalysis(Analysis):
    """Deterministic analysis used when the completion output was unusable."""

    kind: Literal["fallback"] = "fallback"
    raw_analysis: Optional[str] = Field(default=None, alias="rawAnalysis")
    reason: str = ""


AnalysisOutcome = Annotated[Union[ParsedAnalysis, FallbackAnalysis], Field(discriminator="kind")]


class Plan(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    steps: str
    required_tools: list[str] = Field(default=[], alias="requiredTools")
    complexity: Complexity = Complexity.MEDIUM
    fallback: bool = False
    error: Optional[str] = None


class ToolCall(BaseModel):
    tool: str
    result: dict[str, Any]


class Execution(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    results: list[Any] = []
    tool_calls: list[ToolCall] = Field(default=[], alias="toolCalls")
    status: ExecutionStatus = ExecutionStatus.COMPLETED
    error: Optional[str] = None


class TaskRunResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: Literal[True] = True
    agent_id: str = Field(alias="agentId")
    agent_name: str = Field(alias="agentName")
    task: str
    conversation_id: str = Field(alias="conversationId")
    analysis: AnalysisOutcome
    plan: Plan
    execution: Execution
    response: str
    tool_calls: list[ToolCall] = Field(default=[], alias="toolCalls")
    timestamp: str


class TaskRunFailure(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: Literal[False] = False
    error: str
    error_type: str = Field(default="CadreError", alias="errorType")
    agent_id: str = Field(alias="agentId")
    task: str


RunOutcome = Union[TaskRunResult, TaskRunFailure]


class MessageExchange(BaseModel):
    """Result of one agent messaging another through the pipeline."""

    model_config = ConfigDict(populate_by_name=True)

    success: Literal[True] = True
    sender: str = Field(alias="from")
    recipient: str = Field(alias="to")
    message: str
    response: str
    conversation_id: str = Field(alias="conversationId")
    timestamp: str


class MessageFailure(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: Literal[False] = False
    error: str
    error_type: str = Field(default="CadreError", alias="errorType")
    from_agent_id: str = Field(alias="fromAgentId")
    to_agent_id: str = Field(alias="toAgentId")
