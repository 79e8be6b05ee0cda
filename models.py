from dataclasses import dataclass, field
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional

from config import MAX_MESSAGE_LENGTH


class ChatRequest(BaseModel):
    message: str = Field(..., max_length=MAX_MESSAGE_LENGTH, description="User message")
    session_id: Optional[str] = Field(None, description="Session key; minted when absent")

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be empty")
        return v


class ChatResponse(BaseModel):
    response: str
    session_id: str
    is_complete: bool
    requires_input: bool


class StreamChunk(BaseModel):
    content: str
    session_id: str
    is_complete: bool
    requires_input: bool


@dataclass(frozen=True)
class AgentResponse:
    content: str
    type: str = "response"
    is_partial: bool = False
    is_task_complete: bool = False
    requires_user_input: bool = False
    agent_name: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @staticmethod
    def final(content: str, agent_name: str, metadata: Optional[Dict[str, Any]] = None) -> "AgentResponse":
        return AgentResponse(content=content, is_task_complete=True, agent_name=agent_name, metadata=metadata)

    @staticmethod
    def error(content: str, agent_name: str) -> "AgentResponse":
        return AgentResponse(content=content, type="error", is_task_complete=True, agent_name=agent_name)


@dataclass(frozen=True)
class ToolCallRequest:
    id: str
    name: str
    arguments: str


@dataclass(frozen=True)
class CompletionResult:
    content: str = ""
    tool_calls: List[ToolCallRequest] = field(default_factory=list)
