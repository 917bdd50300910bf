"""Pydantic models for persisted chat state and request/response validation."""

from typing import Any, Literal

from pydantic import BaseModel, Field

Role = Literal["user", "assistant"]
MessageStatus = Literal["pending", "settled", "failed"]

DEFAULT_SESSION_TITLE = "New Chat"


class ChatMessage(BaseModel):
    """One turn in a conversation."""

    id: str
    role: Role
    text: str
    timestamp: int
    tool_response: list[Any] | None = None
    intent_analyzer: Any = None
    runtime_prompt: Any = None
    error: str | None = None
    status: MessageStatus = "settled"


class ChatSession(BaseModel):
    """One independent conversation thread."""

    id: str
    title: str = DEFAULT_SESSION_TITLE
    model_id: str | None = None
    current_agent: str | None = None
    messages: list[ChatMessage] = Field(default_factory=list)
    intent_system_prompt: str | None = None
    runtime_system_prompt: str | None = None
    created_at: int
    updated_at: int


class SessionState(BaseModel):
    """The whole session collection, persisted as a single blob."""

    sessions: list[ChatSession] = Field(default_factory=list)
    active_session_id: str | None = None


class ConversationMessage(BaseModel):
    """One role/content pair in a follow-up conversation."""

    role: Role
    content: str


class FirstMessageRequest(BaseModel):
    """Webhook body for the first turn of a session."""

    first_message: str
    session_id: str
    model: str | None


class FollowUpRequest(BaseModel):
    """Webhook body for every later turn; carries the full conversation."""

    first_message: None = None
    current_agent: str | None
    session_id: str
    model: str | None
    messages: list[ConversationMessage]
    intent_system_prompt: str | None = None
    runtime_system_prompt: str | None = None

    def to_payload(self) -> dict:
        """Dump for the wire; prompt overrides are omitted when unset."""
        payload = self.model_dump()
        for key in ("intent_system_prompt", "runtime_system_prompt"):
            if payload[key] is None:
                del payload[key]
        return payload


# API bodies


class MessageRequest(BaseModel):
    """Request model for sending a message."""

    content: str


class ModelSelectRequest(BaseModel):
    """Request model for choosing a session model."""

    model_id: str | None


class PromptOverrideRequest(BaseModel):
    """Request model for per-session prompt overrides."""

    intent_system_prompt: str | None = None
    runtime_system_prompt: str | None = None


class SessionListResponse(BaseModel):
    """Response model for listing sessions."""

    sessions: list[ChatSession]
    active_session_id: str | None


class SessionResponse(BaseModel):
    """Response model for session operations."""

    session_id: str
    message: str


class SendMessageResponse(BaseModel):
    """Response model for a sent message and its display tree."""

    session_id: str
    assistant_message: ChatMessage
    view: dict


class UiStateResponse(BaseModel):
    """Response model for the message selection state."""

    selected_message_id: str | None
    inspector_open: bool


class BatchRunRequest(BaseModel):
    """Request model for starting a batch run."""

    selected_ids: list[str] = Field(default_factory=list)
    manual_ids: str = ""
    limit: int | str | None = 5
    model: str | None = None


class EvaluateRequest(BaseModel):
    """Request model for evaluating a batch run."""

    run_id: str


class BatchReportRequest(BaseModel):
    """Request model for building a batch report."""

    results: list[dict[str, Any]]
    evaluations: list[dict[str, Any]] = Field(default_factory=list)
