"""Conversation orchestration: request shaping, dispatch and response folding."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from webhook_chat import upstream
from webhook_chat.config import load_default_prompts
from webhook_chat.database import SqliteSessionRepository
from webhook_chat.extractor import as_steps
from webhook_chat.formatting import strip_think
from webhook_chat.models import (
    ChatMessage,
    ChatSession,
    ConversationMessage,
    FirstMessageRequest,
    FollowUpRequest,
)
from webhook_chat.store import SessionStore, UiSignal, new_id

logger = logging.getLogger(__name__)

ERROR_TEXT = "Error processing request"
TOOL_FALLBACK_TEXT = "Retrieved data from tool call"
DEFAULT_TEXT = "Response processed successfully"

# Upstream key aliases, newest contract first. Every alias maps to one internal field.
RESPONSE_ALIASES = {
    "tool_response": ("Tool_Request_Response", "Tool_Call_Response"),
    "intent_analyzer": ("Intent_Analyzer_Response",),
    "runtime_prompt": ("RunTime_Prompt_Response", "Runtime_Prompt_Response"),
}

Dispatch = Callable[[dict], Awaitable[Any]]

_store: SessionStore | None = None
_default_prompts: dict[str, str] | None = None


class UiState:
    """Selected message and inspector visibility, driven by store signals."""

    def __init__(self):
        self.selected_message_id: str | None = None
        self.inspector_open = False

    def handle_signal(self, signal: UiSignal, message_id: str | None = None) -> None:
        if signal is UiSignal.RESET_SELECTION:
            self.selected_message_id = None
            self.inspector_open = False
        elif signal is UiSignal.FOCUS_MESSAGE:
            self.selected_message_id = message_id
            self.inspector_open = True

    def select_message(self, message: ChatMessage) -> None:
        self.selected_message_id = message.id
        if message.intent_analyzer or message.runtime_prompt:
            self.inspector_open = True


ui_state = UiState()


def get_session_store() -> SessionStore:
    """Get or create the session store singleton."""
    global _store
    if _store is None:
        _store = SessionStore(SqliteSessionRepository(), on_signal=ui_state.handle_signal)
    return _store


def get_ui_state() -> UiState:
    return ui_state


def get_default_prompts() -> dict[str, str]:
    """Get cached default system prompts."""
    global _default_prompts
    if _default_prompts is None:
        _default_prompts = load_default_prompts()
    return _default_prompts


def normalize_prompt_override(value: str | None, default: str) -> str | None:
    """Trimmed override, or None when empty or identical to the default."""
    if value is None:
        return None
    trimmed = value.strip()
    if not trimmed or trimmed == default.strip():
        return None
    return trimmed


@dataclass
class WebhookResult:
    tool_response: list | None = None
    intent_analyzer: Any = None
    runtime_prompt: Any = None


def _first_alias(item: dict, aliases: tuple[str, ...]) -> Any:
    for alias in aliases:
        if item.get(alias) is not None:
            return item[alias]
    return None


def unwrap_tool_response(value: Any) -> list | None:
    """List form of a tool response, with {"json": ...} envelopes opened."""
    if value is None:
        return None
    items = value if isinstance(value, list) else [value]
    return [item["json"] if isinstance(item, dict) and "json" in item else item for item in items]


def normalize_response(raw: Any) -> WebhookResult:
    """Map whichever historical key names the payload uses onto WebhookResult."""
    item = raw[0] if isinstance(raw, list) and raw else raw
    if not isinstance(item, dict):
        return WebhookResult()
    tool_response = _first_alias(item, RESPONSE_ALIASES["tool_response"])
    return WebhookResult(
        tool_response=unwrap_tool_response(tool_response),
        intent_analyzer=_first_alias(item, RESPONSE_ALIASES["intent_analyzer"]),
        runtime_prompt=_first_alias(item, RESPONSE_ALIASES["runtime_prompt"]),
    )


def extract_agent(intent_analyzer: Any, runtime_prompt: Any) -> str | None:
    """Agent selected by the intent analyzer, else the first handoff tool call."""
    if isinstance(intent_analyzer, dict):
        selected = intent_analyzer.get("MTX_SELECTED_AGENT")
        if isinstance(selected, str) and selected:
            return selected
    for step in as_steps(runtime_prompt):
        if not isinstance(step, dict):
            continue
        calls = step.get("tool_calls")
        if isinstance(calls, list) and calls and isinstance(calls[0], dict):
            function = calls[0].get("function")
            if isinstance(function, dict) and isinstance(function.get("name"), str) and function["name"]:
                return function["name"]
    return None


def _non_empty(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def extract_assistant_text(intent_analyzer: Any, runtime_prompt: Any, tool_response: list | None) -> str:
    steps = [step for step in as_steps(runtime_prompt) if isinstance(step, dict)]

    for step in steps:
        if _non_empty(step.get("content")):
            return step["content"]
    for step in steps:
        message = step.get("message")
        if isinstance(message, dict) and _non_empty(message.get("content")):
            return message["content"]
    if isinstance(intent_analyzer, dict) and _non_empty(intent_analyzer.get("MTX_REASONING")):
        return intent_analyzer["MTX_REASONING"]
    # Single-object payloads from the first-message contract.
    if isinstance(runtime_prompt, dict):
        for key in ("response", "message"):
            if _non_empty(runtime_prompt.get(key)):
                return runtime_prompt[key]
    if tool_response:
        return TOOL_FALLBACK_TEXT
    return DEFAULT_TEXT


def extract_tool_error(tool_response: list | None) -> str | None:
    """The `error` of a single-object tool response, stringified."""
    if not tool_response or len(tool_response) != 1 or not isinstance(tool_response[0], dict):
        return None
    error = tool_response[0].get("error")
    if error is None:
        return None
    return error if isinstance(error, str) else json.dumps(error, ensure_ascii=False)


def conversation_content(message: ChatMessage) -> str:
    """Message text as sent upstream; tool results ride along as a fenced json block."""
    if message.role == "assistant" and message.tool_response:
        tool_json = json.dumps(message.tool_response, indent=2, ensure_ascii=False)
        return f"{message.text}\n\n```json\n{tool_json}\n```"
    return message.text


def build_request(session: ChatSession, user_message: ChatMessage) -> dict:
    """First-message body for a session's opening turn, follow-up body otherwise."""
    prior = [message for message in session.messages if message.id != user_message.id]
    if not prior:
        return FirstMessageRequest(
            first_message=user_message.text,
            session_id=session.id,
            model=session.model_id,
        ).model_dump()

    history = prior + [user_message]
    return FollowUpRequest(
        current_agent=session.current_agent,
        session_id=session.id,
        model=session.model_id,
        messages=[ConversationMessage(role=m.role, content=conversation_content(m)) for m in history],
        intent_system_prompt=session.intent_system_prompt,
        runtime_system_prompt=session.runtime_system_prompt,
    ).to_payload()


def fold_response(raw: Any, clock: Callable[[], int]) -> tuple[ChatMessage, str | None]:
    """Build the assistant message and the agent revealed by a webhook payload."""
    result = normalize_response(raw)
    message = ChatMessage(
        id=new_id(),
        role="assistant",
        text=extract_assistant_text(result.intent_analyzer, result.runtime_prompt, result.tool_response),
        timestamp=clock(),
        tool_response=result.tool_response,
        intent_analyzer=result.intent_analyzer,
        runtime_prompt=result.runtime_prompt,
        error=extract_tool_error(result.tool_response),
    )
    return message, extract_agent(result.intent_analyzer, result.runtime_prompt)


async def send(
    store: SessionStore,
    session_id: str,
    user_text: str,
    dispatch: Dispatch | None = None,
) -> ChatMessage:
    """Send one user message and fold the reply into the originating session.

    Transport failures do not raise: they become an assistant message with
    `error` set. Raises KeyError for an unknown session and ValueError for
    a message with no visible text.
    """
    session = store.get_session(session_id)
    if session is None:
        raise KeyError(session_id)
    text = strip_think(user_text)
    if not text:
        raise ValueError("Message is empty")

    user_message = ChatMessage(id=new_id(), role="user", text=text, timestamp=store.clock(), status="pending")
    store.append_message(session_id, user_message)
    payload = build_request(store.get_session(session_id), user_message)
    dispatch = dispatch or upstream.post_webhook

    try:
        raw = await dispatch(payload)
    except upstream.UpstreamError as e:
        logger.error(f"[WEBHOOK] Send failed for session {session_id}: {e}")
        store.set_message_status(session_id, user_message.id, "failed")
        assistant = ChatMessage(
            id=new_id(),
            role="assistant",
            text=ERROR_TEXT,
            timestamp=store.clock(),
            error=str(e),
        )
        store.append_message(session_id, assistant)
        return assistant

    assistant, agent = fold_response(raw, store.clock)
    store.set_message_status(session_id, user_message.id, "settled")
    store.append_message(session_id, assistant, new_agent=agent)
    if agent:
        logger.info(f"[WEBHOOK] Session {session_id} handled by {agent}")
    if store.active_session_id == session_id:
        store.signal(UiSignal.FOCUS_MESSAGE, assistant.id)
    return assistant
