"""API route handlers."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from webhook_chat import batch, services, upstream
from webhook_chat.inspector import inspect
from webhook_chat.models import (
    BatchReportRequest,
    BatchRunRequest,
    ChatMessage,
    ChatSession,
    EvaluateRequest,
    MessageRequest,
    ModelSelectRequest,
    PromptOverrideRequest,
    SendMessageResponse,
    SessionListResponse,
    SessionResponse,
    UiStateResponse,
)
from webhook_chat.renderer import view_message
from webhook_chat.store import SessionStore

logger = logging.getLogger(__name__)

MODELS_ERROR = "Failed to load models. Please refresh the page."

router = APIRouter()


def _upstream_failure(error: upstream.UpstreamError, message: str) -> JSONResponse:
    logger.warning(f"[API] {message}: {error}")
    return JSONResponse(status_code=502, content={"error": message, "details": error.details or str(error)})


def _require_session(store: SessionStore, session_id: str) -> ChatSession:
    session = store.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _require_message(session: ChatSession, message_id: str) -> ChatMessage:
    for message in session.messages:
        if message.id == message_id:
            return message
    raise HTTPException(status_code=404, detail="Message not found")


# Upstream proxies


@router.get("/models")
async def list_models():
    """List the models available for conversations."""
    try:
        model_ids = await upstream.fetch_models()
    except upstream.UpstreamError as e:
        return _upstream_failure(e, MODELS_ERROR)
    return {"data": [{"id": model_id} for model_id in model_ids]}


@router.post("/webhook")
async def proxy_webhook(payload: dict[str, Any]):
    """Forward a raw conversation payload to the workflow webhook."""
    try:
        return await upstream.post_webhook(payload)
    except upstream.UpstreamError as e:
        return _upstream_failure(e, "Failed to call webhook")


# Sessions


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(store: SessionStore = Depends(services.get_session_store)):
    return SessionListResponse(sessions=store.list_sessions(), active_session_id=store.active_session_id)


@router.post("/sessions", response_model=SessionResponse)
async def create_session(store: SessionStore = Depends(services.get_session_store)):
    session_id = store.create_session()
    return SessionResponse(session_id=session_id, message="Session created successfully")


@router.get("/sessions/{session_id}", response_model=ChatSession)
async def get_session(session_id: str, store: SessionStore = Depends(services.get_session_store)):
    return _require_session(store, session_id)


@router.delete("/sessions/{session_id}", response_model=SessionResponse)
async def delete_session(session_id: str, store: SessionStore = Depends(services.get_session_store)):
    _require_session(store, session_id)
    store.delete_session(session_id)
    return SessionResponse(session_id=session_id, message="Session deleted successfully")


@router.post("/sessions/{session_id}/select", response_model=SessionResponse)
async def select_session(session_id: str, store: SessionStore = Depends(services.get_session_store)):
    _require_session(store, session_id)
    store.select_session(session_id)
    return SessionResponse(session_id=session_id, message="Session selected")


@router.put("/sessions/{session_id}/model", response_model=ChatSession)
async def set_model(
    session_id: str, request: ModelSelectRequest, store: SessionStore = Depends(services.get_session_store)
):
    _require_session(store, session_id)
    return store.set_model(session_id, request.model_id or None)


@router.put("/sessions/{session_id}/prompts", response_model=ChatSession)
async def set_prompts(
    session_id: str, request: PromptOverrideRequest, store: SessionStore = Depends(services.get_session_store)
):
    """Store prompt overrides; empty values or values equal to the default clear them."""
    _require_session(store, session_id)
    defaults = services.get_default_prompts()
    return store.set_prompts(
        session_id,
        services.normalize_prompt_override(request.intent_system_prompt, defaults["intent_system_prompt"]),
        services.normalize_prompt_override(request.runtime_system_prompt, defaults["runtime_system_prompt"]),
    )


# Messages


@router.post("/sessions/{session_id}/messages", response_model=SendMessageResponse)
async def send_message(
    session_id: str, request: MessageRequest, store: SessionStore = Depends(services.get_session_store)
):
    """Send a user message and return the assistant reply with its display tree."""
    session = _require_session(store, session_id)
    if not session.model_id:
        raise HTTPException(status_code=400, detail="Please select a model first")

    try:
        assistant = await services.send(store, session_id, request.content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except KeyError:
        raise HTTPException(status_code=404, detail="Session not found")

    return SendMessageResponse(
        session_id=session_id,
        assistant_message=assistant,
        view=view_message(assistant).to_dict(),
    )


@router.get("/sessions/{session_id}/messages/{message_id}/view")
async def get_message_view(
    session_id: str, message_id: str, store: SessionStore = Depends(services.get_session_store)
):
    message = _require_message(_require_session(store, session_id), message_id)
    return view_message(message).to_dict()


@router.get("/sessions/{session_id}/messages/{message_id}/inspector")
async def get_message_inspector(
    session_id: str, message_id: str, store: SessionStore = Depends(services.get_session_store)
):
    message = _require_message(_require_session(store, session_id), message_id)
    return inspect(message)


@router.post("/sessions/{session_id}/messages/{message_id}/select", response_model=UiStateResponse)
async def select_message(
    session_id: str,
    message_id: str,
    store: SessionStore = Depends(services.get_session_store),
    ui_state: services.UiState = Depends(services.get_ui_state),
):
    message = _require_message(_require_session(store, session_id), message_id)
    ui_state.select_message(message)
    return UiStateResponse(selected_message_id=ui_state.selected_message_id, inspector_open=ui_state.inspector_open)


@router.get("/ui", response_model=UiStateResponse)
async def get_ui(ui_state: services.UiState = Depends(services.get_ui_state)):
    return UiStateResponse(selected_message_id=ui_state.selected_message_id, inspector_open=ui_state.inspector_open)


@router.get("/prompts/defaults")
async def get_default_prompts():
    return services.get_default_prompts()


# Batch harness


@router.get("/test-cases")
async def list_test_cases():
    try:
        payload = await upstream.fetch_test_cases()
    except upstream.UpstreamError as e:
        return _upstream_failure(e, "Failed to fetch test cases")
    return batch.normalize_test_cases(payload)


@router.post("/batch-executor")
async def run_batch(request: BatchRunRequest):
    payload = batch.build_batch_payload(request.selected_ids, request.manual_ids, request.limit, request.model)
    try:
        results = await upstream.run_batch(payload)
    except upstream.UpstreamError as e:
        return _upstream_failure(e, "Failed to execute batch")
    if not isinstance(results, list):
        results = [results]
    return {"run_id": batch.current_run_id(results), "results": results}


@router.post("/evaluator")
async def evaluate_run(request: EvaluateRequest):
    try:
        return await upstream.evaluate(request.run_id)
    except upstream.UpstreamError as e:
        return _upstream_failure(e, "Failed to evaluate")


@router.post("/batch/report")
async def batch_report(request: BatchReportRequest):
    return batch.build_report(request.results, request.evaluations)
