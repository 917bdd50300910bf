"""HTTP clients for the upstream workflow, model list and batch providers."""

import logging
from typing import Any

import httpx
from openai import AsyncOpenAI, OpenAIError

from webhook_chat.config import (
    BATCH_WEBHOOK_URL,
    EVALUATOR_WEBHOOK_URL,
    MODELS_API_KEY,
    MODELS_API_URL,
    TEST_CASES_URL,
    UPSTREAM_TIMEOUT_SECONDS,
    WEBHOOK_URL,
)

logger = logging.getLogger(__name__)

_models_client: AsyncOpenAI | None = None


class UpstreamError(Exception):
    """Transport or protocol failure talking to an upstream provider."""

    def __init__(self, message: str, status_code: int | None = None, details: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def get_models_client() -> AsyncOpenAI:
    """Get or create the model list client singleton."""
    global _models_client
    if _models_client is None:
        # AsyncOpenAI rejects an empty key; the models listing accepts any.
        _models_client = AsyncOpenAI(api_key=MODELS_API_KEY or "unused", base_url=MODELS_API_URL)
    return _models_client


async def fetch_models(client: AsyncOpenAI | None = None) -> list[str]:
    """Return the ids of the models the provider offers."""
    client = client or get_models_client()
    try:
        page = await client.models.list()
    except OpenAIError as e:
        logger.error(f"[MODELS] Failed to list models: {e}")
        raise UpstreamError("Failed to fetch models", details=str(e)) from e
    return [model.id for model in page.data]


def _decode(response: httpx.Response, label: str) -> Any:
    if response.is_error:
        logger.error(f"[{label}] HTTP {response.status_code}: {response.text[:500]}")
        raise UpstreamError(
            f"{label.title()} request failed with status {response.status_code}",
            status_code=response.status_code,
            details=response.text,
        )
    if not response.content.strip():
        raise UpstreamError(f"{label.title()} returned an empty response", status_code=response.status_code)
    try:
        return response.json()
    except ValueError as e:
        raise UpstreamError(
            f"{label.title()} returned invalid JSON",
            status_code=response.status_code,
            details=response.text[:500],
        ) from e


async def _request(
    method: str,
    url: str,
    label: str,
    payload: dict | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    try:
        async with httpx.AsyncClient(timeout=UPSTREAM_TIMEOUT_SECONDS, transport=transport) as client:
            response = await client.request(method, url, json=payload)
    except httpx.HTTPError as e:
        logger.error(f"[{label}] {method} {url} failed: {e!r}")
        raise UpstreamError(f"Failed to call {label.lower()}", details=str(e)) from e
    return _decode(response, label)


async def post_webhook(payload: dict, transport: httpx.AsyncBaseTransport | None = None) -> Any:
    """Send one conversation turn to the workflow webhook and return its JSON."""
    logger.info(
        f"[WEBHOOK] POST session={payload.get('session_id')} "
        f"shape={'first' if payload.get('first_message') else 'follow-up'} "
        f"messages={len(payload.get('messages') or [])}"
    )
    data = await _request("POST", WEBHOOK_URL, "WEBHOOK", payload, transport)
    item = data[0] if isinstance(data, list) and data else data
    if isinstance(item, dict):
        logger.info(f"[WEBHOOK] Response keys: {sorted(item.keys())}")
    return data


async def fetch_test_cases(transport: httpx.AsyncBaseTransport | None = None) -> Any:
    return await _request("GET", TEST_CASES_URL, "TEST CASES", transport=transport)


async def run_batch(payload: dict, transport: httpx.AsyncBaseTransport | None = None) -> Any:
    logger.info(f"[BATCH] Running batch: {payload}")
    return await _request("POST", BATCH_WEBHOOK_URL, "BATCH", payload, transport)


async def evaluate(run_id: str, transport: httpx.AsyncBaseTransport | None = None) -> Any:
    logger.info(f"[BATCH] Evaluating run {run_id}")
    return await _request("POST", EVALUATOR_WEBHOOK_URL, "EVALUATOR", {"run_id": run_id}, transport)
