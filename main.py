"""Webhook Chat API entry point."""

import logging

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import HTMLResponse

from webhook_chat import services
from webhook_chat.config import LOG_LEVEL
from webhook_chat.presentation import render_transcript
from webhook_chat.routes import router
from webhook_chat.store import SessionStore

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

app = FastAPI(
    title="Webhook Chat API",
    description="Chat sessions over an LLM orchestration webhook",
    version="0.1.0",
)

app.include_router(router, prefix="/api")


@app.get("/", response_class=HTMLResponse)
async def root(store: SessionStore = Depends(services.get_session_store)):
    """Serve the active session transcript."""
    return render_transcript(store.active_session)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
