"""Application configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent.parent

# Upstream conversation workflow
WEBHOOK_URL = os.getenv("WEBHOOK_URL", "http://localhost:5678/webhook/chat")
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "120"))

# OpenAI-compatible model list provider
MODELS_API_URL = os.getenv("MODELS_API_URL", "https://api.cerebras.ai/v1")
MODELS_API_KEY = os.getenv("MODELS_API_KEY", "")

# Batch harness providers
BATCH_WEBHOOK_URL = os.getenv("BATCH_WEBHOOK_URL", "http://localhost:5678/webhook/batch-executor")
EVALUATOR_WEBHOOK_URL = os.getenv("EVALUATOR_WEBHOOK_URL", "http://localhost:5678/webhook/evaluator")
TEST_CASES_URL = os.getenv("TEST_CASES_URL", "http://localhost:5678/webhook/test-cases")

DATABASE_PATH = Path(os.getenv("DATABASE_PATH", str(BASE_DIR / "chat_sessions.db")))
STORAGE_KEY = os.getenv("STORAGE_KEY", "chat-sessions")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

PROMPTS_DIR = BASE_DIR / "prompts"
INTENT_PROMPT_PATH = PROMPTS_DIR / "intent_system_prompt.txt"
RUNTIME_PROMPT_PATH = PROMPTS_DIR / "runtime_system_prompt.txt"


def load_default_prompts() -> dict[str, str]:
    """Load the default intent and runtime system prompts from file."""
    return {
        "intent_system_prompt": INTENT_PROMPT_PATH.read_text(encoding="utf-8"),
        "runtime_system_prompt": RUNTIME_PROMPT_PATH.read_text(encoding="utf-8"),
    }
