"""Key-value persistence for the session collection."""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from pydantic import ValidationError

from webhook_chat.config import DATABASE_PATH, STORAGE_KEY
from webhook_chat.models import SessionState

logger = logging.getLogger(__name__)


@contextmanager
def get_connection(path: Path = DATABASE_PATH):
    """Context manager for database connections."""
    conn = sqlite3.connect(path)
    try:
        yield conn
    finally:
        conn.close()


def init_db(path: Path = DATABASE_PATH) -> None:
    """Initialize the database with the key-value table."""
    with get_connection(path) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.commit()


def read_value(key: str, path: Path = DATABASE_PATH) -> str | None:
    """Return the blob stored under key, or None."""
    with get_connection(path) as conn:
        row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None


def write_value(key: str, value: str, path: Path = DATABASE_PATH) -> None:
    """Overwrite the blob stored under key."""
    with get_connection(path) as conn:
        conn.execute(
            """
            INSERT INTO kv_store (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            """,
            (key, value),
        )
        conn.commit()


class SqliteSessionRepository:
    """Stores the whole SessionState as one JSON blob under a fixed key."""

    def __init__(self, path: Path = DATABASE_PATH, key: str = STORAGE_KEY):
        self.path = path
        self.key = key
        init_db(path)

    def load(self) -> SessionState | None:
        """Read the persisted state. Unreadable or corrupt data counts as absent."""
        try:
            raw = read_value(self.key, self.path)
        except sqlite3.Error as e:
            logger.error(f"[STORE] Failed to read sessions: {e}")
            return None
        if raw is None:
            return None
        try:
            return SessionState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"[STORE] Discarding unreadable session data: {e.error_count()} errors")
            return None

    def save(self, state: SessionState) -> None:
        write_value(self.key, state.model_dump_json(), self.path)
