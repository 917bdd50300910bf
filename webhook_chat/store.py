"""Session store: the chat session collection and the active session pointer.

All mutations go through this class and each one persists the whole
collection. Mutations are synchronous, so on the asyncio event loop every
update is an atomic read-modify-write; responses from concurrent sends are
applied to the session id they were dispatched for.
"""

import logging
import time
import uuid
from enum import Enum
from typing import Callable, Protocol

from webhook_chat.models import DEFAULT_SESSION_TITLE, ChatMessage, ChatSession, SessionState

logger = logging.getLogger(__name__)

TITLE_LENGTH = 30


class SessionRepository(Protocol):
    """Loads and saves the whole session collection."""

    def load(self) -> SessionState | None: ...

    def save(self, state: SessionState) -> None: ...


class UiSignal(str, Enum):
    """Selection changes the store asks the UI to make."""

    RESET_SELECTION = "reset_selection"
    FOCUS_MESSAGE = "focus_message"


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


def derive_title(messages: list[ChatMessage]) -> str:
    """First 30 characters of the first user message, with an ellipsis if cut."""
    for message in messages:
        if message.role == "user":
            text = message.text
            if len(text) > TITLE_LENGTH:
                return text[:TITLE_LENGTH] + "…"
            return text or DEFAULT_SESSION_TITLE
    return DEFAULT_SESSION_TITLE


class SessionStore:
    """In-memory session collection backed by a repository."""

    def __init__(
        self,
        repository: SessionRepository,
        on_signal: Callable[[UiSignal, str | None], None] | None = None,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = new_id,
    ):
        self.repository = repository
        self.on_signal = on_signal
        self.clock = clock
        self.id_factory = id_factory
        self.sessions: list[ChatSession] = []
        self.active_session_id: str | None = None
        self._rehydrate()

    def _rehydrate(self) -> None:
        """Load saved sessions, or bootstrap a single empty one."""
        try:
            state = self.repository.load()
        except Exception as e:
            logger.error(f"[STORE] Failed to load sessions, starting fresh: {e}")
            state = None

        if state is None or not state.sessions:
            session = self._new_session()
            self.sessions = [session]
            self.active_session_id = session.id
            self._persist()
            return

        self.sessions = list(state.sessions)
        ids = {session.id for session in self.sessions}
        self.active_session_id = state.active_session_id if state.active_session_id in ids else self.sessions[0].id
        logger.info(f"[STORE] Loaded {len(self.sessions)} sessions")

    def _new_session(self) -> ChatSession:
        """A fresh untitled session stamped with the current time."""
        now = self.clock()
        return ChatSession(id=self.id_factory(), created_at=now, updated_at=now)

    def _persist(self) -> None:
        """Save the collection; failures are logged, never raised."""
        state = SessionState(sessions=self.sessions, active_session_id=self.active_session_id)
        try:
            self.repository.save(state)
        except Exception as e:
            logger.error(f"[STORE] Failed to persist sessions: {e}")

    def signal(self, signal: UiSignal, message_id: str | None = None) -> None:
        """Forward a UI signal to the listener, if any."""
        if self.on_signal is not None:
            self.on_signal(signal, message_id)

    # Reads

    def get_session(self, session_id: str) -> ChatSession | None:
        """Get a session by ID."""
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None

    @property
    def active_session(self) -> ChatSession | None:
        """The session the UI is showing."""
        return self.get_session(self.active_session_id) if self.active_session_id else None

    def list_sessions(self) -> list[ChatSession]:
        """Sessions for display, most recently updated first."""
        return sorted(self.sessions, key=lambda session: session.updated_at, reverse=True)

    # Mutations

    def create_session(self) -> str:
        """Create a session, make it active and return its ID."""
        session = self._new_session()
        self.sessions.append(session)
        self.active_session_id = session.id
        self._persist()
        self.signal(UiSignal.RESET_SELECTION)
        logger.info(f"[STORE] Created session {session.id}")
        return session.id

    def delete_session(self, session_id: str) -> None:
        """Delete a session; the last one is replaced by a fresh session."""
        remaining = [session for session in self.sessions if session.id != session_id]
        if len(remaining) == len(self.sessions):
            logger.warning(f"[STORE] Delete of unknown session {session_id}")
            return

        if not remaining:
            remaining = [self._new_session()]
        self.sessions = remaining
        if self.active_session_id == session_id or self.get_session(self.active_session_id) is None:
            self.active_session_id = self.sessions[0].id
        self._persist()
        logger.info(f"[STORE] Deleted session {session_id}")

    def select_session(self, session_id: str) -> None:
        """Make a session active and reset the message selection."""
        if self.get_session(session_id) is None:
            logger.warning(f"[STORE] Select of unknown session {session_id}")
            return
        self.active_session_id = session_id
        self._persist()
        self.signal(UiSignal.RESET_SELECTION)

    def update_session(self, session_id: str, mutator: Callable[[ChatSession], None]) -> ChatSession | None:
        """Apply mutator to one session, bump updated_at and persist."""
        session = self.get_session(session_id)
        if session is None:
            logger.warning(f"[STORE] Update of unknown session {session_id}")
            return None
        mutator(session)
        session.updated_at = max(self.clock(), session.updated_at)
        self._persist()
        return session

    def set_model(self, session_id: str, model_id: str | None) -> ChatSession | None:
        """Set the model used for the next turns."""

        def apply(session: ChatSession) -> None:
            session.model_id = model_id

        return self.update_session(session_id, apply)

    def set_prompts(
        self, session_id: str, intent_system_prompt: str | None, runtime_system_prompt: str | None
    ) -> ChatSession | None:
        """Replace both prompt overrides; None clears one."""

        def apply(session: ChatSession) -> None:
            session.intent_system_prompt = intent_system_prompt
            session.runtime_system_prompt = runtime_system_prompt

        return self.update_session(session_id, apply)

    def append_message(
        self, session_id: str, message: ChatMessage, new_agent: str | None = None
    ) -> ChatSession | None:
        """Append a message, re-derive the title and move the agent forward."""

        def apply(session: ChatSession) -> None:
            if session.messages and message.timestamp < session.messages[-1].timestamp:
                message.timestamp = session.messages[-1].timestamp
            session.messages.append(message)
            session.title = derive_title(session.messages)
            if new_agent:
                session.current_agent = new_agent

        return self.update_session(session_id, apply)

    def set_message_status(self, session_id: str, message_id: str, status: str) -> ChatSession | None:
        """Set the delivery status of one message."""

        def apply(session: ChatSession) -> None:
            for message in session.messages:
                if message.id == message_id:
                    message.status = status

        return self.update_session(session_id, apply)
