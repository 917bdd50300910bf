"""Test doubles for the session store."""

from webhook_chat.models import SessionState


class InMemorySessionRepository:
    """Repository fake that keeps the last saved state as JSON."""

    def __init__(self, state: SessionState | None = None):
        self.raw = state.model_dump_json() if state is not None else None
        self.saves = 0

    def load(self) -> SessionState | None:
        if self.raw is None:
            return None
        return SessionState.model_validate_json(self.raw)

    def save(self, state: SessionState) -> None:
        self.raw = state.model_dump_json()
        self.saves += 1


class FakeClock:
    """Deterministic epoch-millisecond clock that advances on every call."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1000):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value
